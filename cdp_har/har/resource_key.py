"""
cdp_har/har/resource_key.py

Logical-resource key derivation for response bodies.
"""

from cdp_har.data_models.cdp_events import ResourceType
from cdp_har.data_models.recording import ResponseEntry

# resource types whose content is identified by URL alone
URL_KEYED_RESOURCE_TYPES: frozenset[str] = frozenset({
    ResourceType.DOCUMENT,
    ResourceType.STYLESHEET,
    ResourceType.IMAGE,
    ResourceType.MEDIA,
    ResourceType.FONT,
})


def get_logical_resource_key(entry: ResponseEntry) -> str:
    """
    Derive the key under which two responses are presumed to carry the same content.
    XHR responses are never shared across requests, so their key includes the requestId.
    Args:
        entry: The response entry.
    Returns:
        The logical resource key.
    """
    response = entry.response or {}
    url = str(response.get("url") or "")
    if entry.type in URL_KEYED_RESOURCE_TYPES:
        return url
    if entry.type == ResourceType.XHR:
        request_id = response.get("requestId") or entry.request_id
        return f"{url}-{request_id}"
    return url
