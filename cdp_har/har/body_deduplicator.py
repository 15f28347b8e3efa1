"""
cdp_har/har/body_deduplicator.py

Suppresses repeated identical response bodies for the same logical resource.
"""

from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)


class BodyDeduplicator:
    """
    Session-scoped cache of the first body seen per logical resource key.
    """

    def __init__(self) -> None:
        # key -> (owner request id, first body)
        self._cache: dict[str, tuple[str | None, str]] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def reconcile(self, key: str, body: str, owner: str | None = None) -> str | None:
        """
        Decide which body to keep for a freshly fetched response.
        Args:
            key: Logical resource key of the response.
            body: Decoded body.
            owner: Request id the body belongs to. A re-fetch by the owner of the cached body
                is not a duplicate.
        Returns:
            The body to store, or None when an identical body is already held by another request.
        """
        cached = self._cache.get(key)
        if cached is None:
            self._cache[key] = (owner, body)
            return body

        cached_owner, cached_body = cached
        if owner is not None and owner == cached_owner:
            return body
        if cached_body == body:
            return None

        logger.warning(
            "⚠️ Inconsistent content for the same resource: key=%s, requestId=%s (first seen on requestId=%s)",
            key, owner, cached_owner,
        )
        return body

    def clear(self) -> None:
        self._cache.clear()
