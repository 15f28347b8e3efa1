"""
cdp_har/cdp/connection.py

Chrome DevTools HTTP endpoint helpers for locating page targets.
"""

from typing import Any
from urllib.parse import quote, urlparse, urlunparse

import requests

from cdp_har.utils.exceptions import BrowserConnectionError
from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)

DEFAULT_PORT = 9222


def remote_debugging_address_for_port(port: int = DEFAULT_PORT) -> str:
    return f"http://127.0.0.1:{port}"


def check_chrome_running(remote_debugging_address: str) -> bool:
    """Check if Chrome is answering on its remote debugging address."""
    try:
        response = requests.get(f"{remote_debugging_address.rstrip('/')}/json/version", timeout=1)
        return response.status_code == 200
    except requests.RequestException:
        return False


def _normalize_ws_url(raw_ws: str, remote_debugging_address: str) -> str:
    """Rewrite the websocket netloc to the host:port we actually reached Chrome on."""
    parsed = urlparse(raw_ws)
    base_parsed = urlparse(remote_debugging_address)
    if not base_parsed.hostname or not base_parsed.port:
        return raw_ws
    fixed_netloc = f"{base_parsed.hostname}:{base_parsed.port}"
    return urlunparse(parsed._replace(netloc=fixed_netloc))


def list_targets(remote_debugging_address: str) -> list[dict[str, Any]]:
    """
    List debuggable targets.
    Args:
        remote_debugging_address: The Chrome debugging server address (e.g., 'http://127.0.0.1:9222').
    Returns:
        The /json/list payload.
    Raises:
        BrowserConnectionError: If Chrome cannot be reached.
    """
    base = remote_debugging_address.rstrip("/")
    try:
        response = requests.get(f"{base}/json/list", timeout=5)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        raise BrowserConnectionError(f"Failed to list targets at {base}: {e}") from e


def get_page_websocket_url(remote_debugging_address: str, tab_id: str | None = None) -> str:
    """
    Get the page-level WebSocket URL for a tab.
    Args:
        remote_debugging_address: The Chrome debugging server address.
        tab_id: Target id of the tab. When None, the first page target is used.
    Returns:
        The websocket URL to pass to AsyncCDPSession.
    Raises:
        BrowserConnectionError: If no matching page target exists.
    """
    targets = list_targets(remote_debugging_address)
    pages = [t for t in targets if t.get("type") == "page"]
    if tab_id is not None:
        pages = [t for t in pages if t.get("id") == tab_id]
    if not pages:
        wanted = f"page target {tab_id}" if tab_id else "any page target"
        raise BrowserConnectionError(f"Could not find {wanted} at {remote_debugging_address}")

    target = pages[0]
    raw_ws = target.get("webSocketDebuggerUrl")
    if not raw_ws:
        raise BrowserConnectionError(
            f"Target {target.get('id')} has no webSocketDebuggerUrl (is DevTools already attached?)"
        )
    ws_url = _normalize_ws_url(raw_ws, remote_debugging_address)
    logger.info("🎯 Using page target %s (url: %s)", target.get("id"), target.get("url", "unknown"))
    return ws_url


def create_new_tab(remote_debugging_address: str, url: str = "about:blank") -> str:
    """
    Open a new tab and return its page-level WebSocket URL.
    Args:
        remote_debugging_address: The Chrome debugging server address.
        url: Initial URL for the tab.
    Returns:
        The websocket URL of the new tab.
    Raises:
        BrowserConnectionError: If the tab cannot be created.
    """
    base = remote_debugging_address.rstrip("/")
    try:
        # recent Chrome versions reject GET on /json/new
        response = requests.put(f"{base}/json/new?{quote(url, safe='')}", timeout=5)
        response.raise_for_status()
        target = response.json()
    except (requests.RequestException, ValueError) as e:
        raise BrowserConnectionError(f"Failed to create browser tab: {e}") from e

    raw_ws = target.get("webSocketDebuggerUrl")
    if not raw_ws:
        raise BrowserConnectionError("New tab has no webSocketDebuggerUrl")
    logger.info("🆕 Created tab %s", target.get("id"))
    return _normalize_ws_url(raw_ws, remote_debugging_address)
