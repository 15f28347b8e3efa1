"""
cdp_har/cdp/__init__.py

CDP (Chrome DevTools Protocol) session package.

Primary classes:
- AbstractCDPSession: Interface the HAR recorder depends on
- AsyncCDPSession: Websocket-backed implementation
"""

from cdp_har.cdp.abstract_cdp_session import AbstractCDPSession
from cdp_har.cdp.async_cdp_session import AsyncCDPSession
from cdp_har.cdp.connection import create_new_tab, get_page_websocket_url

__all__ = [
    "AbstractCDPSession",
    "AsyncCDPSession",
    "create_new_tab",
    "get_page_websocket_url",
]
