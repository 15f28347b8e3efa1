"""
cdp-har - Record Chrome DevTools Protocol traffic into HAR files.

Usage:
    from cdp_har import AsyncCDPSession, HarRecorder, get_page_websocket_url

    ws_url = get_page_websocket_url("http://127.0.0.1:9222")
    async with AsyncCDPSession(ws_url=ws_url) as session:
        recorder = HarRecorder(session)
        await recorder.start({"saveResponse": True})
        # User performs actions in browser
        har = await recorder.stop()
"""

__version__ = "0.1.0"

# Public API - High-level interface
from .har import AbstractHarBuilder, HarBuilder, HarRecorder

# CDP session
from .cdp import AbstractCDPSession, AsyncCDPSession, create_new_tab, get_page_websocket_url

# Data models - for advanced users
from .data_models import RecordingOptions, SessionStats

# Exceptions
from .utils.exceptions import (
    CdpHarError,
    RecordingStateError,
    BrowserConnectionError,
    CDPCommandError,
    CDPCommandTimeoutError,
)

__all__ = [
    # High-level API
    "HarRecorder",
    "HarBuilder",
    "AbstractHarBuilder",
    # CDP
    "AbstractCDPSession",
    "AsyncCDPSession",
    "create_new_tab",
    "get_page_websocket_url",
    # Data models
    "RecordingOptions",
    "SessionStats",
    # Exceptions
    "CdpHarError",
    "RecordingStateError",
    "BrowserConnectionError",
    "CDPCommandError",
    "CDPCommandTimeoutError",
]
