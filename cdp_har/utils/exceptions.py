"""
cdp_har/utils/exceptions.py

Custom exceptions for cdp-har.

Contains:
- CdpHarError: Base exception
- RecordingStateError: start()/stop() called in the wrong recorder state
- BrowserConnectionError: Browser discovery / websocket connection failures
- CDPCommandError, CDPCommandTimeoutError: CDP command failures
"""

from typing import Any


class CdpHarError(Exception):
    """
    Base exception for all cdp-har errors.
    """


class RecordingStateError(CdpHarError):
    """
    Raised when a HAR recording is started twice or stopped while idle.
    """


class BrowserConnectionError(CdpHarError):
    """
    Raised when unable to discover, connect to, or stay connected to a browser page.
    """


class CDPCommandError(CdpHarError):
    """
    Raised when a CDP command returns an error reply.
    """

    def __init__(self, method: str, error: Any) -> None:
        self.method = method
        self.error = error
        super().__init__(f"CDP command {method} failed: {error}")


class CDPCommandTimeoutError(CDPCommandError, TimeoutError):
    """
    Raised when a CDP command gets no reply within its timeout.
    """

    def __init__(self, method: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(method, f"timed out after {timeout} seconds")
