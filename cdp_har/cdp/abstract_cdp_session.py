"""
cdp_har/cdp/abstract_cdp_session.py

Abstract base class for CDP sessions consumed by the HAR recorder.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


class AbstractCDPSession(ABC):
    """
    Abstract base class for an attached CDP session.
    The HAR recorder only needs to issue commands, subscribe to events and detach.
    """

    @property
    def connected(self) -> bool:
        """Whether commands can be sent. Sessions without a transport to open are always connected."""
        return True

    async def connect(self) -> None:
        """Open the transport. Called by the recorder before each recording when not connected."""

    @abstractmethod
    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Send a CDP command and wait for its result.
        Args:
            method: The CDP method, e.g. "Network.getResponseBody".
            params: The command params.
        Returns:
            The `result` object of the reply.
        Raises:
            CDPCommandError: If the browser replies with an error.
        """

    @abstractmethod
    def on(self, method: str, handler: EventHandler) -> None:
        """
        Register a handler for a CDP event. Handlers receive the event params.
        Handlers may be plain functions or coroutine functions.
        """

    @abstractmethod
    def off(self, method: str, handler: EventHandler) -> None:
        """Unregister a handler previously passed to on(). Unknown handlers are ignored."""

    @abstractmethod
    async def detach(self) -> None:
        """Detach from the target. No events are delivered afterwards."""
