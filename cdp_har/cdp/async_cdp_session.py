"""
cdp_har/cdp/async_cdp_session.py

Websocket-backed asynchronous CDP session.
"""

import asyncio
import inspect
import json
from typing import Any

from websockets.asyncio.client import connect, ClientConnection

from cdp_har.cdp.abstract_cdp_session import AbstractCDPSession, EventHandler
from cdp_har.config import Config
from cdp_har.utils.exceptions import BrowserConnectionError, CDPCommandError, CDPCommandTimeoutError
from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)


class AsyncCDPSession(AbstractCDPSession):
    """
    CDP session over a single websocket connection.
    Sends commands, matches replies to pending futures and dispatches events to registered handlers.

    Usage:
        async with AsyncCDPSession(ws_url="ws://127.0.0.1:9222/devtools/page/<TARGET_ID>") as session:
            await session.send("Network.enable")
            session.on("Network.responseReceived", handler)
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        ws_url: str,
        command_timeout: float = Config.CDP_COMMAND_TIMEOUT,
    ) -> None:
        """
        Initialize AsyncCDPSession.
        Args:
            ws_url: WebSocket URL of a page target (or of the browser, followed by attach_to_target()).
            command_timeout: Seconds to wait for each command reply.
        """
        self.ws_url = ws_url
        self.command_timeout = command_timeout
        self.ws: ClientConnection | None = None
        self.seq = 0  # sequence ID for CDP commands

        # command ID -> (method, future)
        self.pending_responses: dict[int, tuple[str, asyncio.Future]] = {}
        # event method -> handlers, in registration order
        self._handlers: dict[str, list[EventHandler]] = {}
        self._receiver_task: asyncio.Task | None = None

        # set when attached through Target.attachToTarget on a browser-level connection
        self.page_session_id: str | None = None
        # re-attached on the next connect() after a detach
        self.target_id: str | None = None

    async def __aenter__(self) -> "AsyncCDPSession":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.detach()


    # Private methods ______________________________________________________________________________________________________

    async def _message_receiver(self) -> None:
        """Receive and process WebSocket messages until the connection closes."""
        message_count = 0
        try:
            async for message in self.ws:
                message_count += 1
                try:
                    msg = json.loads(message)
                    await self.handle_message(msg)
                except Exception as e:
                    logger.error("❌ Error handling message #%d: %s", message_count, e, exc_info=True)
                    logger.error("❌ Message was: %s", str(message)[:250])
        except asyncio.CancelledError:
            logger.debug("🛑 Message receiver cancelled (processed %d messages)", message_count)
            raise
        except Exception as e:
            logger.error("❌ Error in message receiver: %s", e, exc_info=True)
        finally:
            self._fail_pending(BrowserConnectionError("CDP websocket connection closed"))

    def _fail_pending(self, exc: Exception) -> None:
        for _, future in self.pending_responses.values():
            if not future.done():
                future.set_exception(exc)
        self.pending_responses.clear()

    def _handle_command_reply(self, msg: dict) -> None:
        """Resolve the future waiting on a CDP command reply."""
        cmd_id = msg.get("id")
        pending = self.pending_responses.pop(cmd_id, None)
        if pending is None:
            logger.debug("📥 Command reply not handled: id=%s", cmd_id)
            return
        method, future = pending
        if future.done():
            return
        if "error" in msg:
            future.set_exception(CDPCommandError(method=method, error=msg["error"]))
        else:
            future.set_result(msg.get("result") or {})

    async def _dispatch_event(self, method: str, params: dict[str, Any]) -> None:
        """Call every handler registered for `method`. A failing handler does not stop the others."""
        for handler in list(self._handlers.get(method, [])):
            try:
                result = handler(params)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("❌ Handler for %s raised: %s", method, e, exc_info=True)


    # Public methods _______________________________________________________________________________________________________

    @property
    def connected(self) -> bool:
        return self.ws is not None

    async def connect(self) -> None:
        """
        Open the websocket and start the background receiver.
        A session previously attached with attach_to_target() is attached again.
        Does nothing when already connected.
        """
        if self.ws is not None:
            return
        logger.info("🔌 Connecting to CDP: %s", self.ws_url)
        try:
            self.ws = await connect(uri=self.ws_url, max_size=None)
        except Exception as e:
            raise BrowserConnectionError(f"Failed to connect to {self.ws_url}: {e}") from e
        self._receiver_task = asyncio.create_task(self._message_receiver())
        logger.info("✅ WebSocket connected")
        if self.target_id is not None:
            await self.attach_to_target(self.target_id)

    async def attach_to_target(self, target_id: str) -> str:
        """
        Attach to a page target over a browser-level connection (flatten mode).
        Subsequent commands carry the returned sessionId.
        Args:
            target_id: The page targetId.
        Returns:
            The CDP sessionId.
        """
        result = await self.send("Target.attachToTarget", {"targetId": target_id, "flatten": True})
        session_id = result.get("sessionId")
        if not session_id:
            raise BrowserConnectionError("No sessionId in Target.attachToTarget response")
        self.page_session_id = session_id
        self.target_id = target_id
        logger.debug("✅ Attached to target %s (sessionId=%s)", target_id, session_id)
        return session_id

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Send CDP command and wait for its reply.
        Args:
            method: The CDP method to send. For example, "Network.getResponseBody".
            params: The parameters to send with the command.
        Returns:
            The `result` object of the reply.
        """
        if self.ws is None:
            raise BrowserConnectionError("WebSocket not connected")

        self.seq += 1
        cmd_id = self.seq
        msg: dict[str, Any] = {
            "id": cmd_id,
            "method": method,
            "params": params or {},
        }
        if self.page_session_id:
            msg["sessionId"] = self.page_session_id

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.pending_responses[cmd_id] = (method, future)
        try:
            await self.ws.send(json.dumps(msg))
            return await asyncio.wait_for(future, timeout=self.command_timeout)
        except asyncio.TimeoutError:
            raise CDPCommandTimeoutError(method=method, timeout=self.command_timeout)
        finally:
            self.pending_responses.pop(cmd_id, None)

    def on(self, method: str, handler: EventHandler) -> None:
        self._handlers.setdefault(method, []).append(handler)

    def off(self, method: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(method)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def handle_message(self, msg: dict) -> None:
        """Route one incoming CDP message to its pending command or event handlers."""
        if "id" in msg:
            self._handle_command_reply(msg)
            return

        method = msg.get("method")
        if not method:
            return
        session_id = msg.get("sessionId")
        if self.page_session_id and session_id and session_id != self.page_session_id:
            # event from another attached target
            return
        await self._dispatch_event(method, msg.get("params") or {})

    async def detach(self) -> None:
        """Stop receiving, fail pending commands and close the websocket."""
        self._handlers.clear()
        if self._receiver_task is not None:
            self._receiver_task.cancel()
            try:
                await self._receiver_task
            except asyncio.CancelledError:
                pass
            self._receiver_task = None
        self._fail_pending(BrowserConnectionError("CDP session detached"))
        # flatten-mode sessionIds do not survive the connection
        self.page_session_id = None
        if self.ws is not None:
            await self.ws.close()
            self.ws = None
            logger.info("🔌 CDP session detached")
