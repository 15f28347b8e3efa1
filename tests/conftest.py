"""
tests/conftest.py

Configuration for pytest.
"""

import asyncio
import base64
import inspect
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from cdp_har.cdp.abstract_cdp_session import AbstractCDPSession, EventHandler
from cdp_har.utils.exceptions import CDPCommandError

# keeps retry-chain tests fast
FAST_RETRY_DELAY = 0.01


class FakeCDPSession(AbstractCDPSession):
    """
    In-memory CDP session.
    Network.getResponseBody outcomes are scripted per requestId; every other command returns {}.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.handlers: dict[str, list[EventHandler]] = {}
        self.body_scripts: dict[str, list[Any]] = {}
        self.command_errors: dict[str, Exception] = {}
        self.detached = False

    def script_body(self, request_id: str, *outcomes: Any) -> None:
        """
        Queue getResponseBody outcomes for `request_id`: result dicts or exceptions.
        The last outcome repeats once the queue is down to one.
        """
        self.body_scripts[request_id] = list(outcomes)

    def script_text_body(self, request_id: str, text: str, base64_encoded: bool = True) -> None:
        if base64_encoded:
            body = base64.b64encode(text.encode("utf-8")).decode("ascii")
        else:
            body = text
        self.script_body(request_id, {"body": body, "base64Encoded": base64_encoded})

    def body_calls(self, request_id: str | None = None) -> int:
        return sum(
            1 for method, params in self.sent
            if method == "Network.getResponseBody"
            and (request_id is None or params.get("requestId") == request_id)
        )

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        self.sent.append((method, params))
        if method in self.command_errors:
            raise self.command_errors[method]
        if method != "Network.getResponseBody":
            return {}

        script = self.body_scripts.get(params.get("requestId"))
        if not script:
            raise CDPCommandError(method, {"code": -32000, "message": "No resource with given identifier found"})
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def on(self, method: str, handler: EventHandler) -> None:
        self.handlers.setdefault(method, []).append(handler)

    def off(self, method: str, handler: EventHandler) -> None:
        handlers = self.handlers.get(method)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def detach(self) -> None:
        self.detached = True

    async def emit(self, method: str, params: dict[str, Any]) -> None:
        """Deliver an event to the subscribed handlers, as the receiver loop would."""
        for handler in list(self.handlers.get(method, [])):
            result = handler(params)
            if inspect.isawaitable(result):
                await result


class EchoWebSocket:
    """
    Websocket stand-in for AsyncCDPSession.
    Every command is answered with {"id": n, "result": {}} unless a result is scripted for its method.
    """

    def __init__(self, results: dict[str, dict[str, Any]] | None = None) -> None:
        self.results = results if results is not None else {}
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        msg = json.loads(data)
        self.sent.append(msg)
        result = self.results.get(msg["method"], {})
        await self._incoming.put(json.dumps({"id": msg["id"], "result": result}))

    async def close(self) -> None:
        self.closed = True
        await self._incoming.put(None)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            message = await self._incoming.get()
            if message is None:
                return
            yield message


class CDPEventFactory:
    """Builds realistic CDP network/page event params."""

    def __init__(self) -> None:
        self.clock = 1000.0
        self.wall_clock = 1_700_000_000.0

    def _tick(self, seconds: float = 0.01) -> float:
        self.clock += seconds
        return self.clock

    def request_will_be_sent(
        self,
        request_id: str,
        url: str,
        resource_type: str = "XHR",
        method: str = "GET",
        loader_id: str = "L1",
        frame_id: str = "F1",
        headers: dict[str, str] | None = None,
        post_data: str | None = None,
        redirect_response: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        timestamp = self._tick()
        request: dict[str, Any] = {
            "url": url,
            "method": method,
            "headers": headers or {"Accept": "*/*"},
            "initialPriority": "High",
        }
        if post_data is not None:
            request["postData"] = post_data
            request["hasPostData"] = True
        params: dict[str, Any] = {
            "requestId": request_id,
            "loaderId": loader_id,
            "documentURL": url,
            "request": request,
            "timestamp": timestamp,
            "wallTime": self.wall_clock + (timestamp - 1000.0),
            "initiator": {"type": "other"},
            "type": resource_type,
            "frameId": frame_id,
        }
        if redirect_response is not None:
            params["redirectResponse"] = redirect_response
        return params

    def response(
        self,
        url: str,
        status: int = 200,
        mime_type: str = "application/json",
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return {
            "url": url,
            "status": status,
            "statusText": "OK" if status == 200 else "",
            "headers": headers or {"content-type": mime_type},
            "mimeType": mime_type,
            "protocol": "h2",
            "remoteIPAddress": "93.184.216.34",
            "connectionId": 42,
            "encodedDataLength": 120,
        }

    def response_received(
        self,
        request_id: str,
        url: str,
        resource_type: str = "XHR",
        status: int = 200,
        mime_type: str = "application/json",
        loader_id: str = "L1",
        frame_id: str = "F1",
    ) -> dict[str, Any]:
        return {
            "requestId": request_id,
            "loaderId": loader_id,
            "timestamp": self._tick(),
            "type": resource_type,
            "response": self.response(url, status=status, mime_type=mime_type),
            "frameId": frame_id,
        }

    def data_received(self, request_id: str, data_length: int) -> dict[str, Any]:
        return {
            "requestId": request_id,
            "timestamp": self._tick(),
            "dataLength": data_length,
            "encodedDataLength": data_length,
        }

    def loading_finished(self, request_id: str, encoded_data_length: int = 512) -> dict[str, Any]:
        return {
            "requestId": request_id,
            "timestamp": self._tick(),
            "encodedDataLength": encoded_data_length,
        }

    def loading_failed(self, request_id: str, error_text: str = "net::ERR_FAILED") -> dict[str, Any]:
        return {
            "requestId": request_id,
            "timestamp": self._tick(),
            "type": "XHR",
            "errorText": error_text,
            "canceled": False,
        }

    def page_event(self, offset: float | None = None) -> dict[str, Any]:
        return {"timestamp": self._tick(offset if offset is not None else 0.01)}


@pytest.fixture(scope="session")
def tests_root() -> Path:
    """
    Root directory for tests.
    Returns:
        Path to the tests directory.
    """
    return Path(__file__).parent.resolve()


@pytest.fixture
def fake_session() -> FakeCDPSession:
    """
    Scripted CDP session.
    Returns:
        A fresh FakeCDPSession.
    """
    return FakeCDPSession()


@pytest.fixture
def cdp_events() -> CDPEventFactory:
    """
    Factory for CDP event params with a monotonic clock.
    Returns:
        A fresh CDPEventFactory.
    """
    return CDPEventFactory()


@pytest.fixture
def fast_retry_delay() -> float:
    return FAST_RETRY_DELAY


@pytest.fixture
def echo_results() -> dict[str, dict[str, Any]]:
    """Command results by method, shared by every EchoWebSocket opened through echo_sockets."""
    return {}


@pytest.fixture
def echo_sockets(echo_results):
    """
    Patches the websocket connect used by AsyncCDPSession.
    Each connect opens a fresh EchoWebSocket.
    Yields:
        The opened sockets, in connect order.
    """
    sockets: list[EchoWebSocket] = []

    def open_socket(*args: Any, **kwargs: Any) -> EchoWebSocket:
        ws = EchoWebSocket(results=echo_results)
        sockets.append(ws)
        return ws

    with patch("cdp_har.cdp.async_cdp_session.connect", AsyncMock(side_effect=open_socket)):
        yield sockets
