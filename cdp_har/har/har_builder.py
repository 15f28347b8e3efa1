"""
cdp_har/har/har_builder.py

Builds a HAR 1.2 document from recorded CDP page and network events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from urllib.parse import parse_qsl, urlparse

from pydantic import ValidationError

from cdp_har.data_models.cdp_events import (
    CDPEventRecord,
    NetworkEventKind,
    NetworkEventRecord,
    PageEventKind,
    PageEventRecord,
    ResourceType,
    parse_event_record,
)
from cdp_har.data_models.har import (
    HarCache,
    HarContent,
    HarCookie,
    HarEntry,
    HarFile,
    HarHeader,
    HarLog,
    HarPage,
    HarPageTimings,
    HarPostData,
    HarQueryString,
    HarRequest,
    HarResponse,
    HarTimings,
)
from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)

EventInput = CDPEventRecord | Mapping[str, Any]

PROTOCOL_TO_HTTP_VERSION: dict[str, str] = {
    "http/0.9": "HTTP/0.9",
    "http/1.0": "HTTP/1.0",
    "http/1.1": "HTTP/1.1",
    "h2": "HTTP/2",
    "h2c": "HTTP/2",
    "h3": "HTTP/3",
    "quic": "HTTP/3",
}


class AbstractHarBuilder(ABC):
    """
    Turns an ordered sequence of {method, params} CDP events into a HAR document.
    """

    @abstractmethod
    def build(self, events: Iterable[EventInput], include_body: bool = False) -> dict[str, Any]:
        """
        Args:
            events: Page and network events, as records or plain {method, params} mappings.
            include_body: Emit `response.content.text` for responses that carry a `body`.
        Returns:
            The HAR document as a plain mapping.
        """


@dataclass
class _RequestState:
    """Everything collected so far for one request hop."""

    request_id: str
    request: dict[str, Any]
    timestamp: float | None = None
    wall_time: float | None = None
    loader_id: str | None = None
    frame_id: str | None = None
    resource_type: str | None = None
    initiator: dict[str, Any] | None = None
    priority: str | None = None
    response: dict[str, Any] | None = None
    from_cache: bool = False
    data_length: int = 0
    encoded_data_length: int | None = None
    finished_timestamp: float | None = None
    error_text: str | None = None
    redirect_url: str = ""
    redirect_hop: bool = False


@dataclass
class _PageState:
    page_id: str
    loader_id: str | None
    url: str
    timestamp: float | None
    wall_time: float | None
    timings: HarPageTimings = field(default_factory=HarPageTimings)


class HarBuilder(AbstractHarBuilder):
    """
    Default HAR builder.
    One entry per request hop (redirects close the previous hop), pages from main-frame
    document navigations, requests that never got a response are dropped.
    """

    def __init__(self, creator_name: str = "cdp-har", creator_version: str = "0.1.0") -> None:
        self.creator_name = creator_name
        self.creator_version = creator_version


    # Static methods _______________________________________________________________________________________________________

    @staticmethod
    def _to_record(event: EventInput) -> CDPEventRecord:
        if isinstance(event, CDPEventRecord):
            return event
        return parse_event_record(str(event.get("method", "")), event.get("params"))

    @staticmethod
    def _iso(epoch_seconds: float | None) -> str:
        if epoch_seconds is None:
            epoch_seconds = datetime.now(timezone.utc).timestamp()
        return datetime.fromtimestamp(float(epoch_seconds), tz=timezone.utc).isoformat().replace("+00:00", "Z")

    @staticmethod
    def _headers(headers: Any) -> list[HarHeader]:
        """CDP headers are a dict; multi-valued headers are joined with newlines."""
        if not isinstance(headers, dict):
            return []
        result = []
        for name, value in headers.items():
            for line in str(value).split("\n"):
                result.append(HarHeader(name=str(name), value=line))
        return result

    @staticmethod
    def _header_value(headers: Any, name: str) -> str | None:
        if not isinstance(headers, dict):
            return None
        target = name.lower()
        for key, value in headers.items():
            if str(key).lower() == target:
                return str(value)
        return None

    @staticmethod
    def _request_cookies(cookie_header: str | None) -> list[HarCookie]:
        cookies = []
        for part in (cookie_header or "").split(";"):
            part = part.strip()
            if "=" in part:
                name, value = part.split("=", 1)
                cookies.append(HarCookie(name=name.strip(), value=value.strip()))
        return cookies

    @staticmethod
    def _response_cookies(set_cookie_header: str | None) -> list[HarCookie]:
        cookies = []
        for line in (set_cookie_header or "").split("\n"):
            line = line.strip()
            if "=" not in line:
                continue
            pair, *attributes = [piece.strip() for piece in line.split(";")]
            name, value = pair.split("=", 1)
            cookie = HarCookie(name=name.strip(), value=value.strip())
            for attribute in attributes:
                key, _, attr_value = attribute.partition("=")
                key = key.strip().lower()
                if key == "path":
                    cookie.path = attr_value
                elif key == "domain":
                    cookie.domain = attr_value
                elif key == "expires":
                    cookie.expires = attr_value
                elif key == "httponly":
                    cookie.httpOnly = True
                elif key == "secure":
                    cookie.secure = True
            cookies.append(cookie)
        return cookies

    @staticmethod
    def _http_version(response: dict[str, Any]) -> str:
        protocol = str(response.get("protocol") or "").lower()
        return PROTOCOL_TO_HTTP_VERSION.get(protocol, "HTTP/1.1")

    @staticmethod
    def _timings(state: _RequestState, total_ms: float) -> HarTimings:
        """Split the total time into HAR phases using the CDP ResourceTiming object when present."""
        timing = (state.response or {}).get("timing")
        if not isinstance(timing, dict):
            return HarTimings(wait=max(total_ms, 0))

        def span(start_key: str, end_key: str) -> float:
            start, end = timing.get(start_key, -1), timing.get(end_key, -1)
            if start is None or end is None or start < 0 or end < 0:
                return -1
            return max(end - start, 0)

        starts = [timing.get(key, -1) for key in ("dnsStart", "connectStart", "sendStart")]
        blocked = next((s for s in starts if s is not None and s >= 0), -1)
        send_end = timing.get("sendEnd", 0) or 0
        headers_end = timing.get("receiveHeadersEnd", 0) or 0
        request_time = timing.get("requestTime")
        receive = 0.0
        if request_time is not None and state.finished_timestamp is not None:
            receive = max((state.finished_timestamp - request_time) * 1000 - headers_end, 0)
        return HarTimings(
            blocked=blocked,
            dns=span("dnsStart", "dnsEnd"),
            connect=span("connectStart", "connectEnd"),
            ssl=span("sslStart", "sslEnd"),
            send=max(span("sendStart", "sendEnd"), 0),
            wait=max(headers_end - send_end, 0),
            receive=receive,
        )


    # Private methods ______________________________________________________________________________________________________

    def _build_entry(
        self,
        state: _RequestState,
        pageref: str | None,
        include_body: bool,
        wall_offset: float | None,
    ) -> HarEntry:
        request = state.request
        response = state.response or {}
        request_headers = response.get("requestHeaders") or request.get("headers") or {}
        response_headers = response.get("headers") or {}
        url = str(request.get("url", ""))

        post_data = None
        post_text = request.get("postData")
        if post_text:
            post_data = HarPostData(
                mimeType=self._header_value(request_headers, "content-type") or "application/octet-stream",
                text=str(post_text),
            )

        body = response.get("body")
        text = body if include_body and isinstance(body, str) else None
        content_size = state.data_length
        if not content_size and isinstance(body, str):
            content_size = len(body.encode("utf-8"))

        wall_time = state.wall_time
        if wall_time is None and wall_offset is not None and state.timestamp is not None:
            wall_time = state.timestamp + wall_offset

        total_ms = 0.0
        if state.timestamp is not None and state.finished_timestamp is not None:
            total_ms = max((state.finished_timestamp - state.timestamp) * 1000, 0)

        from_cache = None
        if state.from_cache or response.get("fromDiskCache"):
            from_cache = "disk"
        elif response.get("fromPrefetchCache"):
            from_cache = "memory"

        server_ip = response.get("remoteIPAddress")
        if isinstance(server_ip, str):
            server_ip = server_ip.strip("[]")
        connection_id = response.get("connectionId")

        return HarEntry(
            pageref=pageref,
            startedDateTime=self._iso(wall_time),
            time=total_ms,
            request=HarRequest(
                method=str(request.get("method", "GET")),
                url=url,
                httpVersion=self._http_version(response),
                headers=self._headers(request_headers),
                queryString=[
                    HarQueryString(name=key, value=value)
                    for key, value in parse_qsl(urlparse(url).query, keep_blank_values=True)
                ],
                cookies=self._request_cookies(self._header_value(request_headers, "cookie")),
                bodySize=len(str(post_text)) if post_text else 0,
                postData=post_data,
            ),
            response=HarResponse(
                status=int(response.get("status") or 0),
                statusText=str(response.get("statusText") or ""),
                httpVersion=self._http_version(response),
                headers=self._headers(response_headers),
                cookies=self._response_cookies(self._header_value(response_headers, "set-cookie")),
                content=HarContent(
                    size=content_size,
                    mimeType=str(response.get("mimeType") or "x-unknown"),
                    text=text,
                ),
                redirectURL=state.redirect_url,
                bodySize=state.encoded_data_length if state.encoded_data_length is not None else -1,
                transfer_size=state.encoded_data_length,
                error=state.error_text,
            ),
            cache=HarCache(),
            timings=self._timings(state, total_ms),
            serverIPAddress=server_ip or None,
            connection=str(connection_id) if connection_id not in (None, "", 0) else None,
            from_cache=from_cache,
            initiator=state.initiator,
            priority=state.priority or request.get("initialPriority"),
            resource_type=state.resource_type.lower() if state.resource_type else None,
            request_id=state.request_id,
        )

    def _collect_pages(
        self,
        page_records: list[PageEventRecord],
        requests: list[_RequestState],
    ) -> list[_PageState]:
        child_frames = {
            r.params.get("frameId") for r in page_records
            if r.method == PageEventKind.FRAME_ATTACHED and r.params.get("parentFrameId")
        }
        pages: list[_PageState] = []
        root_frame: str | None = None
        for state in requests:
            if state.resource_type != ResourceType.DOCUMENT or state.frame_id in child_frames:
                continue
            if state.redirect_hop or (state.loader_id and state.request_id != state.loader_id):
                # redirect continuation or subresource document
                continue
            if root_frame is None:
                root_frame = state.frame_id
            if state.frame_id != root_frame:
                continue
            pages.append(_PageState(
                page_id=f"page_{len(pages) + 1}",
                loader_id=state.loader_id,
                url=str(state.request.get("url", "")),
                timestamp=state.timestamp,
                wall_time=state.wall_time,
            ))

        for record in page_records:
            if record.method not in (PageEventKind.DOM_CONTENT_EVENT_FIRED, PageEventKind.LOAD_EVENT_FIRED):
                continue
            timestamp = record.params.get("timestamp")
            if not isinstance(timestamp, (int, float)):
                continue
            page = self._page_at(pages, timestamp)
            if page is None or page.timestamp is None:
                continue
            elapsed = max((timestamp - page.timestamp) * 1000, 0)
            if record.method == PageEventKind.DOM_CONTENT_EVENT_FIRED and page.timings.onContentLoad < 0:
                page.timings.onContentLoad = elapsed
            if record.method == PageEventKind.LOAD_EVENT_FIRED and page.timings.onLoad < 0:
                page.timings.onLoad = elapsed
        return pages

    @staticmethod
    def _page_at(pages: list[_PageState], timestamp: float | None) -> _PageState | None:
        """Latest page started at or before `timestamp`."""
        current = None
        for page in pages:
            if timestamp is None or page.timestamp is None or page.timestamp <= timestamp:
                current = page
        return current

    def _pageref(self, pages: list[_PageState], state: _RequestState) -> str | None:
        for page in pages:
            if state.loader_id and page.loader_id == state.loader_id:
                return page.page_id
        page = self._page_at(pages, state.timestamp)
        return page.page_id if page else None

    def _apply_network_event(
        self,
        record: NetworkEventRecord,
        active: dict[str, _RequestState],
        requests: list[_RequestState],
    ) -> None:
        payload = record.payload()
        request_id = payload.requestId

        if record.method == NetworkEventKind.REQUEST_WILL_BE_SENT:
            previous = active.get(request_id)
            if previous is not None and payload.redirectResponse is not None:
                previous.response = payload.redirectResponse
                previous.redirect_url = str(payload.request.get("url", ""))
                previous.finished_timestamp = payload.timestamp
            state = _RequestState(
                request_id=request_id,
                request=payload.request,
                timestamp=payload.timestamp,
                wall_time=payload.wallTime,
                loader_id=payload.loaderId,
                frame_id=payload.frameId,
                resource_type=payload.type,
                initiator=payload.initiator,
                redirect_hop=previous is not None and payload.redirectResponse is not None,
            )
            active[request_id] = state
            requests.append(state)
            return

        state = active.get(request_id)
        if state is None and record.method == NetworkEventKind.RESPONSE_RECEIVED:
            # request was sent before recording started
            response = payload.response
            state = _RequestState(
                request_id=request_id,
                request={
                    "url": response.get("url", ""),
                    "method": "GET",
                    "headers": response.get("requestHeaders") or {},
                },
                timestamp=payload.timestamp,
                loader_id=payload.loaderId,
                frame_id=payload.frameId,
                resource_type=payload.type,
            )
            active[request_id] = state
            requests.append(state)
        if state is None:
            logger.debug("⏭️ %s for untracked requestId=%s", record.method, request_id)
            return

        if record.method == NetworkEventKind.REQUEST_SERVED_FROM_CACHE:
            state.from_cache = True
        elif record.method == NetworkEventKind.RESPONSE_RECEIVED:
            state.response = payload.response
            state.resource_type = payload.type or state.resource_type
        elif record.method == NetworkEventKind.DATA_RECEIVED:
            state.data_length += payload.dataLength
        elif record.method == NetworkEventKind.RESOURCE_CHANGED_PRIORITY:
            state.priority = payload.newPriority
        elif record.method == NetworkEventKind.LOADING_FINISHED:
            state.finished_timestamp = payload.timestamp
            state.encoded_data_length = int(payload.encodedDataLength)
        elif record.method == NetworkEventKind.LOADING_FAILED:
            state.finished_timestamp = payload.timestamp
            state.error_text = payload.errorText or "failed"


    # Public methods _______________________________________________________________________________________________________

    def build(self, events: Iterable[EventInput], include_body: bool = False) -> dict[str, Any]:
        page_records: list[PageEventRecord] = []
        active: dict[str, _RequestState] = {}
        requests: list[_RequestState] = []

        for event in events:
            record = self._to_record(event)
            if isinstance(record, PageEventRecord):
                page_records.append(record)
                continue
            if not isinstance(record, NetworkEventRecord):
                continue
            try:
                self._apply_network_event(record, active, requests)
            except ValidationError as e:
                logger.warning("⚠️ Skipping malformed %s event: %s", record.method, e.errors()[0].get("msg"))

        # map monotonic CDP timestamps onto wall-clock time for hops without wallTime
        wall_offset = next(
            (s.wall_time - s.timestamp for s in requests if s.wall_time is not None and s.timestamp is not None),
            None,
        )
        pages = self._collect_pages(page_records, requests)
        entries = [
            self._build_entry(state, self._pageref(pages, state), include_body, wall_offset)
            for state in requests
            if state.response is not None
        ]
        dropped = len(requests) - len(entries)
        if dropped:
            logger.debug("⏭️ Dropped %d request(s) without a response", dropped)

        har = HarFile(log=HarLog(
            creator={"name": self.creator_name, "version": self.creator_version},
            pages=[
                HarPage(
                    startedDateTime=self._iso(page.wall_time),
                    id=page.page_id,
                    title=page.url,
                    pageTimings=page.timings,
                )
                for page in pages
            ],
            entries=entries,
        ))
        return har.to_dict()
