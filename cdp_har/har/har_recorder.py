"""
cdp_har/har/har_recorder.py

Records a CDP session's page and network traffic into a HAR document.
"""

from __future__ import annotations

import asyncio
import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from cdp_har.cdp.abstract_cdp_session import AbstractCDPSession
from cdp_har.config import Config
from cdp_har.data_models.cdp_events import (
    NETWORK_EVENT_METHODS,
    PAGE_EVENT_METHODS,
    NetworkEventKind,
)
from cdp_har.data_models.recording import (
    RecorderState,
    RecordingOptions,
    ResponseEntry,
    SessionStats,
)
from cdp_har.har.body_deduplicator import BodyDeduplicator
from cdp_har.har.event_recorder import EventRecorder
from cdp_har.har.har_builder import AbstractHarBuilder, HarBuilder
from cdp_har.har.response_fetcher import ResponseFetcher
from cdp_har.utils.exceptions import RecordingStateError
from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)


class HarRecorder:
    """
    Start/stop controller for one HAR recording over an attached CDP session.

    Usage:
        recorder = HarRecorder(cdp_session)
        await recorder.start({"saveResponse": True})
        ...  # drive the page
        har = await recorder.stop()
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        cdp_session: AbstractCDPSession,
        har_builder: AbstractHarBuilder | None = None,
        max_attempts: int = Config.BODY_FETCH_MAX_ATTEMPTS,
        retry_delay: float = Config.BODY_FETCH_RETRY_DELAY,
    ) -> None:
        """
        Initialize HarRecorder.
        Args:
            cdp_session: Session to record. It is detached when the recording stops.
            har_builder: Assembler for the final document. Defaults to HarBuilder.
            max_attempts: Total Network.getResponseBody attempts per fetch.
            retry_delay: Seconds between body-fetch attempts.
        """
        self.cdp_session = cdp_session
        self.har_builder = har_builder or HarBuilder()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        self.state = RecorderState.IDLE
        self.recorder = EventRecorder()
        self.options: RecordingOptions | None = None
        self.last_stats: SessionStats | None = None

        # session-scoped, rebuilt on every start()
        self.entries: dict[str, ResponseEntry] = {}
        self.stats = SessionStats()
        self.fetcher: ResponseFetcher | None = None
        self._pending: set[asyncio.Future] = set()
        self._handlers: dict[str, Callable[[dict[str, Any]], None]] = {}


    # Private methods ______________________________________________________________________________________________________

    def _make_handler(self, method: str) -> Callable[[dict[str, Any]], None]:
        def handler(params: dict[str, Any]) -> None:
            self._on_event(method, params)
        return handler

    def _on_event(self, method: str, params: dict[str, Any] | None) -> None:
        """Record the event and trigger body fetches for network events that call for one."""
        record = self.recorder.observe(method, params)
        if record is None or self.options is None or not self.options.save_response:
            return
        if self.fetcher is None:
            return

        request_id = (params or {}).get("requestId")
        if not isinstance(request_id, str):
            return

        if method == NetworkEventKind.RESPONSE_RECEIVED:
            if request_id not in self.entries:
                try:
                    self.entries[request_id] = ResponseEntry.from_response_received(params)
                except ValidationError as e:
                    logger.warning("⚠️ Could not build response entry for requestId=%s: %s", request_id, e)
                    return
            # best-effort early fetch, settlement not awaited by stop()
            self.fetcher.fetch_body(request_id, track=False)

        elif method == NetworkEventKind.LOADING_FINISHED:
            if request_id not in self.entries:
                logger.debug("⏭️ loadingFinished without a response entry: requestId=%s", request_id)
                return
            self.stats.attempted += 1
            future = self.fetcher.fetch_body(request_id, track=True)
            self._pending.add(future)

    def _subscribe(self) -> None:
        for method in sorted(PAGE_EVENT_METHODS | NETWORK_EVENT_METHODS):
            handler = self._make_handler(method)
            self._handlers[method] = handler
            self.cdp_session.on(method, handler)

    def _unsubscribe(self) -> None:
        for method, handler in self._handlers.items():
            self.cdp_session.off(method, handler)
        self._handlers = {}

    def _collect_events(self) -> list[dict[str, Any]]:
        """
        Page log followed by network log, as plain messages.
        responseReceived messages carry their entry's response, fetched body included.
        """
        events = [record.as_message() for record in self.recorder.page_events]
        for record in self.recorder.network_events:
            message = record.as_message()
            if record.method == NetworkEventKind.RESPONSE_RECEIVED:
                entry = self.entries.get(str(message["params"].get("requestId")))
                if entry is not None and entry.response is not None:
                    message["params"]["response"] = deepcopy(entry.response)
            events.append(message)
        return events

    def _reset_session(self) -> None:
        self._unsubscribe()
        self.recorder.disarm()
        self.recorder.clear()
        self.entries = {}
        self.stats = SessionStats()
        self._pending = set()
        self.fetcher = None
        self.options = None
        self.state = RecorderState.IDLE


    # Public methods _______________________________________________________________________________________________________

    @property
    def is_recording(self) -> bool:
        return self.state == RecorderState.RECORDING

    async def start(self, options: RecordingOptions | dict[str, Any] | None = None) -> None:
        """
        Begin recording.
        Args:
            options: RecordingOptions or its mapping form ({path, saveResponse, captureMimeTypes, waitForRetries}).
        Raises:
            RecordingStateError: If a recording is already running.
        """
        if self.state == RecorderState.RECORDING:
            raise RecordingStateError("HAR recording already started")

        if options is None:
            options = RecordingOptions()
        elif not isinstance(options, RecordingOptions):
            options = RecordingOptions.model_validate(options)

        # stop() detaches the session, so a later start() reconnects it
        if not self.cdp_session.connected:
            await self.cdp_session.connect()

        self.options = options
        self.entries = {}
        self.stats = SessionStats()
        self.fetcher = ResponseFetcher(
            cdp_session=self.cdp_session,
            entries=self.entries,
            deduplicator=BodyDeduplicator(),
            stats=self.stats,
            max_attempts=self.max_attempts,
            retry_delay=self.retry_delay,
        )
        self._pending = set()
        self.recorder.clear()
        self.recorder.arm()
        self.state = RecorderState.RECORDING

        # subscribe first so events emitted right after enable are not missed
        self._subscribe()
        try:
            await self.cdp_session.send("Page.enable")
            await self.cdp_session.send("Network.enable")
        except Exception:
            self._reset_session()
            raise

        logger.info(
            "🎬 HAR recording started (save_response=%s, capture_mime_types=%s)",
            options.save_response, options.capture_mime_types,
        )

    async def stop(self) -> dict[str, Any] | None:
        """
        Stop recording, wait for tracked body fetches and assemble the HAR document.
        Returns:
            The HAR document, or None when it was written to the configured path.
        Raises:
            RecordingStateError: If no recording is running.
        """
        if self.state != RecorderState.RECORDING:
            raise RecordingStateError("HAR recording not started")

        options = self.options or RecordingOptions()
        self.recorder.disarm()

        try:
            if self._pending:
                logger.info("⏳ Waiting for %d pending response body fetch(es)", len(self._pending))
                await asyncio.gather(*list(self._pending))
            if options.wait_for_retries and self.fetcher is not None:
                await self.fetcher.drain()

            self.last_stats = self.stats.model_copy()
            logger.info(
                "📊 Response bodies: attempted=%d, succeeded=%d, failed=%d",
                self.stats.attempted, self.stats.succeeded, self.stats.failed,
            )

            self._unsubscribe()
            await self.cdp_session.detach()

            har = self.har_builder.build(self._collect_events(), include_body=options.save_response)
        finally:
            self._reset_session()

        logger.info("🏁 HAR recording stopped (%d entries)", len(har.get("log", {}).get("entries", [])))
        if options.path:
            output_path = Path(options.path)
            output_path.write_text(json.dumps(har, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info("💾 HAR written to %s", output_path)
            return None
        return har
