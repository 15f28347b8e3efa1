"""
cdp_har/har/response_fetcher.py

Out-of-band response body retrieval via Network.getResponseBody, with bounded retries.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any, Callable

from cdp_har.cdp.abstract_cdp_session import AbstractCDPSession
from cdp_har.config import Config
from cdp_har.data_models.recording import ResponseEntry, SessionStats
from cdp_har.har.body_deduplicator import BodyDeduplicator
from cdp_har.har.resource_key import get_logical_resource_key
from cdp_har.utils.logger import get_logger

logger = get_logger(name=__name__)


class ResponseFetcher:
    """
    Fetches response bodies for one recording session and writes them into that session's
    response entries.

    Each fetch_body() call runs its attempts serially on one background task. The caller is
    signalled as soon as the first attempt settles; retries keep running in the background.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        cdp_session: AbstractCDPSession,
        entries: dict[str, ResponseEntry] | None = None,
        deduplicator: BodyDeduplicator | None = None,
        stats: SessionStats | None = None,
        max_attempts: int = Config.BODY_FETCH_MAX_ATTEMPTS,
        retry_delay: float = Config.BODY_FETCH_RETRY_DELAY,
    ) -> None:
        """
        Initialize ResponseFetcher.
        Args:
            cdp_session: Session used to issue Network.getResponseBody.
            entries: requestId -> ResponseEntry map owned by the recording session.
            deduplicator: Body deduplicator owned by the recording session.
            stats: Outcome counters owned by the recording session.
            max_attempts: Total attempts per fetch_body() call, first attempt included.
            retry_delay: Seconds between attempts.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.cdp_session = cdp_session
        self.entries: dict[str, ResponseEntry] = entries if entries is not None else {}
        self.deduplicator = deduplicator or BodyDeduplicator()
        self.stats = stats or SessionStats()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        # strong references so background chains are not garbage-collected mid-flight
        self._tasks: set[asyncio.Task] = set()


    # Static methods _______________________________________________________________________________________________________

    @staticmethod
    def decode_body(result: dict[str, Any]) -> str:
        """
        Decode a Network.getResponseBody result to text.
        Args:
            result: The command result ({"body": str, "base64Encoded": bool}).
        Returns:
            The body text. Base64 payloads are decoded as UTF-8 with replacement characters.
        """
        body = result.get("body") or ""
        if not result.get("base64Encoded"):
            return body
        try:
            return base64.b64decode(body, validate=True).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            logger.warning("❌ Failed to decode base64 body, keeping raw payload: %s", e)
            return body


    # Private methods ______________________________________________________________________________________________________

    def _store_body(self, request_id: str, body: str) -> bool:
        """
        Attach a fetched body to its entry and reconcile it against earlier sightings.
        Returns:
            False if the entry no longer exists.
        """
        entry = self.entries.get(request_id)
        if entry is None:
            logger.warning("⚠️ Body fetched for unknown requestId=%s, dropping it", request_id)
            return False
        if entry.response is None:
            entry.response = {}

        kept = self.deduplicator.reconcile(
            key=get_logical_resource_key(entry),
            body=body,
            owner=request_id,
        )
        if kept is None:
            entry.response.pop("body", None)
            logger.debug("♻️ Duplicate body suppressed for requestId=%s (%s)", request_id, entry.url)
        else:
            entry.response["body"] = kept
        return True

    async def _fetch_with_retries(
        self,
        request_id: str,
        settle: Callable[[], None],
        track: bool,
    ) -> None:
        url = self.entries[request_id].url if request_id in self.entries else None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self.cdp_session.send("Network.getResponseBody", {"requestId": request_id})
            except asyncio.CancelledError:
                settle()
                raise
            except Exception as e:
                settle()
                remaining = self.max_attempts - attempt
                if remaining > 0:
                    logger.info(
                        "🔁 Failed to get response body, retrying [%d left]: requestId=%s, url=%s, error=%s",
                        remaining, request_id, url, e,
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                if track:
                    self.stats.failed += 1
                logger.error(
                    "❌ Giving up on response body after %d attempts: requestId=%s, url=%s, error=%s",
                    self.max_attempts, request_id, url, e,
                )
                return

            if attempt > 1:
                logger.info("📦 Got response body after retry: requestId=%s, url=%s", request_id, url)
            stored = self._store_body(request_id, self.decode_body(result or {}))
            settle()
            if stored and track:
                self.stats.succeeded += 1
            return


    # Public methods _______________________________________________________________________________________________________

    @property
    def in_flight(self) -> int:
        """Number of fetch chains (including background retries) still running."""
        return len(self._tasks)

    def fetch_body(
        self,
        request_id: str,
        on_settled: Callable[[], None] | None = None,
        track: bool = False,
    ) -> asyncio.Future:
        """
        Start fetching the body for `request_id`. Must be called from a running event loop.
        Args:
            request_id: CDP requestId.
            on_settled: Called exactly once, when the first attempt succeeds or fails.
            track: Count the final outcome of this chain in `stats`.
        Returns:
            A future resolved (with None) when the first attempt settles. It never raises.
        """
        loop = asyncio.get_running_loop()
        settled: asyncio.Future = loop.create_future()

        def settle() -> None:
            if settled.done():
                return
            settled.set_result(None)
            if on_settled is not None:
                try:
                    on_settled()
                except Exception as e:
                    logger.error("❌ on_settled callback raised: %s", e, exc_info=True)

        def on_done(task: asyncio.Task) -> None:
            self._tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error("❌ Body fetch for requestId=%s crashed: %s", request_id, task.exception())
            # a chain that died before its first attempt settled must not leave the caller waiting
            settle()

        task = loop.create_task(self._fetch_with_retries(request_id, settle, track))
        self._tasks.add(task)
        task.add_done_callback(on_done)
        return settled

    async def drain(self) -> None:
        """Wait until every fetch chain, retries included, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
