"""
cdp_har/data_models/recording.py

Data models for a HAR recording session: options, per-request response entries, stats.
"""

from copy import deepcopy
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CAPTURE_MIME_TYPES: tuple[str, ...] = ("text/html", "application/json")


class RecorderState(StrEnum):
    IDLE = "idle"
    RECORDING = "recording"


class RecordingOptions(BaseModel):
    """
    Options accepted by HarRecorder.start().
    Accepts both the camelCase names (saveResponse, captureMimeTypes) and the snake_case field names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    path: str | None = Field(
        default=None,
        description="When set, stop() writes the HAR document to this file instead of returning it",
    )
    save_response: bool = Field(
        default=False,
        alias="saveResponse",
        description="Fetch and embed response bodies via Network.getResponseBody",
    )
    capture_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CAPTURE_MIME_TYPES),
        alias="captureMimeTypes",
        description="Declared MIME types of interest. Informational only; bodies are not filtered by it",
    )
    wait_for_retries: bool = Field(
        default=False,
        alias="waitForRetries",
        description="Make stop() also wait for background body-fetch retries to run out",
    )

    @field_validator("capture_mime_types", mode="before")
    @classmethod
    def _default_mime_types(cls, value: Any) -> Any:
        if not value:
            return list(DEFAULT_CAPTURE_MIME_TYPES)
        return value


class ResponseEntry(BaseModel):
    """
    Mutable per-request record created from a Network.responseReceived event.
    The body fetcher fills `response["body"]`; the HAR builder reads it after stop().
    """
    request_id: str = Field(
        ...,
        description="CDP requestId this entry belongs to",
        examples=["1000.12", "15BF081D76D2923D4AA7E645C41FB876"],
    )
    type: str | None = Field(
        default=None,
        description="Resource type (Document, Script, XHR, ...)",
    )
    loader_id: str | None = None
    timestamp: float | None = None
    frame_id: str | None = None
    response: dict[str, Any] | None = Field(
        default=None,
        description="The CDP Network.Response object, plus `body` once fetched",
    )

    @classmethod
    def from_response_received(cls, params: dict[str, Any]) -> "ResponseEntry":
        """
        Build an entry from Network.responseReceived params.
        Args:
            params: The event params. Must carry `requestId`.
        Returns:
            The new entry, owning its own copy of the response object.
        """
        response = params.get("response")
        return cls(
            request_id=params["requestId"],
            type=params.get("type"),
            loader_id=params.get("loaderId"),
            timestamp=params.get("timestamp"),
            frame_id=params.get("frameId"),
            response=deepcopy(response) if isinstance(response, dict) else None,
        )

    @property
    def body(self) -> str | None:
        if self.response is None:
            return None
        return self.response.get("body")

    @property
    def url(self) -> str | None:
        if self.response is None:
            return None
        return self.response.get("url")


class SessionStats(BaseModel):
    """
    Body-fetch outcome counters for one recording session.
    """
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
