"""
cdp_har/data_models/cdp_events.py

Data models for recorded CDP events.

Recorded events are immutable {method, params} envelopes. The envelope never validates
its params; typed payload views are produced on demand via `payload()`.
"""

from copy import deepcopy
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


## Event kinds

class PageEventKind(StrEnum):
    LOAD_EVENT_FIRED = "Page.loadEventFired"
    DOM_CONTENT_EVENT_FIRED = "Page.domContentEventFired"
    FRAME_STARTED_LOADING = "Page.frameStartedLoading"
    FRAME_ATTACHED = "Page.frameAttached"
    FRAME_SCHEDULED_NAVIGATION = "Page.frameScheduledNavigation"


class NetworkEventKind(StrEnum):
    REQUEST_WILL_BE_SENT = "Network.requestWillBeSent"
    REQUEST_SERVED_FROM_CACHE = "Network.requestServedFromCache"
    DATA_RECEIVED = "Network.dataReceived"
    RESPONSE_RECEIVED = "Network.responseReceived"
    RESOURCE_CHANGED_PRIORITY = "Network.resourceChangedPriority"
    LOADING_FINISHED = "Network.loadingFinished"
    LOADING_FAILED = "Network.loadingFailed"


class ResourceType(StrEnum):
    XHR = "XHR"
    FETCH = "Fetch"
    SCRIPT = "Script"
    DOCUMENT = "Document"
    IMAGE = "Image"
    STYLESHEET = "Stylesheet"
    FONT = "Font"
    MEDIA = "Media"
    OTHER = "Other"


## Typed payloads

class BaseEventPayload(BaseModel):
    """
    Base model for typed CDP event params. Unknown protocol fields are kept.
    """
    model_config = ConfigDict(extra="allow")


class PageEventPayload(BaseEventPayload):
    frameId: str | None = None
    timestamp: float | None = None


class NetworkEventPayload(BaseEventPayload):
    requestId: str
    timestamp: float | None = None


class RequestWillBeSentPayload(NetworkEventPayload):
    loaderId: str | None = None
    documentURL: str | None = None
    request: dict[str, Any]
    wallTime: float | None = None
    initiator: dict[str, Any] | None = None
    redirectResponse: dict[str, Any] | None = None
    type: str | None = None
    frameId: str | None = None


class ResponseReceivedPayload(NetworkEventPayload):
    loaderId: str | None = None
    type: str | None = None
    response: dict[str, Any]
    frameId: str | None = None


class DataReceivedPayload(NetworkEventPayload):
    dataLength: int = 0
    encodedDataLength: int = 0


class ResourceChangedPriorityPayload(NetworkEventPayload):
    newPriority: str | None = None


class LoadingFinishedPayload(NetworkEventPayload):
    encodedDataLength: float = 0


class LoadingFailedPayload(NetworkEventPayload):
    type: str | None = None
    errorText: str = ""
    canceled: bool | None = None
    blockedReason: str | None = None


## Event records

class CDPEventRecord(BaseModel):
    """
    Immutable snapshot of one CDP event as it was delivered.
    """
    model_config = ConfigDict(frozen=True)

    PAYLOAD_MODELS: ClassVar[dict[str, type[BaseEventPayload]]] = {}
    DEFAULT_PAYLOAD_MODEL: ClassVar[type[BaseEventPayload]] = BaseEventPayload

    method: str = Field(
        ...,
        description="CDP event method name",
        examples=["Network.responseReceived", "Page.loadEventFired"],
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="CDP event params, unvalidated",
    )

    def payload(self) -> BaseEventPayload:
        """
        Validate params into the typed payload model for this event kind.
        Raises:
            pydantic.ValidationError: If params do not match the expected shape.
        """
        model = self.PAYLOAD_MODELS.get(str(self.method), self.DEFAULT_PAYLOAD_MODEL)
        return model.model_validate(self.params)

    def as_message(self) -> dict[str, Any]:
        """Return the plain {method, params} message form."""
        return {"method": str(self.method), "params": deepcopy(self.params)}


class PageEventRecord(CDPEventRecord):
    DEFAULT_PAYLOAD_MODEL: ClassVar[type[BaseEventPayload]] = PageEventPayload

    method: PageEventKind


class NetworkEventRecord(CDPEventRecord):
    PAYLOAD_MODELS: ClassVar[dict[str, type[BaseEventPayload]]] = {
        NetworkEventKind.REQUEST_WILL_BE_SENT: RequestWillBeSentPayload,
        NetworkEventKind.RESPONSE_RECEIVED: ResponseReceivedPayload,
        NetworkEventKind.DATA_RECEIVED: DataReceivedPayload,
        NetworkEventKind.RESOURCE_CHANGED_PRIORITY: ResourceChangedPriorityPayload,
        NetworkEventKind.LOADING_FINISHED: LoadingFinishedPayload,
        NetworkEventKind.LOADING_FAILED: LoadingFailedPayload,
    }
    DEFAULT_PAYLOAD_MODEL: ClassVar[type[BaseEventPayload]] = NetworkEventPayload

    method: NetworkEventKind

    @property
    def request_id(self) -> str | None:
        return self.params.get("requestId")


class OpaqueEventRecord(CDPEventRecord):
    """
    Event of a kind this package does not know about. Carried through untouched.
    """


PAGE_EVENT_METHODS: frozenset[str] = frozenset(kind.value for kind in PageEventKind)
NETWORK_EVENT_METHODS: frozenset[str] = frozenset(kind.value for kind in NetworkEventKind)


def parse_event_record(method: str, params: dict[str, Any] | None) -> CDPEventRecord:
    """
    Build the record variant matching `method`. Params are deep-copied so later
    mutation by the sender cannot alter the recorded snapshot.
    Args:
        method: CDP event method name.
        params: CDP event params.
    Returns:
        PageEventRecord, NetworkEventRecord or OpaqueEventRecord.
    """
    snapshot = deepcopy(params) if params is not None else {}
    if method in PAGE_EVENT_METHODS:
        return PageEventRecord(method=PageEventKind(method), params=snapshot)
    if method in NETWORK_EVENT_METHODS:
        return NetworkEventRecord(method=NetworkEventKind(method), params=snapshot)
    return OpaqueEventRecord(method=method, params=snapshot)
