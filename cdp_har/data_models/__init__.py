"""
cdp_har/data_models/__init__.py

Pydantic models for recorded CDP events, recording sessions and HAR documents.
"""

from cdp_har.data_models.cdp_events import (
    CDPEventRecord,
    NetworkEventKind,
    NetworkEventRecord,
    OpaqueEventRecord,
    PageEventKind,
    PageEventRecord,
    ResourceType,
    parse_event_record,
)
from cdp_har.data_models.har import HarFile
from cdp_har.data_models.recording import (
    RecorderState,
    RecordingOptions,
    ResponseEntry,
    SessionStats,
)

__all__ = [
    "CDPEventRecord",
    "HarFile",
    "NetworkEventKind",
    "NetworkEventRecord",
    "OpaqueEventRecord",
    "PageEventKind",
    "PageEventRecord",
    "RecorderState",
    "RecordingOptions",
    "ResourceType",
    "ResponseEntry",
    "SessionStats",
    "parse_event_record",
]
