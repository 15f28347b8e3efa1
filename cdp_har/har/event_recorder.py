"""
cdp_har/har/event_recorder.py

Append-only page and network event logs.
"""

from typing import Any

from cdp_har.data_models.cdp_events import (
    CDPEventRecord,
    NetworkEventRecord,
    OpaqueEventRecord,
    PageEventRecord,
    parse_event_record,
)


class EventRecorder:
    """
    Records CDP events in arrival order while armed; drops them otherwise.
    """

    def __init__(self) -> None:
        self.recording = False
        self.page_events: list[CDPEventRecord] = []
        self.network_events: list[CDPEventRecord] = []

    def arm(self) -> None:
        self.recording = True

    def disarm(self) -> None:
        self.recording = False

    def observe(self, method: str, params: dict[str, Any] | None) -> CDPEventRecord | None:
        """
        Append an event to the matching log.
        Params are not validated; malformed events are stored as delivered.
        Args:
            method: CDP event method.
            params: CDP event params.
        Returns:
            The stored record, or None when not recording.
        """
        if not self.recording:
            return None

        record = parse_event_record(method, params)
        if isinstance(record, PageEventRecord):
            self.page_events.append(record)
        elif isinstance(record, NetworkEventRecord):
            self.network_events.append(record)
        elif isinstance(record, OpaqueEventRecord) and "requestId" in record.params:
            self.network_events.append(record)
        else:
            self.page_events.append(record)
        return record

    @property
    def events(self) -> list[CDPEventRecord]:
        """Page log followed by network log."""
        return self.page_events + self.network_events

    def clear(self) -> None:
        self.page_events = []
        self.network_events = []
