"""
tests/unit/data_models/test_cdp_events.py

Tests for recorded CDP event records and their typed payloads.
"""

import pytest
from pydantic import ValidationError

from cdp_har.data_models.cdp_events import (
    LoadingFinishedPayload,
    NetworkEventKind,
    NetworkEventRecord,
    OpaqueEventRecord,
    PageEventKind,
    PageEventPayload,
    PageEventRecord,
    RequestWillBeSentPayload,
    ResponseReceivedPayload,
    parse_event_record,
)


class TestParseEventRecord:
    """Test cases for parse_event_record variant selection."""

    def test_page_event(self) -> None:
        record = parse_event_record("Page.loadEventFired", {"timestamp": 12.5})
        assert isinstance(record, PageEventRecord)
        assert record.method == PageEventKind.LOAD_EVENT_FIRED

    def test_network_event(self) -> None:
        record = parse_event_record("Network.loadingFinished", {"requestId": "1", "encodedDataLength": 10})
        assert isinstance(record, NetworkEventRecord)
        assert record.method == NetworkEventKind.LOADING_FINISHED
        assert record.request_id == "1"

    def test_unknown_event_is_opaque(self) -> None:
        record = parse_event_record("Network.webSocketFrameSent", {"requestId": "ws"})
        assert isinstance(record, OpaqueEventRecord)
        assert record.method == "Network.webSocketFrameSent"

    def test_none_params(self) -> None:
        assert parse_event_record("Page.loadEventFired", None).params == {}

    def test_params_are_deep_copied(self) -> None:
        params = {"requestId": "1", "response": {"headers": {"a": "1"}}}
        record = parse_event_record("Network.responseReceived", params)
        params["response"]["headers"]["a"] = "2"
        assert record.params["response"]["headers"]["a"] == "1"

    def test_records_are_frozen(self) -> None:
        record = parse_event_record("Page.loadEventFired", {})
        with pytest.raises(ValidationError):
            record.method = "Page.frameAttached"

    def test_as_message(self) -> None:
        record = parse_event_record("Network.requestServedFromCache", {"requestId": "1"})
        message = record.as_message()
        assert message == {"method": "Network.requestServedFromCache", "params": {"requestId": "1"}}
        assert type(message["method"]) is str
        message["params"]["requestId"] = "2"
        assert record.params["requestId"] == "1"


class TestEventPayloads:
    """Test cases for typed payload views."""

    def test_request_will_be_sent_payload(self) -> None:
        record = parse_event_record("Network.requestWillBeSent", {
            "requestId": "1",
            "request": {"url": "https://a.test/", "method": "GET"},
            "wallTime": 1700000000.0,
            "type": "Document",
            "someFutureField": True,
        })
        payload = record.payload()
        assert isinstance(payload, RequestWillBeSentPayload)
        assert payload.request["url"] == "https://a.test/"
        assert payload.type == "Document"
        # unknown protocol fields are preserved
        assert payload.model_extra == {"someFutureField": True}

    def test_response_received_requires_response(self) -> None:
        record = parse_event_record("Network.responseReceived", {"requestId": "1"})
        with pytest.raises(ValidationError):
            record.payload()

    def test_network_payload_requires_request_id(self) -> None:
        record = parse_event_record("Network.requestServedFromCache", {})
        with pytest.raises(ValidationError):
            record.payload()

    def test_loading_finished_payload(self) -> None:
        payload = parse_event_record("Network.loadingFinished", {"requestId": "1", "encodedDataLength": 42}).payload()
        assert isinstance(payload, LoadingFinishedPayload)
        assert payload.encodedDataLength == 42

    def test_page_payload(self) -> None:
        payload = parse_event_record("Page.frameAttached", {"frameId": "F2", "parentFrameId": "F1"}).payload()
        assert isinstance(payload, PageEventPayload)
        assert payload.frameId == "F2"

    def test_response_received_payload(self) -> None:
        payload = parse_event_record("Network.responseReceived", {
            "requestId": "1", "type": "XHR", "response": {"status": 200},
        }).payload()
        assert isinstance(payload, ResponseReceivedPayload)
        assert payload.response == {"status": 200}
