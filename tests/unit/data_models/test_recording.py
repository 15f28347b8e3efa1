"""
tests/unit/data_models/test_recording.py

Tests for RecordingOptions, ResponseEntry and SessionStats.
"""

import pytest
from pydantic import ValidationError

from cdp_har.data_models.recording import (
    DEFAULT_CAPTURE_MIME_TYPES,
    RecordingOptions,
    ResponseEntry,
    SessionStats,
)


class TestRecordingOptions:
    """Test cases for RecordingOptions."""

    def test_defaults(self) -> None:
        options = RecordingOptions()
        assert options.path is None
        assert options.save_response is False
        assert options.capture_mime_types == list(DEFAULT_CAPTURE_MIME_TYPES)
        assert options.wait_for_retries is False

    def test_camel_case_aliases(self) -> None:
        options = RecordingOptions.model_validate({
            "path": "out.har",
            "saveResponse": True,
            "captureMimeTypes": ["text/css"],
            "waitForRetries": True,
        })
        assert options.path == "out.har"
        assert options.save_response is True
        assert options.capture_mime_types == ["text/css"]
        assert options.wait_for_retries is True

    def test_snake_case_names(self) -> None:
        assert RecordingOptions(save_response=True).save_response is True

    @pytest.mark.parametrize("value", [None, []])
    def test_empty_mime_types_fall_back_to_default(self, value) -> None:
        options = RecordingOptions.model_validate({"captureMimeTypes": value})
        assert options.capture_mime_types == ["text/html", "application/json"]

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RecordingOptions.model_validate({"bodyCapture": True})


class TestResponseEntry:
    """Test cases for ResponseEntry."""

    def test_from_response_received(self) -> None:
        params = {
            "requestId": "1",
            "loaderId": "L1",
            "timestamp": 10.5,
            "type": "Document",
            "frameId": "F1",
            "response": {"url": "https://a.test/", "status": 200},
        }
        entry = ResponseEntry.from_response_received(params)

        assert entry.request_id == "1"
        assert entry.loader_id == "L1"
        assert entry.frame_id == "F1"
        assert entry.type == "Document"
        assert entry.url == "https://a.test/"
        assert entry.body is None

    def test_response_is_owned_copy(self) -> None:
        params = {"requestId": "1", "response": {"url": "https://a.test/", "headers": {"a": "1"}}}
        entry = ResponseEntry.from_response_received(params)

        entry.response["body"] = "x"
        entry.response["headers"]["a"] = "2"

        assert "body" not in params["response"]
        assert params["response"]["headers"]["a"] == "1"

    def test_missing_response(self) -> None:
        entry = ResponseEntry.from_response_received({"requestId": "1"})
        assert entry.response is None
        assert entry.url is None
        assert entry.body is None


class TestSessionStats:

    def test_starts_at_zero(self) -> None:
        assert SessionStats().model_dump() == {"attempted": 0, "succeeded": 0, "failed": 0}
