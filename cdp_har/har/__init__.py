"""
cdp_har/har/__init__.py

HAR recording: event logs, response body retrieval and HAR assembly.

Primary classes:
- HarRecorder: Start/stop controller for a recording session
- HarBuilder: Default HAR 1.2 assembler
"""

from cdp_har.har.body_deduplicator import BodyDeduplicator
from cdp_har.har.event_recorder import EventRecorder
from cdp_har.har.har_builder import AbstractHarBuilder, HarBuilder
from cdp_har.har.har_recorder import HarRecorder
from cdp_har.har.resource_key import get_logical_resource_key
from cdp_har.har.response_fetcher import ResponseFetcher

__all__ = [
    "AbstractHarBuilder",
    "BodyDeduplicator",
    "EventRecorder",
    "HarBuilder",
    "HarRecorder",
    "ResponseFetcher",
    "get_logical_resource_key",
]
