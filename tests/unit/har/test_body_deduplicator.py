"""
tests/unit/har/test_body_deduplicator.py

Tests for BodyDeduplicator.
"""

import logging

from cdp_har.har.body_deduplicator import BodyDeduplicator


class TestBodyDeduplicator:
    """
    Tests for BodyDeduplicator.reconcile.
    """

    def test_first_sighting_is_stored_and_returned(self) -> None:
        dedup = BodyDeduplicator()
        assert dedup.reconcile("https://a.test/", "body", owner="1") == "body"
        assert "https://a.test/" in dedup
        assert len(dedup) == 1

    def test_identical_body_from_other_request_is_suppressed(self) -> None:
        dedup = BodyDeduplicator()
        dedup.reconcile("https://a.test/", "body", owner="1")
        assert dedup.reconcile("https://a.test/", "body", owner="2") is None

    def test_divergent_body_is_kept_and_flagged(self, caplog) -> None:
        dedup = BodyDeduplicator()
        dedup.reconcile("https://a.test/", "v1", owner="1")

        with caplog.at_level(logging.WARNING, logger="cdp_har"):
            assert dedup.reconcile("https://a.test/", "v2", owner="2") == "v2"

        assert "Inconsistent content" in caplog.text
        # the cache keeps the first body
        assert dedup.reconcile("https://a.test/", "v1", owner="3") is None

    def test_refetch_by_owner_is_not_a_duplicate(self) -> None:
        """The request that owns the cached body may fetch it again without losing it."""
        dedup = BodyDeduplicator()
        dedup.reconcile("https://a.test/", "body", owner="1")
        assert dedup.reconcile("https://a.test/", "body", owner="1") == "body"

    def test_without_owner_equal_bodies_are_duplicates(self) -> None:
        dedup = BodyDeduplicator()
        dedup.reconcile("k", "body")
        assert dedup.reconcile("k", "body") is None

    def test_equality_is_exact(self) -> None:
        dedup = BodyDeduplicator()
        dedup.reconcile("k", "body", owner="1")
        assert dedup.reconcile("k", "body ", owner="2") == "body "

    def test_clear(self) -> None:
        dedup = BodyDeduplicator()
        dedup.reconcile("k", "body", owner="1")
        dedup.clear()
        assert len(dedup) == 0
        assert dedup.reconcile("k", "body", owner="2") == "body"
