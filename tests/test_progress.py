"""
tests/test_progress.py
"""

from __future__ import annotations

import json
import logging
import unittest

from app.scraping.progress import (
    CompositeProgressPublisher,
    InMemoryProgressBroker,
    LoggingProgressPublisher,
    build_event,
)
from app.scraping.session import ScrapeSessionState, SessionCounters


def _session(session_id: str = "s-1") -> ScrapeSessionState:
    return ScrapeSessionState(
        session_id=session_id,
        source="hse",
        enforcement_type="case",
        params={},
        status="running",
        current_position=4,
        counters=SessionCounters(records_found=10, records_processed=3, records_created=2, records_existing=1),
    )


class BuildEventTests(unittest.TestCase):
    def test_event_snapshots_session_counters(self) -> None:
        event = build_event(_session(), sequence=2, phase="processing", percentage=33.3333, total=12)

        self.assertEqual(event.session_id, "s-1")
        self.assertEqual(event.percentage, 33.33)
        self.assertEqual(event.current_position, 4)
        self.assertEqual(event.total_or_unknown, 12)
        self.assertEqual(event.records_found, 10)
        self.assertEqual(event.records_created, 2)
        self.assertFalse(event.terminal)
        self.assertEqual(event.as_dict()["phase"], "processing")


class InMemoryProgressBrokerTests(unittest.TestCase):
    def test_events_after_filters_by_sequence_and_channel(self) -> None:
        broker = InMemoryProgressBroker()
        for sequence in range(1, 4):
            broker.publish(build_event(_session(), sequence=sequence, phase="processing", percentage=10.0 * sequence))
        broker.publish(build_event(_session("s-2"), sequence=1, phase="processing", percentage=0.0))

        self.assertEqual([event.sequence for event in broker.events_after("s-1")], [1, 2, 3])
        self.assertEqual([event.sequence for event in broker.events_after("s-1", 2)], [3])
        self.assertEqual(len(broker.events_after("s-2")), 1)
        self.assertEqual(broker.events_after("missing"), [])
        self.assertEqual(broker.latest("s-1").sequence, 3)
        self.assertIsNone(broker.latest("missing"))

    def test_history_is_bounded(self) -> None:
        broker = InMemoryProgressBroker(history_limit=2)
        for sequence in range(1, 6):
            broker.publish(build_event(_session(), sequence=sequence, phase="processing", percentage=0.0))

        self.assertEqual([event.sequence for event in broker.events_after("s-1")], [4, 5])

    def test_finished_channels_are_evicted_before_live_ones(self) -> None:
        broker = InMemoryProgressBroker(channel_limit=2)
        broker.publish(build_event(_session("live"), sequence=1, phase="running", percentage=10.0))
        broker.publish(build_event(_session("done"), sequence=1, phase="completed", percentage=100.0, terminal=True))

        broker.publish(build_event(_session("new"), sequence=1, phase="running", percentage=0.0))

        self.assertEqual(broker.channel_count(), 2)
        self.assertEqual(broker.events_after("done"), [])
        self.assertEqual(broker.latest("live").sequence, 1)
        self.assertIsNotNone(broker.latest("new"))

    def test_oldest_live_channel_goes_when_none_are_finished(self) -> None:
        broker = InMemoryProgressBroker(channel_limit=2)
        for session_id in ("first", "second"):
            broker.publish(build_event(_session(session_id), sequence=1, phase="running", percentage=0.0))
        broker.publish(build_event(_session("first"), sequence=2, phase="running", percentage=5.0))

        broker.publish(build_event(_session("third"), sequence=1, phase="running", percentage=0.0))

        self.assertEqual(broker.channel_count(), 2)
        self.assertIsNone(broker.latest("second"))
        self.assertEqual(broker.latest("first").sequence, 2)


class CompositePublisherTests(unittest.TestCase):
    def test_fans_out_and_logs_json(self) -> None:
        broker = InMemoryProgressBroker()
        publisher = CompositeProgressPublisher([broker, LoggingProgressPublisher()])
        event = build_event(_session(), sequence=1, phase="completed", percentage=100.0, terminal=True)

        with self.assertLogs("app.scraping.progress", level=logging.INFO) as captured:
            publisher.publish(event)

        self.assertEqual(broker.latest("s-1"), event)
        payload = json.loads(captured.records[0].getMessage())
        self.assertEqual(payload["event"], "scrape_progress")
        self.assertTrue(payload["terminal"])


if __name__ == "__main__":
    unittest.main()
