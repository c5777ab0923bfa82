"""
Per-session progress channel.

Each session id names one channel. The coordinator publishes one event per
iteration and exactly one terminal event; consumers read events after a
sequence number and must treat repeated terminal events as idempotent.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

from app.scraping.logging_utils import log_event
from app.scraping.session import ScrapeSessionState

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 500
DEFAULT_CHANNEL_LIMIT = 200


@dataclass(frozen=True)
class ProgressEvent:
    session_id: str
    sequence: int
    phase: str
    percentage: float
    current_position: int | None
    total_or_unknown: int | None
    records_found: int
    records_processed: int
    records_created: int
    records_existing: int
    errors_count: int
    terminal: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_event(
    session: ScrapeSessionState,
    *,
    sequence: int,
    phase: str,
    percentage: float,
    total: int | None = None,
    terminal: bool = False,
) -> ProgressEvent:
    counters = session.counters
    return ProgressEvent(
        session_id=session.session_id,
        sequence=sequence,
        phase=phase,
        percentage=round(percentage, 2),
        current_position=session.current_position,
        total_or_unknown=total,
        records_found=counters.records_found,
        records_processed=counters.records_processed,
        records_created=counters.records_created,
        records_existing=counters.records_existing,
        errors_count=counters.errors_count,
        terminal=terminal,
    )


class ProgressPublisher(ABC):
    @abstractmethod
    def publish(self, event: ProgressEvent) -> None:
        """Deliver one event on the channel named by `event.session_id`."""


class NullProgressPublisher(ProgressPublisher):
    def publish(self, event: ProgressEvent) -> None:
        return None


class LoggingProgressPublisher(ProgressPublisher):
    def publish(self, event: ProgressEvent) -> None:
        log_event(logger, logging.INFO, "scrape_progress", **event.as_dict())


class InMemoryProgressBroker(ProgressPublisher):
    """
    Thread-safe in-process channel store with bounded per-session history.

    At most `channel_limit` channels are kept. When a new channel pushes the
    store over the limit, the least recently published finished channels
    are dropped first, then the least recently published live ones.
    """

    def __init__(
        self,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        channel_limit: int = DEFAULT_CHANNEL_LIMIT,
    ) -> None:
        self._history_limit = max(1, history_limit)
        self._channel_limit = max(1, channel_limit)
        self._channels: OrderedDict[str, list[ProgressEvent]] = OrderedDict()
        self._lock = threading.Lock()

    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            channel = self._channels.setdefault(event.session_id, [])
            self._channels.move_to_end(event.session_id)
            channel.append(event)
            if len(channel) > self._history_limit:
                del channel[: len(channel) - self._history_limit]
            self._evict(keep=event.session_id)

    def events_after(self, session_id: str, after: int = 0) -> list[ProgressEvent]:
        with self._lock:
            return [event for event in self._channels.get(session_id, []) if event.sequence > after]

    def latest(self, session_id: str) -> ProgressEvent | None:
        with self._lock:
            channel = self._channels.get(session_id)
            return channel[-1] if channel else None

    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def _evict(self, *, keep: str) -> None:
        overflow = len(self._channels) - self._channel_limit
        if overflow <= 0:
            return
        finished = [sid for sid, channel in self._channels.items() if sid != keep and channel[-1].terminal]
        live = [sid for sid, channel in self._channels.items() if sid != keep and not channel[-1].terminal]
        for session_id in (finished + live)[:overflow]:
            del self._channels[session_id]
            log_event(logger, logging.DEBUG, "progress_channel_evicted", session_id=session_id)


class CompositeProgressPublisher(ProgressPublisher):
    def __init__(self, publishers: Sequence[ProgressPublisher]) -> None:
        self._publishers = list(publishers)

    def publish(self, event: ProgressEvent) -> None:
        for publisher in self._publishers:
            publisher.publish(event)
