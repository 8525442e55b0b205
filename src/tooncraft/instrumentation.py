"""Logging and telemetry helpers shared by every orchestration module."""

from __future__ import annotations

from collections import Counter, OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Mapping

import logging

from .config import settings


def configure_logging(level: str = "INFO") -> None:
    """Configure standard logging for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


configure_logging(settings.log_level)


def get_logger() -> logging.Logger:
    return logging.getLogger("tooncraft")


@dataclass(slots=True)
class TelemetryEvent:
    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TelemetryStore:
    """Recent orchestration events, also grouped per production run.

    Events carrying a ``run_id`` attribute are kept in that run's timeline;
    only the most recent ``max_runs`` timelines are retained.
    """

    def __init__(self, max_events: int = 1000, max_runs: int = 50) -> None:
        self._events: deque[TelemetryEvent] = deque(maxlen=max_events)
        self._runs: OrderedDict[str, list[TelemetryEvent]] = OrderedDict()
        self._max_runs = max_runs
        self._lock = Lock()

    def record(self, event: TelemetryEvent) -> None:
        run_id = event.attributes.get("run_id")
        with self._lock:
            self._events.append(event)
            if not run_id:
                return
            self._runs.setdefault(run_id, []).append(event)
            self._runs.move_to_end(run_id)
            while len(self._runs) > self._max_runs:
                self._runs.popitem(last=False)

    def list_events(
        self, *, limit: int = 50, name: str | None = None, run_id: str | None = None
    ) -> list[TelemetryEvent]:
        with self._lock:
            events = list(self._runs.get(run_id, ())) if run_id else list(self._events)

        if name:
            events = [evt for evt in events if evt.name == name]
        return events[-limit:]

    def run_timeline(self, run_id: str) -> list[TelemetryEvent]:
        with self._lock:
            return list(self._runs.get(run_id, ()))

    def counts(self, run_id: str | None = None) -> dict[str, int]:
        with self._lock:
            events = self._runs.get(run_id, ()) if run_id else self._events
            return dict(Counter(evt.name for evt in events))

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._runs.clear()


telemetry_store = TelemetryStore()


def emit_event(event: TelemetryEvent) -> None:
    """Record an event using the configured logger."""
    get_logger().info("%s %s", event.name, dict(event.attributes))
    telemetry_store.record(event)
