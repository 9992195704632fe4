"""
Event recording for completed searches.

Recording is fire-and-forget: ``record_safely`` never raises and never
makes the caller wait on a slow sink beyond scheduling it. Sinks persist
round counts, token and cost estimates, and the accepted domains.
"""

import asyncio
import json
from abc import abstractmethod
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .enums import LogLevel
from .models import SearchEvent


CHARS_PER_TOKEN = 4


def estimate_token_count(text: str) -> int:
    """Rough token estimate for English text (about four characters per token)."""
    if not text:
        return 0
    return -(-len(text) // CHARS_PER_TOKEN)


def estimate_cost(tokens: int, price_per_million: float) -> float:
    """Cost in dollars for ``tokens`` at a flat per-million price."""
    return (tokens / 1_000_000) * price_per_million


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@runtime_checkable
class EventSink(Protocol):
    """Protocol for anything that persists search events."""

    @abstractmethod
    async def record(self, event: SearchEvent) -> None:
        """Persist one event. May raise; callers go through record_safely."""
        ...


class LoggingEventSink:
    """Writes events through the AuditLogger."""

    def __init__(self, logger) -> None:
        self._logger = logger

    async def record(self, event: SearchEvent) -> None:
        self._logger.log(LogLevel.INFO, "SearchEvent", f"{event.kind} search recorded", asdict(event))


class JsonLinesEventSink:
    """Appends one JSON object per event to a file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def _append(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def record(self, event: SearchEvent) -> None:
        line = json.dumps(asdict(event), ensure_ascii=False)
        await asyncio.to_thread(self._append, line)


class EventRecorder:
    """
    Fans events out to sinks in the background.

    Each ``record_safely`` call schedules a task and returns immediately;
    sink failures are logged and otherwise ignored.
    """

    def __init__(self, sinks: Optional[list[EventSink]] = None, logger=None) -> None:
        self._sinks = list(sinks or [])
        self._logger = logger
        self._pending: set[asyncio.Task] = set()

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    async def _deliver(self, event: SearchEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.record(event)
            except Exception as e:
                if self._logger:
                    self._logger.log_error(
                        "EventRecorder",
                        "Failed to record search event",
                        error=e,
                        additional_data={"sink": type(sink).__name__, "query": event.query},
                    )

    def record_safely(self, event: SearchEvent) -> None:
        """Schedule delivery of ``event`` without waiting for it."""
        if not self._sinks:
            return
        if not event.timestamp:
            event.timestamp = utc_timestamp()
        task = asyncio.get_running_loop().create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled delivery (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
