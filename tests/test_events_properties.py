"""
Property-based tests for search event recording.
"""

import asyncio
import json
import tempfile
from io import StringIO
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_suggester.audit_logger import AuditLogger
from domain_suggester.enums import LogLevel
from domain_suggester.events import (
    EventRecorder,
    JsonLinesEventSink,
    LoggingEventSink,
    estimate_cost,
    estimate_token_count,
)
from domain_suggester.models import SearchEvent


class ListSink:
    def __init__(self) -> None:
        self.events: list[SearchEvent] = []

    async def record(self, event: SearchEvent) -> None:
        self.events.append(event)


class BrokenSink:
    async def record(self, event: SearchEvent) -> None:
        raise OSError("disk full")


def make_event(query: str = "pet food") -> SearchEvent:
    return SearchEvent(
        kind="suggestion",
        query=query,
        rounds_used=2,
        accepted_domains=["petpal.com", "furly.io"],
        estimated_tokens=120,
    )


class TestEstimatesProperty:
    """Token and cost estimates are simple and monotone."""

    @given(text=st.text(max_size=500))
    @settings(max_examples=100)
    def test_token_count_is_ceiling_of_quarter(self, text: str) -> None:
        tokens = estimate_token_count(text)

        assert tokens * 4 >= len(text)
        assert (tokens - 1) * 4 < len(text) or tokens == 0

    def test_empty_text_has_no_tokens(self) -> None:
        assert estimate_token_count("") == 0

    @given(
        tokens=st.integers(min_value=0, max_value=10_000_000),
        price=st.floats(min_value=0, max_value=100, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_cost_is_non_negative(self, tokens: int, price: float) -> None:
        assert estimate_cost(tokens, price) >= 0

    def test_one_million_tokens_costs_the_price(self) -> None:
        assert estimate_cost(1_000_000, 0.04) == 0.04


class TestRecorderProperty:
    """Recording never blocks or raises on the caller's path."""

    @given(queries=st.lists(st.text(max_size=30), min_size=1, max_size=10))
    @settings(max_examples=30)
    def test_every_event_reaches_every_sink(self, queries: list[str]) -> None:
        first, second = ListSink(), ListSink()

        async def run() -> None:
            recorder = EventRecorder(sinks=[first, second])
            for query in queries:
                recorder.record_safely(make_event(query))
            await recorder.drain()

        asyncio.run(run())

        assert sorted(e.query for e in first.events) == sorted(queries)
        assert sorted(e.query for e in second.events) == sorted(queries)
        assert all(e.timestamp for e in first.events)

    def test_failing_sink_is_logged_and_others_still_record(self) -> None:
        sink = ListSink()
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        async def run() -> None:
            recorder = EventRecorder(sinks=[BrokenSink(), sink], logger=logger)
            recorder.record_safely(make_event())
            await recorder.drain()

        asyncio.run(run())

        assert len(sink.events) == 1
        errors = [e for e in logger.entries if e.level == LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["sink"] == "BrokenSink"
        assert errors[0].data["error_type"] == "OSError"

    def test_no_sinks_is_a_no_op(self) -> None:
        async def run() -> None:
            recorder = EventRecorder()
            recorder.record_safely(make_event())
            await recorder.drain()

        asyncio.run(run())

    def test_existing_timestamp_is_kept(self) -> None:
        sink = ListSink()
        event = make_event()
        event.timestamp = "2024-01-01T00:00:00+00:00"

        async def run() -> None:
            recorder = EventRecorder(sinks=[sink])
            recorder.record_safely(event)
            await recorder.drain()

        asyncio.run(run())

        assert sink.events[0].timestamp == "2024-01-01T00:00:00+00:00"


class TestSinks:
    """Bundled sinks write events in their own formats."""

    def test_json_lines_sink_appends(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "events.jsonl"
            sink = JsonLinesEventSink(path)

            async def run() -> None:
                await sink.record(make_event("first"))
                await sink.record(make_event("second"))

            asyncio.run(run())

            lines = path.read_text(encoding="utf-8").splitlines()

        assert [json.loads(line)["query"] for line in lines] == ["first", "second"]
        assert json.loads(lines[0])["accepted_domains"] == ["petpal.com", "furly.io"]

    def test_logging_sink_writes_info_entry(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        asyncio.run(LoggingEventSink(logger).record(make_event()))

        entry = logger.entries[0]
        assert entry.level == LogLevel.INFO
        assert entry.component == "SearchEvent"
        assert entry.data["rounds_used"] == 2
        assert entry.data["estimated_tokens"] == 120
