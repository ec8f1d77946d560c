"""Unit tests for stats aggregation, observers and progress display."""

import asyncio
import io
import logging
import threading
from datetime import datetime, timezone

import pytest

from ingester.monitoring.metrics import ESTIMATED_RU_PER_KB, IngestionStats, StatsAggregator
from ingester.monitoring.observers import (
    CompositeObserver,
    EventKind,
    IngestionObserver,
    LoggingObserver,
    QueueObserver,
)
from ingester.monitoring.progress import ProgressObserver, StatsReporter

from fakes import FakeClock


def _stats(total: int = 10, failed: int = 0) -> IngestionStats:
    return IngestionStats(
        timestamp=datetime.now(timezone.utc),
        total_documents=total,
        total_data_size_kb=total,
        documents_per_second=5.0,
        kb_per_second=5.0,
        failed_documents=failed,
        elapsed_seconds=2.0,
        estimated_request_units=total * ESTIMATED_RU_PER_KB,
    )


def test_snapshot_reports_cumulative_rates() -> None:
    """Rates should be cumulative totals divided by elapsed time."""
    clock = FakeClock(start=100.0)
    stats = StatsAggregator(clock)
    stats.add_batch(10, 20)
    stats.add_batch(10, 20, failed=3)
    clock.advance(4.0)

    snapshot = stats.snapshot()

    assert snapshot.total_documents == 20
    assert snapshot.total_data_size_kb == 40
    assert snapshot.failed_documents == 3
    assert snapshot.successful_documents == 17
    assert snapshot.documents_per_second == pytest.approx(5.0)
    assert snapshot.kb_per_second == pytest.approx(10.0)
    assert snapshot.elapsed_seconds == pytest.approx(4.0)
    assert snapshot.estimated_request_units == 40 * ESTIMATED_RU_PER_KB


def test_snapshot_rates_are_zero_without_elapsed_time() -> None:
    """No time elapsed should yield zero rates instead of dividing by zero."""
    stats = StatsAggregator(FakeClock())
    stats.add_batch(5, 5)

    snapshot = stats.snapshot()

    assert snapshot.documents_per_second == 0.0
    assert snapshot.kb_per_second == 0.0
    assert snapshot.total_documents == 5


def test_reset_zeroes_counters_and_restarts_clock() -> None:
    """Reset should start a fresh measurement window."""
    clock = FakeClock()
    stats = StatsAggregator(clock)
    stats.add_batch(5, 5, failed=1)
    clock.advance(10.0)

    stats.reset()
    clock.advance(1.0)
    snapshot = stats.snapshot()

    assert snapshot.total_documents == 0
    assert snapshot.failed_documents == 0
    assert snapshot.estimated_request_units == 0
    assert snapshot.elapsed_seconds == pytest.approx(1.0)


def test_concurrent_updates_are_not_lost() -> None:
    """Updates from several threads should all be counted."""
    stats = StatsAggregator()

    def writer():
        for _ in range(1000):
            stats.add_batch(1, 2)

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = stats.snapshot()
    assert snapshot.total_documents == 8000
    assert snapshot.total_data_size_kb == 16000


def test_stats_to_dict_serializes_timestamp() -> None:
    """Stats should export to plain values."""
    data = _stats().to_dict()

    assert data["total_documents"] == 10
    assert isinstance(data["timestamp"], str)


def test_queue_observer_preserves_emission_order() -> None:
    """Events should come out of the channel in the order they were sent."""

    async def scenario():
        observer = QueueObserver()
        observer.on_status("first")
        observer.on_stats(_stats())
        observer.on_status("last")
        return observer.drain()

    events = asyncio.run(scenario())

    assert [event.kind for event in events] == [EventKind.STATUS, EventKind.STATS, EventKind.STATUS]
    assert events[0].payload == "first"
    assert events[-1].payload == "last"


def test_composite_observer_isolates_failing_observer() -> None:
    """One failing observer should not keep others from being notified."""

    class Exploding(IngestionObserver):
        def on_status(self, message):
            raise RuntimeError("observer down")

    class Recording(IngestionObserver):
        def __init__(self):
            self.messages = []

        def on_status(self, message):
            self.messages.append(message)

    recording = Recording()
    CompositeObserver([Exploding(), recording]).on_status("hello")

    assert recording.messages == ["hello"]


def test_logging_observer_logs_warnings_at_warning_level(caplog: pytest.LogCaptureFixture) -> None:
    """Warning statuses should be logged as warnings."""
    observer = LoggingObserver()

    with caplog.at_level(logging.INFO):
        observer.on_status("Warning: 1 of 5 documents failed to ingest")
        observer.on_status("Ingestion stopped.")

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.WARNING, logging.INFO]


def test_progress_observer_tracks_document_count() -> None:
    """The progress bar should advance to the snapshot's document total."""
    observer = ProgressObserver(file=io.StringIO())

    observer.on_stats(_stats(total=10))
    observer.on_stats(_stats(total=25, failed=2))

    assert observer.pbar.n == 25
    observer.close()


def test_stats_reporter_polls_until_stopped() -> None:
    """The reporter should forward snapshots on its interval until stopped."""

    class Recording(IngestionObserver):
        def __init__(self):
            self.snapshots = []

        def on_stats(self, stats):
            self.snapshots.append(stats)

    async def scenario():
        observer = Recording()
        stats = StatsAggregator()
        stats.add_batch(3, 3)
        reporter = StatsReporter(stats, observer, interval=0.01)
        await reporter.start()
        await asyncio.sleep(0.05)
        await reporter.stop()
        return observer.snapshots, reporter

    snapshots, reporter = asyncio.run(scenario())

    assert len(snapshots) >= 2
    assert all(snapshot.total_documents == 3 for snapshot in snapshots)
    assert reporter.report_task is None
