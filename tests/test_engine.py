"""Unit tests for the ingestion engine."""

import asyncio

import pytest

from ingester.core.errors import ConfigValidationError, ErrorKind
from ingester.generators.engine import WorkloadGenerator
from ingester.ingestion.engine import EngineState, IngestionEngine
from ingester.monitoring.observers import EventKind, IngestionObserver, QueueObserver
from ingester.monitoring.progress import StatsReporter

from fakes import FakeBackend, FakeClock


def _engine(backend, fake, clock=None):
    observer = QueueObserver()
    engine = IngestionEngine(backend, observer=observer, generator=WorkloadGenerator(fake),
                             clock=clock or FakeClock(step=1.0))
    return engine, observer


def _statuses(events):
    return [event.payload for event in events if event.kind is EventKind.STATUS]


def _snapshots(events):
    return [event.payload for event in events if event.kind is EventKind.STATS]


def test_end_to_end_sequential_financial(fake, config) -> None:
    """Two batches of five should produce ten attempts with sequential keys."""

    async def scenario():
        backend = FakeBackend()
        engine, observer = _engine(backend, fake)
        assert await engine.initialize(config)
        final = await engine.run(config, max_batches=2)
        return engine, backend, final, observer.drain()

    engine, backend, final, events = asyncio.run(scenario())

    assert final.total_documents == 10
    assert final.total_data_size_kb == 10
    assert final.failed_documents == 0
    assert backend.sequence_numbers == list(range(10))
    assert backend.partition_keys == [f"partition-{n}" for n in range(10)]
    assert engine.sequence == 10
    assert engine.state is EngineState.IDLE
    statuses = _statuses(events)
    assert statuses[:3] == [
        "Initializing connection to document store...",
        "Connection established successfully!",
        "Starting data ingestion...",
    ]
    assert statuses[-1] == "Ingestion stopped."
    assert _snapshots(events)[-1].total_documents == 10


def test_failures_are_counted_and_reported(fake, config) -> None:
    """Failed writes should still count as attempts and raise a warning status."""

    async def scenario():
        backend = FakeBackend(failures={2: ErrorKind.RATE_LIMITED, 7: ErrorKind.TRANSIENT})
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        final = await engine.run(config, max_batches=2)
        return engine, final, observer.drain()

    engine, final, events = asyncio.run(scenario())

    assert engine.sequence == 10
    assert final.total_documents == 10
    assert final.failed_documents == 2
    warnings = [s for s in _statuses(events) if s.startswith("Warning")]
    assert len(warnings) == 2
    assert warnings[0].startswith("Warning: 1 of 5 documents failed to ingest (rate_limited: 1)")
    assert "(transient: 1)" in warnings[1]


def test_snapshots_are_monotonic_under_failures(fake, config) -> None:
    """Cumulative totals should never decrease between snapshots."""

    async def scenario():
        failures = {n: ErrorKind.TRANSIENT for n in range(0, 40, 3)}
        backend = FakeBackend(failures=failures)
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        await engine.run(config, max_batches=8)
        return _snapshots(observer.drain())

    snapshots = asyncio.run(scenario())

    assert len(snapshots) >= 8
    totals = [s.total_documents for s in snapshots]
    sizes = [s.total_data_size_kb for s in snapshots]
    failed = [s.failed_documents for s in snapshots]
    assert totals == sorted(totals)
    assert sizes == sorted(sizes)
    assert failed == sorted(failed)
    assert totals[-1] == 40


def test_cancellation_finishes_batch_in_flight(fake, config) -> None:
    """Cancelling mid-batch should complete that batch and start no other."""

    async def scenario():
        cancel = asyncio.Event()

        def cancel_at_seven(document):
            if document.sequence_number == 7:
                cancel.set()

        backend = FakeBackend(on_write=cancel_at_seven)
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        final = await engine.run(config, cancel_event=cancel)
        return backend, final, observer.drain()

    backend, final, events = asyncio.run(scenario())

    assert final.total_documents == 10
    assert backend.sequence_numbers == list(range(10))
    assert _statuses(events)[-1] == "Ingestion cancelled by user."


def test_stop_request_ends_run_after_current_batch(fake, config) -> None:
    """stop() should let the in-flight batch finish and then go idle."""

    async def scenario():
        engine = None

        def stop_at_three(document):
            if document.sequence_number == 3:
                engine.stop()

        backend = FakeBackend(on_write=stop_at_three)
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        final = await engine.run(config)
        return engine, final, observer.drain()

    engine, final, events = asyncio.run(scenario())

    assert final.total_documents == 5
    assert engine.state is EngineState.IDLE
    statuses = _statuses(events)
    assert "Stopping ingestion..." in statuses
    assert statuses[-1] == "Ingestion stopped."


def test_run_refused_before_initialize(fake, config) -> None:
    """Running without an initialized backend should be refused without writes."""

    async def scenario():
        backend = FakeBackend()
        engine, observer = _engine(backend, fake)
        result = await engine.run(config, max_batches=1)
        return backend, result, observer.drain()

    backend, result, events = asyncio.run(scenario())

    assert result is None
    assert backend.documents == []
    assert _statuses(events) == ["Please initialize connection first!"]


def test_second_run_refused_while_running(fake, config) -> None:
    """Only one run may be active at a time."""

    async def scenario():
        cancel = asyncio.Event()
        backend = FakeBackend()
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        task = engine.start(config, cancel_event=cancel)
        await asyncio.sleep(0)
        assert engine.is_running
        refused = await engine.run(config)
        cancel.set()
        final = await task
        return refused, final, observer.drain()

    refused, final, events = asyncio.run(scenario())

    assert refused is None
    assert "Ingestion is already running!" in _statuses(events)
    assert final.total_documents % 5 == 0
    assert final.total_documents >= 5


def test_restart_resets_sequence_and_counters(fake, config) -> None:
    """A new run should start from sequence zero with fresh counters."""

    async def scenario():
        backend = FakeBackend()
        engine, _ = _engine(backend, fake)
        await engine.initialize(config)
        first = await engine.run(config, max_batches=2)
        backend.documents.clear()
        backend.partition_keys.clear()
        second = await engine.run(config, max_batches=1)
        return backend, first, second

    backend, first, second = asyncio.run(scenario())

    assert first.total_documents == 10
    assert second.total_documents == 5
    assert backend.partition_keys == [f"partition-{n}" for n in range(5)]


def test_fatal_error_propagates_after_final_snapshot(fake, config) -> None:
    """Unclassifiable errors should end the run, emit final stats and re-raise."""

    async def scenario():
        backend = FakeBackend(raises={6: RuntimeError("disk on fire")})
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        with pytest.raises(RuntimeError, match="disk on fire"):
            await engine.run(config)
        return engine, observer.drain()

    engine, events = asyncio.run(scenario())

    assert engine.state is EngineState.IDLE
    assert _snapshots(events)[-1].total_documents == 10
    assert _statuses(events)[-1] == "An unexpected error occurred. Please check the logs for more details."


def test_classified_exceptions_do_not_end_run(fake, config) -> None:
    """Exceptions the taxonomy recognizes should be counted as failures."""
    from pymongo.errors import NetworkTimeout

    async def scenario():
        backend = FakeBackend(raises={1: NetworkTimeout("timed out")})
        engine, _ = _engine(backend, fake)
        await engine.initialize(config)
        return await engine.run(config, max_batches=2)

    final = asyncio.run(scenario())

    assert final.total_documents == 10
    assert final.failed_documents == 1


def test_request_unit_budget_stops_run(fake, config) -> None:
    """The run should stop once the estimated RU consumption reaches the budget."""
    budgeted = config.with_overrides(max_request_units=60)

    async def scenario():
        backend = FakeBackend()
        engine, observer = _engine(backend, fake)
        await engine.initialize(budgeted)
        final = await engine.run(budgeted)
        return final, observer.drain()

    final, events = asyncio.run(scenario())

    assert final.total_documents == 10
    assert final.estimated_request_units == 60
    assert "Request unit budget of 60 reached, stopping." in _statuses(events)


def test_initialize_failure_reports_friendly_message(fake, config) -> None:
    """A rejected connection should surface a fixed, credential-free message."""

    async def scenario():
        backend = FakeBackend(initialize_error=ErrorKind.AUTHENTICATION)
        engine, observer = _engine(backend, fake)
        ok = await engine.initialize(config)
        return ok, observer.drain()

    ok, events = asyncio.run(scenario())

    assert ok is False
    assert _statuses(events)[-1] == "Authentication failed. Please verify your credentials."


def test_initialize_rejects_invalid_config(fake, config) -> None:
    """Invalid settings should fail before the backend is touched."""
    backend = FakeBackend()
    engine, _ = _engine(backend, fake)

    with pytest.raises(ConfigValidationError):
        asyncio.run(engine.initialize(config.with_overrides(batch_size=0)))

    assert backend.initialize_calls == 0


def test_warning_status_never_contains_credential(fake, config) -> None:
    """Failure details should be sanitized before reaching observers."""

    async def scenario():
        backend = FakeBackend(failures={0: ErrorKind.AUTHENTICATION},
                              failure_message=f"login failed with key {config.credential}")
        engine, observer = _engine(backend, fake)
        await engine.initialize(config)
        await engine.run(config, max_batches=1)
        return _statuses(observer.drain())

    statuses = asyncio.run(scenario())

    assert all(config.credential not in status for status in statuses)
    assert any("***" in status for status in statuses)


def test_replace_backend_disposes_previous_backend(fake, config) -> None:
    """Swapping backends should release the old one and require re-initialization."""

    async def scenario():
        old, new = FakeBackend(), FakeBackend()
        engine, observer = _engine(old, fake)
        await engine.initialize(config)
        await engine.replace_backend(new)
        refused = await engine.run(max_batches=1)
        return engine, old, new, refused, observer.drain()

    engine, old, new, refused, events = asyncio.run(scenario())

    assert old.dispose_calls == 1
    assert engine.backend is new
    assert engine.config is None
    assert refused is None
    assert "Connection reset. Please initialize the new connection." in _statuses(events)


def test_dispose_stops_running_ingestion(fake, config) -> None:
    """Disposing mid-run should wait for the loop to go idle, then release the backend."""

    async def scenario():
        backend = FakeBackend()
        engine, _ = _engine(backend, fake)
        await engine.initialize(config)
        task = engine.start(config)
        await asyncio.sleep(0)
        await engine.dispose()
        final = await task
        return engine, backend, final

    engine, backend, final = asyncio.run(scenario())

    assert engine.state is EngineState.IDLE
    assert backend.dispose_calls == 1
    assert final.total_documents >= 5


def test_reporter_started_before_run_sees_run_totals(fake, config) -> None:
    """A reporter bound to engine.stats before a run should observe that run's counters."""

    class Recording(IngestionObserver):
        def __init__(self):
            self.snapshots = []

        def on_stats(self, stats):
            self.snapshots.append(stats)

    async def scenario():
        backend = FakeBackend()
        engine, _ = _engine(backend, fake)
        await engine.initialize(config)
        recording = Recording()
        reporter = StatsReporter(engine.stats, recording, interval=0.01)
        await reporter.start()
        final = await engine.run(config, max_batches=3)
        await asyncio.sleep(0.05)
        await reporter.stop()
        return engine, reporter, final, recording.snapshots

    engine, reporter, final, snapshots = asyncio.run(scenario())

    assert final.total_documents == 15
    assert reporter.stats is engine.stats
    assert snapshots[-1].total_documents == 15


def test_counters_reset_in_place_between_runs(fake, config) -> None:
    """Each run should zero the shared aggregator rather than replace it."""

    async def scenario():
        backend = FakeBackend()
        engine, _ = _engine(backend, fake)
        await engine.initialize(config)
        aggregator = engine.stats
        await engine.run(config, max_batches=2)
        second = await engine.run(config, max_batches=1)
        return engine, aggregator, second

    engine, aggregator, second = asyncio.run(scenario())

    assert engine.stats is aggregator
    assert second.total_documents == 5
    assert aggregator.total_documents == 5
