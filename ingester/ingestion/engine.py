"""
Ingestion Engine
Pump loop that generates batches, fans the writes out concurrently and keeps cumulative accounting
"""
import asyncio
import logging
import time
from collections import Counter
from enum import Enum
from typing import Callable, Optional

from ..config.validation import validate_config
from ..core.database import BackendResult, BaseBackend, create_backend
from ..core.errors import ErrorKind, classify_exception, sanitize_message, user_friendly_message
from ..generators.engine import GenerationBatch, WorkloadGenerator
from ..monitoring.metrics import IngestionStats, StatsAggregator
from ..monitoring.observers import IngestionObserver

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle states of the ingestion engine"""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class IngestionEngine:
    """
    Load-generation engine with:
    - One batch in flight at a time (fan-out / fan-in per batch)
    - Cooperative cancellation observed between batches
    - Cumulative throughput accounting that survives partial failures
    - Status and stats notifications through an observer
    """

    def __init__(self,
                 backend: BaseBackend,
                 observer: Optional[IngestionObserver] = None,
                 generator: Optional[WorkloadGenerator] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.backend = backend
        self.observer = observer or IngestionObserver()
        self.generator = generator or WorkloadGenerator()
        self._clock = clock or time.monotonic

        self.config = None
        self.state = EngineState.IDLE
        self.sequence = 0
        self.stats = StatsAggregator(self._clock)
        self.batches_completed = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return self.state is not EngineState.IDLE

    async def initialize(self, config) -> bool:
        """
        Validate the configuration and initialize the backend

        Raises:
            ConfigValidationError: when the configuration is invalid
        """
        validate_config(config)
        self.config = config
        self._status("Initializing connection to document store...")

        result = await self.backend.initialize(config)
        if not result.success:
            logger.error(f"❌ Backend initialization failed ({result.error_kind.value})")
            self._status(user_friendly_message(result.error_kind))
            return False

        self._status("Connection established successfully!")
        return True

    def start(self, config=None, cancel_event: Optional[asyncio.Event] = None,
              max_batches: Optional[int] = None) -> asyncio.Task:
        """Run the ingestion loop as its own task"""
        return asyncio.create_task(self.run(config, cancel_event, max_batches))

    async def run(self, config=None, cancel_event: Optional[asyncio.Event] = None,
                  max_batches: Optional[int] = None) -> Optional[IngestionStats]:
        """
        Ingest batches until stopped, cancelled, out of budget or max_batches reached

        Returns:
            The final stats snapshot, or None when the run was refused
        """
        config = config or self.config
        if self.state is not EngineState.IDLE:
            self._status("Ingestion is already running!")
            return None
        if config is None or not self.backend.is_initialized:
            self._status("Please initialize connection first!")
            return None
        validate_config(config)

        cancel_event = cancel_event or asyncio.Event()
        self.config = config
        self.sequence = 0
        self.batches_completed = 0
        self.stats.reset()
        self.state = EngineState.RUNNING
        self._idle.clear()

        logger.info(
            f"🚀 Starting ingestion: {config.data_type.value} documents, "
            f"{config.workload_strategy.value} strategy, {config.batch_size} docs/batch, "
            f"{config.document_size_kb} KB/doc"
        )
        self._status("Starting data ingestion...")

        try:
            await self._pump(config, cancel_event, max_batches)
        except BaseException as e:
            final = self.stats.snapshot()
            self._emit_stats(final)
            if isinstance(e, asyncio.CancelledError):
                self._status("Ingestion cancelled.")
            else:
                logger.error(f"❌ Ingestion failed after {final.total_documents:,} documents: "
                             f"{self._sanitize(repr(e))}")
                self._status(user_friendly_message(e))
            self._enter_idle()
            raise

        final = self.stats.snapshot()
        self._emit_stats(final)
        if cancel_event.is_set():
            self._status("Ingestion cancelled by user.")
        else:
            self._status("Ingestion stopped.")
        logger.info(f"✅ Ingestion finished: {final}")
        self._enter_idle()
        return final

    async def _pump(self, config, cancel_event: asyncio.Event, max_batches: Optional[int]):
        last_emit = self._clock()

        while self.state is EngineState.RUNNING and not cancel_event.is_set():
            batch = self.generator.generate_batch(config, self.sequence)
            self.sequence += len(batch)

            failures, fatal = await self._ingest_batch(batch, cancel_event)
            self.stats.add_batch(len(batch), len(batch) * config.document_size_kb, sum(failures.values()))
            self.batches_completed += 1
            if fatal is not None:
                raise fatal

            now = self._clock()
            if now - last_emit >= config.stats_interval_seconds:
                self._emit_stats(self.stats.snapshot())
                last_emit = now

            if max_batches is not None and self.batches_completed >= max_batches:
                break
            if self._budget_exhausted(config):
                self._status(f"Request unit budget of {config.max_request_units:,} reached, stopping.")
                break

    async def _ingest_batch(self, batch: GenerationBatch, cancel_event: asyncio.Event):
        """Write every document concurrently and wait for all of them"""
        results = await asyncio.gather(
            *(self.backend.create_item(doc, doc.partition_key, cancel_event) for doc in batch.documents),
            return_exceptions=True,
        )

        failures: Counter = Counter()
        first_error = None
        fatal = None
        for result in results:
            if isinstance(result, BackendResult):
                if result.success:
                    continue
                kind, message = result.error_kind, result.message
            else:
                kind, message = classify_exception(result), repr(result)
                if kind is ErrorKind.FATAL and fatal is None:
                    fatal = result
            failures[kind] += 1
            if first_error is None:
                first_error = message

        if failures:
            failed = sum(failures.values())
            kinds = ", ".join(f"{kind.value}: {count}" for kind, count in failures.items())
            self._status(
                f"Warning: {failed} of {len(batch)} documents failed to ingest ({kinds}). "
                f"First error: {self._sanitize(first_error)}"
            )
        return failures, fatal

    def _budget_exhausted(self, config) -> bool:
        return (config.max_request_units is not None and
                self.stats.estimated_request_units >= config.max_request_units)

    def stop(self):
        """Request a stop; the loop exits after the batch in flight completes"""
        if self.state is EngineState.RUNNING:
            self.state = EngineState.STOPPING
            self._status("Stopping ingestion...")

    async def wait_until_idle(self):
        await self._idle.wait()

    async def replace_backend(self, backend: BaseBackend):
        """Stop any running ingestion, dispose the current backend and install a new one"""
        await self._shutdown()
        self.backend = backend
        self.config = None
        self._status("Connection reset. Please initialize the new connection.")

    async def dispose(self):
        """Stop any running ingestion and release the backend"""
        await self._shutdown()

    async def _shutdown(self):
        if self.is_running:
            self.stop()
            await self._idle.wait()
        await self.backend.dispose()

    def _enter_idle(self):
        self.state = EngineState.IDLE
        self._idle.set()

    def _sanitize(self, message: str) -> str:
        secrets = [self.config.credential] if self.config is not None else []
        return sanitize_message(message, secrets)

    def _status(self, message: str):
        message = self._sanitize(message)
        try:
            self.observer.on_status(message)
        except Exception as e:
            logger.error(f"Error in status observer: {e}")

    def _emit_stats(self, stats: IngestionStats):
        try:
            self.observer.on_stats(stats)
        except Exception as e:
            logger.error(f"Error in stats observer: {e}")


def create_ingestion_engine(backend: Optional[BaseBackend] = None,
                            observer: Optional[IngestionObserver] = None,
                            generator: Optional[WorkloadGenerator] = None) -> IngestionEngine:
    """Create an ingestion engine, defaulting to the Cosmos DB backend"""
    return IngestionEngine(backend or create_backend(), observer=observer, generator=generator)
