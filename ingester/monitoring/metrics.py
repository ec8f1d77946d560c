"""
Ingestion Metrics
Cumulative counters shared between the ingestion loop and any number of readers
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Approximate request units charged per KB written
ESTIMATED_RU_PER_KB = 6


@dataclass(frozen=True)
class IngestionStats:
    """A point-in-time snapshot of cumulative ingestion counters"""
    timestamp: datetime
    total_documents: int
    total_data_size_kb: int
    documents_per_second: float
    kb_per_second: float
    failed_documents: int = 0
    elapsed_seconds: float = 0.0
    estimated_request_units: int = 0

    @property
    def successful_documents(self) -> int:
        return self.total_documents - self.failed_documents

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    def __str__(self) -> str:
        return (f"{self.total_documents:,} docs ({self.failed_documents:,} failed), "
                f"{self.total_data_size_kb:,} KB in {self.elapsed_seconds:.1f}s "
                f"[{self.documents_per_second:,.0f} docs/s, {self.kb_per_second:,.0f} KB/s]")


class StatsAggregator:
    """
    Cumulative document and byte counters for one run

    Only the ingestion loop writes; reporters may read from other tasks or
    threads. Every update and every snapshot holds the lock, so a snapshot
    never observes a half-applied batch.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._documents = 0
        self._data_size_kb = 0
        self._failed = 0
        self._request_units = 0
        self.start_time = self._clock()

    def reset(self):
        """Zero every counter and restart the clock"""
        with self._lock:
            self._documents = 0
            self._data_size_kb = 0
            self._failed = 0
            self._request_units = 0
            self.start_time = self._clock()

    def add_batch(self, documents: int, data_size_kb: int, failed: int = 0):
        """Account for one completed batch of attempted writes"""
        with self._lock:
            self._documents += documents
            self._data_size_kb += data_size_kb
            self._failed += failed
            self._request_units += data_size_kb * ESTIMATED_RU_PER_KB

    @property
    def total_documents(self) -> int:
        with self._lock:
            return self._documents

    @property
    def estimated_request_units(self) -> int:
        with self._lock:
            return self._request_units

    def elapsed(self) -> float:
        return self._clock() - self.start_time

    def snapshot(self) -> IngestionStats:
        """Consistent view of the counters with rates over the whole run"""
        with self._lock:
            documents = self._documents
            data_size_kb = self._data_size_kb
            failed = self._failed
            request_units = self._request_units
            elapsed = self._clock() - self.start_time

        return IngestionStats(
            timestamp=datetime.now(timezone.utc),
            total_documents=documents,
            total_data_size_kb=data_size_kb,
            documents_per_second=documents / elapsed if elapsed > 0 else 0.0,
            kb_per_second=data_size_kb / elapsed if elapsed > 0 else 0.0,
            failed_documents=failed,
            elapsed_seconds=max(elapsed, 0.0),
            estimated_request_units=request_units,
        )
