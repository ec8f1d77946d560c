"""
Progress display
tqdm counter bar fed from stats snapshots, plus a polling reporter for the live counters
"""
import asyncio
import logging
import sys
from typing import Optional

from tqdm import tqdm

from .metrics import IngestionStats, StatsAggregator
from .observers import IngestionObserver

logger = logging.getLogger(__name__)


class ProgressObserver(IngestionObserver):
    """Renders ingestion progress as an open-ended tqdm bar"""

    def __init__(self, description: str = "🚀 Ingesting documents", file=None, disable: bool = False):
        self.pbar = tqdm(
            total=None,
            desc=description,
            unit="docs",
            unit_scale=True,
            ncols=120,
            bar_format='{desc}: {n_fmt} [{elapsed}, {rate_fmt}] {postfix}',
            colour='green',
            dynamic_ncols=True,
            leave=True,
            file=file or sys.stdout,
            disable=disable,
        )

    def on_status(self, message: str):
        self.pbar.write(message)

    def on_stats(self, stats: IngestionStats):
        advance = stats.total_documents - self.pbar.n
        if advance > 0:
            self.pbar.update(advance)
        self.pbar.set_postfix_str(
            f"{stats.documents_per_second:,.0f} docs/s | {stats.kb_per_second:,.0f} KB/s | "
            f"failed {stats.failed_documents:,} | ~{stats.estimated_request_units:,} RU"
        )

    def close(self):
        self.pbar.close()


class StatsReporter:
    """
    Polls the live counters on an interval and forwards snapshots

    Independent of the ingestion loop: it only reads the aggregator.
    """

    def __init__(self, stats: StatsAggregator, observer: IngestionObserver, interval: float = 1.0):
        self.stats = stats
        self.observer = observer
        self.interval = interval
        self.is_reporting = False
        self.report_task: Optional[asyncio.Task] = None

    async def start(self):
        if self.is_reporting:
            return
        self.is_reporting = True
        self.report_task = asyncio.create_task(self._report_loop())
        logger.debug("Stats reporter started")

    async def stop(self):
        self.is_reporting = False
        if self.report_task:
            self.report_task.cancel()
            try:
                await self.report_task
            except asyncio.CancelledError:
                pass
            self.report_task = None
        logger.debug("Stats reporter stopped")

    async def _report_loop(self):
        while self.is_reporting:
            try:
                self.observer.on_stats(self.stats.snapshot())
            except Exception as e:
                logger.error(f"Error in stats reporter: {e}")
            await asyncio.sleep(self.interval)
