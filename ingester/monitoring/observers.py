"""
Status and stats observers
Fire-and-forget notification targets for the ingestion engine
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

from .metrics import IngestionStats

logger = logging.getLogger(__name__)


class IngestionObserver:
    """Receives lifecycle status messages and periodic stats snapshots"""

    def on_status(self, message: str):
        pass

    def on_stats(self, stats: IngestionStats):
        pass


class LoggingObserver(IngestionObserver):
    """Writes every notification to the log"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_status(self, message: str):
        if message.startswith("Warning"):
            self.log.warning(message)
        else:
            self.log.info(message)

    def on_stats(self, stats: IngestionStats):
        self.log.info(f"📊 {stats}")


class EventKind(Enum):
    STATUS = "status"
    STATS = "stats"


@dataclass(frozen=True)
class IngestionEvent:
    kind: EventKind
    payload: Union[str, IngestionStats]


class QueueObserver(IngestionObserver):
    """
    Message channel the engine writes to and the host drains

    Events keep the order in which the engine emitted them.
    """

    def __init__(self, queue: Optional[asyncio.Queue] = None):
        self.queue = queue or asyncio.Queue()

    def on_status(self, message: str):
        self.queue.put_nowait(IngestionEvent(EventKind.STATUS, message))

    def on_stats(self, stats: IngestionStats):
        self.queue.put_nowait(IngestionEvent(EventKind.STATS, stats))

    def drain(self) -> List[IngestionEvent]:
        """Remove and return every pending event"""
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


class CompositeObserver(IngestionObserver):
    """Fans notifications out to several observers"""

    def __init__(self, observers: Iterable[IngestionObserver]):
        self.observers = list(observers)

    def on_status(self, message: str):
        for observer in self.observers:
            try:
                observer.on_status(message)
            except Exception as e:
                logger.error(f"Error in status observer {type(observer).__name__}: {e}")

    def on_stats(self, stats: IngestionStats):
        for observer in self.observers:
            try:
                observer.on_stats(stats)
            except Exception as e:
                logger.error(f"Error in stats observer {type(observer).__name__}: {e}")
