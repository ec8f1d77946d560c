"""
Partition key strategies
Decide how writes are spread across the collection's logical partitions
"""
import uuid
from enum import Enum
from typing import Any

from ..core.errors import ConfigValidationError

HOT_PARTITION_KEY = "hot-partition-1"
SEQUENTIAL_PREFIX = "partition-"


class WorkloadStrategy(Enum):
    """Workload strategies"""
    SEQUENTIAL = "Sequential"      # One new partition per sequence number
    RANDOM = "Random"              # Unpredictable access pattern
    HOT_PARTITION = "HotPartition"  # Every write lands on one partition

    @classmethod
    def parse(cls, value: Any) -> "WorkloadStrategy":
        """Resolve a strategy from a member, value or name; unknown values are rejected"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "").replace("-", "")
        for member in cls:
            if normalized in (member.value.lower(), member.name.lower().replace("_", "")):
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigValidationError([f"Unknown workload strategy '{value}'. Allowed: {allowed}"])


class PartitionKeyStrategy:
    """Selects the partition key for each document of a run"""

    def __init__(self, strategy: WorkloadStrategy):
        self.strategy = WorkloadStrategy.parse(strategy)

    def key_for(self, sequence_number: int) -> str:
        if self.strategy is WorkloadStrategy.SEQUENTIAL:
            return f"{SEQUENTIAL_PREFIX}{sequence_number}"
        if self.strategy is WorkloadStrategy.RANDOM:
            return str(uuid.uuid4())
        return HOT_PARTITION_KEY

    def __repr__(self) -> str:
        return f"PartitionKeyStrategy({self.strategy.value})"


def partition_key_for(strategy: WorkloadStrategy, sequence_number: int) -> str:
    """Partition key for one document"""
    return PartitionKeyStrategy(strategy).key_for(sequence_number)
