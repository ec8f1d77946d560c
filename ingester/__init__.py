"""
Cosmos DB Load Ingester
Synthetic document generation and concurrent bulk ingestion for throughput and cost testing
"""

__version__ = "1.0.0"

# Core components
from .core.database import (
    BaseBackend,
    CosmosMongoBackend,
    BackendResult,
    PARTITION_KEY_FIELD,
    create_backend
)
from .core.errors import (
    ErrorKind,
    IngesterError,
    ConfigValidationError,
    BackendError,
    classify_exception,
    sanitize_message,
    user_friendly_message
)

# Configuration management
from .config.manager import ConfigManager, IngestionConfig
from .config.validation import validate_config

# Workload generation
from .generators import (
    DataType,
    WorkloadStrategy,
    PartitionKeyStrategy,
    partition_key_for,
    WorkloadGenerator,
    GenerationBatch,
    create_workload_generator
)

# Ingestion
from .ingestion import IngestionEngine, EngineState, create_ingestion_engine

# Monitoring
from .monitoring.metrics import IngestionStats, StatsAggregator
from .monitoring.observers import (
    IngestionObserver,
    LoggingObserver,
    QueueObserver,
    CompositeObserver,
    IngestionEvent,
    EventKind
)
from .monitoring.progress import ProgressObserver, StatsReporter

__all__ = [
    # Core
    "BaseBackend",
    "CosmosMongoBackend",
    "BackendResult",
    "PARTITION_KEY_FIELD",
    "create_backend",
    "ErrorKind",
    "IngesterError",
    "ConfigValidationError",
    "BackendError",
    "classify_exception",
    "sanitize_message",
    "user_friendly_message",

    # Configuration
    "ConfigManager",
    "IngestionConfig",
    "validate_config",

    # Workload generation
    "DataType",
    "WorkloadStrategy",
    "PartitionKeyStrategy",
    "partition_key_for",
    "WorkloadGenerator",
    "GenerationBatch",
    "create_workload_generator",

    # Ingestion
    "IngestionEngine",
    "EngineState",
    "create_ingestion_engine",

    # Monitoring
    "IngestionStats",
    "StatsAggregator",
    "IngestionObserver",
    "LoggingObserver",
    "QueueObserver",
    "CompositeObserver",
    "IngestionEvent",
    "EventKind",
    "ProgressObserver",
    "StatsReporter"
]
