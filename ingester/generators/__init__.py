"""
Workload Generation Framework
"""
from .documents import (
    DataType,
    BaseDocument,
    FinancialDocument,
    ECommerceDocument,
    HealthcareDocument,
    IoTDocument,
    GenericDocument,
    DOCUMENT_OVERHEAD_BYTES
)
from .partitioning import PartitionKeyStrategy, WorkloadStrategy, partition_key_for
from .engine import WorkloadGenerator, GenerationBatch, create_workload_generator
