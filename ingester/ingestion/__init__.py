"""
Ingestion Framework
"""
from .engine import (
    IngestionEngine,
    EngineState,
    create_ingestion_engine
)
