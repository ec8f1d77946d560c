"""Pytest configuration for repository test runs."""

import sys
from pathlib import Path

import pytest
from faker import Faker


def pytest_sessionstart() -> None:
    """Add the project root to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


@pytest.fixture
def fake() -> Faker:
    """Seeded fake value provider so generated field values are reproducible."""
    provider = Faker()
    provider.seed_instance(1234)
    return provider


@pytest.fixture
def config():
    """Valid configuration pointing at a local endpoint."""
    from ingester.config.manager import IngestionConfig

    return IngestionConfig(
        endpoint="mongodb://localhost:27017",
        credential="s3cret-account-key",
        database_name="loadtest",
        collection_name="orders",
        batch_size=5,
        document_size_kb=1,
        workload_strategy="Sequential",
        data_type="financial",
        backoff_base_seconds=0.0,
    )
