"""
Configuration validation
Fails fast on bad settings before any connection is attempted
"""
import re
from typing import List
from urllib.parse import urlsplit

from ..core.errors import ConfigValidationError

# Validation limits
MAX_ENDPOINT_LENGTH = 2048
MAX_CREDENTIAL_LENGTH = 256
MAX_NAME_LENGTH = 255
MIN_THROUGHPUT = 400
MAX_THROUGHPUT = 1_000_000
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 1000
MIN_DOCUMENT_SIZE_KB = 1
MAX_DOCUMENT_SIZE_KB = 2048

ALLOWED_SCHEMES = ("mongodb", "mongodb+srv")
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{0,254}$")
DANGEROUS_KEYWORDS = ("--", "/*", "*/", ";", "drop", "delete", "truncate", "exec", "execute")


def validate_endpoint(endpoint: str) -> List[str]:
    if not endpoint or not endpoint.strip():
        return ["Endpoint cannot be empty"]
    endpoint = endpoint.strip()
    if len(endpoint) > MAX_ENDPOINT_LENGTH:
        return [f"Endpoint exceeds maximum length of {MAX_ENDPOINT_LENGTH} characters"]
    parts = urlsplit(endpoint)
    if parts.scheme not in ALLOWED_SCHEMES or not parts.netloc:
        return ["Endpoint must be a mongodb:// or mongodb+srv:// URI"]
    if "@" in parts.netloc:
        return ["Endpoint must not embed credentials; supply them as the credential setting"]
    return []


def validate_credential(credential: str) -> List[str]:
    if not credential or not credential.strip():
        return ["Credential cannot be empty"]
    if len(credential.strip()) > MAX_CREDENTIAL_LENGTH:
        return [f"Credential exceeds maximum length of {MAX_CREDENTIAL_LENGTH} characters"]
    return []


def validate_name(name: str, label: str) -> List[str]:
    """Database and collection names share the same whitelist"""
    if not name or not name.strip():
        return [f"{label} cannot be empty"]
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        return [f"{label} exceeds maximum length of {MAX_NAME_LENGTH} characters"]
    if not NAME_PATTERN.match(name):
        return [f"{label} contains invalid characters. Only alphanumeric, hyphen, and underscore are allowed"]
    lowered = name.lower()
    if any(keyword in lowered for keyword in DANGEROUS_KEYWORDS):
        return [f"{label} contains potentially dangerous characters or keywords"]
    return []


def validate_range(value: int, low: int, high: int, label: str, unit: str = "") -> List[str]:
    suffix = f" {unit}" if unit else ""
    if not isinstance(value, int) or isinstance(value, bool):
        return [f"{label} must be an integer"]
    if value < low:
        return [f"{label} must be at least {low:,}{suffix}"]
    if value > high:
        return [f"{label} cannot exceed {high:,}{suffix}"]
    return []


def validate_config(config) -> None:
    """
    Validate an IngestionConfig, collecting every problem

    Raises:
        ConfigValidationError: listing all failed checks
    """
    errors: List[str] = []
    errors += validate_endpoint(config.endpoint)
    errors += validate_credential(config.credential)
    errors += validate_name(config.database_name, "Database name")
    errors += validate_name(config.collection_name, "Collection name")
    errors += validate_range(config.throughput, MIN_THROUGHPUT, MAX_THROUGHPUT, "Throughput", "RU/s")
    errors += validate_range(config.batch_size, MIN_BATCH_SIZE, MAX_BATCH_SIZE, "Batch size")
    errors += validate_range(config.document_size_kb, MIN_DOCUMENT_SIZE_KB, MAX_DOCUMENT_SIZE_KB,
                             "Document size", "KB")

    if config.max_request_units is not None and config.max_request_units <= 0:
        errors.append("Maximum request unit budget must be > 0 when set")
    if config.stats_interval_seconds <= 0:
        errors.append("Stats interval must be > 0 seconds")

    if errors:
        raise ConfigValidationError(errors)
