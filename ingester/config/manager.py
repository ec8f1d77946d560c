"""
Configuration Management
Ingestion settings from configuration files, dotenv files and environment variables
"""
import os
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Any
from pathlib import Path
import json
import yaml
from dotenv import load_dotenv

from ..generators.documents import DataType
from ..generators.partitioning import WorkloadStrategy
from .validation import validate_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionConfig:
    """Immutable settings for one ingestion run"""
    endpoint: str
    credential: str = field(repr=False)
    database_name: str
    collection_name: str
    username: Optional[str] = None
    throughput: int = 400
    batch_size: int = 10
    document_size_kb: int = 1
    workload_strategy: WorkloadStrategy = WorkloadStrategy.SEQUENTIAL
    data_type: DataType = DataType.FINANCIAL
    max_request_units: Optional[int] = None
    stats_interval_seconds: float = 1.0

    # Client settings
    max_retries: int = 3
    backoff_base_seconds: float = 0.1
    max_pool_size: int = 100
    server_selection_timeout_ms: int = 10000
    connect_timeout_ms: int = 20000
    socket_timeout_ms: int = 60000
    log_level: str = "INFO"

    def __post_init__(self):
        # Unknown strategies and data types fail here rather than defaulting
        object.__setattr__(self, "workload_strategy", WorkloadStrategy.parse(self.workload_strategy))
        object.__setattr__(self, "data_type", DataType.parse(self.data_type))

    @property
    def account_name(self) -> str:
        """Login name for the Mongo API; Cosmos DB uses the account name"""
        if self.username:
            return self.username
        host = self.endpoint.split("://", 1)[-1].split("/", 1)[0].split(",", 1)[0]
        return host.split(":", 1)[0].split(".", 1)[0]

    def with_overrides(self, **overrides: Any) -> "IngestionConfig":
        """Copy with some settings replaced; None values are ignored"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> "IngestionConfig":
        validate_config(self)
        return self

    def to_dict(self, include_credential: bool = False) -> Dict[str, Any]:
        data = {
            "endpoint": self.endpoint,
            "username": self.username,
            "database_name": self.database_name,
            "collection_name": self.collection_name,
            "throughput": self.throughput,
            "batch_size": self.batch_size,
            "document_size_kb": self.document_size_kb,
            "workload_strategy": self.workload_strategy.value,
            "data_type": self.data_type.value,
            "max_request_units": self.max_request_units,
            "stats_interval_seconds": self.stats_interval_seconds,
            "max_retries": self.max_retries,
            "backoff_base_seconds": self.backoff_base_seconds,
            "max_pool_size": self.max_pool_size,
            "server_selection_timeout_ms": self.server_selection_timeout_ms,
            "connect_timeout_ms": self.connect_timeout_ms,
            "socket_timeout_ms": self.socket_timeout_ms,
            "log_level": self.log_level,
        }
        if include_credential:
            data["credential"] = self.credential
        return data


class ConfigManager:
    """
    Configuration manager with support for:
    - Environment variables
    - Configuration files (JSON/YAML)
    - dotenv files
    - Validation
    """

    # setting name -> (environment suffix, type)
    ENV_SETTINGS = {
        "endpoint": ("ENDPOINT", str),
        "credential": ("CREDENTIAL", str),
        "username": ("USERNAME", str),
        "database_name": ("DATABASE", str),
        "collection_name": ("COLLECTION", str),
        "throughput": ("THROUGHPUT", int),
        "batch_size": ("BATCH_SIZE", int),
        "document_size_kb": ("DOCUMENT_SIZE_KB", int),
        "workload_strategy": ("WORKLOAD_STRATEGY", str),
        "data_type": ("DATA_TYPE", str),
        "max_request_units": ("MAX_REQUEST_UNITS", int),
        "stats_interval_seconds": ("STATS_INTERVAL_SECONDS", float),
        "max_retries": ("MAX_RETRIES", int),
        "backoff_base_seconds": ("BACKOFF_BASE_SECONDS", float),
        "max_pool_size": ("MAX_POOL_SIZE", int),
        "server_selection_timeout_ms": ("SERVER_SELECTION_TIMEOUT_MS", int),
        "connect_timeout_ms": ("CONNECT_TIMEOUT_MS", int),
        "socket_timeout_ms": ("SOCKET_TIMEOUT_MS", int),
        "log_level": ("LOG_LEVEL", str),
    }

    DEFAULTS = {
        "database_name": "ingestion-db",
        "collection_name": "documents",
    }

    def __init__(self, config_prefix: str = "INGEST"):
        self.config_prefix = config_prefix
        self.config: Optional[IngestionConfig] = None
        self._load_environment_variables()

    def _load_environment_variables(self):
        """Load environment variables from .env files"""
        env_files = ['.env_local', '.env', 'config.env']
        for env_file in env_files:
            if Path(env_file).exists():
                load_dotenv(env_file)
                logger.info(f"Loaded environment variables from {env_file}")
                break

    def load_config(self, config_file: Optional[str] = None, validate: bool = True,
                    **overrides: Any) -> IngestionConfig:
        """Load configuration from file, environment variables and explicit overrides"""
        config_data: Dict[str, Any] = dict(self.DEFAULTS)

        if config_file and Path(config_file).exists():
            file_path = Path(config_file)
            if (file_path.suffix.lower() == '.env' or
                    file_path.name.startswith('.env') or
                    file_path.name.endswith('.env')):
                load_dotenv(config_file)
            else:
                config_data.update(self._load_config_file(config_file))
        elif config_file:
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        config_data.update(self._load_from_environment())
        config_data.update({k: v for k, v in overrides.items() if v is not None})

        self.config = self._create_config_object(config_data)
        if validate:
            self.config.validate()

        logger.info(
            f"Configuration loaded: {self.config.data_type.value} documents, "
            f"{self.config.workload_strategy.value} strategy, batch size {self.config.batch_size}"
        )
        return self.config

    def _load_config_file(self, config_file: str) -> Dict[str, Any]:
        """Load configuration from a JSON or YAML file"""
        file_path = Path(config_file)
        with open(file_path, 'r') as f:
            if file_path.suffix.lower() == '.json':
                data = json.load(f)
            elif file_path.suffix.lower() in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            else:
                raise ValueError(f"Unsupported configuration file format: {file_path.suffix}")
        return data or {}

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from prefixed environment variables"""
        config: Dict[str, Any] = {}
        for name, (suffix, cast) in self.ENV_SETTINGS.items():
            raw = os.getenv(f"{self.config_prefix}_{suffix}")
            if raw is None or raw == "":
                continue
            try:
                config[name] = cast(raw)
            except ValueError:
                raise ValueError(f"{self.config_prefix}_{suffix} must be of type {cast.__name__}")
        return config

    def _create_config_object(self, config_data: Dict[str, Any]) -> IngestionConfig:
        """Create IngestionConfig object from dictionary"""
        known = {k: v for k, v in config_data.items() if k in self.ENV_SETTINGS}
        unknown = sorted(set(config_data) - set(known))
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        known.setdefault("endpoint", "")
        known.setdefault("credential", "")
        return IngestionConfig(**known)

    def get_config(self) -> IngestionConfig:
        """Get current configuration"""
        if self.config is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")
        return self.config

    def save_config(self, config: IngestionConfig, file_path: str):
        """Save configuration to file; the credential is never written"""
        config_dict = config.to_dict()

        file_path_obj = Path(file_path)
        with open(file_path_obj, 'w') as f:
            if file_path_obj.suffix.lower() == '.json':
                json.dump(config_dict, f, indent=2)
            elif file_path_obj.suffix.lower() in ['.yml', '.yaml']:
                yaml.dump(config_dict, f, default_flow_style=False)
            else:
                raise ValueError(f"Unsupported file format: {file_path_obj.suffix}")
