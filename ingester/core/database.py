"""
Backend Adapter Framework
Connection setup, collection provisioning and single-document writes against the document store
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import OperationFailure, PyMongoError

from .errors import ErrorKind, classify_exception, sanitize_message

logger = logging.getLogger(__name__)

PARTITION_KEY_FIELD = "partitionKey"

# Mongo error codes seen while provisioning
COMMAND_NOT_FOUND = 59
NAMESPACE_EXISTS = 48


@dataclass(frozen=True)
class BackendResult:
    """Outcome of a backend call"""
    success: bool
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    attempts: int = 1

    @classmethod
    def ok(cls, attempts: int = 1) -> "BackendResult":
        return cls(success=True, attempts=attempts)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str, attempts: int = 1) -> "BackendResult":
        return cls(success=False, error_kind=error_kind, message=message, attempts=attempts)


class BaseBackend(ABC):
    """
    Abstract document store consumed by the ingestion engine

    Provides common functionality for:
    - Write outcome bookkeeping
    - Error classification and sanitization
    - Idempotent disposal
    """

    def __init__(self):
        self.config = None
        self.is_initialized = False
        self.writes_succeeded = 0
        self.write_failures: Counter = Counter()

    @abstractmethod
    async def initialize(self, config) -> BackendResult:
        """Connect and make sure the target database and collection exist"""

    @abstractmethod
    async def create_item(self, document, partition_key: str,
                          cancel_event: Optional[asyncio.Event] = None) -> BackendResult:
        """Write one document under the given partition key"""

    @abstractmethod
    async def dispose(self):
        """Release connection resources; safe to call more than once"""

    def _secrets(self):
        return [self.config.credential] if self.config is not None else []

    def _failure_from(self, exc: BaseException, attempts: int = 1) -> BackendResult:
        kind = classify_exception(exc)
        return BackendResult.failure(kind, sanitize_message(str(exc), self._secrets()), attempts)

    def _record(self, result: BackendResult) -> BackendResult:
        if result.success:
            self.writes_succeeded += 1
        else:
            self.write_failures[result.error_kind] += 1
        return result

    def get_performance_summary(self) -> Dict[str, Any]:
        """Write outcome counts since the adapter was created"""
        failed = sum(self.write_failures.values())
        total = self.writes_succeeded + failed
        return {
            "total_writes": total,
            "successful_writes": self.writes_succeeded,
            "failed_writes": failed,
            "failures_by_kind": {kind.value: count for kind, count in self.write_failures.items()},
            "success_rate": self.writes_succeeded / total if total else 0,
        }


class CosmosMongoBackend(BaseBackend):
    """Azure Cosmos DB (MongoDB API) backend using motor"""

    def __init__(self):
        super().__init__()
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None
        self.collection = None

    async def initialize(self, config) -> BackendResult:
        """Connect, then create database and sharded collection with provisioned throughput"""
        if self.is_initialized and self.config == config:
            return BackendResult.ok()
        await self.dispose()
        self.config = config

        try:
            logger.info(f"Connecting to {config.database_name}/{config.collection_name}...")
            self.client = AsyncIOMotorClient(
                config.endpoint,
                username=config.account_name,
                password=config.credential,
                maxPoolSize=config.max_pool_size,
                serverSelectionTimeoutMS=config.server_selection_timeout_ms,
                connectTimeoutMS=config.connect_timeout_ms,
                socketTimeoutMS=config.socket_timeout_ms,
                retryWrites=False,
            )
            await self.client.admin.command('ping')

            self.database = self.client[config.database_name]
            await self._ensure_database(config)
            await self._ensure_collection(config)
            self.collection = self.database[config.collection_name]

            self.is_initialized = True
            logger.info(f"✅ Connected to {config.database_name}/{config.collection_name}")
            return BackendResult.ok()

        except PyMongoError as e:
            result = self._failure_from(e)
            logger.error(f"❌ Failed to initialize backend ({result.error_kind.value}): {result.message}")
            await self.dispose()
            return result

    async def _ensure_database(self, config):
        existing = await self.client.list_database_names()
        if config.database_name in existing:
            return
        await self._custom_action({"customAction": "CreateDatabase"})

    async def _ensure_collection(self, config):
        existing = await self.database.list_collection_names()
        if config.collection_name in existing:
            logger.info(f"Collection {config.collection_name} already exists")
            return
        created = await self._custom_action({
            "customAction": "CreateCollection",
            "collection": config.collection_name,
            "shardKey": PARTITION_KEY_FIELD,
            "offerThroughput": config.throughput,
        })
        if not created:
            # Plain MongoDB has no custom actions; create the collection unsharded
            await self.database.create_collection(config.collection_name)
        logger.info(f"Created collection {config.collection_name} ({config.throughput:,} RU/s)")

    async def _custom_action(self, command: Dict[str, Any]) -> bool:
        """Run a Cosmos DB custom action; False when the server does not support them"""
        try:
            await self.database.command(command)
            return True
        except OperationFailure as e:
            if e.code == NAMESPACE_EXISTS:
                return True
            if e.code == COMMAND_NOT_FOUND:
                logger.debug(f"Custom action {command['customAction']} not supported by server")
                return False
            raise

    async def create_item(self, document, partition_key: str,
                          cancel_event: Optional[asyncio.Event] = None) -> BackendResult:
        """
        Insert one document, retrying throttled writes with exponential backoff

        Retries stop as soon as cancellation is requested; the write in flight
        is never interrupted. Exceptions that cannot be classified propagate.
        """
        if not self.is_initialized:
            raise RuntimeError("Backend not initialized")

        record = document.to_record()
        record[PARTITION_KEY_FIELD] = partition_key
        record["_id"] = record["id"]

        attempt = 0
        while True:
            attempt += 1
            try:
                await self.collection.insert_one(record)
                return self._record(BackendResult.ok(attempt))
            except PyMongoError as e:
                result = self._failure_from(e, attempt)
            if (result.error_kind is not ErrorKind.RATE_LIMITED or attempt > self.config.max_retries
                    or (cancel_event is not None and cancel_event.is_set())):
                return self._record(result)
            await self._backoff(attempt, cancel_event)

    async def _backoff(self, attempt: int, cancel_event: Optional[asyncio.Event]):
        delay = self.config.backoff_base_seconds * (2 ** (attempt - 1))
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def dispose(self):
        """Close the client"""
        if self.client:
            self.client.close()
            logger.info("Disconnected from document store")
        self.client = None
        self.database = None
        self.collection = None
        self.is_initialized = False


def create_backend() -> BaseBackend:
    """Factory function to create the document store backend"""
    return CosmosMongoBackend()
