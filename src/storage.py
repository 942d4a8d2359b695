# ── src/storage.py ────────────────────────────────────────────────────────────
"""
Cosmos client wrapper with an explicit lifecycle.

The store is built once at application startup (`open()`), handed to the
services that need it, and closed at shutdown (`close()`). Asking for a
container before `open()` raises `StoreNotConnectedError`; nothing here
connects lazily.
"""
from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Dict, Optional

from azure.cosmos import CosmosClient, PartitionKey
from azure.cosmos.container import ContainerProxy
from azure.cosmos.database import DatabaseProxy
from azure.identity import DefaultAzureCredential

from config import Settings

_logger = logging.getLogger(__name__)


class StoreNotConnectedError(RuntimeError):
    """Raised when the store is used before `open()` succeeded."""


class CosmosStore:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._stack: Optional[ExitStack] = None
        self._client: Optional[CosmosClient] = None
        self._database: Optional[DatabaseProxy] = None
        self._containers: Dict[str, ContainerProxy] = {}

    # ── lifecycle ---------------------------------------------------------
    def _build_client(self) -> CosmosClient:
        s = self._settings
        if s.cosmos_connection_string:
            return CosmosClient.from_connection_string(s.cosmos_connection_string)
        if not s.cosmos_endpoint:
            raise ValueError("COSMOS_CONNECTION_STRING or COSMOS_ENDPOINT must be set")
        if s.cosmos_key:
            return CosmosClient(s.cosmos_endpoint, credential=s.cosmos_key)
        return CosmosClient(s.cosmos_endpoint, credential=DefaultAzureCredential())

    def open(self) -> "CosmosStore":
        if self._database is not None:
            return self

        stack = ExitStack()
        try:
            client = stack.enter_context(self._build_client())
            database = client.create_database_if_not_exists(id=self._settings.cosmos_database)
            daily = database.create_container_if_not_exists(
                id=self._settings.daily_log_container,
                partition_key=PartitionKey(path="/date"),
            )
        except Exception:
            stack.close()
            raise

        self._stack, self._client, self._database = stack, client, database
        self._containers = {self._settings.daily_log_container: daily}
        _logger.info(
            "Cosmos store connected (database=%s, container=%s)",
            self._settings.cosmos_database, self._settings.daily_log_container,
        )
        return self

    def close(self) -> None:
        if self._stack is not None:
            self._stack.close()
        self._stack = self._client = self._database = None
        self._containers = {}

    @property
    def is_connected(self) -> bool:
        return self._database is not None

    # ── access ------------------------------------------------------------
    def _require_database(self) -> DatabaseProxy:
        if self._database is None:
            raise StoreNotConnectedError("Cosmos store is not connected; call open() first")
        return self._database

    def container(self, name: str) -> ContainerProxy:
        database = self._require_database()
        if name not in self._containers:
            self._containers[name] = database.get_container_client(name)
        return self._containers[name]

    def ensure_container(self, name: str, partition_key_path: str = "/id") -> ContainerProxy:
        """Create the container when missing and return its client."""
        database = self._require_database()
        container = database.create_container_if_not_exists(
            id=name, partition_key=PartitionKey(path=partition_key_path)
        )
        self._containers[name] = container
        return container

    def ping(self) -> dict:
        """Round-trip to the service; returns the database properties."""
        return self._require_database().read()


__all__ = ["CosmosStore", "StoreNotConnectedError"]
