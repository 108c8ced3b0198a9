"""
Collection resolver

Turns a (tenant, collection) address into a CollectionHandle on every call.

- MongoCollectionResolver: one MongoDB database per tenant
  (``<prefix><tenant>``), one MongoDB collection per collection name
- MemoryCollectionResolver: one dict per (tenant, collection)

Identical addresses always reach the same namespace; different tenants never
share one. Handles are cheap views and are not cached; the only per-namespace
memo is whether INDEX_DEFINITIONS were applied.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from docstore.core.exceptions import ResolutionError
from docstore.models.documents import COMMON_SCHEMA, SchemaDescriptor
from docstore.models.enums import StoreType
from docstore.services.database.config import (
    COLLECTION_FORBIDDEN_CHARS,
    INDEX_DEFINITIONS,
    MAX_COLLECTION_NAME_LENGTH,
    MAX_DATABASE_NAME_BYTES,
    TENANT_FORBIDDEN_CHARS,
    TENANT_PREFIX,
)
from docstore.services.database.handles import (
    CollectionHandle,
    MemoryCollectionHandle,
    MongoCollectionHandle,
)

logger = logging.getLogger(__name__)


def validate_address(tenant: Any, collection: Any, tenant_prefix: str = TENANT_PREFIX) -> None:
    """
    Raises:
        ResolutionError: tenant or collection name is structurally invalid
    """
    if not isinstance(tenant, str) or not tenant:
        raise ResolutionError("Tenant name must be a non-empty string")
    if not isinstance(collection, str) or not collection:
        raise ResolutionError("Collection name must be a non-empty string")

    bad = TENANT_FORBIDDEN_CHARS.intersection(tenant)
    if bad:
        raise ResolutionError(f"Tenant name contains forbidden characters: {''.join(sorted(bad))!r}")
    if len((tenant_prefix + tenant).encode("utf-8")) > MAX_DATABASE_NAME_BYTES:
        raise ResolutionError("Tenant name is too long")

    bad = COLLECTION_FORBIDDEN_CHARS.intersection(collection)
    if bad:
        raise ResolutionError(f"Collection name contains forbidden characters: {''.join(sorted(bad))!r}")
    if collection.startswith("system."):
        raise ResolutionError("Collection names starting with 'system.' are reserved")
    if len(collection) > MAX_COLLECTION_NAME_LENGTH:
        raise ResolutionError("Collection name is too long")


class CollectionResolver(ABC):
    """Resolves (tenant, collection) to a CollectionHandle"""

    def __init__(self):
        self._indexed: set[tuple[str, str]] = set()

    @property
    @abstractmethod
    def store_type(self) -> StoreType:
        ...

    @abstractmethod
    def _handle(self, tenant: str, collection: str, schema: SchemaDescriptor) -> CollectionHandle:
        ...

    @abstractmethod
    async def list_collections(self, tenant: str) -> list[str]:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def resolve(
        self,
        tenant: str,
        collection: str,
        schema: SchemaDescriptor = COMMON_SCHEMA,
    ) -> CollectionHandle:
        """
        Resolve an address.

        Args:
            tenant: tenant (database) name from the request path
            collection: collection name from the request path
            schema: reserved-field descriptor of the collection

        Returns:
            Handle bound to exactly this (tenant, collection) namespace

        Raises:
            ResolutionError: invalid tenant or collection name
        """
        validate_address(tenant, collection, self._tenant_prefix)
        handle = self._handle(tenant, collection, schema)
        await self._ensure_indexes(handle)
        return handle

    @property
    def _tenant_prefix(self) -> str:
        return TENANT_PREFIX

    async def _ensure_indexes(self, handle: CollectionHandle) -> None:
        key = (handle.tenant, handle.collection)
        if key in self._indexed:
            return

        for collection_name, index_name, field_name, unique in INDEX_DEFINITIONS:
            if collection_name != handle.collection:
                continue
            await handle.ensure_index(field_name, unique=unique, name=index_name)
            logger.debug(f"✓ Index ensured: {handle.namespace}.{index_name}")

        self._indexed.add(key)


# =============================================================================
# MongoDB
# =============================================================================


class MongoCollectionResolver(CollectionResolver):
    """
    Usage:
        client = AsyncIOMotorClient("mongodb://localhost:27017")
        resolver = MongoCollectionResolver(client, tenant_prefix="ds_")
        handle = await resolver.resolve("acme", "orders")
    """

    def __init__(self, client: Any, tenant_prefix: str = TENANT_PREFIX):
        super().__init__()
        self._client = client
        self._prefix = tenant_prefix

    @property
    def store_type(self) -> StoreType:
        return StoreType.MONGODB

    @property
    def client(self) -> Any:
        return self._client

    @property
    def _tenant_prefix(self) -> str:
        return self._prefix

    def database_name(self, tenant: str) -> str:
        return f"{self._prefix}{tenant}"

    def _handle(self, tenant, collection, schema):
        motor_collection = self._client[self.database_name(tenant)][collection]
        return MongoCollectionHandle(tenant, collection, motor_collection, schema)

    async def list_collections(self, tenant):
        validate_address(tenant, "_", self._prefix)
        return await self._client[self.database_name(tenant)].list_collection_names()

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    async def close(self) -> None:
        self._client.close()


# =============================================================================
# Memory
# =============================================================================


class MemoryCollectionResolver(CollectionResolver):
    """Process-local storage; contents are lost on restart"""

    def __init__(self):
        super().__init__()
        self._rows: dict[tuple[str, str], dict] = {}
        self._unique_fields: dict[tuple[str, str], set[str]] = {}

    @property
    def store_type(self) -> StoreType:
        return StoreType.MEMORY

    def _handle(self, tenant, collection, schema):
        key = (tenant, collection)
        rows = self._rows.setdefault(key, {})
        unique_fields = self._unique_fields.setdefault(key, set())
        return MemoryCollectionHandle(tenant, collection, rows, unique_fields, schema)

    async def list_collections(self, tenant):
        validate_address(tenant, "_")
        return sorted(c for (t, c), rows in self._rows.items() if t == tenant and rows)


def create_resolver(mongo_client: Any | None = None, tenant_prefix: str = TENANT_PREFIX) -> CollectionResolver:
    """
    Args:
        mongo_client: motor client, None selects the memory backend
        tenant_prefix: database name prefix for tenants
    """
    if mongo_client is not None:
        logger.info("CollectionResolver: mongodb")
        return MongoCollectionResolver(mongo_client, tenant_prefix)
    logger.info("CollectionResolver: memory")
    return MemoryCollectionResolver()
