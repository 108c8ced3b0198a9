"""
Storage layer

Collection resolution and handles for MongoDB and memory backends
"""

from docstore.services.database.config import INDEX_DEFINITIONS, TENANT_PREFIX
from docstore.services.database.handles import (
    CollectionHandle,
    MemoryCollectionHandle,
    MongoCollectionHandle,
    UpdateOutcome,
    cast_identifiers,
)
from docstore.services.database.resolver import (
    CollectionResolver,
    MemoryCollectionResolver,
    MongoCollectionResolver,
    create_resolver,
    validate_address,
)

__all__ = [
    "INDEX_DEFINITIONS",
    "TENANT_PREFIX",
    "CollectionHandle",
    "MemoryCollectionHandle",
    "MongoCollectionHandle",
    "UpdateOutcome",
    "cast_identifiers",
    "CollectionResolver",
    "MemoryCollectionResolver",
    "MongoCollectionResolver",
    "create_resolver",
    "validate_address",
]
