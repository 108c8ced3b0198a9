"""
Services

Collection resolution, bulk write reconciliation, document operations,
filter decoding and session authentication
"""

from docstore.services.auth import AuthTokenManager
from docstore.services.bulk_writer import (
    BatchItemOutcome,
    BulkWriteResult,
    reconcile,
    reconcile_raw,
)
from docstore.services.database import (
    CollectionHandle,
    CollectionResolver,
    MemoryCollectionResolver,
    MongoCollectionResolver,
    create_resolver,
)
from docstore.services import documents, query_filter

__all__ = [
    # Auth
    "AuthTokenManager",
    # Bulk writes
    "BatchItemOutcome",
    "BulkWriteResult",
    "reconcile",
    "reconcile_raw",
    # Storage
    "CollectionHandle",
    "CollectionResolver",
    "MemoryCollectionResolver",
    "MongoCollectionResolver",
    "create_resolver",
    # Operations
    "documents",
    "query_filter",
]
