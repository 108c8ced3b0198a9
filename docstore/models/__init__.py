"""
Data models
"""

from docstore.models.collections import COLLECTIONS, Collections
from docstore.models.enums import TokenAccess, StoreType, WriteOutcome
from docstore.models.documents import (
    COMMON_SCHEMA,
    Document,
    SchemaDescriptor,
    NewDocument,
    ExistingDocument,
    BatchItem,
    is_valid_object_id,
    to_object_id,
    parse_batch,
)
from docstore.models.users import SessionToken, UserDocument
from docstore.models.schemas import (
    UserCredentials,
    UserResponse,
    SessionInfo,
    WriteCounts,
    BulkWriteResponse,
    DocumentListResponse,
    HealthResponse,
)

__all__ = [
    "COLLECTIONS",
    "Collections",
    # Enums
    "TokenAccess",
    "StoreType",
    "WriteOutcome",
    # Documents
    "COMMON_SCHEMA",
    "Document",
    "SchemaDescriptor",
    "NewDocument",
    "ExistingDocument",
    "BatchItem",
    "is_valid_object_id",
    "to_object_id",
    "parse_batch",
    # Users
    "SessionToken",
    "UserDocument",
    # API models
    "UserCredentials",
    "UserResponse",
    "SessionInfo",
    "WriteCounts",
    "BulkWriteResponse",
    "DocumentListResponse",
    "HealthResponse",
]
