"""
Enums
"""

from enum import Enum


class TokenAccess(str, Enum):
    """Access level tag carried by a session token"""
    AUTH = "auth"


class StoreType(str, Enum):
    """Storage backend behind the collection resolver"""
    MEMORY = "memory"
    MONGODB = "mongodb"


class WriteOutcome(str, Enum):
    """Per-item outcome of a bulk write"""
    INSERTED = "inserted"
    UPSERTED = "upserted"
