"""
Collection handles

A CollectionHandle is the storage interface the core calls. It is bound to
exactly one (tenant, collection) namespace by the resolver.

- MongoCollectionHandle: wraps a motor collection
- MemoryCollectionHandle: dict-backed, for development and tests

Both cast string identifiers in predicates to ObjectId the way the Mongo
drivers' ODMs do, so ``{"_id": "<24 hex>"}`` matches stored ObjectIds.
Every method is a coroutine; other requests may interleave at each call.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from docstore.models.documents import COMMON_SCHEMA, Document, SchemaDescriptor, is_valid_object_id
from docstore.models.enums import StoreType
from docstore.services.database.matching import apply_update, deep_get, match_query

logger = logging.getLogger(__name__)

SortSpec = Sequence[tuple[str, int]]


@dataclass(frozen=True)
class UpdateOutcome:
    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Optional[ObjectId] = None


def cast_identifiers(predicate: dict, id_field: str = "_id") -> dict:
    """
    Cast 24-hex identifier strings in ``predicate`` to ObjectId.

    Handles ``{"_id": "<hex>"}`` and ``{"_id": {"$eq"|"$ne"|"$in"|"$nin": ...}}``.
    Other values are left untouched.
    """
    if id_field not in predicate:
        return predicate

    def cast(value: Any) -> Any:
        return ObjectId(value) if isinstance(value, str) and is_valid_object_id(value) else value

    cond = predicate[id_field]
    if isinstance(cond, dict):
        cast_cond = {}
        for op, arg in cond.items():
            if op in ("$in", "$nin") and isinstance(arg, list):
                cast_cond[op] = [cast(v) for v in arg]
            elif op in ("$eq", "$ne"):
                cast_cond[op] = cast(arg)
            else:
                cast_cond[op] = arg
        cond = cast_cond
    else:
        cond = cast(cond)
    return {**predicate, id_field: cond}


# =============================================================================
# Interface
# =============================================================================


class CollectionHandle(ABC):
    """Storage handle for one (tenant, collection) namespace"""

    def __init__(self, tenant: str, collection: str, schema: SchemaDescriptor = COMMON_SCHEMA):
        self.tenant = tenant
        self.collection = collection
        self.schema = schema

    @property
    def namespace(self) -> str:
        return f"{self.tenant}/{self.collection}"

    @property
    @abstractmethod
    def store_type(self) -> StoreType:
        ...

    def _predicate(self, predicate: Optional[dict]) -> dict:
        return cast_identifiers(predicate or {}, self.schema.id_field)

    @abstractmethod
    async def find(
        self,
        predicate: Optional[dict] = None,
        *,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        ...

    @abstractmethod
    async def find_one(self, predicate: dict) -> Optional[Document]:
        ...

    @abstractmethod
    async def count_documents(self, predicate: Optional[dict] = None) -> int:
        ...

    @abstractmethod
    async def insert_one(self, document: Document) -> Document:
        """Insert and return the stored document (identifier assigned when absent)"""
        ...

    @abstractmethod
    async def replace_one(self, predicate: dict, document: Document, upsert: bool = False) -> UpdateOutcome:
        ...

    @abstractmethod
    async def update_one(self, predicate: dict, update: dict) -> UpdateOutcome:
        ...

    @abstractmethod
    async def find_one_and_update(self, predicate: dict, update: dict) -> Optional[Document]:
        """Apply ``update`` to the first match and return it after the update"""
        ...

    @abstractmethod
    async def find_one_and_delete(self, predicate: dict) -> Optional[Document]:
        ...

    @abstractmethod
    async def delete_one(self, predicate: dict) -> int:
        ...

    @abstractmethod
    async def delete_many(self, predicate: dict) -> int:
        ...

    @abstractmethod
    async def ensure_index(self, field_name: str, unique: bool = False, name: Optional[str] = None) -> None:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.namespace!r})"


# =============================================================================
# MongoDB
# =============================================================================


class MongoCollectionHandle(CollectionHandle):
    """Handle over an ``AsyncIOMotorCollection``"""

    def __init__(self, tenant: str, collection: str, motor_collection: Any, schema: SchemaDescriptor = COMMON_SCHEMA):
        super().__init__(tenant, collection, schema)
        self._collection = motor_collection

    @property
    def store_type(self) -> StoreType:
        return StoreType.MONGODB

    async def find(self, predicate=None, *, sort=None, skip=0, limit=0):
        cursor = self._collection.find(self._predicate(predicate))
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit or None)

    async def find_one(self, predicate):
        return await self._collection.find_one(self._predicate(predicate))

    async def count_documents(self, predicate=None):
        return await self._collection.count_documents(self._predicate(predicate))

    async def insert_one(self, document):
        stored = dict(document)
        stored.setdefault(self.schema.id_field, ObjectId())
        await self._collection.insert_one(stored)
        return stored

    async def replace_one(self, predicate, document, upsert=False):
        result = await self._collection.replace_one(self._predicate(predicate), document, upsert=upsert)
        return UpdateOutcome(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=result.upserted_id,
        )

    async def update_one(self, predicate, update):
        result = await self._collection.update_one(self._predicate(predicate), update)
        return UpdateOutcome(matched_count=result.matched_count, modified_count=result.modified_count)

    async def find_one_and_update(self, predicate, update):
        return await self._collection.find_one_and_update(
            self._predicate(predicate),
            update,
            return_document=ReturnDocument.AFTER,
        )

    async def find_one_and_delete(self, predicate):
        return await self._collection.find_one_and_delete(self._predicate(predicate))

    async def delete_one(self, predicate):
        result = await self._collection.delete_one(self._predicate(predicate))
        return result.deleted_count

    async def delete_many(self, predicate):
        result = await self._collection.delete_many(self._predicate(predicate))
        return result.deleted_count

    async def ensure_index(self, field_name, unique=False, name=None):
        await self._collection.create_index(
            [(field_name, 1)],
            name=name or f"idx_{field_name}",
            unique=unique,
            background=True,
        )


# =============================================================================
# Memory
# =============================================================================


class MemoryCollectionHandle(CollectionHandle):
    """
    Dict-backed handle

    ``rows`` is the namespace's storage owned by the resolver, keyed by
    identifier in insertion order. Each method runs without awaiting, so
    every single-document operation is atomic with respect to the event loop.
    """

    def __init__(
        self,
        tenant: str,
        collection: str,
        rows: dict[Any, Document],
        unique_fields: set[str],
        schema: SchemaDescriptor = COMMON_SCHEMA,
    ):
        super().__init__(tenant, collection, schema)
        self._rows = rows
        self._unique_fields = unique_fields

    @property
    def store_type(self) -> StoreType:
        return StoreType.MEMORY

    def _matches(self, predicate: Optional[dict]) -> list[Document]:
        query = self._predicate(predicate)
        return [doc for doc in self._rows.values() if match_query(doc, query)]

    def _check_unique(self, document: Document, ignore_id: Any = None) -> None:
        for field_name in self._unique_fields:
            value = deep_get(document, field_name, None)
            if value is None:
                continue
            for doc_id, doc in self._rows.items():
                if doc_id != ignore_id and deep_get(doc, field_name, None) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.namespace} "
                        f"index: idx_{field_name} dup key: {{ {field_name}: {value!r} }}",
                        code=11000,
                    )

    def _store(self, document: Document, ignore_id: Any = None) -> Document:
        self._check_unique(document, ignore_id=ignore_id)
        stored = copy.deepcopy(document)
        self._rows[stored[self.schema.id_field]] = stored
        return copy.deepcopy(stored)

    async def find(self, predicate=None, *, sort=None, skip=0, limit=0):
        docs = self._matches(predicate)
        for key, direction in reversed(list(sort or [])):
            docs.sort(key=lambda d: _sort_key(deep_get(d, key, None)), reverse=direction < 0)
        if skip:
            docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def find_one(self, predicate):
        docs = self._matches(predicate)
        return copy.deepcopy(docs[0]) if docs else None

    async def count_documents(self, predicate=None):
        return len(self._matches(predicate))

    async def insert_one(self, document):
        stored = dict(document)
        stored.setdefault(self.schema.id_field, ObjectId())
        if stored[self.schema.id_field] in self._rows:
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {self.namespace} index: _id_",
                code=11000,
            )
        return self._store(stored)

    async def replace_one(self, predicate, document, upsert=False):
        id_field = self.schema.id_field
        docs = self._matches(predicate)
        if docs:
            current = docs[0]
            replacement = {**document, id_field: current[id_field]}
            modified = int(replacement != current)
            self._store(replacement, ignore_id=current[id_field])
            return UpdateOutcome(matched_count=1, modified_count=modified)
        if not upsert:
            return UpdateOutcome()

        replacement = dict(document)
        query = self._predicate(predicate)
        if id_field not in replacement and not isinstance(query.get(id_field, {}), dict):
            replacement[id_field] = query[id_field]
        replacement.setdefault(id_field, ObjectId())
        self._store(replacement)
        return UpdateOutcome(upserted_id=replacement[id_field])

    async def update_one(self, predicate, update):
        docs = self._matches(predicate)
        if not docs:
            return UpdateOutcome()
        current = docs[0]
        updated = apply_update(current, update)
        self._store(updated, ignore_id=current[self.schema.id_field])
        return UpdateOutcome(matched_count=1, modified_count=int(updated != current))

    async def find_one_and_update(self, predicate, update):
        docs = self._matches(predicate)
        if not docs:
            return None
        current = docs[0]
        updated = apply_update(current, update)
        return self._store(updated, ignore_id=current[self.schema.id_field])

    async def find_one_and_delete(self, predicate):
        docs = self._matches(predicate)
        if not docs:
            return None
        return self._rows.pop(docs[0][self.schema.id_field])

    async def delete_one(self, predicate):
        docs = self._matches(predicate)
        if not docs:
            return 0
        self._rows.pop(docs[0][self.schema.id_field])
        return 1

    async def delete_many(self, predicate):
        docs = self._matches(predicate)
        for doc in docs:
            self._rows.pop(doc[self.schema.id_field], None)
        return len(docs)

    async def ensure_index(self, field_name, unique=False, name=None):
        if unique:
            self._unique_fields.add(field_name)


def _sort_key(value: Any) -> tuple:
    # None/missing first, then numbers, then strings, then everything else
    if value is None:
        return (0, 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))
