"""
Bulk write reconciliation

One POST body mixes documents without identifier (inserted with a fresh
ObjectId) and documents with identifier (upserted: overwritten when present,
created under that identifier otherwise).

Counts:
    inserted = number of items without identifier
    matched = modified = number of items with identifier
    deleted = 0

Items are applied one by one in input order with no transaction around them.
If a write fails midway, the items before it stay applied and are visible to
concurrent readers; the same holds when the request is cancelled. Malformed
identifiers are rejected while parsing, before the first write.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from bson import ObjectId

from docstore.core.logging import LogContext, LogLevel
from docstore.models.documents import (
    BatchItem,
    Document,
    ExistingDocument,
    NewDocument,
    parse_batch,
)
from docstore.models.enums import WriteOutcome
from docstore.services.database.handles import CollectionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItemOutcome:
    """What happened to the batch item at ``index``"""
    index: int
    id: ObjectId
    outcome: WriteOutcome


@dataclass
class BulkWriteResult:
    inserted_docs: list[Document] = field(default_factory=list)
    inserted_count: int = 0
    matched_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0
    outcomes: list[BatchItemOutcome] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return self.modified_count


async def reconcile(handle: CollectionHandle, batch: list[BatchItem]) -> BulkWriteResult:
    """
    Apply a parsed batch.

    Args:
        handle: target collection
        batch: tagged items from ``parse_batch``

    Returns:
        BulkWriteResult with inserted documents and counts; ``outcomes``
        follows input order
    """
    result = BulkWriteResult()
    if not batch:
        return result

    id_field = handle.schema.id_field

    with LogContext.operation(
        "bulk_write",
        level=LogLevel.DEBUG,
        tenant=handle.tenant,
        collection=handle.collection,
    ):
        for item in batch:
            if isinstance(item, NewDocument):
                stored = await handle.insert_one({id_field: ObjectId(), **item.fields})
                result.inserted_docs.append(stored)
                result.inserted_count += 1
                result.outcomes.append(BatchItemOutcome(item.index, stored[id_field], WriteOutcome.INSERTED))
            elif isinstance(item, ExistingDocument):
                await handle.replace_one({id_field: item.id}, item.to_document(handle.schema), upsert=True)
                result.matched_count += 1
                result.modified_count += 1
                result.outcomes.append(BatchItemOutcome(item.index, item.id, WriteOutcome.UPSERTED))
            else:
                raise TypeError(f"Unexpected batch item: {item!r}")

    logger.info(
        f"Bulk write on {handle.namespace}: "
        f"inserted={result.inserted_count}, matched={result.matched_count}"
    )
    return result


async def reconcile_raw(handle: CollectionHandle, raw: Any) -> BulkWriteResult:
    """Parse a raw JSON body and apply it; see ``parse_batch`` for errors"""
    return await reconcile(handle, parse_batch(raw, handle.schema))
