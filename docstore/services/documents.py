"""
Single-document operations and bulk delete
"""

import logging
from typing import Any, Optional

from bson import ObjectId

from docstore.core.exceptions import NotFound, ValidationError
from docstore.models.documents import Document, to_object_id
from docstore.services.database.handles import CollectionHandle, SortSpec
from docstore.utils.datetime import epoch_millis

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000


async def get_one(handle: CollectionHandle, document_id: Any) -> Document:
    """
    Raises:
        InvalidIdentifier: malformed identifier
        NotFound: no such document
    """
    oid = to_object_id(document_id)
    document = await handle.find_one({handle.schema.id_field: oid})
    if document is None:
        raise NotFound(f"Document {oid} not found in {handle.namespace}")
    return document


async def find(
    handle: CollectionHandle,
    predicate: dict,
    *,
    sort: Optional[SortSpec] = None,
    skip: int = 0,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[Document]:
    """Read path; ``{}`` matches every document"""
    return await handle.find(predicate, sort=sort, skip=skip, limit=limit)


async def delete_one(handle: CollectionHandle, document_id: Any) -> Document:
    """
    Remove one document and return it.

    Repeating the call for the same identifier raises NotFound, which callers
    treat as a normal outcome.

    Raises:
        InvalidIdentifier: malformed identifier
        NotFound: no such document (never existed or already removed)
    """
    oid = to_object_id(document_id)
    document = await handle.find_one_and_delete({handle.schema.id_field: oid})
    if document is None:
        raise NotFound(f"Document {oid} not found in {handle.namespace}")
    logger.info(f"Deleted {handle.namespace}/{oid}")
    return document


async def delete_many(handle: CollectionHandle, predicate: Optional[dict]) -> int:
    """
    Remove every document matching ``predicate``.

    A None predicate matches nothing and does not touch storage.
    """
    if predicate is None:
        return 0
    deleted = await handle.delete_many(predicate)
    logger.info(f"Deleted {deleted} document(s) from {handle.namespace}")
    return deleted


async def update_one(handle: CollectionHandle, document_id: Any, partial: Any) -> Document:
    """
    Set the fields of ``partial`` on one document and return it.

    The identifier in the body, if any, is ignored. The version marker is
    stamped with the current time unless the body carries one.

    Raises:
        InvalidIdentifier: malformed identifier
        ValidationError: body is not an object
        NotFound: no such document
    """
    oid = to_object_id(document_id)
    if not isinstance(partial, dict):
        raise ValidationError("Request body must be a document")

    schema = handle.schema
    fields = {k: v for k, v in partial.items() if k != schema.id_field}
    if any(k.startswith("$") for k in fields):
        raise ValidationError("Field names must not start with '$'")
    if schema.version_field and schema.version_field not in fields:
        fields[schema.version_field] = epoch_millis()
    if not fields:
        return await get_one(handle, oid)

    document = await handle.find_one_and_update({schema.id_field: oid}, {"$set": fields})
    if document is None:
        raise NotFound(f"Document {oid} not found in {handle.namespace}")
    return document


async def upsert_one(handle: CollectionHandle, document: Any) -> Document:
    """
    Replace the document with the body's identifier, creating it when absent.

    A body without identifier is stored under a fresh ObjectId.

    Raises:
        InvalidIdentifier: malformed identifier in the body
        ValidationError: body is not an object
    """
    if not isinstance(document, dict):
        raise ValidationError("Request body must be a document")

    id_field = handle.schema.id_field
    raw_id = document.get(id_field)
    oid = to_object_id(raw_id) if raw_id is not None else ObjectId()

    replacement = {**document, id_field: oid}
    await handle.replace_one({id_field: oid}, replacement, upsert=True)
    stored = await handle.find_one({id_field: oid})
    # a concurrent delete may remove it between the two calls
    return stored if stored is not None else replacement
