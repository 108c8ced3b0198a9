"""
Document envelope and bulk-write batch models

Every collection is schema-agnostic apart from the reserved fields described
by a SchemaDescriptor:
- ``_id``: ObjectId, assigned by the service when absent, immutable afterwards
- ``TS``: optional version marker, stored as submitted

A bulk-write batch is parsed once into tagged variants:
- NewDocument: no identifier, will be inserted with a fresh ObjectId
- ExistingDocument: identifier present, will be upserted by that identifier
"""

from dataclasses import dataclass, field
from typing import Any, Union

from bson import ObjectId
from bson.errors import InvalidId

from docstore.core.exceptions import InvalidIdentifier, ValidationError


Document = dict[str, Any]


# =============================================================================
# Schema descriptor
# =============================================================================


@dataclass(frozen=True)
class SchemaDescriptor:
    """Reserved fields of a collection; not a validator"""
    id_field: str = "_id"
    version_field: str | None = "TS"

    @property
    def reserved_fields(self) -> tuple[str, ...]:
        if self.version_field:
            return (self.id_field, self.version_field)
        return (self.id_field,)

    def strip_reserved(self, document: Document) -> Document:
        """Copy of ``document`` without the reserved fields"""
        return {k: v for k, v in document.items() if k not in self.reserved_fields}


COMMON_SCHEMA = SchemaDescriptor()


# =============================================================================
# Identifiers
# =============================================================================


def is_valid_object_id(value: Any) -> bool:
    """
    True for ObjectId instances and 24-character hex strings.

    12-byte strings are accepted by ``ObjectId()`` but never arrive as valid
    identifiers from JSON, so they are rejected here.
    """
    if isinstance(value, ObjectId):
        return True
    if not isinstance(value, str) or len(value) != 24:
        return False
    return ObjectId.is_valid(value)


def to_object_id(value: Any) -> ObjectId:
    """
    Parse an identifier.

    Raises:
        InvalidIdentifier: value is not a well-formed ObjectId
    """
    if not is_valid_object_id(value):
        raise InvalidIdentifier(f"Invalid id: {value!r}")
    try:
        return value if isinstance(value, ObjectId) else ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise InvalidIdentifier(f"Invalid id: {value!r}") from e


# =============================================================================
# Batch variants
# =============================================================================


@dataclass(frozen=True)
class NewDocument:
    """Batch item without identifier"""
    index: int
    fields: Document = field(default_factory=dict)


@dataclass(frozen=True)
class ExistingDocument:
    """Batch item carrying an identifier"""
    index: int
    id: ObjectId
    fields: Document = field(default_factory=dict)

    def to_document(self, schema: SchemaDescriptor = COMMON_SCHEMA) -> Document:
        return {schema.id_field: self.id, **self.fields}


BatchItem = Union[NewDocument, ExistingDocument]


def parse_batch(raw: Any, schema: SchemaDescriptor = COMMON_SCHEMA) -> list[BatchItem]:
    """
    Classify a raw JSON batch.

    Every identifier is validated here, before any write happens, so one
    malformed identifier rejects the whole batch.

    Args:
        raw: decoded JSON body, expected to be a list of objects
        schema: reserved field names

    Returns:
        Tagged items in input order

    Raises:
        ValidationError: body is not a list of objects
        InvalidIdentifier: an item carries a malformed identifier
    """
    if not isinstance(raw, list):
        raise ValidationError("Request body must be an array of documents")

    items: list[BatchItem] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"Item {index} is not a document")

        fields = {k: v for k, v in entry.items() if k != schema.id_field}
        raw_id = entry.get(schema.id_field)

        if raw_id is None:
            items.append(NewDocument(index=index, fields=fields))
        else:
            items.append(ExistingDocument(index=index, id=to_object_id(raw_id), fields=fields))

    return items
