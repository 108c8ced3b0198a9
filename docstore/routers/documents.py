"""
Generic document router

Every route is authenticated and addresses ``/{tenant}/{collection}``. The
tenant's ``Users`` collection is reserved for the user router and cannot be
reached from here.

The bulk delete route (``/*``) is registered before ``/{id}`` so the literal
``*`` never reaches identifier parsing.
"""

from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Body, Query

from docstore.container import ResolverDep
from docstore.core.exceptions import ErrorResponseModel, ResolutionError, ValidationError
from docstore.core.logging import LogContext, get_logger
from docstore.dependencies import RequestContextDep
from docstore.models import BulkWriteResponse, Collections, DocumentListResponse, WriteCounts
from docstore.services import bulk_writer, documents, query_filter
from docstore.services.database.handles import CollectionHandle, SortSpec
from docstore.services.database.resolver import CollectionResolver
from docstore.utils.serialization import to_jsonable

logger = get_logger(__name__)

MAX_LIST_LIMIT = 10000

_ERRORS = {
    400: {"model": ErrorResponseModel, "description": "Bad Request"},
    401: {"model": ErrorResponseModel, "description": "Unauthorized"},
}
_ERRORS_404 = {**_ERRORS, 404: {"model": ErrorResponseModel, "description": "Not Found"}}

FilterQuery = Annotated[
    Optional[str],
    Query(
        alias="filter",
        description="JSON predicate; single quotes are accepted in place of double quotes",
        examples=["{'number': 2000}"],
    ),
]


async def _resolve(resolver: CollectionResolver, tenant: str, collection: str) -> CollectionHandle:
    if collection == Collections.USERS:
        raise ResolutionError(f"Collection '{collection}' is reserved")
    return await resolver.resolve(tenant, collection)


def parse_sort(raw: Optional[str]) -> Optional[SortSpec]:
    """
    ``"number,-text"`` -> ``[("number", 1), ("text", -1)]``

    Raises:
        ValidationError: empty field name
    """
    if not raw:
        return None

    spec = []
    for part in raw.split(","):
        part = part.strip()
        direction = -1 if part.startswith("-") else 1
        name = part.lstrip("+-")
        if not name:
            raise ValidationError(f"Invalid sort: {raw!r}")
        spec.append((name, direction))
    return spec


def create_router() -> APIRouter:
    router = APIRouter()

    # =========================================================================
    # Tenant level
    # =========================================================================

    @router.get(
        "/{tenant}",
        response_model=List[str],
        responses=_ERRORS,
        summary="List collections",
        description="Names of the tenant's non-empty collections",
    )
    async def list_collections(tenant: str, ctx: RequestContextDep, resolver: ResolverDep):
        with LogContext(tenant=tenant):
            return await resolver.list_collections(tenant)

    # =========================================================================
    # Collection level
    # =========================================================================

    @router.post(
        "/{tenant}/{collection}",
        response_model=BulkWriteResponse,
        responses=_ERRORS,
        summary="Bulk write",
        description=(
            "Insert documents without `_id` and upsert documents with `_id`. "
            "Items are applied in order without a transaction; on failure the "
            "items already applied stay applied."
        ),
    )
    async def bulk_write(
        tenant: str,
        collection: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
        payload: Annotated[Any, Body()],
    ):
        with LogContext(tenant=tenant, collection=collection):
            handle = await _resolve(resolver, tenant, collection)
            result = await bulk_writer.reconcile_raw(handle, payload)
            return BulkWriteResponse(
                embedded=to_jsonable(result.inserted_docs),
                inserted=result.inserted_count,
                deleted=result.deleted_count,
                modified=result.modified_count,
                matched=result.matched_count,
            )

    @router.put(
        "/{tenant}/{collection}",
        responses=_ERRORS,
        summary="Upsert one document",
        description="Replace the document with the body's `_id`, creating it when absent",
    )
    async def upsert_document(
        tenant: str,
        collection: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
        payload: Annotated[Any, Body()],
    ):
        with LogContext(tenant=tenant, collection=collection):
            handle = await _resolve(resolver, tenant, collection)
            return to_jsonable(await documents.upsert_one(handle, payload))

    @router.get(
        "/{tenant}/{collection}",
        response_model=DocumentListResponse,
        responses=_ERRORS,
        summary="Find documents",
        description="Documents matching `filter`; no filter returns every document",
    )
    async def find_documents(
        tenant: str,
        collection: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
        filter_text: FilterQuery = None,
        limit: Annotated[int, Query(ge=1, le=MAX_LIST_LIMIT)] = documents.DEFAULT_LIST_LIMIT,
        skip: Annotated[int, Query(ge=0)] = 0,
        sort: Annotated[Optional[str], Query(description="Comma separated fields, '-' for descending")] = None,
    ):
        with LogContext(tenant=tenant, collection=collection):
            predicate = query_filter.read_predicate(filter_text)
            handle = await _resolve(resolver, tenant, collection)
            docs = await documents.find(handle, predicate, sort=parse_sort(sort), skip=skip, limit=limit)
            return DocumentListResponse(embedded=to_jsonable(docs), count=len(docs))

    @router.delete(
        "/{tenant}/{collection}/*",
        response_model=WriteCounts,
        responses=_ERRORS,
        summary="Bulk delete",
        description="Delete every document matching `filter`; no filter deletes nothing",
    )
    async def delete_documents(
        tenant: str,
        collection: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
        filter_text: FilterQuery = None,
    ):
        with LogContext(tenant=tenant, collection=collection):
            predicate = query_filter.delete_predicate(filter_text)
            handle = await _resolve(resolver, tenant, collection)
            deleted = await documents.delete_many(handle, predicate)
            return WriteCounts(deleted=deleted)

    # =========================================================================
    # Document level
    # =========================================================================

    @router.get(
        "/{tenant}/{collection}/{document_id}",
        responses=_ERRORS_404,
        summary="Get one document",
    )
    async def get_document(
        tenant: str,
        collection: str,
        document_id: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
    ):
        with LogContext(tenant=tenant, collection=collection):
            handle = await _resolve(resolver, tenant, collection)
            return to_jsonable(await documents.get_one(handle, document_id))

    @router.put(
        "/{tenant}/{collection}/{document_id}",
        responses=_ERRORS_404,
        summary="Update one document",
        description="Set the body's fields on the document; `_id` in the body is ignored",
    )
    async def update_document(
        tenant: str,
        collection: str,
        document_id: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
        payload: Annotated[Any, Body()],
    ):
        with LogContext(tenant=tenant, collection=collection):
            handle = await _resolve(resolver, tenant, collection)
            return to_jsonable(await documents.update_one(handle, document_id, payload))

    @router.delete(
        "/{tenant}/{collection}/{document_id}",
        responses=_ERRORS_404,
        summary="Delete one document",
        description="Returns the removed document; deleting it again answers 404",
    )
    async def delete_document(
        tenant: str,
        collection: str,
        document_id: str,
        ctx: RequestContextDep,
        resolver: ResolverDep,
    ):
        with LogContext(tenant=tenant, collection=collection):
            handle = await _resolve(resolver, tenant, collection)
            return to_jsonable(await documents.delete_one(handle, document_id))

    return router
