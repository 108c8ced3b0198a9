"""
Request dependencies

Authentication for protected routes: the ``x-auth`` header must carry a
session token that is validated against the path tenant's ``Users``
collection.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Path

from docstore.container import AuthManagerDep
from docstore.core.middleware import AUTH_HEADER
from docstore.models.users import UserDocument


@dataclass(frozen=True)
class RequestContext:
    """Authenticated caller of one request"""
    tenant: str
    user: UserDocument
    token: str


async def get_request_context(
    auth_manager: AuthManagerDep,
    tenant: Annotated[str, Path(description="Tenant (database) name")],
    token: Annotated[str | None, Header(alias=AUTH_HEADER)] = None,
) -> RequestContext:
    """
    Raises:
        Unauthorized: missing, invalid or revoked token
    """
    user = await auth_manager.validate(tenant, token)
    return RequestContext(tenant=tenant, user=user, token=token)


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]
