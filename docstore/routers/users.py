"""
User and session router

Account creation and login are open; every other route needs a valid
``x-auth`` session token for the path tenant. Successful creation and login
return the new token in the ``x-auth`` response header.
"""

from typing import List

from fastapi import APIRouter, Response

from docstore.container import AuthManagerDep
from docstore.core.exceptions import APIException, ErrorResponseModel, LogoutFailed, NotFound
from docstore.core.logging import LogContext, get_logger
from docstore.core.middleware import AUTH_HEADER
from docstore.dependencies import RequestContextDep
from docstore.models import SessionInfo, UserCredentials, UserResponse

logger = get_logger(__name__)

_BAD_REQUEST = {400: {"model": ErrorResponseModel, "description": "Bad Request"}}
_UNAUTHORIZED = {401: {"model": ErrorResponseModel, "description": "Unauthorized"}}


def create_router() -> APIRouter:
    router = APIRouter()

    # =========================================================================
    # Open routes
    # =========================================================================

    @router.post(
        "/{tenant}/users",
        response_model=UserResponse,
        responses=_BAD_REQUEST,
        summary="Create account",
        description="Create a user in the tenant and open its first session",
    )
    async def create_user(
        tenant: str,
        credentials: UserCredentials,
        response: Response,
        auth_manager: AuthManagerDep,
    ):
        with LogContext(tenant=tenant):
            user, token = await auth_manager.create_user(tenant, credentials.email, credentials.password)
            response.headers[AUTH_HEADER] = token
            return user.to_public()

    @router.post(
        "/{tenant}/users/login",
        response_model=UserResponse,
        responses=_BAD_REQUEST,
        summary="Login",
        description="Open a new session; earlier sessions stay valid",
    )
    async def login(
        tenant: str,
        credentials: UserCredentials,
        response: Response,
        auth_manager: AuthManagerDep,
    ):
        with LogContext(tenant=tenant):
            user, token = await auth_manager.login(tenant, credentials.email, credentials.password)
            response.headers[AUTH_HEADER] = token
            return user.to_public()

    # =========================================================================
    # Authenticated routes
    # =========================================================================

    @router.delete(
        "/{tenant}/users/token",
        responses={**_BAD_REQUEST, **_UNAUTHORIZED},
        summary="Logout",
        description="Revoke the session making the request; other sessions stay valid",
    )
    async def logout(ctx: RequestContextDep, auth_manager: AuthManagerDep):
        with LogContext(tenant=ctx.tenant, user_id=str(ctx.user.user_id)):
            try:
                await auth_manager.revoke(ctx.tenant, ctx.user, ctx.token)
            except APIException:
                raise
            except Exception as e:
                logger.error(f"Logout failed: {e}")
                raise LogoutFailed() from e
            return Response(status_code=200)

    @router.get(
        "/{tenant}/users/me",
        response_model=UserResponse,
        responses=_UNAUTHORIZED,
        summary="Current user",
    )
    async def get_me(ctx: RequestContextDep):
        return ctx.user.to_public()

    @router.get(
        "/{tenant}/users/me/tokens",
        response_model=List[SessionInfo],
        responses=_UNAUTHORIZED,
        summary="List sessions",
        description="Sessions of the current user in issue order; token strings are not returned",
    )
    async def list_sessions(ctx: RequestContextDep, auth_manager: AuthManagerDep):
        sessions = await auth_manager.list_sessions(ctx.tenant, ctx.user)
        return [
            SessionInfo(access=s.access.value, current=s.token == ctx.token)
            for s in sessions
        ]

    @router.delete(
        "/{tenant}/users/me",
        response_model=UserResponse,
        responses={**_UNAUTHORIZED, 404: {"model": ErrorResponseModel, "description": "Not Found"}},
        summary="Delete account",
        description="Remove the current user together with all of its sessions",
    )
    async def delete_me(ctx: RequestContextDep, auth_manager: AuthManagerDep):
        with LogContext(tenant=ctx.tenant, user_id=str(ctx.user.user_id)):
            removed = await auth_manager.delete_user(ctx.tenant, ctx.user)
            if removed is None:
                raise NotFound("User not found")
            return removed.to_public()

    return router
