"""
Health check router
"""

from fastapi import APIRouter

from docstore.container import ResolverDep
from docstore.models import HealthResponse


def create_router() -> APIRouter:
    router = APIRouter()

    @router.get(
        "/health",
        response_model=HealthResponse,
        summary="Health check",
        description="Service status and storage backend reachability",
    )
    async def health_check(resolver: ResolverDep):
        from docstore import __version__

        reachable = await resolver.ping()
        return HealthResponse(
            status="healthy" if reachable else "degraded",
            version=__version__,
            storage=resolver.store_type.value,
        )

    return router
