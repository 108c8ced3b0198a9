"""
API routes

Order matters: user routes share the ``/{tenant}/{collection}`` shape with
the generic document routes and must be matched first.
"""

from fastapi import APIRouter

from docstore.routers import documents, health, users

router = APIRouter()

router.include_router(health.create_router(), tags=["Health"])
router.include_router(users.create_router(), tags=["Users"])
router.include_router(documents.create_router(), tags=["Documents"])
