"""
Routers

Each router module provides a create_router() factory
"""

from docstore.routers import documents, health, users

__all__ = [
    "documents",
    "health",
    "users",
]
