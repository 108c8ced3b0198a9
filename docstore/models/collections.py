"""
Reserved collection names
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Collections:
    """
    Collections the service itself relies on inside every tenant.

    - Users: accounts and their session tokens
    """

    USERS = "Users"


COLLECTIONS = Collections()
