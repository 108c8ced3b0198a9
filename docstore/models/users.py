"""
User documents (tenant ``Users`` collection)

A user owns an ordered list of sessions. Sessions are embedded in the user
document and removed by value, never by position.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from bson import ObjectId

from docstore.models.enums import TokenAccess
from docstore.utils.datetime import utc_now


@dataclass(frozen=True)
class SessionToken:
    """One session: opaque bearer string plus access tag"""
    token: str
    access: TokenAccess = TokenAccess.AUTH

    def to_dict(self) -> dict:
        return {
            "access": self.access.value if isinstance(self.access, TokenAccess) else self.access,
            "token": self.token,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionToken":
        return cls(token=data["token"], access=TokenAccess(data.get("access", TokenAccess.AUTH)))


@dataclass
class UserDocument:
    user_id: ObjectId
    email: str
    password: str                            # bcrypt hash, never the plain text
    tokens: List[SessionToken] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "_id": self.user_id,
            "email": self.email,
            "password": self.password,
            "tokens": [t.to_dict() for t in self.tokens],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserDocument":
        return cls(
            user_id=data["_id"],
            email=data["email"],
            password=data["password"],
            tokens=[SessionToken.from_dict(t) for t in data.get("tokens", [])],
            created_at=data.get("created_at") or utc_now(),
        )

    def to_public(self) -> dict:
        """Response body: no password hash, no token list"""
        return {"_id": str(self.user_id), "email": self.email}
