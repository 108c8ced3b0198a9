"""
Password hashing and session token encoding

Passwords: bcrypt over a SHA-256 pre-hash, so inputs longer than bcrypt's
72-byte limit are not silently truncated.

Session tokens: HS256 JWT carrying the user id, the access tag, the issue
time and a random ``jti``. Two logins in the same second therefore still get
distinct tokens. A token is only honoured while it is also listed in the
user's document; the signature alone never authorizes a request.
"""

import base64
import hashlib
import time
from typing import Any

import bcrypt
from bson import ObjectId
from jose import JWTError, jwt

from docstore.core.correlation import generate_id
from docstore.core.exceptions import Unauthorized
from docstore.models.enums import TokenAccess

DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_ALGORITHM = "HS256"


def _prehash(password: str) -> bytes:
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password"""
    try:
        return bool(bcrypt.checkpw(_prehash(plain_password), hashed_password.encode("utf-8")))
    except (ValueError, TypeError):
        return False


def create_session_token(
    user_id: ObjectId,
    secret: str,
    access: TokenAccess = TokenAccess.AUTH,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """
    Args:
        user_id: owner of the session
        secret: signing key
        access: access tag stored next to the token
        algorithm: JWT signing algorithm

    Returns:
        Encoded JWT string
    """
    claims = {
        "_id": str(user_id),
        "access": access.value,
        "iat": int(time.time()),
        "jti": generate_id(),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_session_token(token: str, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> dict[str, Any]:
    """
    Verify the signature and return the claims.

    Raises:
        Unauthorized: bad signature, malformed token or missing claims
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise Unauthorized(f"Invalid token: {e!s}") from e

    user_id = claims.get("_id")
    if not isinstance(user_id, str) or not ObjectId.is_valid(user_id):
        raise Unauthorized("Token missing required claim: _id")
    return claims
