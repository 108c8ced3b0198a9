"""
Auth token manager

Users live in each tenant's ``Users`` collection; a user's sessions are the
``tokens`` list embedded in the user document. Every mutation of that list is
a single atomic ``$push`` or ``$pull`` by value, so concurrent logins and
logouts on the same account never overwrite each other.

Session lifecycle: issued (pushed) -> valid (listed and signed) -> revoked
(pulled). A revoked token string is never valid again; new tokens carry a
random ``jti`` and are never equal to an old one.
"""

import asyncio
import logging
from typing import Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from docstore.core.exceptions import DuplicateEmail, InvalidCredentials, Unauthorized
from docstore.models.collections import Collections
from docstore.models.enums import TokenAccess
from docstore.models.users import SessionToken, UserDocument
from docstore.services.database.handles import CollectionHandle
from docstore.services.database.resolver import CollectionResolver
from docstore.services.security import (
    DEFAULT_ALGORITHM,
    DEFAULT_BCRYPT_ROUNDS,
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthTokenManager:
    """
    Usage:
        manager = AuthTokenManager(resolver, secret="...")
        user, token = await manager.create_user("acme", "a@b.io", "secret1")
        user = await manager.validate("acme", token)
        await manager.revoke("acme", user, token)
    """

    def __init__(
        self,
        resolver: CollectionResolver,
        secret: str,
        algorithm: str = DEFAULT_ALGORITHM,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self._resolver = resolver
        self._secret = secret
        self._algorithm = algorithm
        self._bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    async def _users(self, tenant: str) -> CollectionHandle:
        return await self._resolver.resolve(tenant, Collections.USERS)

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self._bcrypt_rounds)

    async def _verify(self, password: str, hashed: str) -> bool:
        return await asyncio.to_thread(verify_password, password, hashed)

    async def _get_dummy_hash(self) -> str:
        """Hash compared against when the email is unknown, computed once per manager"""
        if self._dummy_hash is None:
            self._dummy_hash = await self._hash("not-a-real-password")
        return self._dummy_hash

    def _new_token(self, user_id: ObjectId) -> str:
        return create_session_token(user_id, self._secret, TokenAccess.AUTH, self._algorithm)

    async def _push_session(self, users: CollectionHandle, user: UserDocument) -> str:
        token = self._new_token(user.user_id)
        session = SessionToken(token=token)
        await users.update_one({"_id": user.user_id}, {"$push": {"tokens": session.to_dict()}})
        user.tokens.append(session)
        return token

    # =========================================================================
    # Accounts
    # =========================================================================

    async def create_user(self, tenant: str, email: str, password: str) -> tuple[UserDocument, str]:
        """
        Create an account and open its first session.

        Returns:
            (user, token)

        Raises:
            DuplicateEmail: email already registered in this tenant
        """
        users = await self._users(tenant)
        if await users.find_one({"email": email}) is not None:
            raise DuplicateEmail()

        user = UserDocument(
            user_id=ObjectId(),
            email=email,
            password=await self._hash(password),
        )
        try:
            await users.insert_one(user.to_dict())
        except DuplicateKeyError as e:
            raise DuplicateEmail() from e

        token = await self.issue_on_create(tenant, user)
        logger.info(f"User created: {user.user_id}")
        return user, token

    async def delete_user(self, tenant: str, user: UserDocument) -> Optional[UserDocument]:
        """Remove the account; all of its sessions go with it"""
        users = await self._users(tenant)
        removed = await users.find_one_and_delete({"_id": user.user_id})
        if removed is None:
            return None
        logger.info(f"User deleted: {user.user_id}")
        return UserDocument.from_dict(removed)

    revoke_all = delete_user

    # =========================================================================
    # Sessions
    # =========================================================================

    async def issue_on_create(self, tenant: str, user: UserDocument) -> str:
        users = await self._users(tenant)
        return await self._push_session(users, user)

    async def login(self, tenant: str, email: str, password: str) -> tuple[UserDocument, str]:
        """
        Raises:
            InvalidCredentials: unknown email or wrong password; the two cases
                are not distinguishable by the caller
        """
        users = await self._users(tenant)
        raw = await users.find_one({"email": email})
        if raw is None:
            await self._verify(password, await self._get_dummy_hash())
            logger.info("Login rejected")
            raise InvalidCredentials()
        if not await self._verify(password, raw.get("password", "")):
            logger.info("Login rejected")
            raise InvalidCredentials()

        user = UserDocument.from_dict(raw)
        token = await self._push_session(users, user)
        logger.info(f"Login: {user.user_id} ({len(user.tokens)} session(s))")
        return user, token

    async def validate(self, tenant: str, token: Optional[str]) -> UserDocument:
        """
        Resolve a bearer token to its owner.

        Raises:
            Unauthorized: missing, malformed, foreign-signed or revoked token
        """
        if not token:
            raise Unauthorized("Missing auth token")

        claims = decode_session_token(token, self._secret, self._algorithm)
        users = await self._users(tenant)
        raw = await users.find_one({
            "_id": ObjectId(claims["_id"]),
            "tokens": {"$elemMatch": {"token": token, "access": TokenAccess.AUTH.value}},
        })
        if raw is None:
            raise Unauthorized()
        return UserDocument.from_dict(raw)

    async def revoke(self, tenant: str, user: UserDocument, token: str) -> None:
        """Remove one session by value; a token not in the list is a no-op"""
        users = await self._users(tenant)
        await users.update_one({"_id": user.user_id}, {"$pull": {"tokens": {"token": token}}})
        user.tokens = [t for t in user.tokens if t.token != token]
        logger.info(f"Session revoked: {user.user_id}")

    async def list_sessions(self, tenant: str, user: UserDocument) -> list[SessionToken]:
        users = await self._users(tenant)
        raw = await users.find_one({"_id": user.user_id})
        if raw is None:
            return []
        return UserDocument.from_dict(raw).tokens
