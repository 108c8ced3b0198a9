"""
Application context container

AppContext owns the storage client, the collection resolver and the auth
token manager, with one create/shutdown lifecycle. Handlers receive them
through FastAPI dependencies; nothing else keeps a reference.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timezone
from typing import Annotated, Any

from dotenv import load_dotenv
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient

from docstore.services.auth import AuthTokenManager
from docstore.services.database import CollectionResolver, create_resolver
from docstore.services.database.config import TENANT_PREFIX
from docstore.services.security import DEFAULT_ALGORITHM, DEFAULT_BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "docstore-dev-secret"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class AppConfig:
    # Storage
    mongodb_uri: str | None = None
    tenant_prefix: str = TENANT_PREFIX
    server_selection_timeout_ms: int = 3000

    # HTTP
    app_prefix: str = "api"

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = DEFAULT_ALGORITHM
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    reload: bool = False
    workers: int = 1

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "AppConfig":
        """Build from environment variables, after loading ``.env`` if present"""
        load_dotenv(env_file)

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            logger.warning("JWT_SECRET not set, using the development secret")
            jwt_secret = DEV_JWT_SECRET

        debug = _env_flag("DEBUG")
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI") or None,
            tenant_prefix=os.getenv("MONGODB_TENANT_PREFIX", TENANT_PREFIX),
            server_selection_timeout_ms=int(os.getenv("MONGODB_TIMEOUT_MS", "3000")),
            app_prefix=os.getenv("APP_PREFIX", "api").strip("/"),
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", DEFAULT_ALGORITHM),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", str(DEFAULT_BCRYPT_ROUNDS))),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_to_file=_env_flag("LOG_TO_FILE"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=debug,
            reload=_env_flag("RELOAD", str(debug)),
            workers=int(os.getenv("WORKERS", "1")),
        )


# =============================================================================
# Application context
# =============================================================================


@dataclass
class AppContext:
    """
    Usage:
        ```python
        ctx = await AppContext.create(AppConfig.from_env())
        handle = await ctx.resolver.resolve("acme", "orders")
        await ctx.shutdown()
        ```
    """

    config: AppConfig = field(default_factory=AppConfig)
    mongo_client: Any = field(default=None, repr=False)
    resolver: CollectionResolver | None = None
    auth_manager: AuthTokenManager | None = None

    _instance: "AppContext | None" = field(default=None, init=False, repr=False)

    @classmethod
    async def create(cls, config: AppConfig | None = None) -> "AppContext":
        if cls._instance is not None:
            return cls._instance

        config = config or AppConfig.from_env()
        ctx = cls(config=config)

        await ctx._init_storage(config)
        ctx._init_services(config)

        cls._instance = ctx
        logger.info(f"AppContext initialized (storage={ctx.resolver.store_type.value})")
        return ctx

    async def _init_storage(self, config: AppConfig) -> None:
        if not config.mongodb_uri:
            logger.info("Storage: memory mode (set MONGODB_URI to enable MongoDB)")
            self.resolver = create_resolver()
            return

        try:
            logger.info(f"Connecting to MongoDB: {config.mongodb_uri}")
            self.mongo_client = AsyncIOMotorClient(
                config.mongodb_uri,
                serverSelectionTimeoutMS=config.server_selection_timeout_ms,
                tz_aware=True,
                tzinfo=timezone.utc,
            )
            await self.mongo_client.admin.command("ping")
            self.resolver = create_resolver(self.mongo_client, config.tenant_prefix)
        except Exception as e:
            logger.error(f"MongoDB connection failed ({config.mongodb_uri}): {e}")
            if self.mongo_client is not None:
                self.mongo_client.close()
            self.mongo_client = None
            raise

    def _init_services(self, config: AppConfig) -> None:
        self.auth_manager = AuthTokenManager(
            self.resolver,
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            bcrypt_rounds=config.bcrypt_rounds,
        )

    async def shutdown(self) -> None:
        if self.resolver is not None:
            await self.resolver.close()
            self.resolver = None
        self.mongo_client = None
        self.auth_manager = None

        AppContext._instance = None
        logger.info("AppContext shutdown")

    @classmethod
    def get_instance(cls) -> "AppContext":
        if cls._instance is None:
            raise RuntimeError("AppContext not initialized")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (tests)"""
        cls._instance = None


# =============================================================================
# FastAPI dependencies
# =============================================================================


def get_resolver() -> CollectionResolver:
    ctx = AppContext.get_instance()
    if ctx.resolver is None:
        raise RuntimeError("CollectionResolver not initialized")
    return ctx.resolver


def get_auth_manager() -> AuthTokenManager:
    ctx = AppContext.get_instance()
    if ctx.auth_manager is None:
        raise RuntimeError("AuthTokenManager not initialized")
    return ctx.auth_manager


ResolverDep = Annotated[CollectionResolver, Depends(get_resolver)]
AuthManagerDep = Annotated[AuthTokenManager, Depends(get_auth_manager)]
