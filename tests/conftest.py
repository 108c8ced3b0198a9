"""
Shared fixtures

Everything runs against the memory backend; the MongoDB handle is tested
separately with a mocked motor collection.
"""

import httpx
import pytest
import pytest_asyncio

from docstore.container import AppConfig, AppContext
from docstore.services.auth import AuthTokenManager
from docstore.services.database import MemoryCollectionResolver

TEST_SECRET = "test-secret"
TEST_PREFIX = "api"


@pytest.fixture
def resolver() -> MemoryCollectionResolver:
    return MemoryCollectionResolver()


@pytest_asyncio.fixture
async def orders(resolver):
    """Handle on acme/orders"""
    return await resolver.resolve("acme", "orders")


@pytest.fixture
def jwt_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def auth_manager(resolver, jwt_secret) -> AuthTokenManager:
    return AuthTokenManager(resolver, secret=jwt_secret, bcrypt_rounds=4)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        mongodb_uri=None,
        app_prefix=TEST_PREFIX,
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
    )


@pytest_asyncio.fixture
async def app_client(app_config):
    """
    HTTP client on a fresh application with memory storage

    ASGITransport does not run the lifespan, so the context is created here.
    """
    from docstore.main import create_app

    AppContext.reset()
    ctx = await AppContext.create(app_config)
    app = create_app(app_config)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await ctx.shutdown()
    AppContext.reset()
