"""
Application wiring tests

- AppConfig from environment
- AppContext storage selection and MongoDB startup failure
- correlation scopes
- health and root endpoints, error envelope
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from docstore.container import DEV_JWT_SECRET, AppConfig, AppContext
from docstore.core.correlation import correlator
from docstore.models import StoreType


# =============================================================================
# AppConfig
# =============================================================================


class TestAppConfig:

    def test_defaults(self, monkeypatch):
        for name in ("MONGODB_URI", "APP_PREFIX", "JWT_SECRET", "BCRYPT_ROUNDS", "PORT"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env(env_file="/nonexistent/.env")

        assert config.mongodb_uri is None
        assert config.app_prefix == "api"
        assert config.jwt_secret == DEV_JWT_SECRET
        assert config.bcrypt_rounds == 10
        assert config.port == 8000

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://db:27017")
        monkeypatch.setenv("MONGODB_TENANT_PREFIX", "ds_")
        monkeypatch.setenv("APP_PREFIX", "/v1/")
        monkeypatch.setenv("JWT_SECRET", "s3cret")
        monkeypatch.setenv("BCRYPT_ROUNDS", "12")
        monkeypatch.setenv("DEBUG", "true")

        config = AppConfig.from_env(env_file="/nonexistent/.env")

        assert config.mongodb_uri == "mongodb://db:27017"
        assert config.tenant_prefix == "ds_"
        assert config.app_prefix == "v1"
        assert config.jwt_secret == "s3cret"
        assert config.bcrypt_rounds == 12
        assert config.debug is True
        assert config.reload is True


# =============================================================================
# AppContext
# =============================================================================


class TestAppContext:

    @pytest.mark.asyncio
    async def test_memory_mode(self):
        AppContext.reset()
        ctx = await AppContext.create(AppConfig(mongodb_uri=None))
        try:
            assert ctx.resolver.store_type == StoreType.MEMORY
            assert ctx.auth_manager is not None
            assert AppContext.get_instance() is ctx
            assert await AppContext.create() is ctx
        finally:
            await ctx.shutdown()

        with pytest.raises(RuntimeError):
            AppContext.get_instance()

    @pytest.mark.asyncio
    async def test_mongo_mode(self):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})

        AppContext.reset()
        with patch("docstore.container.AsyncIOMotorClient", return_value=client) as factory:
            ctx = await AppContext.create(AppConfig(mongodb_uri="mongodb://db:27017"))

        try:
            assert ctx.resolver.store_type == StoreType.MONGODB
            assert factory.call_args.kwargs["tz_aware"] is True
        finally:
            await ctx.shutdown()
        client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_unreachable_mongo_fails_startup(self):
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=Exception("no servers"))

        AppContext.reset()
        with patch("docstore.container.AsyncIOMotorClient", return_value=client):
            with pytest.raises(Exception, match="no servers"):
                await AppContext.create(AppConfig(mongodb_uri="mongodb://db:27017"))

        client.close.assert_called_once()
        with pytest.raises(RuntimeError):
            AppContext.get_instance()


# =============================================================================
# HTTP surface
# =============================================================================


class TestEndpoints:

    @pytest.mark.asyncio
    async def test_health(self, app_client):
        from docstore import __version__

        response = await app_client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__, "storage": "memory"}

    @pytest.mark.asyncio
    async def test_root(self, app_client):
        response = await app_client.get("/")
        assert response.json()["health"] == "/api/health"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_envelope(self, app_client):
        response = await app_client.get("/api/a/b/c/d")

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "ERROR": "Not Found"}

    @pytest.mark.asyncio
    async def test_correlation_id_generated(self, app_client):
        response = await app_client.get("/api/health")
        assert response.headers["X-Correlation-ID"].startswith("R")


# =============================================================================
# Correlation scopes
# =============================================================================


class TestCorrelator:

    def test_nested_scopes(self):
        assert correlator.correlation_id == "-"

        with correlator.scope("R1", properties={"request_id": "R1"}):
            with correlator.scope("reconcile") as scoped:
                assert scoped == "R1::reconcile"
                assert correlator.get_property("request_id") == "R1"

        assert correlator.correlation_id == "-"
        assert correlator.get_property("request_id") is None
