"""
Document store HTTP API

Application entry point
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.types import Receive, Scope, Send

from docstore import __version__
from docstore.container import AppConfig, AppContext
from docstore.core import get_logger, setup_exception_handlers, setup_logging, setup_middlewares
from docstore.routes import router

config = AppConfig.from_env()

log_file_path = setup_logging(
    log_dir=config.log_dir,
    log_level=config.log_level,
    file=config.log_to_file,
)
logger = get_logger(__name__)
if log_file_path:
    logger.info(f"Log file: {log_file_path}")


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting document store API...")
    try:
        ctx = await AppContext.create(config)
    except Exception as e:
        logger.error(f"Failed to initialize: {e}", exc_info=True)
        raise

    logger.info(
        f"Ready - storage={ctx.resolver.store_type.value}, "
        f"prefix=/{config.app_prefix}"
    )

    yield

    logger.info("Shutting down document store API...")
    await ctx.shutdown()
    logger.info("Shutdown complete")


# =============================================================================
# AppWrapper
# =============================================================================


class AppWrapper:
    """
    ASGI wrapper

    FastAPI's exception handling does not catch BaseException, so a cancelled
    request (asyncio.CancelledError) would end in a traceback. This wrapper
    lets it end quietly.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            return await self.app(scope, receive, send)
        except asyncio.CancelledError:
            pass


# =============================================================================
# Application
# =============================================================================


def create_app(app_config: AppConfig, lifespan_handler=lifespan) -> FastAPI:
    prefix = f"/{app_config.app_prefix}" if app_config.app_prefix else ""

    fastapi_app = FastAPI(
        title="Document Store API",
        description="Multi-tenant document store with per-user session tokens",
        version=__version__,
        lifespan=lifespan_handler,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    setup_middlewares(fastapi_app)
    setup_exception_handlers(fastapi_app)

    fastapi_app.include_router(router, prefix=prefix)

    @fastapi_app.get("/", tags=["Root"])
    async def root():
        return {
            "name": "Document Store API",
            "version": __version__,
            "docs": "/docs",
            "health": f"{prefix}/health",
        }

    return fastapi_app


_fastapi_app = create_app(config)

app = AppWrapper(_fastapi_app)


# =============================================================================
# Entry point
# =============================================================================


def run() -> None:
    import uvicorn

    logger.info(
        f"Starting server - host: {config.host}, port: {config.port}, "
        f"debug: {config.debug}, reload: {config.reload}"
    )

    if config.reload:
        # reload needs the "module:app" string form
        uvicorn.run(
            "docstore.main:app",
            host=config.host,
            port=config.port,
            reload=True,
            reload_dirs=["docstore"],
            reload_delay=0.25,
            log_level="debug" if config.debug else "info",
        )
    else:
        uvicorn.run(
            "docstore.main:app",
            host=config.host,
            port=config.port,
            workers=config.workers,
            log_level="info",
        )


if __name__ == "__main__":
    run()
