"""
Middleware

FastAPI middleware setup
"""

import asyncio
import logging

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware

from docstore.core.correlation import correlator, generate_request_id

logger = logging.getLogger(__name__)

AUTH_HEADER = "x-auth"
CORRELATION_HEADER = "X-Correlation-ID"


def setup_middlewares(app: FastAPI) -> None:
    _setup_cors(app)
    _setup_cancellation_handler(app)
    _setup_correlation_id(app)


def _setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # browsers only expose the session token to scripts when listed here
        expose_headers=[AUTH_HEADER, CORRELATION_HEADER],
    )


def _setup_cancellation_handler(app: FastAPI) -> None:
    """
    Turn asyncio.CancelledError into a 503.

    Writes already applied by the cancelled request stay applied.
    """

    @app.middleware("http")
    async def cancellation_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except asyncio.CancelledError:
            logger.info(f"Request cancelled: {request.method} {request.url.path}")
            return Response(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content="Service Unavailable - Request Cancelled",
            )


def _setup_correlation_id(app: FastAPI) -> None:

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """
        One correlation id per request

        - taken from the X-Correlation-ID request header or generated
        - echoed in the X-Correlation-ID response header
        """
        correlation_id = request.headers.get(CORRELATION_HEADER)
        if not correlation_id:
            correlation_id = f"R{generate_request_id()}"

        with correlator.scope(
            correlation_id,
            properties={
                "request_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
            }
        ):
            logger.info(f"→ {request.method} {request.url.path}")

            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id

            logger.info(f"← {request.method} {request.url.path} [{response.status_code}]")

            return response
