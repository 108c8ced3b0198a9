"""
Logging module

Context-scoped structured logging:
- correlation id and tenant/collection injected into every record
- nestable scopes
- operation timing with failure capture

Usage:
    from docstore.core.logging import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(tenant="acme", collection="orders"):
        logger.info("Resolving collection")  # carries tenant/collection

        with LogContext.operation("reconcile", level=LogLevel.DEBUG):
            ...  # timed, failures logged and re-raised
"""

from __future__ import annotations
import asyncio
import contextvars
import logging
import os
import time
import traceback
from contextlib import contextmanager
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any, Iterator

from docstore.core.correlation import correlator


class LogLevel(Enum):
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()

    def to_logging_level(self) -> int:
        return {
            LogLevel.DEBUG: logging.DEBUG,
            LogLevel.INFO: logging.INFO,
            LogLevel.WARNING: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
        }[self]


# =============================================================================
# Context variables
# =============================================================================

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)

_scope_stack: contextvars.ContextVar[list[str]] = contextvars.ContextVar(
    "scope_stack", default=[]
)


# =============================================================================
# LogContext
# =============================================================================


class LogContext:
    """
    Log context manager

    Injects context attributes (tenant, collection, user_id, ...) into log
    records emitted inside the block. Nesting merges attributes.
    """

    def __init__(self, **kwargs: Any):
        self._props = kwargs
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "LogContext":
        current = _log_context.get().copy()
        current.update(self._props)
        self._token = _log_context.set(current)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token:
            _log_context.reset(self._token)

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        return _log_context.get().get(key, default)

    @classmethod
    @contextmanager
    def scope(cls, name: str, **kwargs: Any) -> Iterator[None]:
        """Enter a named scope, optionally with extra context attributes."""
        current_stack = _scope_stack.get().copy()
        current_stack.append(name)
        stack_token = _scope_stack.set(current_stack)

        current_ctx = _log_context.get().copy()
        current_ctx.update(kwargs)
        ctx_token = _log_context.set(current_ctx)

        try:
            yield
        finally:
            _scope_stack.reset(stack_token)
            _log_context.reset(ctx_token)

    @classmethod
    @contextmanager
    def operation(
        cls,
        name: str,
        level: LogLevel = LogLevel.INFO,
        **kwargs: Any,
    ) -> Iterator[None]:
        """
        Timed operation scope.

        Logs completion time at ``level``; cancellation and failures are
        logged and re-raised.
        """
        logger = get_logger("docstore.operation")
        t_start = time.time()

        with cls.scope(name, **kwargs):
            try:
                yield
                elapsed = time.time() - t_start
                logger.log(level.to_logging_level(), f"{name} completed in {elapsed:.3f}s")
            except asyncio.CancelledError:
                elapsed = time.time() - t_start
                logger.warning(f"{name} cancelled after {elapsed:.3f}s")
                raise
            except Exception as e:
                elapsed = time.time() - t_start
                logger.error(f"{name} failed after {elapsed:.3f}s: {e}")
                logger.debug(traceback.format_exc())
                raise


# =============================================================================
# Formatter
# =============================================================================


class ContextFormatter(logging.Formatter):
    """Adds ``[cid] [tenant/collection:scope]`` to every record."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ct = datetime.fromtimestamp(record.created)
        fmt = datefmt or "%Y-%m-%dT%H:%M:%S.%fZ"
        return ct.strftime(fmt.replace("%f", f"{ct.microsecond:06d}"))

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = correlator.correlation_id
        cid = "*" if not correlation_id or correlation_id == "-" else correlation_id[:11]

        ctx = _log_context.get()
        tenant = ctx.get("tenant")
        collection = ctx.get("collection")
        address = None
        if tenant:
            address = f"{tenant}/{collection}" if collection else tenant
            address = self._truncate(address, 32)

        scopes = _scope_stack.get()
        scope = scopes[-1] if scopes else None

        if address and scope:
            ctx_str = f"[{cid}] [{address}:{scope}]"
        elif address:
            ctx_str = f"[{cid}] [{address}]"
        elif scope:
            ctx_str = f"[{cid}] [:{scope}]"
        else:
            ctx_str = f"[{cid}]"

        record.ctx = ctx_str
        return super().format(record)

    @staticmethod
    def _truncate(value: str, max_len: int = 32) -> str:
        if len(value) <= max_len:
            return value
        return value[:max_len - 3] + "..."


# =============================================================================
# Setup
# =============================================================================


_initialized = False


def setup_logging(
    log_dir: str | None = None,
    log_level: str = "INFO",
    console: bool = True,
    file: bool = False,
) -> str | None:
    """
    Configure the root logger.

    Args:
        log_dir: log directory, defaults to $LOG_DIR or "logs"
        log_level: default level, overridden by $LOG_LEVEL
        console: log to stderr
        file: log to ``<log_dir>/<date>/<time>.log``

    Returns:
        The log file path when file output is enabled
    """
    global _initialized

    if _initialized:
        return None

    log_base_dir = log_dir or os.getenv("LOG_DIR", "logs")
    level_name = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    log_format = "%(asctime)s [%(levelname)-8s] %(ctx)s %(message)s"
    formatter = ContextFormatter(log_format, datefmt="%Y-%m-%dT%H:%M:%S.%fZ")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_file_path = None

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if file:
        now = datetime.now()
        log_path = Path(log_base_dir) / now.strftime("%Y-%m-%d")
        log_path.mkdir(parents=True, exist_ok=True)

        log_file = log_path / (now.strftime("%H-%M-%S") + ".log")
        log_file_path = str(log_file)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _initialized = True
    return log_file_path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "LogLevel",
    "LogContext",
    "ContextFormatter",
    "setup_logging",
    "get_logger",
]
