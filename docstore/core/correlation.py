"""
Correlation ID module

Lightweight request tracing:
- ContextualCorrelator: nestable scopes backed by contextvars
- middleware: one correlation id per inbound request
- logging: the formatter reads the current id from here

Usage:
    with correlator.scope("bulk-write"):
        logger.info("Writing batch...")  # log line carries the correlation id
"""

import contextvars
from contextlib import contextmanager
from typing import Any, Generator, NewType

import nanoid


# =============================================================================
# ID generation
# =============================================================================

# URL-safe alphabet, 62 characters
ID_GENERATION_ALPHABET: str = (
    "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

ID_SIZE: int = 10  # 62^10 ≈ 8.4×10^17

UniqueId = NewType("UniqueId", str)


# =============================================================================
# Context variables
# =============================================================================

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
_correlation_properties: contextvars.ContextVar[dict] = contextvars.ContextVar(
    "correlation_properties", default={}
)


def generate_id(size: int = ID_SIZE) -> UniqueId:
    """Generate a short unique id with nanoid."""
    return UniqueId(nanoid.generate(size=size, alphabet=ID_GENERATION_ALPHABET))


def generate_request_id() -> str:
    """Generate a request id (used as the root correlation scope)."""
    return str(generate_id())


# =============================================================================
# ContextualCorrelator
# =============================================================================


class ContextualCorrelator:
    """
    Scoped correlation ids.

    Example:
        with correlator.scope("R1234xyz"):
            correlator.correlation_id  # R1234xyz

            with correlator.scope("reconcile"):
                correlator.correlation_id  # R1234xyz::reconcile
    """

    @contextmanager
    def scope(
        self,
        scope_id: str,
        properties: dict[str, Any] | None = None
    ) -> Generator[str, None, None]:
        """
        Enter a new scope.

        Args:
            scope_id: scope identifier appended to the current id
            properties: extra properties (request_id, tenant, ...)

        Yields:
            The full correlation id of the new scope
        """
        current = _correlation_id.get()
        new_scope = f"{current}::{scope_id}" if current else scope_id

        current_props = _correlation_properties.get().copy()
        if properties:
            current_props.update(properties)

        token_id = _correlation_id.set(new_scope)
        token_props = _correlation_properties.set(current_props)

        try:
            yield new_scope
        finally:
            _correlation_id.reset(token_id)
            _correlation_properties.reset(token_props)

    @property
    def correlation_id(self) -> str:
        return _correlation_id.get() or "-"

    def get_property(self, key: str, default: Any = None) -> Any:
        return _correlation_properties.get().get(key, default)


correlator = ContextualCorrelator()

