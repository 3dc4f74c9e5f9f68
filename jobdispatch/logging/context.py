"""Scoped logging context for dispatch operations.

Fields pushed here (``offer_id``, ``booking_id``, ``pass_id`` ...) are copied
onto every log record emitted inside the scope by ``ContextualFilter``.
Backed by ``contextvars`` so delivery worker threads started from a scope do
not leak fields into each other.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge fields into the logging context.

    Args:
        **kwargs: Fields to add

    Returns:
        Token for pop_log_context()

    Example:
        >>> token = push_log_context(offer_id="offer-1", booking_id="bk-9")
        >>> # ... every log line now carries offer_id and booking_id ...
        >>> pop_log_context(token)
    """
    return LogContextVar.set({**LogContextVar.get(), **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop all context fields (used by tests)."""
    LogContextVar.set({})


class log_context:
    """Context manager that pushes fields on entry and restores on exit.

    Example:
        >>> with log_context(offer_id="offer-1"):
        ...     logger.info("Cancelling offer")  # includes offer_id
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False
