"""Structured logging helpers for the dispatch engine.

Every engine component logs through ``get_logger(__name__, component=...)`` so
records carry a ``component`` field next to the ``event`` field passed in
``extra`` (for example ``cascade.offer.cancelled`` or ``delivery.push.failed``).
"""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its component tag with per-call extra fields."""

    def process(self, msg, kwargs):
        """Merge adapter extra (component) with call extra; call extra wins."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally tagging every record with a component.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier injected into all records
            (e.g. "delivery", "cascade", "escalation")

    Returns:
        Logger or ComponentLoggerAdapter instance

    Example:
        >>> logger = get_logger(__name__, component="cascade")
        >>> logger.info("Offer cancelled", extra={"event": "cascade.offer.cancelled"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
