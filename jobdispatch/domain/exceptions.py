"""Business-rule exceptions raised by the dispatch engine.

These always propagate to the caller. Delivery failures are a different
category: they are absorbed by the delivery layer and reported as failed
outcomes (see ``jobdispatch.delivery``).
"""

from typing import Iterable, Optional


class DispatchError(Exception):
    """Base exception for dispatch engine errors."""

    pass


class ValidationError(DispatchError, ValueError):
    """Malformed input rejected before any side effect.

    Examples:
    - Unknown cancellation reason code
    - Reason ``OTHER`` without notes
    - Empty offer or staff id where one is mandatory
    """

    pass


class JobStateConflictError(DispatchError):
    """An expected-state precondition failed at the store boundary.

    Raised when a conditional transition loses: a second accept on an offer
    that is already assigned, a cancellation of an offer that is no longer
    assigned, or a cancellation by someone who does not hold the offer.
    """

    def __init__(
        self,
        offer_id: str,
        expected: Iterable[str],
        actual: Optional[str],
        message: Optional[str] = None,
    ) -> None:
        self.offer_id = offer_id
        self.expected = tuple(expected)
        self.actual = actual
        super().__init__(
            message
            or f"Offer {offer_id} is {actual or 'missing'}, expected {'/'.join(self.expected)}"
        )
