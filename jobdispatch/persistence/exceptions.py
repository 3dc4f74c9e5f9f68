"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can catch
every store failure with one except clause. Business-rule conflicts are not
persistence errors; those raise JobStateConflictError from the domain.
"""

from jobdispatch.domain.exceptions import DispatchError


class PersistenceError(DispatchError):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL format
    - Database file not accessible
    - SQLite driver not available
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a required database record is not found.

    For optional lookups, methods return None instead of raising this.
    """

    pass


class OfferNotFoundError(RecordNotFoundError):
    """Raised when an operation names a job offer id that does not exist."""

    def __init__(self, offer_id: str):
        super().__init__(f"Job offer not found: {offer_id}")
        self.offer_id = offer_id


class DataIntegrityError(PersistenceError):
    """Raised when a database constraint is violated.

    Examples:
    - Duplicate offer id
    - Cancellation event for an unknown offer (foreign key)
    """

    pass
