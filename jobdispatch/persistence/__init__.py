"""Persistence layer: the reference Job Offer Store on SQLAlchemy.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None

    # Store and repositories
    - SqlJobOfferStore: implements the engine's JobOfferStore protocol
    - OfferRepository / CancellationEventRepository / StaffRepository

    # Exceptions
    - PersistenceError, DatabaseConnectionError, RecordNotFoundError,
      OfferNotFoundError, DataIntegrityError

Example usage:
    >>> from jobdispatch.persistence import init_database, SqlJobOfferStore
    >>>
    >>> init_database("sqlite:///./data/job_dispatch.db")
    >>> store = SqlJobOfferStore()
    >>> offer = store.get_offer("offer-1")
"""

# Database initialization and session management
from .database import close_database, get_session, init_database

# Repository classes
from .repositories import CancellationEventRepository, OfferRepository, StaffRepository

# Store
from .store import SqlJobOfferStore, new_offer_id

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    OfferNotFoundError,
    PersistenceError,
    RecordNotFoundError,
)

# Public API exports
__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    # Store and repositories
    "SqlJobOfferStore",
    "new_offer_id",
    "OfferRepository",
    "CancellationEventRepository",
    "StaffRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "OfferNotFoundError",
    "DataIntegrityError",
]
