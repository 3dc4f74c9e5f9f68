"""Interfaces the engine consumes.

The engine depends only on these protocols; ``SqlJobOfferStore`` and
``LineChannelClient`` are the shipped implementations, and tests substitute
in-memory fakes.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from jobdispatch.delivery.models import DeliveryOutcome, DeliveryReport
from jobdispatch.domain.models import (
    CancellationEvent,
    EligibilityCriteria,
    GroupBookingAggregate,
    JobOffer,
    JobStatus,
    NotificationMessage,
)


class JobOfferStore(Protocol):
    """Holds job offers and performs their atomic state transitions."""

    def get_offer(self, offer_id: str) -> Optional[JobOffer]: ...

    def get_eligible_staff(self, criteria: EligibilityCriteria) -> List[str]: ...

    def transition_status(
        self, offer_id: str, from_status: JobStatus, to_status: JobStatus
    ) -> bool: ...

    def accept_offer(self, offer_id: str, staff_id: str) -> JobOffer: ...

    def cancel_and_replace(self, event: CancellationEvent) -> Tuple[JobOffer, JobOffer]: ...

    def create_replacement_offer(self, original_offer_id: str, exclude_staff_id: str) -> str: ...

    def get_group(self, booking_id: str) -> Optional[GroupBookingAggregate]: ...

    def list_open_offers(self) -> List[JobOffer]: ...

    def claim_escalation(
        self, offer_id: str, expected_level: int, new_level: int, lease_seconds: int
    ) -> bool: ...

    def release_escalation(
        self, offer_id: str, claimed_level: int, revert_to_level: Optional[int] = None
    ) -> None: ...

    def get_staff_names(self, staff_ids: Iterable[str]) -> Dict[str, str]: ...


class DeliveryChannel(Protocol):
    """Sends rendered messages; never raises for provider failures."""

    def push_one(self, recipient_id: str, message: NotificationMessage) -> DeliveryOutcome: ...

    def push_each(
        self, recipient_ids: Iterable[str], message: NotificationMessage
    ) -> DeliveryReport: ...

    def multicast(
        self, recipient_ids: Iterable[str], message: NotificationMessage
    ) -> DeliveryReport: ...
