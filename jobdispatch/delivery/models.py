"""Per-recipient delivery results.

A report keeps one outcome per recipient so callers can tell exactly who was
not reached, while still collapsing to a single boolean (``bool(report)``)
where only "did everything go through" matters.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from jobdispatch.domain.models import NotificationMessage


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of delivering a message to one recipient."""

    recipient_id: str
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None

    def __bool__(self) -> bool:
        return self.success


@dataclass
class DeliveryReport:
    """Aggregate result of a push or multicast.

    Attributes:
        outcomes: One entry per recipient, in request order
        channel_calls: Number of provider calls actually issued
        message: Stamped copy of the message that was sent, if any
    """

    outcomes: List[DeliveryOutcome] = field(default_factory=list)
    channel_calls: int = 0
    message: Optional[NotificationMessage] = None

    @property
    def success(self) -> bool:
        """True when every recipient was reached (vacuously true when empty)."""
        return all(outcome.success for outcome in self.outcomes)

    @property
    def failed_recipients(self) -> List[str]:
        return [outcome.recipient_id for outcome in self.outcomes if not outcome.success]

    @property
    def sent_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.sent_count

    def __bool__(self) -> bool:
        return self.success

    def merge(self, other: "DeliveryReport") -> "DeliveryReport":
        """Combine two reports; the message of the first non-empty one is kept."""
        return DeliveryReport(
            outcomes=self.outcomes + other.outcomes,
            channel_calls=self.channel_calls + other.channel_calls,
            message=self.message or other.message,
        )
