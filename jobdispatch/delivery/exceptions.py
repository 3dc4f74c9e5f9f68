"""Exceptions for the delivery channel."""

from typing import List, Optional


class ChannelDeliveryError(Exception):
    """A messaging-provider call failed.

    Transient and non-fatal: raised inside the channel client only and turned
    into failed DeliveryOutcome entries before reaching any caller.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        recipient_ids: Optional[List[str]] = None,
    ) -> None:
        """Initialize with the HTTP status (0 for network errors) and recipients.

        Args:
            message: Human-readable error message
            status_code: HTTP status code, or 0 when no response was received
            recipient_ids: Recipients the failed call was addressed to
        """
        super().__init__(message)
        self.status_code = status_code
        self.recipient_ids = list(recipient_ids or [])
