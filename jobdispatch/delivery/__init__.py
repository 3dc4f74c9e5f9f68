"""Delivery channel adapter.

- LineChannelClient: push / per-recipient push / batched multicast
- DeliveryOutcome, DeliveryReport: per-recipient results
- ChannelDeliveryError: provider failure (absorbed inside the client)
"""

from .channel import DEFAULT_API_BASE_URL, LineChannelClient
from .exceptions import ChannelDeliveryError
from .models import DeliveryOutcome, DeliveryReport

__all__ = [
    "LineChannelClient",
    "DeliveryOutcome",
    "DeliveryReport",
    "ChannelDeliveryError",
    "DEFAULT_API_BASE_URL",
]
