"""Messaging channel client for push and multicast delivery.

Talks to a LINE-style Messaging API:

- ``POST {api_base_url}/push``      body ``{"to": "<id>", "messages": [...]}``
- ``POST {api_base_url}/multicast`` body ``{"to": ["<id>", ...], "messages": [...]}``

The client never raises for provider or network failures. Each call becomes
a DeliveryOutcome per recipient; a failed call is logged with its recipients
and the remaining calls still run.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

import requests
from requests.adapters import HTTPAdapter

from jobdispatch.config.environment import EnvironmentConfig
from jobdispatch.config.exceptions import ConfigurationError, missing_channel_token
from jobdispatch.config.models import MAX_MULTICAST_BATCH, DeliveryConfig
from jobdispatch.domain.exceptions import ValidationError
from jobdispatch.domain.models import NotificationMessage, unique_ids
from jobdispatch.logging import get_logger

from .exceptions import ChannelDeliveryError
from .models import DeliveryOutcome, DeliveryReport

logger = get_logger(__name__, component="delivery")

DEFAULT_API_BASE_URL = "https://api.line.me/v2/bot/message"

# Provider limit on a single text message
MAX_TEXT_LENGTH = 5000

T = TypeVar("T")
R = TypeVar("R")


class LineChannelClient:
    """Delivery channel adapter.

    Constructed explicitly and injected into the engine components; there is
    no module-level client. Without an access token every send short-circuits
    to a failed outcome and the misconfiguration is logged once.

    Attributes:
        batch_size: Maximum recipients per multicast call (<= 500)
        max_concurrent_sends: Upper bound on in-flight provider calls
        timeout: Per-call HTTP timeout in seconds
    """

    def __init__(
        self,
        access_token: Optional[str],
        api_base_url: str = DEFAULT_API_BASE_URL,
        batch_size: int = MAX_MULTICAST_BATCH,
        max_concurrent_sends: int = 20,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: Bearer token for the messaging API (None disables sending)
            api_base_url: Base URL holding the push and multicast endpoints
            batch_size: Recipients per multicast call (1-500)
            max_concurrent_sends: Worker pool size for parallel calls
            timeout: HTTP timeout per call in seconds
            session: Optional requests session (for testing)

        Raises:
            ConfigurationError: If batch_size or max_concurrent_sends is out of range
        """
        if not 1 <= batch_size <= MAX_MULTICAST_BATCH:
            raise ConfigurationError(
                f"batch_size must be between 1 and {MAX_MULTICAST_BATCH}, got: {batch_size}",
                suggestions=[f"Set delivery.batch_size to at most {MAX_MULTICAST_BATCH} (provider limit)"],
            )
        if max_concurrent_sends < 1:
            raise ConfigurationError(
                f"max_concurrent_sends must be at least 1, got: {max_concurrent_sends}",
                suggestions=["Set delivery.max_concurrent_sends to a positive number (default 20)"],
            )

        self.access_token = (access_token or "").strip() or None
        self.api_base_url = api_base_url.rstrip("/")
        self.batch_size = batch_size
        self.max_concurrent_sends = max_concurrent_sends
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_maxsize=max_concurrent_sends)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

        self._unconfigured_logged = False
        self._log_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        delivery_config: DeliveryConfig,
        env_config: EnvironmentConfig,
        session: Optional[requests.Session] = None,
    ) -> "LineChannelClient":
        """Build a client from the delivery section and environment."""
        return cls(
            access_token=env_config.channel_access_token,
            api_base_url=delivery_config.api_base_url,
            batch_size=delivery_config.batch_size,
            max_concurrent_sends=delivery_config.max_concurrent_sends,
            timeout=delivery_config.request_timeout,
            session=session,
        )

    @property
    def configured(self) -> bool:
        return self.access_token is not None

    def push_one(self, recipient_id: str, message: NotificationMessage) -> DeliveryOutcome:
        """Send a message to a single recipient.

        Returns:
            DeliveryOutcome; ``success`` is False on any provider or network error

        Raises:
            ValidationError: If recipient_id is blank
        """
        recipient_id = (recipient_id or "").strip()
        if not recipient_id:
            raise ValidationError("push_one requires a non-empty recipient id")

        if not self._ensure_configured():
            return DeliveryOutcome(recipient_id, False, error="channel not configured")

        try:
            self._post("push", {"to": recipient_id, "messages": _to_channel_messages(message)})
        except ChannelDeliveryError as e:
            logger.warning(
                f"Push to {recipient_id} failed: {e}",
                extra={
                    "event": "delivery.push.failed",
                    "recipient_id": recipient_id,
                    "event_type": message.event_type,
                    "status_code": e.status_code,
                },
            )
            return DeliveryOutcome(recipient_id, False, error=str(e), status_code=e.status_code)

        logger.debug(
            f"Push to {recipient_id} delivered",
            extra={
                "event": "delivery.push.sent",
                "recipient_id": recipient_id,
                "event_type": message.event_type,
            },
        )
        return DeliveryOutcome(recipient_id, True)

    def push_each(self, recipient_ids: Iterable[str], message: NotificationMessage) -> DeliveryReport:
        """Send one individual push per recipient.

        Used where per-recipient delivery must be auditable. Recipients are
        de-duplicated; an empty list returns a successful empty report without
        touching the provider.
        """
        recipients = unique_ids(recipient_ids)
        if not recipients:
            return DeliveryReport(message=message.stamped([], True))

        if not self._ensure_configured():
            return self._unconfigured_report(recipients, message)

        outcomes = self._run_parallel(lambda rid: self.push_one(rid, message), recipients)
        report = DeliveryReport(
            outcomes=outcomes,
            channel_calls=len(recipients),
        )
        report.message = message.stamped(recipients, report.success)

        logger.info(
            f"Individual pushes complete: {report.sent_count} sent, {report.failed_count} failed",
            extra={
                "event": "delivery.push_each.completed",
                "event_type": message.event_type,
                "sent": report.sent_count,
                "failed": report.failed_count,
                "failed_recipients": report.failed_recipients,
            },
        )
        return report

    def multicast(self, recipient_ids: Iterable[str], message: NotificationMessage) -> DeliveryReport:
        """Send a message to many recipients in batches of at most ``batch_size``.

        Every batch is attempted even if an earlier one failed. Each recipient
        gets the outcome of the batch it was sent in. An empty list returns a
        successful empty report with zero provider calls.
        """
        recipients = unique_ids(recipient_ids)
        if not recipients:
            return DeliveryReport(message=message.stamped([], True))

        if not self._ensure_configured():
            return self._unconfigured_report(recipients, message)

        batches = [
            recipients[start:start + self.batch_size]
            for start in range(0, len(recipients), self.batch_size)
        ]
        channel_messages = _to_channel_messages(message)

        def send_batch(batch: List[str]) -> List[DeliveryOutcome]:
            try:
                self._post("multicast", {"to": batch, "messages": channel_messages})
            except ChannelDeliveryError as e:
                logger.warning(
                    f"Multicast batch of {len(batch)} failed: {e}",
                    extra={
                        "event": "delivery.multicast.batch_failed",
                        "event_type": message.event_type,
                        "batch_size": len(batch),
                        "status_code": e.status_code,
                        "recipient_ids": batch,
                    },
                )
                return [
                    DeliveryOutcome(rid, False, error=str(e), status_code=e.status_code)
                    for rid in batch
                ]
            return [DeliveryOutcome(rid, True) for rid in batch]

        outcomes: List[DeliveryOutcome] = []
        for batch_outcomes in self._run_parallel(send_batch, batches):
            outcomes.extend(batch_outcomes)

        report = DeliveryReport(outcomes=outcomes, channel_calls=len(batches))
        report.message = message.stamped(recipients, report.success)

        logger.info(
            f"Multicast complete: {len(batches)} batches, "
            f"{report.sent_count} reached, {report.failed_count} failed",
            extra={
                "event": "delivery.multicast.completed",
                "event_type": message.event_type,
                "batches": len(batches),
                "sent": report.sent_count,
                "failed": report.failed_count,
            },
        )
        return report

    def close(self) -> None:
        self._session.close()

    def _post(self, endpoint: str, payload: dict) -> None:
        """Issue one provider call.

        Raises:
            ChannelDeliveryError: On HTTP >= 400, timeout, or connection error
        """
        url = f"{self.api_base_url}/{endpoint}"
        recipients = payload["to"] if isinstance(payload["to"], list) else [payload["to"]]

        try:
            response = self._session.post(
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ChannelDeliveryError(
                f"{endpoint} timed out after {self.timeout} seconds",
                recipient_ids=recipients,
            ) from e
        except requests.exceptions.RequestException as e:
            raise ChannelDeliveryError(
                f"{endpoint} request failed: {e}",
                recipient_ids=recipients,
            ) from e

        if response.status_code >= 400:
            raise ChannelDeliveryError(
                f"{endpoint} returned HTTP {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
                recipient_ids=recipients,
            )

    def _run_parallel(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply fn to items on the bounded pool, preserving input order."""
        if len(items) == 1:
            return [fn(items[0])]

        workers = min(self.max_concurrent_sends, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="delivery") as pool:
            # Each task runs in a copy of the caller's context so log fields follow it
            futures = [pool.submit(copy_context().run, fn, item) for item in items]
            return [future.result() for future in futures]

    def _ensure_configured(self) -> bool:
        if self.configured:
            return True

        with self._log_lock:
            if not self._unconfigured_logged:
                self._unconfigured_logged = True
                error = missing_channel_token()
                logger.error(
                    error.message,
                    extra={
                        "event": "delivery.unconfigured",
                        "error_type": type(error).__name__,
                        "suggestions": error.suggestions,
                    },
                )
        return False

    @staticmethod
    def _unconfigured_report(recipients: List[str], message: NotificationMessage) -> DeliveryReport:
        return DeliveryReport(
            outcomes=[
                DeliveryOutcome(rid, False, error="channel not configured") for rid in recipients
            ],
            channel_calls=0,
            message=message.stamped(recipients, False),
        )


def _to_channel_messages(message: NotificationMessage) -> List[dict]:
    """Channel payload for a rendered message; the provider receives the text variant."""
    text = message.text
    if len(text) > MAX_TEXT_LENGTH:
        text = text[:MAX_TEXT_LENGTH - 1] + "…"
    return [{"type": "text", "text": text}]


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or "").strip()[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)[:200]
