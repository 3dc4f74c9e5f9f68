"""Dispatch engine: fan-out, acceptance, cancellation cascade, and escalation.

Components depend on two ports (``JobOfferStore`` and ``DeliveryChannel``)
plus a ``NotificationComposer``. ``build_engine`` wires the shipped
implementations from configuration:

    >>> app_config, env_config = load_config()
    >>> init_database(env_config.database_url)
    >>> engine = build_engine(app_config, env_config)
    >>> engine.acceptance.accept("offer-1", "staff-a")
"""

from dataclasses import dataclass
from typing import Optional

from jobdispatch.config.environment import EnvironmentConfig
from jobdispatch.config.models import AppConfig
from jobdispatch.delivery.channel import LineChannelClient
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.persistence.store import SqlJobOfferStore

from .acceptance import AcceptanceGate
from .cancellation import CancellationCascade, CascadeResult
from .escalation import EscalationPassResult, EscalationResult, EscalationScheduler
from .fanout import DispatchFanout
from .ports import DeliveryChannel, JobOfferStore
from .reminders import ReminderNotifier


@dataclass
class DispatchEngine:
    """Wired engine components sharing one store, channel, and composer."""

    store: JobOfferStore
    channel: DeliveryChannel
    composer: NotificationComposer
    fanout: DispatchFanout
    acceptance: AcceptanceGate
    cascade: CancellationCascade
    escalation: EscalationScheduler
    reminders: ReminderNotifier


def build_engine(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    store: Optional[JobOfferStore] = None,
    channel: Optional[DeliveryChannel] = None,
) -> DispatchEngine:
    """Construct every engine component from configuration.

    Args:
        app_config: Validated application configuration
        env_config: Environment configuration (token, base URL, operators)
        store: Store override; defaults to SqlJobOfferStore on the
            initialized database
        channel: Channel override; defaults to LineChannelClient

    Returns:
        DispatchEngine
    """
    store = store or SqlJobOfferStore()
    channel = channel or LineChannelClient.from_config(app_config.delivery, env_config)
    composer = NotificationComposer(
        app_base_url=env_config.staff_app_base_url,
        display_timezone=app_config.notifications.display_timezone,
    )
    staff_locale = app_config.notifications.default_locale
    operator_locale = app_config.notifications.operator_locale
    operators = env_config.operator_recipient_ids

    return DispatchEngine(
        store=store,
        channel=channel,
        composer=composer,
        fanout=DispatchFanout(store, channel, composer, locale=staff_locale),
        acceptance=AcceptanceGate(store),
        cascade=CancellationCascade(
            store,
            channel,
            composer,
            operator_ids=operators,
            staff_locale=staff_locale,
            operator_locale=operator_locale,
        ),
        escalation=EscalationScheduler(
            store,
            channel,
            composer,
            config=app_config.escalation,
            operator_ids=operators,
            staff_locale=staff_locale,
            operator_locale=operator_locale,
        ),
        reminders=ReminderNotifier(store, channel, composer, locale=staff_locale),
    )


__all__ = [
    "build_engine",
    "DispatchEngine",
    "DispatchFanout",
    "AcceptanceGate",
    "CancellationCascade",
    "CascadeResult",
    "EscalationScheduler",
    "EscalationResult",
    "EscalationPassResult",
    "ReminderNotifier",
    "JobOfferStore",
    "DeliveryChannel",
]
