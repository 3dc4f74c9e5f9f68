"""Template rendering for notification messages using Jinja2.

Each event type has three templates in ``jobdispatch/notifications/templates``:
``{event}_subject.j2``, ``{event}_body.html.j2`` and ``{event}_body.txt.j2``.
Only the HTML bodies are autoescaped. Undefined variables raise, so a
missing context key fails at render time instead of producing a blank.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from jobdispatch.logging import get_logger

from .models import NotificationTemplateError

logger = get_logger(__name__, component="notifications")


def format_money(value) -> str:
    """Format an amount with thousands separators, dropping ``.00``.

    Example:
        >>> format_money(Decimal("1500"))
        '1,500'
        >>> format_money(Decimal("1500.5"))
        '1,500.50'
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise NotificationTemplateError(f"Cannot format {value!r} as money") from e
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


class TemplateRenderer:
    """Renders the subject, HTML and text variants of an event's message.

    Templates are loaded through one Jinja2 environment and cached by it.
    """

    def __init__(self, template_dir: str = "templates"):
        """Initialize the Jinja2 environment.

        Args:
            template_dir: Directory name within the jobdispatch.notifications package
        """
        self.env = Environment(
            loader=PackageLoader("jobdispatch.notifications", template_dir),
            autoescape=select_autoescape(
                enabled_extensions=("html.j2",),
                default_for_string=False,
                default=False,
            ),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["money"] = format_money

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, event_type: str, context: Dict) -> Dict[str, str]:
        """Render all templates of one event type.

        Args:
            event_type: Template name prefix (e.g. ``new_job``)
            context: Template variables

        Returns:
            Dictionary with ``subject`` (single line), ``html`` and ``text``

        Raises:
            NotificationTemplateError: If a template is missing or fails to render
        """
        try:
            subject_template = self.env.get_template(f"{event_type}_subject.j2")
            html_template = self.env.get_template(f"{event_type}_body.html.j2")
            text_template = self.env.get_template(f"{event_type}_body.txt.j2")

            subject = " ".join(subject_template.render(context).split())
            body_context = {**context, "subject": subject}

            return {
                "subject": subject,
                "html": html_template.render(body_context).strip(),
                "text": text_template.render(body_context).strip(),
            }

        except TemplateError as e:
            error_msg = f"Template rendering failed for {event_type}: {e}"
            logger.error(
                error_msg,
                exc_info=True,
                extra={"event": "notifications.render.failed", "event_type": event_type},
            )
            raise NotificationTemplateError(error_msg) from e
