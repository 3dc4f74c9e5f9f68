"""Configuration errors raised by the loaders and by components built from config."""

from typing import List, Optional


class ConfigurationError(Exception):
    """
    The dispatch engine cannot run with the configuration it was given.

    Raised while loading ``config.yaml`` and the environment, and by
    components that validate their own settings (the channel client checks
    its batch size and worker pool). ``errors`` lists each problem found and
    ``suggestions`` lists fixes for the operator; both are rendered into the
    exception text so ``main`` can print it as is.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.errors = list(errors or [])
        self.suggestions = list(suggestions or [])
        super().__init__(self.render())

    def render(self) -> str:
        """Message, numbered errors, then suggestions, one per line."""
        lines = [self.message]
        if self.errors:
            lines.append("\nValidation Errors:")
            lines.extend(f"  {i}. {error}" for i, error in enumerate(self.errors, 1))
        if self.suggestions:
            lines.append("\nSuggestions:")
            lines.extend(f"  - {suggestion}" for suggestion in self.suggestions)
        return "\n".join(lines)


def missing_channel_token() -> ConfigurationError:
    """Error describing a channel client that has no access token."""
    return ConfigurationError(
        "Messaging channel access token is not configured; all sends will report failure",
        errors=["CHANNEL_ACCESS_TOKEN is empty or unset"],
        suggestions=[
            "Set CHANNEL_ACCESS_TOKEN in the environment or .env file",
            "Issue a long-lived channel access token from the messaging provider console",
        ],
    )
