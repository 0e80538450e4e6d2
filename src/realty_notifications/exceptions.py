"""Exception hierarchy for the notification service."""

from __future__ import annotations

from collections.abc import Iterable


class NotificationError(Exception):
    """Base exception for every notification service failure."""


class ValidationError(NotificationError):
    """Raised when a request or payload fails validation.

    Carries a ``{field: [messages]}`` mapping so callers can report every
    problem at once.
    """

    def __init__(self, errors: dict[str, list[str]] | str) -> None:
        if isinstance(errors, str):
            errors = {"__root__": [errors]}
        self.errors = errors
        super().__init__(self._format(errors))

    @staticmethod
    def _format(errors: dict[str, list[str]]) -> str:
        parts = [f"{field}: {'; '.join(messages)}" for field, messages in errors.items()]
        return "Validation failed: " + ", ".join(parts)


class TemplateError(NotificationError):
    """Base exception for template lookup and rendering failures."""


class TemplateNotFoundError(TemplateError):
    """Raised when a template id is unknown or the template is inactive."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template not found or inactive: {template_id}")


class MissingVariablesError(TemplateError):
    """Raised when a strict render lacks declared template variables."""

    def __init__(self, template_id: str, missing: Iterable[str]) -> None:
        self.template_id = template_id
        self.missing = list(missing)
        super().__init__(
            f"Template {template_id} is missing variables: {', '.join(self.missing)}"
        )


class InfrastructureError(NotificationError):
    """Base exception for failures of external systems (cache, providers)."""


class ProviderError(InfrastructureError):
    """Base exception for channel provider failures."""


class ProviderUnavailableError(ProviderError):
    """Raised when a channel has no provider or the provider is not ready."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"No ready provider for channel {channel}")


class ProviderSendFailedError(ProviderError):
    """Raised when a provider reports a failed delivery."""

    def __init__(self, channel: str, recipient: str, reason: str) -> None:
        self.channel = channel
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to deliver via {channel} to {recipient}: {reason}")


class CacheUnavailableError(InfrastructureError):
    """Raised internally when the cache is disabled or unreachable."""
