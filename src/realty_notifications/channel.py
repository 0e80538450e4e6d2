"""Recipient contact details resolved per user before fan-out."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RecipientInfo:
    """Resolved contact details for one user.

    Any field may be missing; each provider decides what a missing address
    means for its channel.
    """

    user_id: str
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    locale: str | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None

    @property
    def display_name(self) -> str | None:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None

    def template_variables(self) -> dict[str, Any]:
        """Variables this recipient contributes to a render context."""
        variables = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "userName": self.display_name,
            "email": self.email,
        }
        return {key: value for key, value in variables.items() if value is not None}

    def with_webhook(self, url: str | None, secret: str | None) -> RecipientInfo:
        """Fill in webhook settings from preferences when the directory has none."""
        if self.webhook_url or not url:
            return self
        return RecipientInfo(
            user_id=self.user_id,
            email=self.email,
            phone=self.phone,
            first_name=self.first_name,
            last_name=self.last_name,
            locale=self.locale,
            webhook_url=url,
            webhook_secret=secret,
        )
