"""Payload sanitization for data that leaves the service (webhooks, logs)."""

from __future__ import annotations

import hashlib
from typing import Any

MASK = "***"

_DEFAULT_SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "api_key",
        "private_key",
        "webhook_secret",
        "auth_token",
        "verification_code",
        "reset_code",
        "card_number",
        "cvv",
    }
)


class MetadataSanitizer:
    """
    Masks credentials in notification data before it is sent to a webhook
    endpoint or written to logs.

    Contact details (email, phone) are left untouched since they are
    legitimate notification content. Field names match case-insensitively
    and camelCase keys are folded to snake_case first.
    """

    def __init__(
        self,
        *,
        redact_fields: set[str] | None = None,
        hash_fields: set[str] | None = None,
        sensitive_fields: set[str] | None = None,
    ) -> None:
        self._redact_fields = {_normalize(f) for f in (redact_fields or set())}
        self._hash_fields = {_normalize(f) for f in (hash_fields or set())}
        sensitive = set(sensitive_fields or _DEFAULT_SENSITIVE_FIELDS)
        self._sensitive_fields = {_normalize(f) for f in sensitive}

    def sanitize(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return a sanitized deep copy of ``data``."""
        return self._sanitize_dict(data)

    def _sanitize_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            str(key): self._sanitize_value(value, _normalize(str(key)))
            for key, value in data.items()
        }

    def _sanitize_value(self, value: Any, field_name: str | None = None) -> Any:
        if isinstance(value, dict):
            return self._sanitize_dict(value)
        if isinstance(value, (list, tuple)):
            return [self._sanitize_value(item, field_name) for item in value]
        if field_name is None or value is None:
            return value
        if field_name in self._hash_fields:
            digest = hashlib.sha256(str(value).encode("utf-8")).hexdigest()
            return f"sha256:{digest}"
        if field_name in self._redact_fields or field_name in self._sensitive_fields:
            return MASK
        return value


def _normalize(name: str) -> str:
    chars: list[str] = []
    for index, char in enumerate(name):
        if char.isupper() and index > 0 and name[index - 1] != "_":
            chars.append("_")
        chars.append(char.lower())
    return "".join(chars)


default_sanitizer = MetadataSanitizer()
