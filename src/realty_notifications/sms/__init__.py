"""SMS channel."""

from __future__ import annotations

from .twilio import TwilioSmsProvider, normalize_phone_number, truncate_message

__all__ = ["TwilioSmsProvider", "normalize_phone_number", "truncate_message"]
