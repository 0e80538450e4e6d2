"""Webhook channel."""

from __future__ import annotations

from .sender import SIGNATURE_HEADER, WebhookProvider

__all__ = ["SIGNATURE_HEADER", "WebhookProvider"]
