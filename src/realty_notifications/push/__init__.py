"""Web push channel and subscription management."""

from __future__ import annotations

from .subscriptions import PushSubscriptionService
from .webpush import WebPushProvider

__all__ = ["PushSubscriptionService", "WebPushProvider"]
