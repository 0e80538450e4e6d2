"""Port definitions for the notification engine."""

from __future__ import annotations

from .cache import ICacheBackend
from .provider import ITemplateProvider
from .renderer import CompiledTemplate, ITemplateRenderer, NotificationTemplate
from .sender import IChannelProvider
from .stores import (
    IInAppNotificationStore,
    IPushSubscriptionStore,
    IRecipientDirectory,
    IUserPreferenceStore,
)

__all__ = [
    "CompiledTemplate",
    "ICacheBackend",
    "IChannelProvider",
    "IInAppNotificationStore",
    "IPushSubscriptionStore",
    "IRecipientDirectory",
    "ITemplateProvider",
    "ITemplateRenderer",
    "IUserPreferenceStore",
    "NotificationTemplate",
]
