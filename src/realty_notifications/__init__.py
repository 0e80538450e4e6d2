"""Multi-channel notification engine for the RealEstate platform: email, SMS, push, webhooks and in-app."""

from __future__ import annotations

from .api import NotificationApi
from .bulk import BulkItemResult, BulkResult, BulkSender
from .cache import InMemoryCacheBackend, NotificationCache, RedisCacheBackend
from .channel import RecipientInfo
from .config import NotificationSettings, get_settings, reset_settings_cache
from .container import NotificationContainer
from .delivery import (
    AttachmentVO,
    DeliveryRecord,
    DeliveryStatus,
    NotificationChannel,
    RenderedNotification,
)
from .events import DomainEvent, NotificationEventHandler
from .exceptions import (
    CacheUnavailableError,
    MissingVariablesError,
    NotificationError,
    ProviderSendFailedError,
    ProviderUnavailableError,
    TemplateNotFoundError,
    ValidationError,
)

# Memory adapters for testing
from .memory.fake import InMemoryProvider
from .models import (
    DeliveryOutcome,
    DispatchResult,
    DispatchStatus,
    InAppNotification,
    NotificationPriority,
    NotificationRequest,
    NotificationStats,
    NotificationType,
)
from .orchestrator import NotificationOrchestrator
from .preferences import PreferenceResolver, QuietHours, UserPreferences

# Sanitization
from .sanitization import MetadataSanitizer
from .scheduler import NotificationScheduler
from .template.registry import TemplateRegistry

__all__ = [
    "AttachmentVO",
    "BulkItemResult",
    "BulkResult",
    "BulkSender",
    "CacheUnavailableError",
    "DeliveryOutcome",
    "DeliveryRecord",
    "DeliveryStatus",
    "DispatchResult",
    "DispatchStatus",
    "DomainEvent",
    "InAppNotification",
    "InMemoryCacheBackend",
    "InMemoryProvider",
    "MetadataSanitizer",
    "MissingVariablesError",
    "NotificationApi",
    "NotificationCache",
    "NotificationChannel",
    "NotificationContainer",
    "NotificationError",
    "NotificationEventHandler",
    "NotificationOrchestrator",
    "NotificationPriority",
    "NotificationRequest",
    "NotificationScheduler",
    "NotificationSettings",
    "NotificationStats",
    "NotificationType",
    "PreferenceResolver",
    "ProviderSendFailedError",
    "ProviderUnavailableError",
    "QuietHours",
    "RecipientInfo",
    "RedisCacheBackend",
    "RenderedNotification",
    "TemplateNotFoundError",
    "TemplateRegistry",
    "UserPreferences",
    "ValidationError",
    "get_settings",
    "reset_settings_cache",
]
