"""Composition root: builds and owns every component of the engine."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from .api import NotificationApi
from .bulk import BulkSender
from .cache.memory import InMemoryCacheBackend
from .cache.redis import RedisCacheBackend
from .cache.service import NotificationCache
from .clock import Clock, utc_now
from .config import NotificationSettings, get_settings
from .email.smtp import SmtpEmailProvider
from .events import NotificationEventHandler
from .orchestrator import NotificationOrchestrator
from .ports.cache import ICacheBackend
from .ports.sender import IChannelProvider
from .ports.stores import (
    IInAppNotificationStore,
    IPushSubscriptionStore,
    IRecipientDirectory,
    IUserPreferenceStore,
)
from .preferences import PreferenceResolver
from .push.subscriptions import PushSubscriptionService
from .push.webpush import WebPushProvider
from .scheduler import NotificationScheduler
from .sms.twilio import TwilioSmsProvider
from .stores.memory import (
    InMemoryInAppNotificationStore,
    InMemoryPreferenceStore,
    InMemoryPushSubscriptionStore,
    InMemoryRecipientDirectory,
)
from .stores.redis import RedisInAppNotificationStore
from .template.defaults import DEFAULT_TEMPLATES
from .template.engines.layout import EmailLayoutRenderer
from .template.providers.filesystem import FileSystemTemplateProvider
from .template.registry import TemplateRegistry
from .webhook.sender import WebhookProvider

logger = logging.getLogger(__name__)


def _secret(value: Any) -> str | None:
    return value.get_secret_value() if value is not None else None


class NotificationContainer:
    """
    Wires the notification engine from ``NotificationSettings``.

    Stores owned by other parts of the platform (preferences, contact
    details, push subscriptions) can be passed in; in-memory adapters are
    used otherwise. Use as an async context manager, or call ``start`` and
    ``shutdown`` explicitly.
    """

    def __init__(
        self,
        settings: NotificationSettings,
        *,
        preferences: IUserPreferenceStore | None = None,
        recipients: IRecipientDirectory | None = None,
        push_subscriptions: IPushSubscriptionStore | None = None,
        in_app_store: IInAppNotificationStore | None = None,
        cache_backend: ICacheBackend | None = None,
        providers: list[IChannelProvider] | None = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.clock = clock

        # ── Cache ────────────────────────────────────────────────
        redis_backend: RedisCacheBackend | None = None
        if cache_backend is None and settings.cache_enabled:
            if settings.redis_configured:
                redis_backend = RedisCacheBackend.from_url(str(settings.redis_url))
                cache_backend = redis_backend
            else:
                cache_backend = InMemoryCacheBackend()
        self.cache = NotificationCache(
            cache_backend,
            prefix=settings.cache_prefix,
            default_ttl=settings.cache_default_ttl,
            enabled=settings.cache_enabled,
        )

        # ── Stores ───────────────────────────────────────────────
        self.preferences = preferences or InMemoryPreferenceStore()
        self.recipients = recipients or InMemoryRecipientDirectory()
        self.push_subscriptions = push_subscriptions or InMemoryPushSubscriptionStore()
        if in_app_store is None:
            if redis_backend is not None:
                in_app_store = RedisInAppNotificationStore(
                    redis_backend.client, key_prefix=f"{settings.cache_prefix}inapp:"
                )
            else:
                in_app_store = InMemoryInAppNotificationStore()
        self.in_app_store = in_app_store

        # ── Templates ────────────────────────────────────────────
        template_provider = (
            FileSystemTemplateProvider(settings.templates_dir)
            if settings.templates_dir is not None
            else None
        )
        self.registry = TemplateRegistry(provider=template_provider, defaults=DEFAULT_TEMPLATES)

        # ── Providers ────────────────────────────────────────────
        self.email: SmtpEmailProvider | None = None
        if providers is None:
            providers = self._build_providers()
        self.providers = providers

        # ── Services ─────────────────────────────────────────────
        self.scheduler = NotificationScheduler(self.cache, clock=clock)
        self.orchestrator = NotificationOrchestrator(
            providers=providers,
            registry=self.registry,
            resolver=PreferenceResolver(clock),
            preferences=self.preferences,
            recipients=self.recipients,
            in_app_store=self.in_app_store,
            cache=self.cache,
            scheduler=self.scheduler,
            clock=clock,
            context_defaults={
                "appName": settings.app_name,
                "platformUrl": settings.platform_url,
                "loginUrl": f"{settings.platform_url}/login",
                "dashboardUrl": f"{settings.platform_url}/dashboard",
            },
        )
        self.scheduler.set_dispatcher(self.orchestrator.send_notification)
        self.bulk = BulkSender(
            self.orchestrator.send_notification,
            chunk_size=settings.bulk_chunk_size,
            chunk_delay=settings.bulk_chunk_delay,
        )
        self.subscriptions = PushSubscriptionService(
            self.push_subscriptions, settings.vapid_public_key, clock
        )
        self.events = NotificationEventHandler(self.orchestrator.send_notification)
        self.api = NotificationApi(
            self.orchestrator,
            self.bulk,
            self.preferences,
            self.subscriptions,
            max_bulk_size=settings.bulk_max_size,
        )

    @classmethod
    def from_settings(
        cls, settings: NotificationSettings | None = None, **overrides: Any
    ) -> NotificationContainer:
        return cls(settings or get_settings(), **overrides)

    def _build_providers(self) -> list[IChannelProvider]:
        s = self.settings
        self.email = SmtpEmailProvider(
            host=s.smtp_host,
            port=s.smtp_port,
            username=s.smtp_username,
            password=_secret(s.smtp_password),
            use_tls=s.smtp_use_tls,
            timeout=s.provider_timeout,
            from_email=s.smtp_from,
            registry=self.registry,
            layout=EmailLayoutRenderer(app_name=s.app_name),
        )
        return [
            self.email,
            TwilioSmsProvider(
                account_sid=s.twilio_account_sid,
                auth_token=_secret(s.twilio_auth_token),
                from_number=s.twilio_from_number,
                default_region=s.sms_default_region,
                max_length=s.sms_max_length,
                timeout=s.provider_timeout,
            ),
            WebPushProvider(
                self.push_subscriptions,
                vapid_public_key=s.vapid_public_key,
                vapid_private_key=_secret(s.vapid_private_key),
                vapid_subject=s.vapid_subject,
                ttl=s.push_ttl,
                timeout=s.provider_timeout,
            ),
            WebhookProvider(timeout=s.webhook_timeout, secret=_secret(s.webhook_secret)),
        ]

    async def start(self) -> None:
        """Load stored templates and verify the email transport."""
        await self.registry.load()
        if self.email is not None and self.settings.email_configured:
            await self.email.verify()
        ready = [p.channel.value for p in self.providers if p.is_ready()]
        logger.info(f"Notification engine started, ready channels: {ready}")

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.cache.close()
        logger.info("Notification engine stopped")

    async def __aenter__(self) -> NotificationContainer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()
