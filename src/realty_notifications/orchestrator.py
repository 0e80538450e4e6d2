"""Notification orchestrator: validation, filtering, rendering and fan-out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from .cache.service import NotificationCache
from .channel import RecipientInfo
from .clock import Clock, utc_now
from .correlation import correlation_scope
from .delivery import (
    DeliveryStatus,
    NotificationChannel,
    RenderedNotification,
    html_to_text,
    looks_like_html,
)
from .exceptions import (
    NotificationError,
    ProviderSendFailedError,
    ProviderUnavailableError,
    ValidationError,
)
from .models import (
    DeliveryOutcome,
    DispatchResult,
    DispatchStatus,
    InAppNotification,
    NotificationPage,
    NotificationRequest,
    NotificationStats,
    NotificationType,
)
from .payloads import validate_payload
from .ports.sender import IChannelProvider
from .ports.stores import IInAppNotificationStore, IRecipientDirectory, IUserPreferenceStore
from .preferences import PreferenceResolver, UserPreferences
from .scheduler import NotificationScheduler
from .template.registry import TemplateRegistry

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class NotificationOrchestrator:
    """
    Coordinates one notification request end to end.

    ``RECEIVED -> FILTERED -> (DEFERRED | DISPATCHED) -> RECORDED -> COMPLETE``

    Only invalid input raises. Per-channel problems (provider not ready,
    rendering failure, provider error) become entries in the returned
    ``DispatchResult`` and never affect sibling channels.
    """

    def __init__(
        self,
        *,
        providers: Iterable[IChannelProvider],
        registry: TemplateRegistry,
        resolver: PreferenceResolver,
        preferences: IUserPreferenceStore,
        recipients: IRecipientDirectory,
        in_app_store: IInAppNotificationStore,
        cache: NotificationCache,
        scheduler: NotificationScheduler,
        clock: Clock = utc_now,
        context_defaults: Mapping[str, Any] | None = None,
    ) -> None:
        self._providers: dict[NotificationChannel, IChannelProvider] = {
            provider.channel: provider for provider in providers
        }
        self._registry = registry
        self._resolver = resolver
        self._preferences = preferences
        self._recipients = recipients
        self._in_app_store = in_app_store
        self._cache = cache
        self._scheduler = scheduler
        self._clock = clock
        self._context_defaults = dict(context_defaults or {})

    def provider_for(self, channel: NotificationChannel) -> IChannelProvider | None:
        return self._providers.get(channel)

    # ── Dispatch ─────────────────────────────────────────────────

    async def send_notification(self, request: NotificationRequest) -> DispatchResult:
        """
        Run one request through the pipeline.

        Raises:
            ValidationError: required fields missing or payload malformed.
        """
        self.validate(request)
        with correlation_scope():
            return await self._process(request)

    async def schedule_notification(
        self, request: NotificationRequest, fire_at: datetime
    ) -> str:
        """Validate now, dispatch at ``fire_at``."""
        self.validate(request)
        return await self._scheduler.schedule_notification(request, fire_at)

    async def cancel_scheduled(self, notification_id: str) -> bool:
        return await self._scheduler.cancel(notification_id)

    def validate(self, request: NotificationRequest) -> None:
        errors: dict[str, list[str]] = {}
        for field_name, value in (
            ("userId", request.user_id),
            ("title", request.title),
            ("message", request.message),
        ):
            if not value or not value.strip():
                errors.setdefault(field_name, []).append("is required")
        if not request.channels:
            errors.setdefault("channels", []).append("at least one channel is required")
        try:
            validate_payload(request.type, request.data)
        except ValidationError as exc:
            errors.update(exc.errors)
        if errors:
            raise ValidationError(errors)

    async def _process(self, request: NotificationRequest) -> DispatchResult:
        now = self._clock()
        if request.expires_at is not None and request.expires_at <= now:
            logger.info(f"Notification {request.id} expired at {request.expires_at}, dropping")
            return DispatchResult(request.id, DispatchStatus.EXPIRED)

        if request.scheduled_at is not None and request.scheduled_at > now:
            await self._scheduler.schedule_notification(request, request.scheduled_at)
            return DispatchResult(
                request.id, DispatchStatus.SCHEDULED, fire_at=request.scheduled_at
            )

        prefs = await self._load_preferences(request.user_id)
        channels = self._resolver.filter_channels(request.channels, request.type, prefs)
        if not channels:
            logger.info(
                f"Notification {request.id} suppressed: user {request.user_id} "
                f"has every requested channel disabled"
            )
            return DispatchResult(request.id, DispatchStatus.SUPPRESSED)

        if request.scheduled_at is None:
            window = self._resolver.quiet_window(prefs, now)
            if window is not None:
                fire_at = window[1]
                await self._scheduler.schedule_notification(request, fire_at)
                logger.info(
                    f"Notification {request.id} deferred by quiet hours until {fire_at.isoformat()}"
                )
                return DispatchResult(request.id, DispatchStatus.DEFERRED, fire_at=fire_at)

        recipient = await self._load_recipient(request.user_id, prefs)
        external = [c for c in channels if c is not NotificationChannel.IN_APP]
        settled = await asyncio.gather(
            *(self._dispatch_channel(channel, request, recipient) for channel in external),
            return_exceptions=True,
        )

        outcomes: dict[NotificationChannel, DeliveryOutcome] = {}
        for channel, result in zip(external, settled):
            if isinstance(result, BaseException):
                logger.error(f"{channel.value} dispatch for {request.id} crashed: {result!r}")
                outcomes[channel] = DeliveryOutcome.failure(channel, str(result))
            else:
                outcomes[channel] = result

        if NotificationChannel.IN_APP in channels:
            outcomes[NotificationChannel.IN_APP] = await self._record_in_app(request)

        delivered = [c.value for c, o in outcomes.items() if o.success]
        logger.info(
            f"Notification {request.id} ({request.type.value}) for user {request.user_id} "
            f"delivered via {delivered or 'no channel'}"
        )
        return DispatchResult(request.id, DispatchStatus.COMPLETED, outcomes)

    async def _load_preferences(self, user_id: str) -> UserPreferences:
        try:
            prefs = await self._preferences.get(user_id)
        except Exception as e:
            logger.error(
                f"Could not load preferences for user {user_id}, using conservative defaults: {e}",
                exc_info=True,
            )
            return UserPreferences.conservative(user_id)
        return prefs or UserPreferences.defaults(user_id)

    async def _load_recipient(self, user_id: str, prefs: UserPreferences) -> RecipientInfo:
        try:
            recipient = await self._recipients.get(user_id)
        except Exception as e:
            logger.error(f"Could not resolve contact details for user {user_id}: {e}", exc_info=True)
            recipient = None
        recipient = recipient or RecipientInfo(user_id=user_id)
        return recipient.with_webhook(prefs.webhook_url, prefs.webhook_secret)

    async def _dispatch_channel(
        self,
        channel: NotificationChannel,
        request: NotificationRequest,
        recipient: RecipientInfo,
    ) -> DeliveryOutcome:
        try:
            provider = self._providers.get(channel)
            if provider is None or not provider.is_ready():
                raise ProviderUnavailableError(channel.value)

            content, missing = self._render(request, channel, recipient)
            record = await provider.send(recipient, content, self._metadata(request))

            if record.status is DeliveryStatus.SKIPPED:
                logger.debug(f"{channel.value} skipped for {request.id}: {record.error}")
                return DeliveryOutcome.skip(channel, record.error)
            if record.status is DeliveryStatus.FAILED:
                raise ProviderSendFailedError(
                    channel.value, record.recipient, record.error or "unknown error"
                )
            return DeliveryOutcome.delivered(channel, record.provider_id, missing)

        except ProviderUnavailableError as e:
            logger.warning(f"Skipping {channel.value} for notification {request.id}: {e}")
            return DeliveryOutcome.skip(channel, str(e))
        except NotificationError as e:
            logger.error(f"{channel.value} delivery of notification {request.id} failed: {e}")
            return DeliveryOutcome.failure(channel, str(e))
        except Exception as e:
            logger.error(
                f"{channel.value} provider raised for notification {request.id}: {e}",
                exc_info=True,
            )
            return DeliveryOutcome.failure(channel, str(e))

    # ── Rendering ────────────────────────────────────────────────

    def render_context(
        self, request: NotificationRequest, recipient: RecipientInfo
    ) -> dict[str, Any]:
        """Variables available to templates; request data wins on conflicts."""
        context: dict[str, Any] = dict(self._context_defaults)
        context.update(recipient.template_variables())
        context.update({"title": request.title, "message": request.message})
        if request.action_url:
            context["actionUrl"] = request.action_url
        context.update(request.data)
        return context

    def _render(
        self,
        request: NotificationRequest,
        channel: NotificationChannel,
        recipient: RecipientInfo,
    ) -> tuple[RenderedNotification, list[str]]:
        context = self.render_context(request, recipient)
        explicit = request.metadata.get("template")
        if explicit:
            # A caller-chosen template must render completely.
            compiled = self._registry.render(str(explicit), context)
            return self._content(channel, compiled.subject, compiled.content, request), []

        template = self._registry.find(request.type, channel)
        if template is not None:
            validation = self._registry.validate(template.id, context)
            if validation.is_valid:
                compiled = self._registry.compile(template.id, context)
                return self._content(channel, compiled.subject, compiled.content, request), []
            logger.warning(
                f"Template {template.id} missing {validation.missing_variables} for "
                f"notification {request.id}, sending plain title and message"
            )
            missing = validation.missing_variables
        else:
            missing = []

        body = request.message
        if channel is NotificationChannel.SMS:
            body = f"{request.title}: {request.message}"
        return self._content(channel, request.title, body, request), missing

    def _content(
        self,
        channel: NotificationChannel,
        subject: str | None,
        body: str,
        request: NotificationRequest,
    ) -> RenderedNotification:
        if channel is NotificationChannel.EMAIL and looks_like_html(body):
            return RenderedNotification(
                body_text=html_to_text(body),
                subject=subject or request.title,
                body_html=body,
                data=dict(request.data),
            )
        return RenderedNotification(
            body_text=body,
            subject=subject or request.title,
            data=dict(request.data),
        )

    def _metadata(self, request: NotificationRequest) -> dict[str, object]:
        return {
            "notification_id": request.id,
            "notification_type": request.type.value,
            "user_id": request.user_id,
            "priority": request.priority.value,
            "elevated": request.priority.is_elevated,
            "title": request.title,
            "message": request.message,
            "action_url": request.action_url,
            "image_url": request.image_url,
        }

    # ── In-app read model ────────────────────────────────────────

    async def _record_in_app(self, request: NotificationRequest) -> DeliveryOutcome:
        channel = NotificationChannel.IN_APP
        try:
            record = InAppNotification.from_request(request, created_at=self._clock())
            await self._in_app_store.append(record)
        except Exception as e:
            logger.error(f"Failed to store in-app notification {request.id}: {e}", exc_info=True)
            return DeliveryOutcome.failure(channel, str(e))
        await self._cache.invalidate_user_notification_cache(request.user_id)
        return DeliveryOutcome.delivered(channel, provider_id=record.id)

    async def _all_notifications(self, user_id: str) -> list[InAppNotification]:
        cached = await self._cache.get_user_notifications(user_id)
        if cached is not None:
            return cached
        notifications = await self._in_app_store.list_for_user(user_id)
        await self._cache.cache_user_notifications(user_id, notifications)
        return notifications

    async def get_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        *,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
    ) -> NotificationPage:
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                {"pagination": [f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}"]}
            )
        notifications = await self._all_notifications(user_id)
        if unread_only:
            notifications = [n for n in notifications if not n.is_read]
        if notification_type is not None:
            notifications = [n for n in notifications if n.type is notification_type]
        return NotificationPage.paginate(notifications, page, limit)

    async def get_stats(self, user_id: str) -> NotificationStats:
        cached = await self._cache.get_user_notification_stats(user_id)
        if cached is not None:
            return cached
        stats = NotificationStats.compute(await self._in_app_store.list_for_user(user_id))
        await self._cache.cache_user_notification_stats(user_id, stats)
        return stats

    async def get_unread_count(self, user_id: str) -> int:
        cached = await self._cache.get_unread_count(user_id)
        if cached is not None:
            return cached
        notifications = await self._in_app_store.list_for_user(user_id)
        count = sum(1 for n in notifications if not n.is_read)
        await self._cache.cache_unread_count(user_id, count)
        return count

    async def mark_as_read(self, user_id: str, notification_id: str) -> bool:
        updated = await self._in_app_store.mark_read(user_id, notification_id, self._clock())
        await self._cache.invalidate_user_notification_cache(user_id)
        return updated

    async def mark_all_as_read(self, user_id: str) -> int:
        changed = await self._in_app_store.mark_all_read(user_id, self._clock())
        await self._cache.invalidate_user_notification_cache(user_id)
        return changed

    async def delete_notification(self, user_id: str, notification_id: str) -> bool:
        deleted = await self._in_app_store.delete(user_id, notification_id)
        await self._cache.invalidate_user_notification_cache(user_id)
        return deleted
