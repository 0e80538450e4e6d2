"""Push subscription management."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..clock import Clock, utc_now
from ..exceptions import ValidationError
from ..models import PushKeys, PushSubscription, validation_error_from
from ..ports.stores import IPushSubscriptionStore

logger = logging.getLogger(__name__)


class PushSubscriptionService:
    """Registers and removes per-device subscriptions for users."""

    def __init__(
        self,
        store: IPushSubscriptionStore,
        vapid_public_key: str | None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._vapid_public_key = vapid_public_key
        self._clock = clock

    @property
    def vapid_public_key(self) -> str | None:
        """Public key browsers need to create a subscription."""
        return self._vapid_public_key

    async def subscribe(
        self,
        user_id: str,
        subscription: Mapping[str, Any],
        user_agent: str | None = None,
    ) -> PushSubscription:
        """
        Store ``{endpoint, keys: {p256dh, auth}}`` for ``user_id``.

        Re-subscribing the same endpoint replaces the previous record.

        Raises:
            ValidationError: the subscription object is incomplete.
        """
        if not user_id:
            raise ValidationError({"userId": ["is required"]})
        try:
            record = PushSubscription(
                user_id=user_id,
                endpoint=subscription.get("endpoint", ""),
                keys=PushKeys.model_validate(subscription.get("keys") or {}),
                user_agent=user_agent,
                created_at=self._clock(),
            )
        except PydanticValidationError as exc:
            raise validation_error_from(exc, prefix="subscription") from exc
        if not record.endpoint.startswith("https://"):
            raise ValidationError({"subscription.endpoint": ["must be an https URL"]})

        await self._store.add(record)
        logger.info(f"Push subscription added for user {user_id}")
        return record

    async def unsubscribe(self, user_id: str, endpoint: str) -> bool:
        removed = await self._store.remove(user_id, endpoint)
        if removed:
            logger.info(f"Push subscription removed for user {user_id}")
        return removed

    async def subscription_stats(self, user_id: str) -> dict[str, Any]:
        subscriptions = await self._store.list_for_user(user_id)
        return {
            "userId": user_id,
            "activeSubscriptions": len(subscriptions),
            "userAgents": sorted({s.user_agent for s in subscriptions if s.user_agent}),
        }
