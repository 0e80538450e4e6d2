"""User notification preferences and the resolver that applies them."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator

from .clock import Clock, utc_now
from .delivery import NotificationChannel
from .models import NotificationType, WireModel

logger = logging.getLogger(__name__)

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ChannelOverrides(WireModel):
    """Per-type channel toggles; ``None`` defers to the global toggle."""

    email: bool | None = None
    sms: bool | None = None
    push: bool | None = None
    in_app: bool | None = None
    webhook: bool | None = None

    def for_channel(self, channel: NotificationChannel) -> bool | None:
        value: bool | None = getattr(self, channel.preference_field)
        return value


class QuietHours(WireModel):
    """A daily ``[start, end)`` window in the user's timezone.

    ``start > end`` means the window spans midnight. ``days`` restricts the
    window to the listed weekdays (0=Sunday), judged by the day the window
    starts on.
    """

    start: str
    end: str
    timezone: str = "UTC"
    enabled: bool = True
    days: tuple[int, ...] | None = None

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        if not _HHMM_RE.match(value):
            raise ValueError("must be HH:mm (24h)")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @field_validator("days")
    @classmethod
    def _check_days(cls, value: tuple[int, ...] | None) -> tuple[int, ...] | None:
        if value is not None and any(d < 0 or d > 6 for d in value):
            raise ValueError("days must be between 0 (Sunday) and 6 (Saturday)")
        return value

    @property
    def start_time(self) -> time:
        return time.fromisoformat(self.start)

    @property
    def end_time(self) -> time:
        return time.fromisoformat(self.end)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def applies_on(self, day: date) -> bool:
        if self.days is None:
            return True
        return (day.weekday() + 1) % 7 in self.days


class UserPreferences(WireModel):
    user_id: str
    email: bool = True
    sms: bool = True
    push: bool = True
    in_app: bool = True
    webhook: bool = True
    types: dict[NotificationType, ChannelOverrides] = Field(default_factory=dict)
    quiet_hours: QuietHours | None = None
    language: str = "en"
    webhook_url: str | None = None
    webhook_secret: str | None = None

    @classmethod
    def defaults(cls, user_id: str) -> UserPreferences:
        return cls(user_id=user_id)

    @classmethod
    def conservative(cls, user_id: str) -> UserPreferences:
        """Used when the preference store cannot be read: no paid or outbound channels."""
        return cls(user_id=user_id, sms=False, webhook=False)

    def allows(self, channel: NotificationChannel, notification_type: NotificationType) -> bool:
        override = self.types.get(notification_type)
        if override is not None:
            value = override.for_channel(channel)
            if value is not None:
                return value
        enabled: bool = getattr(self, channel.preference_field)
        return enabled


class PreferenceResolver:
    """Applies preferences and quiet hours to a request's channel set."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def filter_channels(
        self,
        requested: Iterable[NotificationChannel],
        notification_type: NotificationType,
        prefs: UserPreferences,
    ) -> list[NotificationChannel]:
        """Return the requested channels the user has enabled, in request order."""
        allowed = [c for c in requested if prefs.allows(c, notification_type)]
        dropped = [c.value for c in requested if c not in allowed]
        if dropped:
            logger.debug(
                f"Channels {dropped} disabled by preferences of user {prefs.user_id} "
                f"for {notification_type.value}"
            )
        return allowed

    def is_in_quiet_hours(self, prefs: UserPreferences, now: datetime | None = None) -> bool:
        return self.quiet_window(prefs, now) is not None

    def quiet_hours_delay(
        self, prefs: UserPreferences, now: datetime | None = None
    ) -> timedelta:
        """Time remaining until the active quiet-hours window ends (zero if none)."""
        current = now or self._clock()
        window = self.quiet_window(prefs, current)
        if window is None:
            return timedelta(0)
        return window[1] - current.astimezone(timezone.utc)

    def quiet_window(
        self, prefs: UserPreferences, now: datetime | None = None
    ) -> tuple[datetime, datetime] | None:
        """Return the active window as UTC ``(start, end)``, or ``None``."""
        quiet = prefs.quiet_hours
        if quiet is None or not quiet.enabled or quiet.start == quiet.end:
            return None
        zone = quiet.zone
        local = (now or self._clock()).astimezone(zone)
        start, end = quiet.start_time, quiet.end_time
        spans_midnight = start > end
        # A midnight-spanning window active now may have started yesterday.
        for offset in (0, -1) if spans_midnight else (0,):
            day = local.date() + timedelta(days=offset)
            if not quiet.applies_on(day):
                continue
            window_start = datetime.combine(day, start, tzinfo=zone)
            end_day = day + timedelta(days=1) if spans_midnight else day
            window_end = datetime.combine(end_day, end, tzinfo=zone)
            # Half-open [start, end): the end minute is outside quiet hours.
            if window_start <= local < window_end:
                return (
                    window_start.astimezone(timezone.utc),
                    window_end.astimezone(timezone.utc),
                )
        return None
