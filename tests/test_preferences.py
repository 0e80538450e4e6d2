"""Tests for preference filtering and quiet hours."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from realty_notifications.delivery import NotificationChannel
from realty_notifications.models import NotificationType
from realty_notifications.preferences import (
    ChannelOverrides,
    PreferenceResolver,
    QuietHours,
    UserPreferences,
)

ALL_CHANNELS = list(NotificationChannel)


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def _prefs(**quiet):
    return UserPreferences(user_id="u1", quiet_hours=QuietHours(**quiet))


@pytest.fixture
def resolver():
    return PreferenceResolver()


def test_filter_channels_uses_global_toggles(resolver):
    prefs = UserPreferences(user_id="u1", sms=False, webhook=False)

    allowed = resolver.filter_channels(ALL_CHANNELS, NotificationType.WELCOME, prefs)

    assert allowed == [
        NotificationChannel.EMAIL,
        NotificationChannel.PUSH,
        NotificationChannel.IN_APP,
    ]


def test_type_override_wins_over_global_toggle(resolver):
    prefs = UserPreferences(
        user_id="u1",
        email=False,
        types={
            NotificationType.PRICE_CHANGE: ChannelOverrides(email=True, push=False),
        },
    )

    price = resolver.filter_channels(ALL_CHANNELS, NotificationType.PRICE_CHANGE, prefs)
    welcome = resolver.filter_channels(ALL_CHANNELS, NotificationType.WELCOME, prefs)

    assert NotificationChannel.EMAIL in price
    assert NotificationChannel.PUSH not in price
    assert NotificationChannel.SMS in price
    assert NotificationChannel.EMAIL not in welcome
    assert NotificationChannel.PUSH in welcome


def test_filter_preserves_request_order(resolver):
    requested = [NotificationChannel.IN_APP, NotificationChannel.EMAIL]

    allowed = resolver.filter_channels(
        requested, NotificationType.WELCOME, UserPreferences.defaults("u1")
    )

    assert allowed == requested


def test_conservative_defaults_disable_outbound_paid_channels():
    prefs = UserPreferences.conservative("u1")

    assert prefs.sms is False
    assert prefs.webhook is False
    assert prefs.email is True


@pytest.mark.parametrize(
    "now, expected",
    [
        (_utc(2024, 1, 15, 23, 30), True),
        (_utc(2024, 1, 15, 12, 0), False),
        (_utc(2024, 1, 15, 22, 0), True),
        (_utc(2024, 1, 16, 5, 59), True),
        (_utc(2024, 1, 16, 6, 0), False),
    ],
)
def test_quiet_hours_spanning_midnight(resolver, now, expected):
    prefs = _prefs(start="22:00", end="06:00", timezone="UTC")

    assert resolver.is_in_quiet_hours(prefs, now) is expected


@pytest.mark.parametrize(
    "now, expected",
    [
        (_utc(2024, 1, 15, 12, 0), True),
        (_utc(2024, 1, 15, 8, 59), False),
        (_utc(2024, 1, 15, 9, 0), True),
        (_utc(2024, 1, 15, 17, 0), False),
    ],
)
def test_quiet_hours_same_day_window(resolver, now, expected):
    prefs = _prefs(start="09:00", end="17:00")

    assert resolver.is_in_quiet_hours(prefs, now) is expected


def test_no_quiet_hours_is_never_quiet(resolver):
    assert resolver.is_in_quiet_hours(UserPreferences.defaults("u1"), _utc(2024, 1, 15, 3, 0)) is False


def test_disabled_or_empty_window_is_never_quiet(resolver):
    now = _utc(2024, 1, 15, 23, 30)

    assert not resolver.is_in_quiet_hours(_prefs(start="22:00", end="06:00", enabled=False), now)
    assert not resolver.is_in_quiet_hours(_prefs(start="22:00", end="22:00"), now)


def test_quiet_hours_in_user_timezone(resolver):
    """23:00 in New York is 04:00 UTC the next day."""
    prefs = _prefs(start="22:00", end="06:00", timezone="America/New_York")

    assert resolver.is_in_quiet_hours(prefs, _utc(2024, 1, 16, 4, 0))
    assert not resolver.is_in_quiet_hours(prefs, _utc(2024, 1, 15, 23, 0))


def test_quiet_hours_delay_is_time_until_window_end(resolver):
    prefs = _prefs(start="22:00", end="06:00")

    delay = resolver.quiet_hours_delay(prefs, _utc(2024, 1, 15, 23, 30))

    assert delay == timedelta(hours=6, minutes=30)


def test_quiet_hours_delay_zero_outside_window(resolver):
    prefs = _prefs(start="22:00", end="06:00")

    assert resolver.quiet_hours_delay(prefs, _utc(2024, 1, 15, 12, 0)) == timedelta(0)


def test_quiet_hours_delay_across_dst_change(resolver):
    """The night clocks spring forward is one hour shorter."""
    prefs = _prefs(start="22:00", end="06:00", timezone="America/New_York")

    # 22:00 EST on 9 March 2024; window ends 06:00 EDT on 10 March.
    delay = resolver.quiet_hours_delay(prefs, _utc(2024, 3, 10, 3, 0))

    assert delay == timedelta(hours=7)


def test_quiet_hours_delay_uses_resolver_clock():
    resolver = PreferenceResolver(clock=lambda: _utc(2024, 1, 16, 5, 0))
    prefs = _prefs(start="22:00", end="06:00")

    assert resolver.quiet_hours_delay(prefs) == timedelta(hours=1)


def test_days_follow_the_day_the_window_started(resolver):
    """15 January 2024 is a Monday (1)."""
    prefs = _prefs(start="22:00", end="06:00", days=(1,))

    assert resolver.is_in_quiet_hours(prefs, _utc(2024, 1, 15, 23, 30))
    assert resolver.is_in_quiet_hours(prefs, _utc(2024, 1, 16, 2, 0))
    assert not resolver.is_in_quiet_hours(prefs, _utc(2024, 1, 16, 23, 30))


@pytest.mark.parametrize(
    "fields",
    [
        {"start": "25:00", "end": "06:00"},
        {"start": "7:00", "end": "06:00"},
        {"start": "22:00", "end": "06:00", "timezone": "Mars/Olympus"},
        {"start": "22:00", "end": "06:00", "days": (7,)},
    ],
)
def test_invalid_quiet_hours_rejected(fields):
    with pytest.raises(PydanticValidationError):
        QuietHours(**fields)


def test_preferences_parse_camel_case_wire_format():
    prefs = UserPreferences.model_validate(
        {
            "userId": "u1",
            "inApp": False,
            "types": {"PRICE_CHANGE": {"sms": True}},
            "quietHours": {"start": "22:00", "end": "06:00", "timezone": "Europe/Athens"},
        }
    )

    assert prefs.in_app is False
    assert prefs.types[NotificationType.PRICE_CHANGE].sms is True
    assert prefs.quiet_hours.timezone == "Europe/Athens"
