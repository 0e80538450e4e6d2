"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from realty_notifications.config import NotificationSettings, get_settings, reset_settings_cache


@pytest.fixture(autouse=True)
def clean_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_defaults_leave_every_external_channel_unconfigured():
    settings = NotificationSettings(_env_file=None)

    assert settings.email_configured is False
    assert settings.sms_configured is False
    assert settings.push_configured is False
    assert settings.redis_configured is False
    assert settings.cache_prefix == "realestate:"
    assert settings.bulk_chunk_size == 100


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("NOTIFY_SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("NOTIFY_SMTP_PORT", "2525")
    monkeypatch.setenv("NOTIFY_TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("NOTIFY_TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setenv("NOTIFY_TWILIO_FROM_NUMBER", "+15550001111")
    monkeypatch.setenv("NOTIFY_REDIS_URL", "redis://localhost:6379/0")

    settings = NotificationSettings(_env_file=None)

    assert settings.smtp_port == 2525
    assert settings.email_configured is True
    assert settings.sms_configured is True
    assert settings.twilio_auth_token.get_secret_value() == "token"
    assert "token" not in repr(settings)
    assert settings.redis_configured is True


def test_disabled_cache_ignores_redis_url():
    settings = NotificationSettings(
        _env_file=None, redis_url="redis://localhost:6379/0", cache_enabled=False
    )

    assert settings.redis_configured is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"smtp_username": "mailer"},
        {"smtp_password": "pw"},
        {"vapid_public_key": "pub"},
        {"vapid_private_key": "priv"},
        {"smtp_from": "not-an-address"},
        {"bulk_chunk_size": 0},
        {"sms_default_region": "USA"},
    ],
)
def test_invalid_combinations_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        NotificationSettings(_env_file=None, **kwargs)


def test_get_settings_is_cached_until_reset(monkeypatch):
    monkeypatch.setenv("NOTIFY_APP_NAME", "First")
    first = get_settings()
    monkeypatch.setenv("NOTIFY_APP_NAME", "Second")

    assert get_settings() is first

    reset_settings_cache()

    assert get_settings().app_name == "Second"
