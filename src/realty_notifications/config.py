"""Service configuration loaded from ``NOTIFY_``-prefixed environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class NotificationSettings(BaseSettings):
    """Notification service settings.

    Providers whose credentials are absent are built but report themselves
    as not ready, so a partially configured deployment still serves the
    channels it can.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        extra="ignore",
    )

    app_name: str = Field(default="RealEstate Platform", min_length=1)
    platform_url: str = Field(default="https://app.realestate.com", min_length=1)

    # Email (SMTP)
    smtp_host: str | None = None
    smtp_port: int = Field(default=587, gt=0)
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_use_tls: bool = True
    smtp_from: str = "noreply@realestate.com"

    # SMS (Twilio)
    twilio_account_sid: str | None = None
    twilio_auth_token: SecretStr | None = None
    twilio_from_number: str | None = None
    sms_default_region: str = Field(default="US", min_length=2, max_length=2)
    sms_max_length: int = Field(default=160, ge=10)

    # Web push (VAPID)
    vapid_public_key: str | None = None
    vapid_private_key: SecretStr | None = None
    vapid_subject: str = "mailto:admin@realestate.com"
    push_ttl: int = Field(default=86400, ge=0)

    # Webhooks
    webhook_secret: SecretStr | None = None
    webhook_timeout: float = Field(default=10.0, gt=0)

    # Cache
    redis_url: str | None = None
    cache_enabled: bool = True
    cache_prefix: str = "realestate:"
    cache_default_ttl: int = Field(default=3600, gt=0)

    # Templates
    templates_dir: Path | None = None

    # Bulk dispatch
    bulk_chunk_size: int = Field(default=100, gt=0)
    bulk_chunk_delay: float = Field(default=0.1, ge=0)
    bulk_max_size: int = Field(default=1000, gt=0)

    provider_timeout: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _validate_credential_pairs(self) -> NotificationSettings:
        if bool(self.smtp_username) ^ bool(self.smtp_password):
            raise ValueError(
                "NOTIFY_SMTP_USERNAME and NOTIFY_SMTP_PASSWORD must be provided together"
            )
        if "@" not in self.smtp_from:
            raise ValueError("NOTIFY_SMTP_FROM must be a valid email address")
        if bool(self.vapid_public_key) ^ bool(self.vapid_private_key):
            raise ValueError(
                "NOTIFY_VAPID_PUBLIC_KEY and NOTIFY_VAPID_PRIVATE_KEY must be provided together"
            )
        return self

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host)

    @property
    def sms_configured(self) -> bool:
        return bool(
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number
        )

    @property
    def push_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    @property
    def redis_configured(self) -> bool:
        return self.cache_enabled and bool(self.redis_url)


@lru_cache
def get_settings() -> NotificationSettings:
    """Return cached settings instance."""
    return NotificationSettings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""
    get_settings.cache_clear()


__all__ = ["NotificationSettings", "get_settings", "reset_settings_cache"]
