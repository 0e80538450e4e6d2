"""Email channel."""

from __future__ import annotations

from .smtp import SmtpEmailProvider

__all__ = ["SmtpEmailProvider"]
