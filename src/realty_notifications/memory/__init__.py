"""In-memory provider for tests and local development."""

from __future__ import annotations

from .fake import InMemoryProvider, SentMessage

__all__ = ["InMemoryProvider", "SentMessage"]
