"""Template engines."""

from __future__ import annotations

from .layout import EmailLayoutRenderer
from .mustache import PlaceholderRenderer

__all__ = ["EmailLayoutRenderer", "PlaceholderRenderer"]
