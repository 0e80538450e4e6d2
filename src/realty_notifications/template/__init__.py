"""Template registry, engines and providers."""

from __future__ import annotations

from .defaults import DEFAULT_TEMPLATES
from .engines import EmailLayoutRenderer, PlaceholderRenderer
from .providers import FileSystemTemplateProvider, InMemoryTemplateProvider
from .registry import CompiledContent, TemplateRegistry, TemplateValidation

__all__ = [
    "DEFAULT_TEMPLATES",
    "CompiledContent",
    "EmailLayoutRenderer",
    "FileSystemTemplateProvider",
    "InMemoryTemplateProvider",
    "PlaceholderRenderer",
    "TemplateRegistry",
    "TemplateValidation",
]
