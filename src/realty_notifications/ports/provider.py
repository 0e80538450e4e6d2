"""Template provider port for external template storage."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .renderer import NotificationTemplate


@runtime_checkable
class ITemplateProvider(Protocol):
    """
    Protocol for loading and persisting templates outside the process.

    Implementations: InMemoryTemplateProvider, FileSystemTemplateProvider.
    """

    async def load_all(self) -> list[NotificationTemplate]:
        """Load every stored template definition."""
        ...

    async def save(self, template: NotificationTemplate) -> None:
        """Create or replace a stored template."""
        ...

    async def delete(self, template_id: str) -> None:
        """Remove a stored template; unknown ids are ignored."""
        ...
