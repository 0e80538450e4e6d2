"""In-memory template provider for tests and inline templates."""

from __future__ import annotations

from collections.abc import Iterable

from ...ports.provider import ITemplateProvider
from ...ports.renderer import NotificationTemplate


class InMemoryTemplateProvider(ITemplateProvider):
    """Keeps templates in a dict keyed by template id."""

    def __init__(self, templates: Iterable[NotificationTemplate] = ()) -> None:
        self._templates: dict[str, NotificationTemplate] = {t.id: t for t in templates}

    async def load_all(self) -> list[NotificationTemplate]:
        return list(self._templates.values())

    async def save(self, template: NotificationTemplate) -> None:
        self._templates[template.id] = template

    async def delete(self, template_id: str) -> None:
        self._templates.pop(template_id, None)
