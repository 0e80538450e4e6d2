"""Template registry: lookup, validation and memoized compilation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..delivery import NotificationChannel
from ..exceptions import MissingVariablesError, TemplateNotFoundError
from ..models import NotificationType
from ..ports.provider import ITemplateProvider
from ..ports.renderer import CompiledTemplate, ITemplateRenderer, NotificationTemplate
from .engines.mustache import PlaceholderRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledContent:
    """Result of rendering one template against one data mapping."""

    content: str
    subject: str | None = None


@dataclass(frozen=True)
class TemplateValidation:
    is_valid: bool
    missing_variables: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _CompiledPair:
    body: CompiledTemplate
    subject: CompiledTemplate | None


class TemplateRegistry:
    """
    Registry of notification templates keyed by id and by (type, channel).

    Starts from a static default set; ``load()`` overlays definitions from
    the provider. Compiled render functions are memoized per template id and
    dropped whenever that id is saved or deleted.
    """

    def __init__(
        self,
        provider: ITemplateProvider | None = None,
        renderer: ITemplateRenderer | None = None,
        defaults: Iterable[NotificationTemplate] = (),
    ) -> None:
        self._provider = provider
        self._renderer = renderer or PlaceholderRenderer()
        self._templates: dict[str, NotificationTemplate] = {t.id: t for t in defaults}
        self._compiled: dict[str, _CompiledPair] = {}

    async def load(self) -> int:
        """Overlay templates from the provider; returns how many were loaded."""
        if self._provider is None:
            return 0
        loaded = await self._provider.load_all()
        for template in loaded:
            self._templates[template.id] = template
            self._compiled.pop(template.id, None)
        logger.info(f"Template registry loaded {len(loaded)} stored templates")
        return len(loaded)

    def get(self, template_id: str) -> NotificationTemplate | None:
        return self._templates.get(template_id)

    def find(
        self, notification_type: NotificationType, channel: NotificationChannel
    ) -> NotificationTemplate | None:
        """Active template for a (type, channel) pair, if any."""
        for template in self._templates.values():
            if (
                template.is_active
                and template.type is notification_type
                and template.channel is channel
            ):
                return template
        return None

    def list_templates(
        self,
        channel: NotificationChannel | None = None,
        *,
        active_only: bool = False,
    ) -> list[NotificationTemplate]:
        return [
            t
            for t in self._templates.values()
            if (channel is None or t.channel is channel)
            and (t.is_active or not active_only)
        ]

    def compile(self, template_id: str, data: Mapping[str, Any]) -> CompiledContent:
        """
        Substitute ``data`` into the template's subject and body.

        Unresolved placeholders render empty; use ``validate`` first when
        that matters.

        Raises:
            TemplateNotFoundError: unknown or inactive template id.
        """
        template = self._active(template_id)
        pair = self._compiled.get(template_id)
        if pair is None:
            pair = _CompiledPair(
                body=self._renderer.compile(template.body),
                subject=(
                    self._renderer.compile(template.subject)
                    if template.subject is not None
                    else None
                ),
            )
            self._compiled[template_id] = pair
        return CompiledContent(
            content=pair.body(data),
            subject=pair.subject(data) if pair.subject is not None else None,
        )

    def validate(self, template_id: str, data: Mapping[str, Any]) -> TemplateValidation:
        """Check declared variables are present and not ``None``.

        Unknown ids are reported invalid with nothing missing.
        """
        template = self._templates.get(template_id)
        if template is None:
            return TemplateValidation(is_valid=False)
        missing = [name for name in template.variables if data.get(name) is None]
        return TemplateValidation(is_valid=not missing, missing_variables=missing)

    def render(self, template_id: str, data: Mapping[str, Any]) -> CompiledContent:
        """Strict render: validate, then compile.

        Raises:
            TemplateNotFoundError: unknown or inactive template id.
            MissingVariablesError: a declared variable is absent.
        """
        self._active(template_id)
        validation = self.validate(template_id, data)
        if not validation.is_valid:
            raise MissingVariablesError(template_id, validation.missing_variables)
        return self.compile(template_id, data)

    async def save(self, template: NotificationTemplate) -> None:
        """Create or replace a template and persist it through the provider."""
        if self._provider is not None:
            await self._provider.save(template)
        self._templates[template.id] = template
        self._compiled.pop(template.id, None)
        logger.info(f"Saved template {template.id}")

    async def delete(self, template_id: str) -> bool:
        if template_id not in self._templates:
            return False
        if self._provider is not None:
            await self._provider.delete(template_id)
        del self._templates[template_id]
        self._compiled.pop(template_id, None)
        logger.info(f"Deleted template {template_id}")
        return True

    def _active(self, template_id: str) -> NotificationTemplate:
        template = self._templates.get(template_id)
        if template is None or not template.is_active:
            if template is not None:
                logger.warning(f"Template {template_id} is inactive")
            raise TemplateNotFoundError(template_id)
        return template
