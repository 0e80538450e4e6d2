"""Filesystem template provider: one JSON document per template."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from ...ports.provider import ITemplateProvider
from ...ports.renderer import NotificationTemplate

logger = logging.getLogger(__name__)


class FileSystemTemplateProvider(ITemplateProvider):
    """
    Loads and persists templates as ``<templates_dir>/<template_id>.json``.

    File format::

        {"id": "welcome-email", "name": "Welcome Email", "type": "WELCOME",
         "channel": "EMAIL", "subject": "Welcome to {{appName}}!",
         "body": "...", "variables": ["userName"], "isActive": true}

    Malformed files are logged and skipped so one bad definition does not
    prevent the rest from loading.
    """

    def __init__(self, templates_dir: Path | str) -> None:
        self.templates_dir = Path(templates_dir)

    async def load_all(self) -> list[NotificationTemplate]:
        return await asyncio.to_thread(self._load_all)

    async def save(self, template: NotificationTemplate) -> None:
        await asyncio.to_thread(self._write, template)

    async def delete(self, template_id: str) -> None:
        await asyncio.to_thread(self._path_for(template_id).unlink, missing_ok=True)

    def _load_all(self) -> list[NotificationTemplate]:
        if not self.templates_dir.is_dir():
            logger.info(f"Template directory {self.templates_dir} does not exist, skipping")
            return []
        templates: list[NotificationTemplate] = []
        for path in sorted(self.templates_dir.glob("*.json")):
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                templates.append(NotificationTemplate.model_validate(raw))
            except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
                logger.error(f"Skipping malformed template file {path.name}: {e}")
        logger.info(f"Loaded {len(templates)} templates from {self.templates_dir}")
        return templates

    def _write(self, template: NotificationTemplate) -> None:
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(template.to_wire(), indent=2, ensure_ascii=False)
        self._path_for(template.id).write_text(payload + "\n", encoding="utf-8")

    def _path_for(self, template_id: str) -> Path:
        if not template_id or "/" in template_id or "\\" in template_id or template_id.startswith("."):
            raise ValueError(f"Invalid template id for file storage: {template_id!r}")
        return self.templates_dir / f"{template_id}.json"
