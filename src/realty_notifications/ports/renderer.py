"""Template definition and renderer port."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import Field

from ..delivery import NotificationChannel
from ..models import NotificationType, WireModel

CompiledTemplate = Callable[[Mapping[str, Any]], str]


class NotificationTemplate(WireModel):
    """Template definition, one per (type, channel) pair.

    Serialized as ``{id, name, type, channel, subject?, body, variables,
    isActive}`` when stored in a template directory.
    """

    id: str = Field(min_length=1)
    name: str
    type: NotificationType
    channel: NotificationChannel
    subject: str | None = None
    body: str
    variables: tuple[str, ...] = ()
    is_active: bool = True
    description: str | None = None


@runtime_checkable
class ITemplateRenderer(Protocol):
    """Protocol for turning template source into a render function."""

    def compile(self, source: str) -> CompiledTemplate:
        """Compile ``source`` once; the result is called per render."""
        ...

    def placeholders(self, source: str) -> list[str]:
        """Variable names referenced by ``source``, in order of first use."""
        ...
