"""Zero-dependency ``{{identifier}}`` placeholder renderer."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ...ports.renderer import CompiledTemplate, ITemplateRenderer

PLACEHOLDER_RE = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


class PlaceholderRenderer(ITemplateRenderer):
    """
    Literal substitution of ``{{name}}`` placeholders.

    Names are case-sensitive identifiers with no surrounding whitespace and
    no expressions. Missing or ``None`` values render as an empty string.
    Anything that does not match the placeholder pattern is copied through
    untouched.
    """

    def compile(self, source: str) -> CompiledTemplate:
        # Even indices are literal text, odd indices placeholder names.
        parts = PLACEHOLDER_RE.split(source)
        literals = parts[0::2]
        names = parts[1::2]

        def render(data: Mapping[str, Any]) -> str:
            chunks = [literals[0]]
            for name, literal in zip(names, literals[1:]):
                chunks.append(_stringify(data.get(name)))
                chunks.append(literal)
            return "".join(chunks)

        return render

    def placeholders(self, source: str) -> list[str]:
        return list(dict.fromkeys(PLACEHOLDER_RE.findall(source)))


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
