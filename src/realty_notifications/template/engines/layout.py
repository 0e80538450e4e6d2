"""Jinja2 HTML layout for emails sent without a stored template."""

from __future__ import annotations

import logging
from typing import Any

from jinja2 import Environment, StrictUndefined, select_autoescape

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body style="font-family: Arial, sans-serif; color: #333333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="color: #2c3e50;">{{ title }}</h2>
    {% for paragraph in paragraphs %}<p>{{ paragraph }}</p>
    {% endfor %}
    {% if action_url %}<p><a href="{{ action_url }}" style="background-color: #3498db; \
color: #ffffff; padding: 10px 20px; text-decoration: none; border-radius: 4px;">\
{{ action_text }}</a></p>{% endif %}
    <hr style="border: none; border-top: 1px solid #eeeeee;">
    <p style="font-size: 12px; color: #888888;">{{ app_name }}</p>
  </div>
</body>
</html>
"""


class EmailLayoutRenderer:
    """
    Wraps plain notification text in a branded HTML shell.

    Values are autoescaped, so user-supplied titles and messages cannot
    inject markup.
    """

    def __init__(
        self,
        app_name: str = "RealEstate Platform",
        layout: str = DEFAULT_LAYOUT,
    ) -> None:
        self._app_name = app_name
        env = Environment(
            autoescape=select_autoescape(default_for_string=True, default=True),
            undefined=StrictUndefined,
        )
        self._template = env.from_string(layout)

    def render(
        self,
        title: str,
        message: str,
        action_url: str | None = None,
        action_text: str = "View details",
        **extra: Any,
    ) -> str:
        paragraphs = [p.strip() for p in message.split("\n\n") if p.strip()]
        return self._template.render(
            title=title,
            paragraphs=paragraphs,
            action_url=action_url,
            action_text=action_text,
            app_name=self._app_name,
            **extra,
        )
