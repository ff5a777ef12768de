"""TemplateRenderer — Jinja2 environment for chat-message templates.

Templates live in ``templates/`` next to this module and produce Telegram
HTML.  Autoescaping is on, so user answers and names interpolated into a
template can never inject markup; the literal tags in the templates are
left alone.
"""

from __future__ import annotations

from pathlib import Path

import jinja2

from brief_engine.constants import TEMPLATE_DIR


class TemplateRenderer:
    """Thin wrapper around a ``jinja2.Environment``.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``templates/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context).strip()
