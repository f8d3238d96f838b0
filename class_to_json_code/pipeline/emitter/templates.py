"""
Jinja2 template setup shared by the emitter and the companion writer.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jinja2

TEMPLATE_LANG = "python"
FILE_EXTENSION = "py"


def format_literal(value: Any) -> str:
    """Format a JSON-compatible value as a Python literal.

    Strings use double quotes so generated code reads like hand-written code.
    """
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_literal(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{format_literal(k)}: {format_literal(v)}" for k, v in value.items()) + "}"
    return repr(value)


class TemplateRenderer:
    """Loads the python templates and renders them by short name."""

    def __init__(self, template_dir: Path | None = None):
        if template_dir is None:
            template_dir = Path(__file__).parent.parent.parent / "templates" / TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=False,
            undefined=jinja2.StrictUndefined,
        )
        self.jinja_env.filters["literal"] = format_literal

    def render(self, name: str, **context: Any) -> str:
        """Render `<name>.py.jinja2` and strip surrounding whitespace."""
        template = self.jinja_env.get_template(f"{name}.{FILE_EXTENSION}.jinja2")
        return template.render(**context).strip()


@lru_cache(maxsize=1)
def default_renderer() -> TemplateRenderer:
    return TemplateRenderer()
