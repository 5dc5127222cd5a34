"""Jinja2 rendering of the payload files a blueprint writes.

Payload templates are ``*.j2`` files under ``stackforge/templates/``, grouped
by blueprint (``rails_stack/...``).  Rendering is strict: a variable missing
from the context raises ``jinja2.UndefinedError``, so a generated file is
never left with a silently blank setting.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

PAYLOAD_DIR = Path(__file__).parent / "templates"


def _slug(value: str) -> str:
    """``"My Shop!"`` -> ``"my-shop"``."""
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def _snake(value: str) -> str:
    """``"OrderService"`` / ``"order-service"`` -> ``"order_service"``."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=.)(?=[A-Z][a-z])", "_", value)
    return re.sub(r"[-\s]+", "_", spaced).lower()


FILTERS: dict[str, Callable[[str], str]] = {
    "slugify": _slug,
    "snake_case": _snake,
}


class TemplateRenderer:
    """Loads payload templates from *template_dir* and renders them.

    The environment keeps trailing newlines and trims block tags, so a
    ``{% for %}`` over queues or environments does not leave blank lines in
    YAML output.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else PAYLOAD_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(FILTERS)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render the template at *template_path* (relative, e.g.
        ``"rails_stack/env.j2"``) with *context*.

        Raises:
            jinja2.TemplateNotFound: If no such template exists.
            jinja2.UndefinedError: If the template uses a missing variable.
        """
        return self.env.get_template(template_path).render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template_string).render(**context)

    def has_template(self, template_path: str) -> bool:
        return (self.template_dir / template_path).is_file()

    def list_templates(self, prefix: str = "") -> list[str]:
        """Sorted POSIX paths of every ``.j2`` file under *prefix*."""
        root = self.template_dir / prefix
        if not root.is_dir():
            return []
        return sorted(path.relative_to(self.template_dir).as_posix() for path in root.rglob("*.j2"))
