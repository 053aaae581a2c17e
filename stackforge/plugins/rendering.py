"""Jinja2 rendering of merged plugin files.

Each file's content is treated as an inline Jinja2 template.  The render
context carries the project details plus the file's own ``variables``
(which win on name clashes).  Undefined names are errors, so contents that
only look like templates (Vue mustaches, JSX style objects) come through
unchanged instead of being blanked.
"""

from __future__ import annotations

import re
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from stackforge.logger import get_logger

from .models import FileTemplate, PluginContext

logger = get_logger(__name__)


class FileTemplateRenderer:
    """Renders ``FileTemplate`` contents for a given plugin context."""

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    @staticmethod
    def build_context(context: PluginContext) -> dict[str, Any]:
        """Variables every file template can use."""
        return {
            "project_name": context.project_name,
            "output_dir": context.output_dir,
            "tech_stack": context.tech_stack.model_dump(),
            "user_config": dict(context.user_config),
            "active_plugins": list(context.active_plugins),
        }

    def render_string(self, template_string: str, variables: dict[str, Any]) -> str:
        return self.env.from_string(template_string).render(**variables)

    def render_file(self, file: FileTemplate, context: PluginContext) -> str:
        """Rendered content of one file; the raw content when rendering fails."""
        if file.encoding == "base64":
            return file.content

        variables = self.build_context(context)
        variables.update(file.variables or {})
        try:
            return self.render_string(file.content, variables)
        except TemplateError as exc:
            logger.warning("Could not render %s, keeping raw content: %s", file.path, exc)
            return file.content

    def render(self, files: list[FileTemplate], context: PluginContext) -> dict[str, str]:
        """Map of path to rendered content, in file order."""
        return {file.path: self.render_file(file, context) for file in files}


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """``My App`` -> ``my-app``."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """``my-app`` or ``my_app`` -> ``MyApp``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """``MyApp`` or ``my-app`` -> ``my_app``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """``my-app`` -> ``myApp``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""
