"""Declarative plugin conditions.

Conditions are plain JSON data evaluated against a
:class:`~stackforge.plugins.models.PluginContext`; nothing is executed.

Grammar::

    true | false | null                 literal (null is vacuously true)
    "path.to.value"                     truthiness of a context value
    "!path.to.value"                    negated truthiness
    {"all": [cond, ...]}                every sub-condition holds
    {"any": [cond, ...]}                at least one holds
    {"not": cond}
    {"equals": [path, value]}
    {"includes": [path, value]}         list/string at path contains value
    {"in": [path, [values]]}            value at path is one of values
    {"exists": path}                    value at path is not null
    {"hasFile": relative_path}
    {"hasPlugin": name}

Path roots: ``techStack``, ``projectName``, ``outputDir``, ``extraTools``,
``userConfig``, ``activePlugins`` (snake_case spellings work too).  A missing
key below the root resolves to ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from stackforge.logger import get_logger

from .models import PluginContext

logger = get_logger(__name__)

_PATH_ROOTS: dict[str, str] = {
    "techStack": "tech_stack",
    "tech_stack": "tech_stack",
    "projectName": "project_name",
    "project_name": "project_name",
    "outputDir": "output_dir",
    "output_dir": "output_dir",
    "extraTools": "extra_tools",
    "extra_tools": "extra_tools",
    "userConfig": "user_config",
    "user_config": "user_config",
    "activePlugins": "active_plugins",
    "active_plugins": "active_plugins",
}


class ConditionError(Exception):
    """Raised when a condition does not follow the grammar."""


def resolve_path(path: str, context: PluginContext) -> Any:
    """Look up a dotted *path* in *context*."""
    if not isinstance(path, str) or not path.strip():
        raise ConditionError(f"condition path must be a non-empty string, got {path!r}")

    root, *rest = path.strip().split(".")
    if root not in _PATH_ROOTS:
        raise ConditionError(f"unknown condition path root {root!r}")

    value: Any = getattr(context, _PATH_ROOTS[root])
    for part in rest:
        if isinstance(value, BaseModel):
            value = getattr(value, part, None)
        elif isinstance(value, Mapping):
            value = value.get(part)
        else:
            return None
    return value


def _pair(operator: str, operand: Any) -> tuple[str, Any]:
    if not isinstance(operand, (list, tuple)) or len(operand) != 2:
        raise ConditionError(f"{operator!r} expects [path, value], got {operand!r}")
    return operand[0], operand[1]


def _conditions(operator: str, operand: Any) -> list[Any]:
    if not isinstance(operand, (list, tuple)):
        raise ConditionError(f"{operator!r} expects a list of conditions, got {operand!r}")
    return list(operand)


def evaluate(condition: Any, context: PluginContext) -> bool:
    """Evaluate *condition*; raises :class:`ConditionError` on malformed input."""
    if condition is None:
        return True
    if isinstance(condition, bool):
        return condition

    if isinstance(condition, str):
        text = condition.strip()
        if text.startswith("!"):
            return not bool(resolve_path(text[1:], context))
        return bool(resolve_path(text, context))

    if not isinstance(condition, Mapping) or len(condition) != 1:
        raise ConditionError(f"condition must be a literal, a path or a one-key object: {condition!r}")

    ((operator, operand),) = condition.items()

    if operator == "all":
        return all(evaluate(c, context) for c in _conditions(operator, operand))
    if operator == "any":
        return any(evaluate(c, context) for c in _conditions(operator, operand))
    if operator == "not":
        return not evaluate(operand, context)

    if operator == "equals":
        path, expected = _pair(operator, operand)
        return resolve_path(path, context) == expected
    if operator == "includes":
        path, item = _pair(operator, operand)
        container = resolve_path(path, context)
        if isinstance(container, str):
            return isinstance(item, str) and item in container
        if isinstance(container, (list, tuple, set, frozenset)):
            return item in container
        return False
    if operator == "in":
        path, options = _pair(operator, operand)
        if not isinstance(options, (list, tuple)):
            raise ConditionError(f"'in' expects a list of values, got {options!r}")
        return resolve_path(path, context) in options
    if operator == "exists":
        return resolve_path(operand, context) is not None

    if operator == "hasFile":
        if not isinstance(operand, str):
            raise ConditionError(f"'hasFile' expects a path string, got {operand!r}")
        return context.has_file(operand)
    if operator == "hasPlugin":
        if not isinstance(operand, str):
            raise ConditionError(f"'hasPlugin' expects a plugin name, got {operand!r}")
        return operand in context.active_plugins

    raise ConditionError(f"unknown condition operator {operator!r}")


def check(condition: Any, context: PluginContext, label: str = "condition") -> bool:
    """Like :func:`evaluate` but malformed conditions count as ``False``."""
    try:
        return evaluate(condition, context)
    except ConditionError as exc:
        logger.warning("Ignoring malformed %s %r: %s", label, condition, exc)
        return False
