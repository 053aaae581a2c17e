"""Decides whether a plugin should be active for a given context."""

from __future__ import annotations

import glob
from pathlib import Path

from stackforge.logger import get_logger

from . import conditions
from .models import (
    ActivationCondition,
    FileCondition,
    PluginCondition,
    PluginConfig,
    PluginContext,
    TechStackCondition,
)

logger = get_logger(__name__)

TECH_STACK_FIELDS: tuple[str, ...] = ("framework", "builder", "language", "features")


class ActivationEngine:
    """Evaluates a plugin's activation groups; all present groups must hold."""

    @staticmethod
    def should_activate(plugin: PluginConfig, context: PluginContext) -> bool:
        activation = plugin.activation
        if activation is None:
            return True

        if activation.tech_stack is not None and not ActivationEngine.check_tech_stack(
            activation.tech_stack, context
        ):
            logger.debug("Plugin %s: tech stack condition not met", plugin.name)
            return False

        if activation.files is not None and not ActivationEngine.check_files(activation.files, context):
            logger.debug("Plugin %s: file condition not met", plugin.name)
            return False

        if activation.plugins is not None and not ActivationEngine.check_plugins(
            activation.plugins, context
        ):
            logger.debug("Plugin %s: plugin condition not met", plugin.name)
            return False

        if activation.custom is not None and not conditions.check(
            activation.custom, context, f"activation condition of {plugin.name}"
        ):
            logger.debug("Plugin %s: custom condition not met", plugin.name)
            return False

        return True

    @staticmethod
    def check_tech_stack(condition: TechStackCondition, context: PluginContext) -> bool:
        for field in TECH_STACK_FIELDS:
            accepted = getattr(condition, field)
            present = getattr(context.tech_stack, field)
            # An empty side leaves the field unconstrained.
            if not accepted or not present:
                continue
            if not set(accepted) & set(present):
                return False
        return True

    @staticmethod
    def check_files(condition: FileCondition, context: PluginContext) -> bool:
        for path in condition.exists or []:
            if not context.has_file(path):
                return False
        for path in condition.not_exists or []:
            if context.has_file(path):
                return False

        if condition.patterns and context.output_dir and Path(context.output_dir).is_dir():
            for pattern in condition.patterns:
                matches = glob.glob(pattern, root_dir=context.output_dir, recursive=True)
                if not matches:
                    return False
        return True

    @staticmethod
    def check_plugins(condition: PluginCondition, context: PluginContext) -> bool:
        active = set(context.active_plugins)
        if any(name not in active for name in condition.requires or []):
            return False
        if any(name in active for name in condition.conflicts or []):
            return False
        return True

    @staticmethod
    def describe(activation: ActivationCondition | None) -> str:
        """One-line human readable summary of *activation*."""
        if activation is None:
            return "Always active"

        parts: list[str] = []
        if activation.tech_stack is not None:
            for field in TECH_STACK_FIELDS:
                values = getattr(activation.tech_stack, field)
                if values:
                    parts.append(f"{field.capitalize()}: {', '.join(values)}")
        if activation.files is not None:
            if activation.files.exists:
                parts.append(f"Requires files: {', '.join(activation.files.exists)}")
            if activation.files.not_exists:
                parts.append(f"Excludes files: {', '.join(activation.files.not_exists)}")
            if activation.files.patterns:
                parts.append(f"File patterns: {', '.join(activation.files.patterns)}")
        if activation.plugins is not None:
            if activation.plugins.requires:
                parts.append(f"Requires plugins: {', '.join(activation.plugins.requires)}")
            if activation.plugins.conflicts:
                parts.append(f"Conflicts with: {', '.join(activation.plugins.conflicts)}")
        if activation.custom is not None:
            parts.append(f"Custom condition: {activation.custom}")

        return "; ".join(parts) if parts else "Always active"
