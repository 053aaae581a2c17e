"""Merges the contributions of the active plugins into one ``MergedConfig``.

Collisions are resolved deterministically and every collision leaves a
:class:`~stackforge.plugins.models.ConflictResolution` audit record on the
result.  Nothing here raises for bad plugin data: malformed conditions drop
the item they guard, unreconcilable versions keep the first requirement.
"""

from __future__ import annotations

import copy
import json
from typing import Any

from stackforge.logger import get_logger
from stackforge.utils import deep_merge

from . import conditions, semver
from .models import (
    ConflictResolution,
    ConflictType,
    FileTemplate,
    MergedConfig,
    PluginConfig,
    PluginContext,
    Resolution,
)

logger = get_logger(__name__)


class ConfigMerger:
    """Combines dependencies, scripts, files, integration and default config."""

    def merge(self, plugins: list[PluginConfig], context: PluginContext) -> MergedConfig:
        """Merge *plugins* in the given order."""
        merged = MergedConfig()

        self._merge_dependencies(plugins, context, merged)
        self._merge_scripts(plugins, context, merged)
        self._merge_files(plugins, context, merged)
        merged.integration = self._merge_section(plugins, "integration", merged.conflicts)
        merged.default_config = self._merge_section(plugins, "default_config", merged.conflicts)

        self._report(merged.conflicts)
        return merged

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def _merge_dependencies(
        self, plugins: list[PluginConfig], context: PluginContext, merged: MergedConfig
    ) -> None:
        owners: dict[str, str] = {}
        for plugin in plugins:
            for dep in plugin.dependencies:
                if not conditions.check(dep.condition, context, f"condition of dependency {dep.name!r}"):
                    continue

                existing = merged.dependencies.get(dep.name)
                if existing is None:
                    merged.dependencies[dep.name] = dep
                    owners[dep.name] = plugin.name
                    continue

                resolved = semver.pick_stricter(existing.version, dep.version)
                if resolved is None:
                    merged.conflicts.append(
                        ConflictResolution(
                            type=ConflictType.DEPENDENCY,
                            conflicting_plugins=[owners[dep.name], plugin.name],
                            resolution=Resolution.ERROR,
                            details={"dependency": dep.name, "versions": [existing.version, dep.version]},
                        )
                    )
                    continue

                merged.dependencies[dep.name] = dep.model_copy(update={"version": resolved})
                if resolved != existing.version:
                    owners[dep.name] = plugin.name

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    def _merge_scripts(
        self, plugins: list[PluginConfig], context: PluginContext, merged: MergedConfig
    ) -> None:
        for plugin in plugins:
            for script in plugin.scripts:
                if not conditions.check(script.condition, context, f"condition of script {script.name!r}"):
                    continue

                if script.name not in merged.scripts:
                    merged.scripts[script.name] = script
                    continue

                new_name = f"{plugin.name}:{script.name}"
                suffix = 2
                while new_name in merged.scripts:
                    new_name = f"{plugin.name}:{script.name}:{suffix}"
                    suffix += 1
                merged.scripts[new_name] = script
                merged.conflicts.append(
                    ConflictResolution(
                        type=ConflictType.SCRIPT,
                        conflicting_plugins=[plugin.name],
                        resolution=Resolution.MERGE,
                        details={"original_name": script.name, "new_name": new_name},
                    )
                )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def _merge_files(
        self, plugins: list[PluginConfig], context: PluginContext, merged: MergedConfig
    ) -> None:
        groups: dict[str, list[tuple[str, FileTemplate]]] = {}
        for plugin in plugins:
            for file in plugin.files:
                if not conditions.check(file.condition, context, f"condition of file {file.path!r}"):
                    continue
                groups.setdefault(file.path, []).append((plugin.name, file))

        for path, entries in groups.items():
            if len(entries) == 1:
                merged.files.append(entries[0][1])
                continue

            # sorted() is stable: equal priorities keep contribution order.
            ordered = sorted(entries, key=lambda entry: entry[1].priority, reverse=True)
            merged.files.append(self.merge_file_templates([file for _, file in ordered]))
            merged.conflicts.append(
                ConflictResolution(
                    type=ConflictType.FILE,
                    conflicting_plugins=[name for name, _ in ordered],
                    resolution=Resolution.MERGE,
                    details={"path": path, "template_count": len(ordered)},
                )
            )

    def merge_file_templates(self, templates: list[FileTemplate]) -> FileTemplate:
        """Fold *templates* onto the first one, each applying its own merge strategy."""
        base = templates[0]
        content = base.content

        for template in templates[1:]:
            strategy = template.merge_strategy or "merge"
            if strategy == "append":
                content = f"{content}\n{template.content}"
            elif strategy == "prepend":
                content = f"{template.content}\n{content}"
            elif strategy == "replace":
                content = template.content
            else:
                content = self.merge_content(content, template.content)

        variables: dict[str, Any] = {}
        for template in templates:
            variables = deep_merge(variables, template.variables)
        has_variables = any(t.variables is not None for t in templates)

        return base.model_copy(
            update={"content": content, "variables": variables if has_variables else None}
        )

    @staticmethod
    def merge_content(first: str, second: str) -> str:
        """Deep-merge two JSON documents, or join the texts with a newline."""
        try:
            left = json.loads(first)
            right = json.loads(second)
        except ValueError:
            return f"{first}\n{second}"
        return json.dumps(deep_merge(left, right), indent=2)

    # ------------------------------------------------------------------
    # Integration / default config
    # ------------------------------------------------------------------

    def _merge_section(
        self, plugins: list[PluginConfig], attribute: str, conflicts: list[ConflictResolution]
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        owners: dict[str, str] = {}
        for plugin in plugins:
            for key, value in getattr(plugin, attribute).items():
                if key not in result:
                    result[key] = copy.deepcopy(value)
                    owners[key] = plugin.name
                    continue
                result[key] = deep_merge(result[key], value)
                conflicts.append(
                    ConflictResolution(
                        type=ConflictType.CONFIG,
                        conflicting_plugins=[owners[key], plugin.name],
                        resolution=Resolution.MERGE,
                        details={"section": attribute, "key": key},
                    )
                )
        return result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def _report(conflicts: list[ConflictResolution]) -> None:
        for conflict in conflicts:
            if conflict.resolution == Resolution.ERROR:
                logger.error(
                    "Unresolved %s conflict between %s: %s",
                    conflict.type.value,
                    ", ".join(conflict.conflicting_plugins),
                    conflict.details,
                )
            else:
                logger.warning(
                    "%s conflict resolved by %s (%s): %s",
                    conflict.type.value.capitalize(),
                    conflict.resolution.value,
                    ", ".join(conflict.conflicting_plugins),
                    conflict.details,
                )
