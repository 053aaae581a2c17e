"""Plugin discovery, activation and merging.

The registry owns the set of known plugin definitions (loaded from JSON
files under one or more directories) and remembers the plugins activated by
the latest :meth:`PluginRegistry.activate` call for reporting.  Merging
always works from the request's own :class:`PluginContext`.  A fresh
definition map is built on every :meth:`discover` and swapped in under a
lock, so concurrent readers never see a half-loaded registry.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from stackforge.logger import get_logger
from stackforge.utils import load_json

from .activation import ActivationEngine
from .merger import ConfigMerger
from .models import (
    ActivationResult,
    MergedConfig,
    PluginConfig,
    PluginContext,
    RegistryStats,
)
from .resolver import PluginDependencyResolver, PluginError
from .validator import PluginValidator

logger = get_logger(__name__)


class PluginNotFoundError(PluginError, KeyError):
    """No plugin with the requested name is registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Plugin not found: {name}")

    def __str__(self) -> str:
        return f"Plugin not found: {self.name}"


class PluginRegistry:
    """Registry of plugin definitions and the currently active subset."""

    def __init__(self, plugin_paths: list[str | Path] | None = None) -> None:
        self._paths: list[Path] = []
        self._plugins: dict[str, PluginConfig] = {}
        self._active: list[str] = []
        self._lock = threading.Lock()
        self.merger = ConfigMerger()
        for path in plugin_paths or []:
            self.add_plugin_path(path)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @property
    def plugin_paths(self) -> list[Path]:
        return list(self._paths)

    def add_plugin_path(self, path: str | Path) -> None:
        candidate = Path(path)
        if candidate not in self._paths:
            self._paths.append(candidate)

    def discover(self) -> int:
        """Load every valid ``*.json`` plugin under the plugin paths.

        Returns the number of plugins now registered.  A later file with an
        already-seen plugin name replaces the earlier definition.
        """
        plugins: dict[str, PluginConfig] = {}
        for root in self._paths:
            if not root.is_dir():
                logger.debug("Plugin path %s does not exist, skipping", root)
                continue
            for file in sorted(root.rglob("*.json")):
                plugin = self._load_plugin(file)
                if plugin is None:
                    continue
                if plugin.name in plugins:
                    logger.warning("Plugin %s redefined by %s", plugin.name, file)
                plugins[plugin.name] = plugin

        with self._lock:
            self._plugins = plugins
            self._active = [name for name in self._active if name in plugins]

        logger.info("Discovered %d plugin(s) in %d path(s)", len(plugins), len(self._paths))
        return len(plugins)

    def reload(self) -> int:
        """Forget the active set and rediscover all plugins."""
        with self._lock:
            self._active = []
        return self.discover()

    @staticmethod
    def _load_plugin(path: Path) -> Optional[PluginConfig]:
        try:
            plugin = PluginConfig.model_validate(load_json(path))
        except ValidationError as exc:
            logger.warning("Skipping plugin %s: %d schema error(s): %s", path, exc.error_count(), exc)
            return None
        except (OSError, ValueError) as exc:
            logger.error("Failed to load plugin from %s: %s", path, exc)
            return None

        validation = PluginValidator.validate(plugin)
        for warning in validation.warnings:
            logger.debug("Plugin %s: %s", plugin.name or path, warning)
        if not validation.is_valid:
            logger.warning("Plugin validation failed for %s: %s", path, "; ".join(validation.errors))
            return None
        return plugin

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def available(self) -> list[PluginConfig]:
        with self._lock:
            return list(self._plugins.values())

    def get(self, name: str) -> Optional[PluginConfig]:
        with self._lock:
            return self._plugins.get(name)

    def active(self) -> list[str]:
        with self._lock:
            return list(self._active)

    def stats(self) -> RegistryStats:
        with self._lock:
            by_category: dict[str, int] = {}
            for plugin in self._plugins.values():
                category = plugin.metadata.category or "unknown"
                by_category[category] = by_category.get(category, 0) + 1
            return RegistryStats(total=len(self._plugins), active=len(self._active), by_category=by_category)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def activate(self, context: PluginContext) -> ActivationResult:
        """Activate every plugin whose conditions hold, dependencies first.

        Activated names are appended to ``context.active_plugins`` as they are
        found, so later plugins can require or conflict with earlier ones.

        Raises:
            CircularDependencyError: The ``requires`` relation has a cycle.
        """
        with self._lock:
            plugins = list(self._plugins.values())
            known = set(self._plugins)

        ordered = PluginDependencyResolver.order(plugins)
        result = ActivationResult()

        for plugin in ordered:
            for required in plugin.requires:
                if required not in known:
                    result.warnings.append(f"Plugin {plugin.name} requires unknown plugin {required}")

            if plugin.name in context.active_plugins:
                continue

            if not ActivationEngine.should_activate(plugin, context):
                blockers = self._conflicting_active(plugin, context)
                if blockers:
                    result.warnings.append(
                        f"Plugin {plugin.name} not activated: conflicts with {', '.join(blockers)}"
                    )
                continue

            self._run_hook(plugin, "before_activation")
            context.active_plugins.append(plugin.name)
            result.active_plugins.append(plugin.name)
            self._run_hook(plugin, "after_activation")

        with self._lock:
            self._active = [name for name in context.active_plugins if name in known]

        for warning in result.warnings:
            logger.warning(warning)
        logger.info("Activated plugins: %s", ", ".join(result.active_plugins) or "none")
        return result

    def deactivate(self, name: str, context: PluginContext | None = None) -> None:
        """Remove *name* from the active set (and from *context* when given)."""
        plugin = self.get(name)
        if plugin is None:
            raise PluginNotFoundError(name)

        self._run_hook(plugin, "before_deactivation")
        with self._lock:
            if name in self._active:
                self._active.remove(name)
        if context is not None and name in context.active_plugins:
            context.active_plugins.remove(name)
        self._run_hook(plugin, "after_deactivation")

    def merged_config(self, context: PluginContext) -> MergedConfig:
        """Merge the plugins active in *context*, in activation order.

        Only ``context.active_plugins`` is consulted, so several requests can
        share one registry.
        """
        with self._lock:
            definitions = dict(self._plugins)
        plugins = [definitions[name] for name in context.active_plugins if name in definitions]
        return self.merger.merge(plugins, context)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _conflicting_active(plugin: PluginConfig, context: PluginContext) -> list[str]:
        if plugin.activation is None or plugin.activation.plugins is None:
            return []
        declared = plugin.activation.plugins.conflicts or []
        return [name for name in declared if name in context.active_plugins]

    @staticmethod
    def _run_hook(plugin: PluginConfig, hook: str) -> None:
        action = getattr(plugin.hooks, hook, None) if plugin.hooks else None
        if action:
            logger.info("Plugin %s %s hook: %s", plugin.name, hook, action)
