"""stackforge plugin system.

Plugins are JSON definitions that contribute dependencies, scripts, files
and tool configuration when their activation conditions hold.

Usage::

    from stackforge.plugins import PluginContext, PluginRegistry, PluginTechStack

    registry = PluginRegistry(["./plugins"])
    registry.discover()
    context = PluginContext(tech_stack=PluginTechStack(framework=["vue3"]), project_name="demo")
    registry.activate(context)
    merged = registry.merged_config(context)
    print(merged.dependencies, merged.unresolved_conflicts())
"""

from stackforge.plugins.activation import ActivationEngine
from stackforge.plugins.conditions import ConditionError
from stackforge.plugins.merger import ConfigMerger
from stackforge.plugins.models import (
    ActivationResult,
    ConflictResolution,
    FileTemplate,
    MergedConfig,
    PluginConfig,
    PluginContext,
    PluginTechStack,
)
from stackforge.plugins.registry import PluginNotFoundError, PluginRegistry
from stackforge.plugins.rendering import FileTemplateRenderer
from stackforge.plugins.resolver import (
    CircularDependencyError,
    PluginDependencyResolver,
    PluginError,
)
from stackforge.plugins.validator import PluginValidator

__all__ = [
    "PluginRegistry",
    "PluginNotFoundError",
    "PluginError",
    "CircularDependencyError",
    "ConditionError",
    "ActivationEngine",
    "PluginDependencyResolver",
    "ConfigMerger",
    "PluginValidator",
    "FileTemplateRenderer",
    "PluginConfig",
    "PluginContext",
    "PluginTechStack",
    "FileTemplate",
    "MergedConfig",
    "ConflictResolution",
    "ActivationResult",
]
