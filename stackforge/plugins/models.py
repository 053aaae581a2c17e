"""Pydantic v2 models for the plugin system.

Plugin definition files are camelCase JSON; every model here accepts both
the camelCase alias and the snake_case field name.  The models are lenient
about *content* (empty names, odd versions) so that
:class:`~stackforge.plugins.validator.PluginValidator` can report problems
instead of failing at parse time.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

VALID_CATEGORIES: tuple[str, ...] = (
    "linter",
    "formatter",
    "builder",
    "framework",
    "testing",
    "utility",
    "other",
)
DEPENDENCY_TYPES: tuple[str, ...] = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)
MERGE_STRATEGIES: tuple[str, ...] = ("replace", "merge", "append", "prepend")
FILE_ENCODINGS: tuple[str, ...] = ("utf8", "base64")


class _PluginModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Plugin definition
# ---------------------------------------------------------------------------

class PluginMetadata(_PluginModel):
    name: str = Field(default="", description="Unique plugin name")
    version: str = Field(default="", description="Plugin version, MAJOR.MINOR.PATCH")
    description: str = Field(default="")
    category: Optional[str] = Field(default=None, description="One of VALID_CATEGORIES")
    author: Optional[str] = None
    homepage: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)


class TechStackCondition(_PluginModel):
    """Accepted values per tech-stack field; ``None`` means the field is not constrained."""
    framework: Optional[list[str]] = None
    builder: Optional[list[str]] = None
    language: Optional[list[str]] = None
    features: Optional[list[str]] = None


class FileCondition(_PluginModel):
    exists: Optional[list[str]] = None
    not_exists: Optional[list[str]] = Field(default=None, alias="notExists")
    patterns: Optional[list[str]] = Field(default=None, description="Glob patterns under outputDir")


class PluginCondition(_PluginModel):
    requires: Optional[list[str]] = None
    conflicts: Optional[list[str]] = None
    optional: Optional[list[str]] = None


class ActivationCondition(_PluginModel):
    """When a plugin switches on.  Present groups are AND-ed together."""
    tech_stack: Optional[TechStackCondition] = Field(default=None, alias="techStack")
    files: Optional[FileCondition] = None
    plugins: Optional[PluginCondition] = None
    custom: Any = Field(default=None, description="Declarative condition, see stackforge.plugins.conditions")

    def has_any_condition(self) -> bool:
        return (
            self.tech_stack is not None
            or self.files is not None
            or self.plugins is not None
            or self.custom is not None
        )


class PluginDependency(_PluginModel):
    name: str = ""
    version: str = ""
    type: str = Field(default="dependencies", description="package.json section")
    condition: Any = None


class PluginScript(_PluginModel):
    name: str = ""
    command: str = ""
    description: Optional[str] = None
    condition: Any = None
    priority: Optional[int] = None


class FileTemplate(_PluginModel):
    path: str = ""
    content: str = ""
    encoding: str = Field(default="utf8", description="utf8 or base64")
    merge_strategy: Optional[str] = Field(default=None, alias="mergeStrategy")
    condition: Any = None
    variables: Optional[dict[str, Any]] = None
    priority: int = Field(default=0, description="Higher priority files form the merge base")


class PluginHooks(_PluginModel):
    before_activation: Optional[str] = Field(default=None, alias="beforeActivation")
    after_activation: Optional[str] = Field(default=None, alias="afterActivation")
    before_deactivation: Optional[str] = Field(default=None, alias="beforeDeactivation")
    after_deactivation: Optional[str] = Field(default=None, alias="afterDeactivation")


class PluginConfig(_PluginModel):
    """One plugin definition file."""

    metadata: PluginMetadata = Field(default_factory=PluginMetadata)
    activation: Optional[ActivationCondition] = None
    dependencies: list[PluginDependency] = Field(default_factory=list)
    scripts: list[PluginScript] = Field(default_factory=list)
    files: list[FileTemplate] = Field(default_factory=list)
    integration: dict[str, Any] = Field(default_factory=dict)
    default_config: dict[str, Any] = Field(default_factory=dict, alias="defaultConfig")
    hooks: Optional[PluginHooks] = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def requires(self) -> list[str]:
        """Names of plugins that must be active before this one."""
        if self.activation and self.activation.plugins and self.activation.plugins.requires:
            return list(self.activation.plugins.requires)
        return []


# ---------------------------------------------------------------------------
# Evaluation context
# ---------------------------------------------------------------------------

class PluginTechStack(_PluginModel):
    """Multi-valued tech stack the activation rules are checked against."""
    framework: list[str] = Field(default_factory=list)
    builder: list[str] = Field(default_factory=list)
    language: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class PluginContext(_PluginModel):
    """Live context for one activation run.

    ``active_plugins`` only ever grows while the registry activates plugins.
    File checks go through ``file_checker`` when one is supplied, otherwise
    they look under ``output_dir``.
    """

    tech_stack: PluginTechStack = Field(default_factory=PluginTechStack, alias="techStack")
    project_name: str = Field(default="", alias="projectName")
    output_dir: str = Field(default="", alias="outputDir")
    extra_tools: list[str] = Field(default_factory=list, alias="extraTools")
    user_config: dict[str, Any] = Field(default_factory=dict, alias="userConfig")
    active_plugins: list[str] = Field(default_factory=list, alias="activePlugins")
    file_checker: Optional[Callable[[str], bool]] = Field(default=None, exclude=True)

    def has_file(self, path: str) -> bool:
        if self.file_checker is not None:
            return bool(self.file_checker(path))
        if not self.output_dir:
            return False
        return (Path(self.output_dir) / path).exists()


# ---------------------------------------------------------------------------
# Merge output
# ---------------------------------------------------------------------------

class ConflictType(str, Enum):
    DEPENDENCY = "dependency"
    SCRIPT = "script"
    FILE = "file"
    CONFIG = "config"


class Resolution(str, Enum):
    MERGE = "merge"
    OVERRIDE = "override"
    SKIP = "skip"
    ERROR = "error"


class ConflictResolution(_PluginModel):
    """Audit record of a merge collision.  Never feeds back into merging."""
    type: ConflictType
    conflicting_plugins: list[str] = Field(default_factory=list, alias="conflictingPlugins")
    resolution: Resolution
    details: dict[str, Any] = Field(default_factory=dict)


class MergedConfig(_PluginModel):
    dependencies: dict[str, PluginDependency] = Field(default_factory=dict)
    scripts: dict[str, PluginScript] = Field(default_factory=dict)
    files: list[FileTemplate] = Field(default_factory=list)
    integration: dict[str, Any] = Field(default_factory=dict)
    default_config: dict[str, Any] = Field(default_factory=dict, alias="defaultConfig")
    conflicts: list[ConflictResolution] = Field(default_factory=list)

    def unresolved_conflicts(self) -> list[ConflictResolution]:
        return [c for c in self.conflicts if c.resolution == Resolution.ERROR]


class ActivationResult(BaseModel):
    active_plugins: list[str] = Field(default_factory=list, description="Activated plugin names, in order")
    warnings: list[str] = Field(default_factory=list)


class RegistryStats(BaseModel):
    total: int = 0
    active: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
