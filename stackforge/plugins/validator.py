"""Structural validation of plugin definitions."""

from __future__ import annotations

from .models import (
    DEPENDENCY_TYPES,
    FILE_ENCODINGS,
    MERGE_STRATEGIES,
    VALID_CATEGORIES,
    PluginConfig,
    ValidationResult,
)
from .semver import is_valid_version


class PluginValidator:
    """Collects errors (plugin is rejected) and warnings (plugin is loaded)."""

    @staticmethod
    def validate(config: PluginConfig) -> ValidationResult:
        result = ValidationResult()
        PluginValidator._metadata(config, result.errors)
        PluginValidator._activation(config, result.warnings)
        PluginValidator._dependencies(config, result.errors)
        PluginValidator._scripts(config, result.warnings)
        PluginValidator._files(config, result.errors)
        return result

    @staticmethod
    def _metadata(config: PluginConfig, errors: list[str]) -> None:
        metadata = config.metadata
        if not metadata.name.strip():
            errors.append("Plugin name is required")
        if not metadata.version:
            errors.append("Plugin version is required")
        elif not is_valid_version(metadata.version):
            errors.append(f"Plugin version {metadata.version!r} is not a valid semantic version")
        if not metadata.description.strip():
            errors.append("Plugin description is required")
        if metadata.category is not None and metadata.category not in VALID_CATEGORIES:
            errors.append(f"Plugin category must be one of: {', '.join(VALID_CATEGORIES)}")

    @staticmethod
    def _activation(config: PluginConfig, warnings: list[str]) -> None:
        if config.activation is None:
            warnings.append("No activation conditions specified - plugin will always be active")
        elif not config.activation.has_any_condition():
            warnings.append("Activation block has no condition groups - plugin will always be active")

    @staticmethod
    def _dependencies(config: PluginConfig, errors: list[str]) -> None:
        for index, dep in enumerate(config.dependencies):
            if not dep.name:
                errors.append(f"Dependency {index}: name is required")
            if not dep.version:
                errors.append(f"Dependency {index}: version is required")
            if dep.type not in DEPENDENCY_TYPES:
                errors.append(f"Dependency {index}: type must be one of {', '.join(DEPENDENCY_TYPES)}")

    @staticmethod
    def _scripts(config: PluginConfig, warnings: list[str]) -> None:
        seen: set[str] = set()
        for index, script in enumerate(config.scripts):
            if not script.name:
                warnings.append(f"Script {index}: name should not be empty")
            elif script.name in seen:
                warnings.append(f"Duplicate script name: {script.name}")
            seen.add(script.name)
            if not script.command:
                warnings.append(f"Script {index}: command should not be empty")

    @staticmethod
    def _files(config: PluginConfig, errors: list[str]) -> None:
        seen: set[str] = set()
        for index, file in enumerate(config.files):
            if not file.path:
                errors.append(f"File {index}: path is required")
            elif file.path in seen:
                errors.append(f"Duplicate file path: {file.path}")
            seen.add(file.path)
            if file.merge_strategy is not None and file.merge_strategy not in MERGE_STRATEGIES:
                errors.append(f"File {index}: mergeStrategy must be one of {', '.join(MERGE_STRATEGIES)}")
            if file.encoding not in FILE_ENCODINGS:
                errors.append(f"File {index}: encoding must be one of {', '.join(FILE_ENCODINGS)}")
