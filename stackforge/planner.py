"""End-to-end generation planning.

``GenerationPlanner`` ties the pieces together for one request:

    parse -> load template index -> match -> build plugin context
          -> activate plugins -> merge -> render files

The result is a :class:`GenerationPlan`; writing it to disk is left to the
caller.
"""

from __future__ import annotations

from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field
from rich.table import Table

from stackforge.config import EngineConfig
from stackforge.logger import get_logger, set_level, setup_file_logging
from stackforge.matcher.index import TemplateIndexProvider
from stackforge.matcher.models import MatchResult
from stackforge.matcher.selector import SmartMatcher, input_text
from stackforge.parser.models import ToolSet
from stackforge.parser.toolset import ToolSetParser
from stackforge.plugins.models import MergedConfig, PluginContext, PluginTechStack
from stackforge.plugins.registry import PluginRegistry
from stackforge.plugins.rendering import FileTemplateRenderer
from stackforge.utils import console, print_error, print_success, print_summary_table, print_warning

logger = get_logger(__name__)

# Feature tags derived from non-core ToolSet buckets.
FEATURE_TAGS: dict[str, str] = {
    "ui": "ui",
    "styles": "styling",
    "state": "state-management",
    "routers": "routing",
    "testing": "testing",
    "linting": "linting",
}
NON_CORE_FIELDS: tuple[str, ...] = ("ui", "styles", "state", "routers", "testing", "linting", "tools")


class GenerationPlan(BaseModel):
    """Everything needed to write a project for one request."""

    tool_set: ToolSet
    match: Optional[MatchResult] = Field(default=None, description="Fixed template, if one applies")
    strategy: Literal["template", "dynamic"] = "dynamic"
    active_plugins: list[str] = Field(default_factory=list)
    merged_config: MergedConfig = Field(default_factory=MergedConfig)
    rendered_files: dict[str, str] = Field(default_factory=dict, description="Path -> rendered content")
    index_source: str = Field(default="", description="Where the template index was loaded from")
    warnings: list[str] = Field(default_factory=list)

    def package_json_patch(self) -> dict[str, dict[str, str]]:
        """``package.json`` sections contributed by the active plugins."""
        patch: dict[str, dict[str, str]] = {}
        for dep in self.merged_config.dependencies.values():
            patch.setdefault(dep.type, {})[dep.name] = dep.version
        if self.merged_config.scripts:
            patch["scripts"] = {name: script.command for name, script in self.merged_config.scripts.items()}
        return patch


class GenerationPlanner:
    """Plans project generation from a stack request."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        registry: PluginRegistry | None = None,
        index_provider: TemplateIndexProvider | None = None,
        parser: ToolSetParser | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        if self.config.log_file is not None:
            setup_file_logging(self.config.log_file)
        set_level(self.config.log_level)

        self.parser = parser or ToolSetParser(catalog_path=self.config.catalog_path)
        self.index_provider = index_provider or TemplateIndexProvider(self.config.index)
        if registry is None:
            registry = PluginRegistry(self.config.plugin_dirs)
            registry.discover()
        self.registry = registry
        self.renderer = FileTemplateRenderer()

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @staticmethod
    def extract_features(tool_set: ToolSet) -> list[str]:
        """Feature tags plus every non-core tool id, without duplicates."""
        features: list[str] = []
        for field, tag in FEATURE_TAGS.items():
            if getattr(tool_set, field) and tag not in features:
                features.append(tag)
        if tool_set.has("prettier") and "formatting" not in features:
            features.append("formatting")
        for field in NON_CORE_FIELDS:
            for tool in getattr(tool_set, field):
                if tool not in features:
                    features.append(tool)
        return features

    def build_context(
        self,
        tool_set: ToolSet,
        project_name: str = "my-project",
        output_dir: str = "",
        extra_tools: list[str] | None = None,
        user_config: dict[str, Any] | None = None,
        has_file: Callable[[str], bool] | None = None,
    ) -> PluginContext:
        return PluginContext(
            tech_stack=PluginTechStack(
                framework=list(tool_set.frameworks),
                builder=list(tool_set.builders),
                language=list(tool_set.languages),
                features=self.extract_features(tool_set),
            ),
            project_name=project_name,
            output_dir=output_dir,
            extra_tools=list(extra_tools or []),
            user_config=dict(user_config or {}),
            file_checker=has_file,
        )

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def plan(
        self,
        tool_input: Any,
        project_name: str = "my-project",
        output_dir: str = "",
        extra_tools: list[str] | None = None,
        user_config: dict[str, Any] | None = None,
        has_file: Callable[[str], bool] | None = None,
    ) -> GenerationPlan:
        """Build a :class:`GenerationPlan` for *tool_input*.

        Raises:
            CircularDependencyError: The plugin ``requires`` graph has a cycle.
        """
        tool_set = self.parser.parse(tool_input)
        raw_input = input_text(tool_input)

        loaded = await self.index_provider.get_index()
        match = SmartMatcher.match_template(tool_set, raw_input, loaded.index.entries(), self.config.matcher)

        context = self.build_context(tool_set, project_name, output_dir, extra_tools, user_config, has_file)
        activation = self.registry.activate(context)
        merged = self.registry.merged_config(context)
        rendered = self.renderer.render(merged.files, context)

        warnings = [*tool_set.metadata.warnings, *tool_set.metadata.conflicts, *activation.warnings]
        warnings.extend(
            f"Unresolved {c.type.value} conflict: {c.details}" for c in merged.unresolved_conflicts()
        )

        strategy = "template" if match is not None else "dynamic"
        logger.info(
            "Plan for %r: strategy=%s template=%s plugins=%s",
            raw_input,
            strategy,
            match.template.name if match else "-",
            ", ".join(activation.active_plugins) or "-",
        )

        return GenerationPlan(
            tool_set=tool_set,
            match=match,
            strategy=strategy,
            active_plugins=list(context.active_plugins),
            merged_config=merged,
            rendered_files=rendered,
            index_source=loaded.source.value,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def print_summary(plan: GenerationPlan) -> None:
        """Print the plan as Rich tables."""
        summary = {
            "Strategy": plan.strategy,
            "Template": plan.match.template.name if plan.match else "-",
            "Match type": plan.match.match_type.value if plan.match else "-",
            "Confidence": f"{plan.match.confidence:.0%}" if plan.match else "-",
            "Tools": ", ".join(plan.tool_set.all) or "-",
            "Auto-completed": ", ".join(plan.tool_set.metadata.auto_completed) or "-",
            "Active plugins": ", ".join(plan.active_plugins) or "-",
            "Files": str(len(plan.rendered_files)),
            "Index source": plan.index_source or "-",
        }
        print_summary_table(summary, title="Generation Plan")

        if plan.merged_config.dependencies:
            table = Table(title="Dependencies", show_header=True, header_style="bold cyan")
            table.add_column("Package", style="bold")
            table.add_column("Version")
            table.add_column("Type")
            for dep in plan.merged_config.dependencies.values():
                table.add_row(dep.name, dep.version, dep.type)
            console.print(table)
            console.print()

        for warning in plan.warnings:
            if warning.startswith("Unresolved "):
                print_error(warning)
            else:
                print_warning(warning)
        if not plan.warnings:
            print_success(f"Plan ready: {len(plan.active_plugins)} plugin(s), {len(plan.rendered_files)} file(s)")
