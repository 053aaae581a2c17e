"""Unit tests for plugin discovery and activation (stackforge.plugins.registry)."""

from __future__ import annotations

import json
import logging

import pytest

from stackforge.config import DATA_DIR
from stackforge.plugins.models import ConflictType, PluginContext, PluginTechStack
from stackforge.plugins.registry import PluginNotFoundError, PluginRegistry
from stackforge.plugins.resolver import CircularDependencyError, PluginError


def _definition(name: str, category: str = "utility", **sections) -> dict:
    data = {
        "metadata": {"name": name, "version": "1.0.0", "description": f"{name} plugin", "category": category},
    }
    data.update(sections)
    return data


@pytest.fixture
def packaged_registry() -> PluginRegistry:
    registry = PluginRegistry([DATA_DIR / "plugins"])
    registry.discover()
    return registry


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestDiscovery:
    @pytest.mark.unit
    def test_discovers_nested_files(self, write_plugins):
        root = write_plugins({"a/one.json": _definition("one"), "two.json": _definition("two", "linter")})
        registry = PluginRegistry([root])

        assert registry.discover() == 2
        assert {p.name for p in registry.available()} == {"one", "two"}
        assert registry.get("two").metadata.category == "linter"

    @pytest.mark.unit
    def test_invalid_files_skipped(self, write_plugins, caplog):
        root = write_plugins(
            {
                "good.json": _definition("good"),
                "syntax.json": "{ nope",
                "schema.json": {"metadata": "not-an-object"},
                "semantic.json": {"metadata": {"name": "no-version", "description": "x"}},
            }
        )
        registry = PluginRegistry([root])

        with caplog.at_level(logging.WARNING, logger="stackforge"):
            assert registry.discover() == 1

        assert registry.get("good") is not None
        assert registry.get("no-version") is None
        assert "Plugin validation failed" in caplog.text

    @pytest.mark.unit
    def test_later_definition_replaces_earlier(self, write_plugins):
        root = write_plugins(
            {
                "a.json": _definition("dup", integration={"from": "a"}),
                "b.json": _definition("dup", integration={"from": "b"}),
            }
        )
        registry = PluginRegistry([root])
        registry.discover()
        assert registry.get("dup").integration == {"from": "b"}

    @pytest.mark.unit
    def test_missing_path_is_ignored(self, tmp_path):
        registry = PluginRegistry([tmp_path / "nowhere"])
        assert registry.discover() == 0

    @pytest.mark.unit
    def test_add_plugin_path_dedupes(self, tmp_path):
        registry = PluginRegistry([tmp_path])
        registry.add_plugin_path(tmp_path)
        registry.add_plugin_path(str(tmp_path))
        assert registry.plugin_paths == [tmp_path]

    @pytest.mark.unit
    def test_reload_picks_up_new_files(self, write_plugins):
        root = write_plugins({"one.json": _definition("one")})
        registry = PluginRegistry([root])
        registry.discover()

        write_plugins({"two.json": _definition("two")})
        assert registry.reload() == 2

    @pytest.mark.unit
    def test_stats(self, packaged_registry):
        stats = packaged_registry.stats()
        assert stats.total == 7
        assert stats.active == 0
        assert stats.by_category == {"linter": 1, "formatter": 1, "utility": 2, "builder": 1, "testing": 2}


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------


class TestActivation:
    @pytest.mark.unit
    def test_packaged_plugins_for_vue_vite(self, packaged_registry, context):
        result = packaged_registry.activate(context)

        assert result.active_plugins == ["eslint", "prettier", "husky", "lint-staged", "typescript", "vitest"]
        assert context.active_plugins == result.active_plugins
        assert packaged_registry.active() == result.active_plugins
        assert packaged_registry.stats().active == 6

    @pytest.mark.unit
    def test_packaged_plugins_for_react_webpack(self, packaged_registry):
        ctx = PluginContext(
            tech_stack=PluginTechStack(framework=["react"], builder=["webpack"], language=["javascript"]),
            user_config={"noGitHooks": True},
            file_checker=lambda path: False,
        )

        result = packaged_registry.activate(ctx)

        assert result.active_plugins == ["eslint", "prettier", "jest"]

    @pytest.mark.unit
    def test_user_config_can_switch_off_eslint(self, packaged_registry, context):
        context.user_config["eslint"] = False
        result = packaged_registry.activate(context)
        assert "eslint" not in result.active_plugins
        assert "prettier" not in result.active_plugins
        assert "lint-staged" not in result.active_plugins

    @pytest.mark.unit
    def test_requirement_activated_first_regardless_of_file_order(self, write_plugins, context):
        root = write_plugins(
            {
                "a.json": _definition("addon", activation={"plugins": {"requires": ["base"]}}),
                "z.json": _definition("base"),
            }
        )
        registry = PluginRegistry([root])
        registry.discover()

        assert registry.activate(context).active_plugins == ["base", "addon"]

    @pytest.mark.unit
    def test_conflict_blocks_later_plugin_with_warning(self, write_plugins, context):
        root = write_plugins(
            {
                "a.json": _definition("eslint"),
                "b.json": _definition("tslint", activation={"plugins": {"conflicts": ["eslint"]}}),
            }
        )
        registry = PluginRegistry([root])
        registry.discover()

        result = registry.activate(context)

        assert result.active_plugins == ["eslint"]
        assert result.warnings == ["Plugin tslint not activated: conflicts with eslint"]

    @pytest.mark.unit
    def test_unknown_requirement_warns(self, write_plugins, context):
        root = write_plugins({"a.json": _definition("addon", activation={"plugins": {"requires": ["ghost"]}})})
        registry = PluginRegistry([root])
        registry.discover()

        result = registry.activate(context)

        assert result.active_plugins == []
        assert result.warnings == ["Plugin addon requires unknown plugin ghost"]

    @pytest.mark.unit
    def test_cycle_raises(self, write_plugins, context):
        root = write_plugins(
            {
                "a.json": _definition("A", activation={"plugins": {"requires": ["B"]}}),
                "b.json": _definition("B", activation={"plugins": {"requires": ["A"]}}),
            }
        )
        registry = PluginRegistry([root])
        registry.discover()

        with pytest.raises(CircularDependencyError):
            registry.activate(context)

    @pytest.mark.unit
    def test_already_active_plugins_are_skipped(self, write_plugins):
        root = write_plugins({"a.json": _definition("one")})
        registry = PluginRegistry([root])
        registry.discover()
        ctx = PluginContext(active_plugins=["one"])

        result = registry.activate(ctx)

        assert result.active_plugins == []
        assert ctx.active_plugins == ["one"]
        assert registry.active() == ["one"]

    @pytest.mark.unit
    def test_hooks_are_logged(self, packaged_registry, context, caplog):
        with caplog.at_level(logging.INFO, logger="stackforge"):
            packaged_registry.activate(context)
        assert "eslint after_activation hook: log:eslint-ready" in caplog.text

    @pytest.mark.unit
    def test_deactivate(self, packaged_registry, context):
        packaged_registry.activate(context)

        packaged_registry.deactivate("vitest", context)

        assert "vitest" not in packaged_registry.active()
        assert "vitest" not in context.active_plugins

    @pytest.mark.unit
    def test_deactivate_unknown(self, packaged_registry):
        with pytest.raises(PluginNotFoundError) as exc_info:
            packaged_registry.deactivate("missing")
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, PluginError)
        assert str(exc_info.value) == "Plugin not found: missing"


# ---------------------------------------------------------------------------
# Merged configuration
# ---------------------------------------------------------------------------


class TestMergedConfig:
    @pytest.mark.unit
    def test_packaged_merge_for_vue_vite(self, packaged_registry, context):
        packaged_registry.activate(context)

        merged = packaged_registry.merged_config(context)

        assert merged.dependencies["eslint"].version == "^8.57.0"
        assert "eslint-plugin-vue" in merged.dependencies
        assert "eslint-plugin-react" not in merged.dependencies
        assert "@vue/test-utils" in merged.dependencies
        assert merged.scripts["lint"].command.startswith("eslint")
        assert merged.scripts["prettier:lint"].command == "prettier --check ."
        assert merged.unresolved_conflicts() == []

        files = {file.path: file for file in merged.files}
        assert json.loads(files[".eslintrc.json"].content) == {
            "root": True,
            "extends": ["eslint:recommended", "prettier"],
        }
        assert files[".husky/pre-commit"].content == "# {{ project_name }} pre-commit\nnpx lint-staged"
        assert merged.integration["eslint"]["extends"] == ["eslint:recommended", "prettier"]
        assert merged.default_config == {"testing": {"runner": "vitest", "coverage": False}}

        kinds = {conflict.type for conflict in merged.conflicts}
        assert kinds == {ConflictType.SCRIPT, ConflictType.FILE, ConflictType.CONFIG}

    @pytest.mark.unit
    def test_merge_uses_each_context_active_plugins(self, write_plugins):
        root = write_plugins(
            {
                "vue.json": _definition(
                    "vue-only",
                    activation={"techStack": {"framework": ["vue3"]}},
                    dependencies=[{"name": "vue-dep", "version": "^1.0.0"}],
                ),
                "react.json": _definition(
                    "react-only",
                    activation={"techStack": {"framework": ["react"]}},
                    dependencies=[{"name": "react-dep", "version": "^1.0.0"}],
                ),
            }
        )
        registry = PluginRegistry([root])
        registry.discover()
        vue_context = PluginContext(tech_stack=PluginTechStack(framework=["vue3"]))
        react_context = PluginContext(tech_stack=PluginTechStack(framework=["react"]))

        registry.activate(vue_context)
        registry.activate(react_context)

        assert vue_context.active_plugins == ["vue-only"]
        assert list(registry.merged_config(vue_context).dependencies) == ["vue-dep"]
        assert list(registry.merged_config(react_context).dependencies) == ["react-dep"]
        assert registry.active() == ["react-only"]

    @pytest.mark.unit
    def test_merge_without_activation_is_empty(self, packaged_registry, context):
        merged = packaged_registry.merged_config(context)
        assert merged.dependencies == {}
        assert merged.files == []
