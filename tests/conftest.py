"""Shared pytest fixtures for the stackforge test suite.

Provides reusable fixtures for:
- The packaged tool catalog, parser and template index
- Hand-built template entries and plugin definitions
- Plugin directories written to a temporary path
- Mocked ``httpx.AsyncClient`` for remote index fetches
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from stackforge.config import DATA_DIR, EngineConfig, IndexConfig
from stackforge.matcher.models import TemplateEntry, TemplatesIndex
from stackforge.parser.toolset import ToolSetParser
from stackforge.plugins.models import PluginConfig, PluginContext, PluginTechStack
from stackforge.utils import load_json


# ---------------------------------------------------------------------------
# Parser & templates
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def parser() -> ToolSetParser:
    """Parser backed by the packaged tool catalog."""
    return ToolSetParser()


@pytest.fixture
def templates_index() -> TemplatesIndex:
    """The packaged template index."""
    return TemplatesIndex.model_validate(load_json(DATA_DIR / "templates.config.json"))


@pytest.fixture
def templates(templates_index: TemplatesIndex) -> list[TemplateEntry]:
    """Entries of the packaged template index, in index order."""
    return templates_index.entries()


def make_template(name: str, **overrides: Any) -> TemplateEntry:
    """Build a ``TemplateEntry`` with permissive defaults."""
    data: dict[str, Any] = {
        "id": name,
        "name": name,
        "keywords": [],
        "matching": {"required": [], "core": {}, "optional": {}, "conflicts": []},
        "priority": 0,
    }
    data.update(overrides)
    return TemplateEntry.model_validate(data)


@pytest.fixture
def template_factory():
    """Factory fixture around :func:`make_template`."""
    return make_template


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------

def make_plugin(name: str, **sections: Any) -> PluginConfig:
    """Build a valid ``PluginConfig``; keyword arguments use the JSON (camelCase) layout."""
    data: dict[str, Any] = {
        "metadata": {
            "name": name,
            "version": "1.0.0",
            "description": f"{name} plugin",
            "category": "utility",
        },
    }
    data.update(sections)
    return PluginConfig.model_validate(data)


@pytest.fixture
def plugin_factory():
    """Factory fixture around :func:`make_plugin`."""
    return make_plugin


@pytest.fixture
def context() -> PluginContext:
    """A Vue 3 + Vite + TypeScript context with nothing on disk."""
    return PluginContext(
        tech_stack=PluginTechStack(framework=["vue3"], builder=["vite"], language=["typescript"]),
        project_name="demo-app",
        file_checker=lambda path: False,
    )


@pytest.fixture
def write_plugins(tmp_path: Path):
    """Write plugin definitions as JSON files under a temporary directory.

    Usage::

        def test_discover(write_plugins):
            root = write_plugins({"a/one.json": {...}, "two.json": {...}})
    """

    def factory(files: dict[str, Any], root: Path | None = None) -> Path:
        base = root or tmp_path / "plugins"
        for relative, content in files.items():
            target = base / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                target.write_text(content, encoding="utf-8")
            else:
                target.write_text(json.dumps(content), encoding="utf-8")
        base.mkdir(parents=True, exist_ok=True)
        return base

    return factory


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def index_config(tmp_path: Path) -> IndexConfig:
    """Index configuration pointing at the packaged index with a temp cache dir."""
    return IndexConfig(
        local_path=DATA_DIR / "templates.config.json",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def engine_config(index_config: IndexConfig) -> EngineConfig:
    """Default engine configuration with an isolated template cache."""
    return EngineConfig(index=index_config)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """Factory returning a mock ``httpx.AsyncClient`` whose ``get`` yields *payload*.

    Pass an exception instance as ``error`` to make ``get`` raise instead.
    Use with ``patch("httpx.AsyncClient", return_value=client)``.
    """

    def factory(payload: Any = None, error: Exception | None = None) -> AsyncMock:
        mock_response = MagicMock()
        mock_response.json.return_value = payload
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock()
        if error is not None:
            mock_client.get = AsyncMock(side_effect=error)
        else:
            mock_client.get = AsyncMock(return_value=mock_response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        return mock_client

    return factory
