"""Unit tests for utility functions (stackforge.utils).

Tests cover:
- split_tokens
- deep_merge
- load_json / load_json_safe / save_json (use tmp_path)
- Rich output helpers (print_summary_table, etc.)
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackforge.utils import (
    deep_merge,
    load_json,
    load_json_safe,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
    split_tokens,
)


# ---------------------------------------------------------------------------
# split_tokens
# ---------------------------------------------------------------------------


class TestSplitTokens:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("vue3+vite", ["vue3", "vite"]),
            ("React, Webpack ;  TS", ["React", "Webpack", "TS"]),
            ("a|b&c", ["a", "b", "c"]),
            ("electron-vite", ["electron-vite"]),
            ("  ", []),
            ("", []),
        ],
    )
    def test_split(self, text, expected):
        assert split_tokens(text) == expected


# ---------------------------------------------------------------------------
# deep_merge
# ---------------------------------------------------------------------------


class TestDeepMerge:
    @pytest.mark.unit
    def test_nested_dicts(self):
        assert deep_merge({"a": {"x": 1}, "b": 1}, {"a": {"y": 2}}) == {"a": {"x": 1, "y": 2}, "b": 1}

    @pytest.mark.unit
    def test_lists_concatenate(self):
        assert deep_merge({"extends": ["a"]}, {"extends": ["b"]}) == {"extends": ["a", "b"]}

    @pytest.mark.unit
    def test_scalar_source_wins(self):
        assert deep_merge({"semi": True}, {"semi": False}) == {"semi": False}
        assert deep_merge({"a": {"x": 1}}, {"a": 3}) == {"a": 3}

    @pytest.mark.unit
    def test_none_source_keeps_target(self):
        assert deep_merge({"a": 1}, None) == {"a": 1}
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    @pytest.mark.unit
    def test_list_replaces_non_list(self):
        assert deep_merge({"a": "x"}, {"a": ["y"]}) == {"a": ["y"]}

    @pytest.mark.unit
    def test_arguments_not_mutated(self):
        target = {"a": {"list": [1]}}
        source = {"a": {"list": [2]}}
        result = deep_merge(target, source)
        result["a"]["list"].append(3)
        assert target == {"a": {"list": [1]}}
        assert source == {"a": {"list": [2]}}


# ---------------------------------------------------------------------------
# load_json / save_json
# ---------------------------------------------------------------------------


class TestJsonIO:
    @pytest.mark.unit
    def test_load_json_dict(self, tmp_path: Path):
        filepath = tmp_path / "test.json"
        filepath.write_text(json.dumps({"key": "value"}), encoding="utf-8")
        assert load_json(filepath) == {"key": "value"}

    @pytest.mark.unit
    def test_load_json_wraps_non_objects(self, tmp_path: Path):
        filepath = tmp_path / "list.json"
        filepath.write_text("[1, 2]", encoding="utf-8")
        assert load_json(filepath) == {"_root": [1, 2]}

    @pytest.mark.unit
    def test_load_json_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")

    @pytest.mark.unit
    def test_load_json_invalid_raises(self, tmp_path: Path):
        filepath = tmp_path / "bad.json"
        filepath.write_text("{ nope", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(filepath)

    @pytest.mark.unit
    def test_load_json_safe(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{ nope", encoding="utf-8")
        assert load_json_safe(bad) is None
        assert load_json_safe(tmp_path / "missing.json") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_json_creates_parents(self, tmp_path: Path):
        filepath = tmp_path / "deep" / "nested" / "output.json"

        await save_json({"name": "café", "path": Path("x")}, filepath)

        assert json.loads(filepath.read_text(encoding="utf-8")) == {"name": "café", "path": "x"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_json_list(self, tmp_path: Path):
        filepath = tmp_path / "output.json"
        await save_json([1, 2, 3], filepath)
        assert json.loads(filepath.read_text(encoding="utf-8")) == [1, 2, 3]


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichOutputHelpers:
    @pytest.mark.unit
    def test_print_summary_table(self):
        # Should not raise
        print_summary_table({"Key1": "Value1", "Key2": 2}, title="Test Summary")

    @pytest.mark.unit
    def test_print_success(self):
        print_success("Plan ready")

    @pytest.mark.unit
    def test_print_error(self):
        print_error("Something failed")

    @pytest.mark.unit
    def test_print_warning(self):
        print_warning("Check your config")
