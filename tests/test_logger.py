"""Tests for logging setup (stackforge.logger)."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

import stackforge.logger as sf_logger
from stackforge.config import EngineConfig
from stackforge.logger import ROOT_LOGGER_NAME, get_logger, set_level, setup_file_logging
from stackforge.planner import GenerationPlanner

pytestmark = pytest.mark.unit


@pytest.fixture
def root_logger(monkeypatch):
    """The ``stackforge`` root logger, restored after the test."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(root.handlers)
    level = root.level
    monkeypatch.setattr(sf_logger, "_file_logging_configured", False)
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_get_logger_attaches_one_rich_handler(root_logger):
    get_logger("stackforge.a")
    get_logger("stackforge.b")
    assert sum(isinstance(h, RichHandler) for h in root_logger.handlers) == 1


def test_child_logger_name():
    assert get_logger("stackforge.plugins.merger").name == "stackforge.plugins.merger"


def test_set_level_accepts_names_and_numbers(root_logger):
    set_level("debug")
    assert root_logger.level == logging.DEBUG
    set_level(logging.ERROR)
    assert root_logger.level == logging.ERROR


def test_file_logging_writes_records(root_logger, tmp_path: Path):
    target = setup_file_logging(tmp_path / "logs" / "stackforge.log")
    get_logger("stackforge.test").info("hello file")
    for handler in root_logger.handlers:
        handler.flush()

    assert target == tmp_path / "logs" / "stackforge.log"
    content = target.read_text(encoding="utf-8")
    assert "file logging initialised" in content
    assert "stackforge.test | INFO | hello file" in content


def test_file_logging_configured_once(root_logger, tmp_path: Path):
    setup_file_logging(tmp_path / "one.log")
    before = len(root_logger.handlers)
    setup_file_logging(tmp_path / "two.log")
    assert len(root_logger.handlers) == before
    assert not (tmp_path / "two.log").exists()


def test_planner_enables_file_logging(root_logger, tmp_path: Path, parser):
    log_file = tmp_path / "planner.log"
    GenerationPlanner(EngineConfig(log_file=log_file, log_level="INFO"), parser=parser)

    assert log_file.exists()
    assert root_logger.level == logging.INFO
    assert any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)
