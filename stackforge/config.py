"""stackforge configuration.

Centralised, typed configuration for the resolution engine.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DATA_DIR = Path(__file__).parent / "data"


class MatcherConfig(BaseModel):
    """Knobs for fixed-template selection."""

    enable_keyword_match: bool = Field(
        default=True, description="Try an exact keyword hit before scoring"
    )
    min_score: int = Field(default=30, ge=0, description="Lowest total score a template may win with")
    fallback_to_default: bool = Field(
        default=True, description="Return the default template when nothing scores high enough"
    )
    default_template: str = Field(default="vue3-vite-typescript")
    max_results: int = Field(default=5, ge=1, description="Cap for ranked multi-match listings")


class IndexConfig(BaseModel):
    """Where the template index comes from and how long it stays cached."""

    local_path: Path = Field(default=DATA_DIR / "templates.config.json")
    cache_dir: Path = Field(default=Path.home() / ".stackforge" / "template-cache")
    remote_url: str | None = Field(
        default=None, description="Explicit remote index URL; overrides the local file's remoteConfig"
    )
    reload_interval: float = Field(
        default=30 * 60, ge=1, description="Seconds before the in-memory index is refreshed"
    )
    remote_timeout: float = Field(default=10.0, gt=0, description="Remote fetch timeout in seconds")

    @property
    def cache_file(self) -> Path:
        """Path of the on-disk copy of the last remote index."""
        return self.cache_dir / "templates.config.json"


class EngineConfig(BaseModel):
    """Global stackforge configuration.

    Instances are typically created once by the caller and handed to
    :class:`~stackforge.planner.GenerationPlanner`, which passes the relevant
    sections on to the parser, the matcher and the plugin registry.
    """

    catalog_path: Path = Field(default=DATA_DIR / "tool-categories.json")
    plugin_dirs: list[Path] = Field(default_factory=lambda: [DATA_DIR / "plugins"])
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    log_level: str = Field(default="WARNING")
    log_file: Path | None = Field(default=None, description="Also log to this file when set")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalise to upper case and reject names ``logging`` does not know."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{v}'. Use DEBUG, INFO, WARNING, ERROR or CRITICAL.")
        return level

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build an ``EngineConfig`` from environment variables.

        Recognised variables (all optional):
            STACKFORGE_CATALOG, STACKFORGE_PLUGIN_DIRS (``os.pathsep`` separated),
            STACKFORGE_LOG_LEVEL, STACKFORGE_MIN_SCORE, STACKFORGE_DEFAULT_TEMPLATE,
            STACKFORGE_NO_FALLBACK, STACKFORGE_INDEX_PATH, STACKFORGE_CACHE_DIR,
            STACKFORGE_REMOTE_URL, STACKFORGE_RELOAD_INTERVAL,
            STACKFORGE_REMOTE_TIMEOUT, STACKFORGE_LOG_FILE.
        """
        matcher_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_MIN_SCORE"):
            matcher_kwargs["min_score"] = int(os.environ["STACKFORGE_MIN_SCORE"])
        if os.environ.get("STACKFORGE_DEFAULT_TEMPLATE"):
            matcher_kwargs["default_template"] = os.environ["STACKFORGE_DEFAULT_TEMPLATE"]
        if os.environ.get("STACKFORGE_NO_FALLBACK", "").lower() in ("1", "true", "yes"):
            matcher_kwargs["fallback_to_default"] = False

        index_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_INDEX_PATH"):
            index_kwargs["local_path"] = Path(os.environ["STACKFORGE_INDEX_PATH"])
        if os.environ.get("STACKFORGE_CACHE_DIR"):
            index_kwargs["cache_dir"] = Path(os.environ["STACKFORGE_CACHE_DIR"])
        if os.environ.get("STACKFORGE_REMOTE_URL"):
            index_kwargs["remote_url"] = os.environ["STACKFORGE_REMOTE_URL"]
        if os.environ.get("STACKFORGE_RELOAD_INTERVAL"):
            index_kwargs["reload_interval"] = float(os.environ["STACKFORGE_RELOAD_INTERVAL"])
        if os.environ.get("STACKFORGE_REMOTE_TIMEOUT"):
            index_kwargs["remote_timeout"] = float(os.environ["STACKFORGE_REMOTE_TIMEOUT"])

        kwargs: dict[str, Any] = {
            "matcher": MatcherConfig(**matcher_kwargs),
            "index": IndexConfig(**index_kwargs),
            "log_level": os.environ.get("STACKFORGE_LOG_LEVEL", "WARNING"),
        }
        if os.environ.get("STACKFORGE_LOG_FILE"):
            kwargs["log_file"] = Path(os.environ["STACKFORGE_LOG_FILE"])
        if os.environ.get("STACKFORGE_CATALOG"):
            kwargs["catalog_path"] = Path(os.environ["STACKFORGE_CATALOG"])
        if os.environ.get("STACKFORGE_PLUGIN_DIRS"):
            kwargs["plugin_dirs"] = [
                Path(p) for p in os.environ["STACKFORGE_PLUGIN_DIRS"].split(os.pathsep) if p.strip()
            ]

        return cls(**kwargs)
