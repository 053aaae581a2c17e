"""Template index loading with an in-memory TTL cache.

The index is resolved in this order every time the cache expires:

1. the local index file (``IndexConfig.local_path``);
2. a remote index (explicit ``remote_url`` or the local file's
   ``remoteConfig``), fetched with ``httpx``.  When both local and remote are
   available the one with the newer ``lastUpdated`` wins, and a winning
   remote copy is written to the disk cache;
3. the disk cache left by an earlier remote fetch;
4. a small built-in index so selection always has something to work with.

Remote failures are logged and never raised.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from stackforge.config import IndexConfig
from stackforge.logger import get_logger
from stackforge.utils import load_json_safe, save_json

from .models import TemplateEntry, TemplatesIndex

logger = get_logger(__name__)


DEFAULT_TEMPLATES_INDEX: dict[str, Any] = {
    "version": "0.0.0",
    "lastUpdated": "",
    "templates": {
        "vue3-vite-typescript": {
            "name": "vue3-vite-typescript",
            "description": "Vue 3 + Vite + TypeScript starter",
            "keywords": ["vue3", "vite", "typescript"],
            "matching": {
                "required": ["framework"],
                "core": {
                    "framework": ["vue3"],
                    "builder": ["vite"],
                    "language": ["typescript", "javascript"],
                },
                "optional": {"state": ["pinia"], "router": ["vue-router"]},
                "conflicts": ["vue2", "react", "webpack"],
            },
            "priority": 100,
        }
    },
}


class IndexSource(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    CACHE = "cache"
    DEFAULT = "default"


class IndexLoadResult(BaseModel):
    """A loaded index together with where it came from."""

    index: TemplatesIndex
    source: IndexSource
    logs: list[str] = Field(default_factory=list, description="Human readable load trace")


def _timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def is_newer(candidate: TemplatesIndex, current: TemplatesIndex) -> bool:
    """True when *candidate* carries a strictly later ``lastUpdated`` than *current*."""
    candidate_ts = _timestamp(candidate.last_updated)
    current_ts = _timestamp(current.last_updated)
    if candidate_ts is None:
        return False
    if current_ts is None:
        return True
    if (candidate_ts.tzinfo is None) != (current_ts.tzinfo is None):
        candidate_ts = candidate_ts.replace(tzinfo=None)
        current_ts = current_ts.replace(tzinfo=None)
    return candidate_ts > current_ts


class TemplateIndexProvider:
    """Loads and caches the template index.

    One provider is created per engine and handed to whoever needs it;
    :meth:`reload` forces a refresh regardless of the cache age.
    """

    def __init__(
        self,
        config: IndexConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or IndexConfig()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached: Optional[IndexLoadResult] = None
        self._loaded_at = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def _is_fresh(self) -> bool:
        return (
            self._cached is not None
            and self._clock() - self._loaded_at < self.config.reload_interval
        )

    async def get_index(self) -> IndexLoadResult:
        """Return the cached index, refreshing it when older than ``reload_interval``."""
        if self._is_fresh():
            return self._cached

        async with self._lock:
            # Another task may have refreshed while we waited.
            if self._is_fresh():
                return self._cached
            return await self._refresh()

    async def reload(self) -> IndexLoadResult:
        """Refresh the index now, ignoring the cache age."""
        async with self._lock:
            return await self._refresh()

    async def templates(self) -> list[TemplateEntry]:
        result = await self.get_index()
        return result.index.entries()

    async def get_template(self, name: str) -> Optional[TemplateEntry]:
        result = await self.get_index()
        return result.index.get(name)

    def invalidate(self) -> None:
        """Drop the in-memory copy so the next ``get_index`` reloads."""
        self._cached = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _refresh(self) -> IndexLoadResult:
        result = await self._load()
        self._cached = result
        self._loaded_at = self._clock()
        logger.info(
            "Template index loaded from %s (%d templates)",
            result.source.value,
            len(result.index.templates),
        )
        return result

    async def _load(self) -> IndexLoadResult:
        logs: list[str] = []

        local = self._read_index(self.config.local_path, "local", logs)

        remote_url = self.config.remote_url
        if not remote_url and local is not None and local.remote_config is not None:
            remote_url = local.remote_config.raw_url()

        remote = await self._fetch_remote(remote_url, logs) if remote_url else None

        if remote is not None and (local is None or is_newer(remote, local)):
            logs.append(f"remote index {remote.version} is newer, using it")
            await self._write_cache(remote, logs)
            return IndexLoadResult(index=remote, source=IndexSource.REMOTE, logs=logs)

        if local is not None:
            logs.append(f"using local index {local.version}")
            return IndexLoadResult(index=local, source=IndexSource.LOCAL, logs=logs)

        cached = self._read_index(self.config.cache_file, "cache", logs)
        if cached is not None:
            logs.append(f"using cached index {cached.version}")
            return IndexLoadResult(index=cached, source=IndexSource.CACHE, logs=logs)

        logs.append("no index available, using built-in default")
        logger.warning("No template index found; using built-in default")
        return IndexLoadResult(
            index=TemplatesIndex.model_validate(DEFAULT_TEMPLATES_INDEX),
            source=IndexSource.DEFAULT,
            logs=logs,
        )

    @staticmethod
    def _read_index(path, label: str, logs: list[str]) -> Optional[TemplatesIndex]:
        data = load_json_safe(path)
        if data is None:
            logs.append(f"{label} index not readable: {path}")
            return None
        try:
            index = TemplatesIndex.model_validate(data)
        except ValidationError as exc:
            logs.append(f"{label} index invalid: {exc.error_count()} error(s)")
            logger.warning("Invalid %s template index %s: %s", label, path, exc)
            return None
        logs.append(f"{label} index {index.version} loaded from {path}")
        return index

    async def _fetch_remote(self, url: str, logs: list[str]) -> Optional[TemplatesIndex]:
        try:
            async with httpx.AsyncClient(timeout=self.config.remote_timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
                index = TemplatesIndex.model_validate(response.json())
        except httpx.HTTPError as exc:
            logs.append(f"remote fetch failed: {exc}")
            logger.warning("Remote template index fetch failed (%s): %s", url, exc)
            return None
        except ValueError as exc:
            # Covers malformed JSON bodies and pydantic ValidationError.
            logs.append(f"remote index invalid: {exc}")
            logger.warning("Remote template index at %s is invalid: %s", url, exc)
            return None

        logs.append(f"remote index {index.version} fetched from {url}")
        return index

    async def _write_cache(self, index: TemplatesIndex, logs: list[str]) -> None:
        try:
            await save_json(
                index.model_dump(mode="json", by_alias=True, exclude_none=True),
                self.config.cache_file,
            )
        except OSError as exc:
            logs.append(f"cache write failed: {exc}")
            logger.warning("Could not write template index cache: %s", exc)
            return
        logs.append(f"remote index cached at {self.config.cache_file}")
