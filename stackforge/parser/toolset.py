"""Tool-set parser.

Turns whatever the caller supplied as a stack request (a ``"vue3+vite+ts"``
string, a list of names, a structured ``{"framework": ...}`` object or a
``{"tools": ...}`` wrapper) into a categorised :class:`ToolSet`.

The pipeline is: normalise -> resolve aliases -> categorise -> auto-complete
recommended companions -> validate compatibility.  Parsing never raises on
bad input; unknown names land in the generic ``tools`` bucket and
compatibility problems are reported through ``ToolSet.metadata``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from stackforge.config import DATA_DIR
from stackforge.logger import get_logger
from stackforge.utils import split_tokens

from .models import (
    CATEGORY_FIELDS,
    STACK_OBJECT_KEYS,
    InputFormat,
    ToolCatalog,
    ToolSet,
    ToolSetMetadata,
)

logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = DATA_DIR / "tool-categories.json"


class CatalogError(Exception):
    """Raised when the tool catalog cannot be read or validated."""


class ToolSetParser:
    """Parses stack requests against a static :class:`ToolCatalog`."""

    def __init__(
        self,
        catalog: ToolCatalog | None = None,
        catalog_path: str | Path | None = None,
    ) -> None:
        if catalog is None:
            catalog = self._load_catalog(Path(catalog_path or DEFAULT_CATALOG_PATH))
        self.catalog = catalog

    @staticmethod
    def _load_catalog(path: Path) -> ToolCatalog:
        try:
            return ToolCatalog.load(path)
        except OSError as exc:
            raise CatalogError(f"Cannot read tool catalog {path}: {exc}") from exc
        except ValidationError as exc:
            raise CatalogError(f"Invalid tool catalog {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, tool_input: Any) -> ToolSet:
        """Parse *tool_input* into a :class:`ToolSet`."""
        tokens, input_format = self._normalize(tool_input)
        resolved = [self.catalog.resolve_alias(token) for token in tokens]

        tool_set = ToolSet(
            metadata=ToolSetMetadata(original_input=tool_input, input_format=input_format)
        )
        for tool in resolved:
            self._add(tool_set, tool)

        self._auto_complete(tool_set)
        self._validate_compatibility(tool_set)

        logger.debug(
            "Parsed %r (%s) -> %s; auto-completed=%s",
            tool_input,
            input_format.value,
            tool_set.all,
            tool_set.metadata.auto_completed,
        )
        return tool_set

    def injectable_tools(self, tool_set: ToolSet) -> list[str]:
        """Tools whose catalog properties mark them as needing injection."""
        return [
            tool
            for tool in tool_set.all
            if tool in self.catalog.properties and self.catalog.properties[tool].requires_injection
        ]

    def injector_class(self, tool: str) -> str | None:
        prop = self.catalog.properties.get(tool)
        return prop.injector_class if prop else None

    def sort_by_priority(self, tools: list[str]) -> list[str]:
        """Return *tools* ordered by descending catalog priority (stable)."""
        def priority(tool: str) -> int:
            prop = self.catalog.properties.get(tool)
            return prop.priority if prop else 0

        return sorted(tools, key=priority, reverse=True)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _normalize(self, tool_input: Any) -> tuple[list[str], InputFormat]:
        if isinstance(tool_input, str):
            return split_tokens(tool_input), InputFormat.STRING

        if isinstance(tool_input, (list, tuple)):
            tokens = [item.strip() for item in tool_input if isinstance(item, str) and item.strip()]
            return tokens, InputFormat.ARRAY

        if isinstance(tool_input, BaseModel):
            tool_input = tool_input.model_dump(exclude_none=True)

        if isinstance(tool_input, Mapping):
            nested = tool_input.get("tools")
            if nested:
                inner, _ = self._normalize(nested)
                return inner, InputFormat.NESTED

            values = dict(tool_input)
            if "buildTool" in values and not values.get("builder"):
                values["builder"] = values["buildTool"]

            tokens: list[str] = []
            for key in STACK_OBJECT_KEYS:
                value = values.get(key)
                if isinstance(value, str) and value.strip():
                    tokens.append(value.strip())
                elif isinstance(value, (list, tuple)):
                    tokens.extend(v.strip() for v in value if isinstance(v, str) and v.strip())
            return tokens, InputFormat.OBJECT

        if tool_input is not None:
            logger.warning("Unsupported stack input type %s; treating as empty", type(tool_input).__name__)
        return [], InputFormat.STRING

    def _bucket_for(self, tool: str) -> str:
        category = self.catalog.category_for(tool)
        if category in CATEGORY_FIELDS:
            return category
        return "tools"

    def _add(self, tool_set: ToolSet, tool: str) -> bool:
        if tool_set.has(tool):
            return False
        getattr(tool_set, self._bucket_for(tool)).append(tool)
        return True

    def _is_compatible(self, tool: str, present: list[str]) -> bool:
        compat = self.catalog.dependencies.get(tool)
        if compat is None:
            return True
        return not any(other in present for other in compat.incompatible)

    def _auto_complete(self, tool_set: ToolSet) -> None:
        worklist = tool_set.all
        index = 0
        while index < len(worklist):
            rule = self.catalog.auto_complete.get(worklist[index])
            index += 1
            if rule is None:
                continue
            for companion in rule.recommended:
                present = tool_set.all
                if companion in present or not self._is_compatible(companion, present):
                    continue
                self._add(tool_set, companion)
                tool_set.metadata.auto_completed.append(companion)
                worklist.append(companion)

    def _validate_compatibility(self, tool_set: ToolSet) -> None:
        present = tool_set.all
        for tool in present:
            compat = self.catalog.dependencies.get(tool)
            if compat is None:
                continue
            for required in compat.requires:
                if required not in present:
                    tool_set.metadata.warnings.append(
                        f"Tool '{tool}' requires '{required}' but it's not present"
                    )
            for incompatible in compat.incompatible:
                if incompatible in present:
                    tool_set.metadata.conflicts.append(
                        f"Tool '{tool}' is incompatible with '{incompatible}'"
                    )

        for message in tool_set.metadata.warnings:
            logger.info(message)
        for message in tool_set.metadata.conflicts:
            logger.warning(message)
