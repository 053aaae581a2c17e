"""Pydantic v2 models for the stackforge tool-set parser.

Defines the categorised ``ToolSet`` produced from a user's stack request, the
single-valued ``TechStack`` view used for template scoring, and the static
``ToolCatalog`` tables (categories, aliases, compatibility, auto-complete)
that drive parsing.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class InputFormat(str, Enum):
    """Shape of the raw input handed to the parser."""
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    NESTED = "nested"


# Order matters: it is the order of ``ToolSet.all``.
CATEGORY_FIELDS: tuple[str, ...] = (
    "frameworks",
    "builders",
    "languages",
    "ui",
    "styles",
    "state",
    "routers",
    "testing",
    "linting",
    "tools",
)

# Keys recognised in the structured object form, in extraction order.
STACK_OBJECT_KEYS: tuple[str, ...] = (
    "framework",
    "builder",
    "language",
    "ui",
    "style",
    "state",
    "router",
)


# ---------------------------------------------------------------------------
# Tech stack (single-valued view)
# ---------------------------------------------------------------------------

class TechStack(BaseModel):
    """One value per slot, the shape templates are scored against."""
    model_config = ConfigDict(populate_by_name=True)

    framework: Optional[str] = None
    builder: Optional[str] = None
    language: Optional[str] = None
    ui: Optional[str] = None
    style: Optional[str] = None
    state: Optional[str] = None
    router: Optional[str] = None
    package_manager: Optional[str] = Field(default=None, alias="packageManager")

    def values(self) -> list[str]:
        """Every slot that is set, in declaration order."""
        return [value for value in self.model_dump().values() if value]

    def get(self, field: str) -> Optional[str]:
        """Slot lookup by name; camelCase ``packageManager`` is accepted too."""
        if field == "packageManager":
            field = "package_manager"
        return getattr(self, field, None)


# ---------------------------------------------------------------------------
# ToolSet
# ---------------------------------------------------------------------------

class ToolSetMetadata(BaseModel):
    """Provenance and advisory diagnostics for a parsed ``ToolSet``."""
    original_input: Any = Field(default=None, description="Input exactly as received")
    input_format: InputFormat = Field(default=InputFormat.STRING)
    auto_completed: list[str] = Field(
        default_factory=list, description="Tools added because a present tool recommends them"
    )
    conflicts: list[str] = Field(
        default_factory=list, description="Pairs of present tools declared incompatible"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Required companions that are missing"
    )


class ToolSet(BaseModel):
    """The categorised result of parsing a technology-stack request."""
    frameworks: list[str] = Field(default_factory=list)
    builders: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    ui: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)
    state: list[str] = Field(default_factory=list)
    routers: list[str] = Field(default_factory=list)
    testing: list[str] = Field(default_factory=list)
    linting: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list, description="Tools with no known category")
    metadata: ToolSetMetadata = Field(default_factory=ToolSetMetadata)

    @property
    def all(self) -> list[str]:
        """Concatenation of every category list, in category order."""
        return [tool for field in CATEGORY_FIELDS for tool in getattr(self, field)]

    def has(self, tool: str) -> bool:
        return tool in self.all

    def category_of(self, tool: str) -> Optional[str]:
        """Name of the bucket holding *tool*, or ``None``."""
        for field in CATEGORY_FIELDS:
            if tool in getattr(self, field):
                return field
        return None

    def tech_stack(self) -> TechStack:
        """Collapse each category to its first entry."""
        def first(items: list[str]) -> Optional[str]:
            return items[0] if items else None

        return TechStack(
            framework=first(self.frameworks),
            builder=first(self.builders),
            language=first(self.languages),
            ui=first(self.ui),
            style=first(self.styles),
            state=first(self.state),
            router=first(self.routers),
        )


# ---------------------------------------------------------------------------
# Catalog tables
# ---------------------------------------------------------------------------

class ToolCompatibility(BaseModel):
    requires: list[str] = Field(default_factory=list)
    incompatible: list[str] = Field(default_factory=list)


class AutoCompleteRule(BaseModel):
    recommended: list[str] = Field(default_factory=list)
    optional: list[str] = Field(default_factory=list)


class ToolProperty(BaseModel):
    """Per-tool metadata used when deciding what to inject into a project."""
    model_config = ConfigDict(populate_by_name=True)

    category: str = ""
    requires_injection: bool = Field(default=False, alias="requiresInjection")
    is_core: bool = Field(default=False, alias="isCore")
    priority: int = 0
    description: str = ""
    injector_class: Optional[str] = Field(default=None, alias="injectorClass")


class ToolCatalog(BaseModel):
    """Static category/alias/compatibility tables loaded once per process."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    categories: dict[str, list[str]] = Field(default_factory=dict)
    dependencies: dict[str, ToolCompatibility] = Field(default_factory=dict)
    auto_complete: dict[str, AutoCompleteRule] = Field(default_factory=dict, alias="autoComplete")
    aliases: dict[str, str] = Field(default_factory=dict)
    properties: dict[str, ToolProperty] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> "ToolCatalog":
        """Read and validate a catalog JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    def resolve_alias(self, token: str) -> str:
        """Case-insensitive alias lookup; unknown tokens come back unchanged."""
        lowered = token.lower()
        for alias, target in self.aliases.items():
            if alias.lower() == lowered:
                return target
        return token

    def category_for(self, tool: str) -> Optional[str]:
        """First declared category listing *tool*."""
        for category, members in self.categories.items():
            if tool in members:
                return category
        return None
