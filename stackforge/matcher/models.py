"""Pydantic v2 models for fixed-template matching.

Covers the template index as it is stored on disk or fetched remotely, the
per-template scoring breakdown, and the final match result handed back to the
caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Theoretical ceiling of ``MatchingScore.total_score``.
MAX_TOTAL_SCORE = 230


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MatchType(str, Enum):
    """How a template was chosen."""
    DIRECT = "direct"
    SMART = "smart"
    FALLBACK = "fallback"


# ---------------------------------------------------------------------------
# Template entries
# ---------------------------------------------------------------------------

class TemplateMatching(BaseModel):
    """Applicability rules declared by a template."""
    model_config = ConfigDict(frozen=True)

    required: list[str] = Field(
        default_factory=list, description="Stack slots that must be set, e.g. 'framework'"
    )
    core: dict[str, list[str]] = Field(
        default_factory=dict, description="Accepted framework/builder/language values"
    )
    optional: dict[str, list[str]] = Field(
        default_factory=dict, description="ui/style/state/router values that earn bonus points"
    )
    conflicts: list[str] = Field(
        default_factory=list, description="Tokens that exclude the template outright"
    )


class TemplateEntry(BaseModel):
    """A fixed project template and its scoring hints."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Key of the entry in the template index")
    name: str = Field(..., description="Template name")
    description: str = Field(default="")
    keywords: list[str] = Field(default_factory=list)
    matching: TemplateMatching = Field(default_factory=TemplateMatching)
    priority: int = Field(default=0)
    tags: list[str] = Field(default_factory=list)


class RemoteRepository(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    branch: str = "main"
    target_folder: str = Field(default="templates.config.json", alias="targetFolder")


class RemoteConfig(BaseModel):
    enabled: bool = False
    repository: Optional[RemoteRepository] = None

    def raw_url(self) -> Optional[str]:
        """GitHub raw URL of the remote index, if the remote is enabled."""
        if not self.enabled or self.repository is None:
            return None
        base = self.repository.url.rstrip("/").replace(
            "https://github.com/", "https://raw.githubusercontent.com/"
        )
        return f"{base}/{self.repository.branch}/{self.repository.target_folder}"


class TemplatesIndex(BaseModel):
    """The template index document."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default="0.0.0")
    last_updated: str = Field(default="", alias="lastUpdated")
    templates: dict[str, TemplateEntry] = Field(default_factory=dict)
    remote_config: Optional[RemoteConfig] = Field(default=None, alias="remoteConfig")

    def entries(self) -> list[TemplateEntry]:
        """All templates in index order, each carrying its index key as ``id``."""
        return [
            entry if entry.id else entry.model_copy(update={"id": key})
            for key, entry in self.templates.items()
        ]

    def get(self, name: str) -> Optional[TemplateEntry]:
        """Look a template up by index key, then by name."""
        for entry in self.entries():
            if entry.id == name:
                return entry
        for entry in self.entries():
            if entry.name == name:
                return entry
        return None


# ---------------------------------------------------------------------------
# Scores and results
# ---------------------------------------------------------------------------

class MatchingScore(BaseModel):
    """Per-component score of one (stack, template) pair."""
    model_config = ConfigDict(frozen=True)

    core_score: int = Field(default=0, ge=0, le=100)
    optional_score: int = Field(default=0, ge=0, le=50)
    keyword_score: int = Field(default=0, ge=0, le=30)
    priority_bonus: int = Field(default=0, ge=0, le=20)

    @property
    def total_score(self) -> int:
        return self.core_score + self.optional_score + self.keyword_score + self.priority_bonus


class MatchResult(BaseModel):
    """Outcome of template selection."""
    template: TemplateEntry
    score: MatchingScore
    match_type: MatchType
    confidence: float = Field(..., gt=0.0, le=1.0)


class MatchStats(BaseModel):
    total_templates: int = 0
    valid_templates: int = 0
    conflict_templates: int = 0
    matchable_templates: int = 0
