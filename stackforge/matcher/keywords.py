"""Keyword matching against template keyword lists.

Two flavours live here: the *direct* test used by the selector (a template
keyword whose token set is exactly the user's token set) and the looser
substring/variant matching used for diagnostics and suggestions.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from stackforge.utils import split_tokens

from .models import TemplateEntry

# Common spelling variants of the same technology.
_KEYWORD_VARIANTS: dict[str, list[str]] = {
    "react": ["reactjs", "react.js"],
    "vue": ["vuejs", "vue.js", "vue3"],
    "vue3": ["vue", "vuejs"],
    "typescript": ["ts"],
    "javascript": ["js"],
    "webpack": ["webpack.js"],
    "vite": ["vitejs", "vite.js"],
    "electron": ["electron-vite"],
    "antd": ["ant-design", "antdesign"],
    "element": ["element-plus", "element-ui"],
}


class KeywordMatchResult(BaseModel):
    matched: bool = False
    matched_keywords: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


def normalize_tokens(text: str) -> frozenset[str]:
    """Lower-cased token set of *text*, split the same way the parser splits."""
    return frozenset(token.lower() for token in split_tokens(text or ""))


def keyword_variants(keyword: str) -> list[str]:
    """Alternative spellings of *keyword* (both directions of the variant table)."""
    key = keyword.lower()
    variants = list(_KEYWORD_VARIANTS.get(key, []))
    for canonical, spellings in _KEYWORD_VARIANTS.items():
        if key in spellings:
            variants.append(canonical)
            variants.extend(s for s in spellings if s != key)
    return variants


class KeywordMatcher:
    """Keyword lookups over a list of templates."""

    @staticmethod
    def is_direct_hit(raw_input: str, template: TemplateEntry) -> bool:
        """True when one of the template keywords tokenises to exactly the input tokens."""
        tokens = normalize_tokens(raw_input)
        if not tokens:
            return False
        return any(normalize_tokens(keyword) == tokens for keyword in template.keywords)

    @staticmethod
    def find_direct_matches(raw_input: str, templates: list[TemplateEntry]) -> list[TemplateEntry]:
        return [t for t in templates if KeywordMatcher.is_direct_hit(raw_input, t)]

    @staticmethod
    def match_keywords(raw_input: str, template: TemplateEntry) -> KeywordMatchResult:
        """Substring match of each keyword (or one of its variants) in *raw_input*."""
        if not template.keywords:
            return KeywordMatchResult()

        text = (raw_input or "").lower()
        matched = [
            keyword
            for keyword in template.keywords
            if keyword.lower() in text or any(v in text for v in keyword_variants(keyword))
        ]
        return KeywordMatchResult(
            matched=bool(matched),
            matched_keywords=matched,
            confidence=len(matched) / len(template.keywords),
        )

    @staticmethod
    def keyword_stats(templates: list[TemplateEntry]) -> dict[str, int]:
        """How many templates declare each keyword."""
        stats: dict[str, int] = {}
        for template in templates:
            for keyword in template.keywords:
                stats[keyword] = stats.get(keyword, 0) + 1
        return stats

    @staticmethod
    def suggest_keywords(raw_input: str, templates: list[TemplateEntry], limit: int = 10) -> list[str]:
        """Keywords that partially overlap the input, first-seen order, at most *limit*."""
        text = (raw_input or "").lower()
        if not text:
            return []
        suggestions: list[str] = []
        for template in templates:
            for keyword in template.keywords:
                lowered = keyword.lower()
                if (lowered in text or text in lowered) and keyword not in suggestions:
                    suggestions.append(keyword)
        return suggestions[:limit]
