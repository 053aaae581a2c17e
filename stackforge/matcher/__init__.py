"""stackforge fixed-template matcher.

Scores every template in the index against a parsed stack and picks the
best fit (direct keyword hit, score-based, or the default fallback).

Usage::

    from stackforge.matcher import SmartMatcher, TemplateIndexProvider

    provider = TemplateIndexProvider()
    templates = await provider.templates()
    result = SmartMatcher.match_template(tool_set, "vue3+vite", templates)
    if result:
        print(result.template.name, result.match_type, result.confidence)
"""

from stackforge.matcher.index import IndexLoadResult, IndexSource, TemplateIndexProvider
from stackforge.matcher.keywords import KeywordMatcher, KeywordMatchResult
from stackforge.matcher.models import (
    MAX_TOTAL_SCORE,
    MatchingScore,
    MatchResult,
    MatchStats,
    MatchType,
    TemplateEntry,
    TemplatesIndex,
)
from stackforge.matcher.scorer import ScoreCalculator
from stackforge.matcher.selector import SmartMatcher, input_text

__all__ = [
    "SmartMatcher",
    "ScoreCalculator",
    "KeywordMatcher",
    "KeywordMatchResult",
    "TemplateIndexProvider",
    "IndexLoadResult",
    "IndexSource",
    "TemplateEntry",
    "TemplatesIndex",
    "MatchingScore",
    "MatchResult",
    "MatchStats",
    "MatchType",
    "MAX_TOTAL_SCORE",
    "input_text",
]
