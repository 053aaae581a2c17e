"""Template selection.

``SmartMatcher`` runs the scorer over every candidate template, removes
templates that fail a hard filter (unsupported framework, missing required
slots, declared conflicts) and picks a winner in three stages:

1. **direct**   - a template keyword tokenises to exactly the user's tokens.
2. **smart**    - the highest total score at or above ``min_score``.
3. **fallback** - the configured default template, at reduced confidence.

``None`` means "no fixed template applies"; callers switch to dynamic
generation in that case.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from stackforge.config import MatcherConfig
from stackforge.logger import get_logger

from .keywords import KeywordMatcher
from .models import (
    MAX_TOTAL_SCORE,
    MatchResult,
    MatchStats,
    MatchType,
    MatchingScore,
    TemplateEntry,
)
from .scorer import ScoreCalculator, StackLike

logger = get_logger(__name__)

_SCORED_FLOOR = 0.35
_FALLBACK_FLOOR = 0.1
_FALLBACK_SPAN = 0.2


def input_text(tool_input: Any) -> str:
    """Flatten any accepted stack input shape into text for keyword matching."""
    if isinstance(tool_input, str):
        return tool_input
    if isinstance(tool_input, (list, tuple)):
        return " ".join(str(item) for item in tool_input if isinstance(item, str))
    if isinstance(tool_input, Mapping):
        if tool_input.get("tools"):
            return input_text(tool_input["tools"])
        parts: list[str] = []
        for value in tool_input.values():
            if isinstance(value, str):
                parts.append(value)
            elif isinstance(value, (list, tuple)):
                parts.extend(v for v in value if isinstance(v, str))
        return " ".join(parts)
    return ""


def score_confidence(score: MatchingScore) -> float:
    """Confidence of a score-based match; grows with the total, range [0.35, 1.0]."""
    ratio = min(score.total_score, MAX_TOTAL_SCORE) / MAX_TOTAL_SCORE
    return round(_SCORED_FLOOR + (1.0 - _SCORED_FLOOR) * ratio, 4)


def fallback_confidence(score: MatchingScore) -> float:
    """Confidence of a fallback match; always below any score-based match."""
    ratio = min(score.total_score, MAX_TOTAL_SCORE) / MAX_TOTAL_SCORE
    return round(_FALLBACK_FLOOR + _FALLBACK_SPAN * ratio, 4)


class SmartMatcher:
    """Picks the best fixed template for a stack request."""

    @staticmethod
    def eligible(stack: StackLike, raw_input: str, templates: list[TemplateEntry]) -> list[TemplateEntry]:
        """Templates that support the framework, meet their requirements and declare no conflict."""
        survivors: list[TemplateEntry] = []
        for template in templates:
            if ScoreCalculator.framework_mismatch(stack, template):
                logger.debug("Template %s skipped: framework not supported", template.name)
                continue
            if not ScoreCalculator.meets_requirements(stack, template):
                logger.debug("Template %s skipped: requirements not met", template.name)
                continue
            if ScoreCalculator.has_conflicts(stack, raw_input, template):
                logger.debug("Template %s skipped: conflicts with request", template.name)
                continue
            survivors.append(template)
        return survivors

    @staticmethod
    def _best(
        stack: StackLike, raw_input: str, templates: list[TemplateEntry], min_score: int | None
    ) -> tuple[TemplateEntry, MatchingScore] | None:
        best: tuple[TemplateEntry, MatchingScore] | None = None
        for template in templates:
            score = ScoreCalculator.calculate_score(stack, raw_input, template)
            if min_score is not None and score.total_score < min_score:
                continue
            # Strictly greater: ties keep the earlier template.
            if best is None or score.total_score > best[1].total_score:
                best = (template, score)
        return best

    @staticmethod
    def match_template(
        stack: StackLike,
        raw_input: str,
        templates: list[TemplateEntry],
        options: MatcherConfig | None = None,
    ) -> MatchResult | None:
        """Select one template for the request, or ``None``."""
        options = options or MatcherConfig()
        candidates = SmartMatcher.eligible(stack, raw_input, templates)

        if options.enable_keyword_match:
            direct = KeywordMatcher.find_direct_matches(raw_input, candidates)
            best = SmartMatcher._best(stack, raw_input, direct, None)
            if best is not None:
                template, score = best
                logger.info("Direct keyword match: %s (score %d)", template.name, score.total_score)
                return MatchResult(
                    template=template,
                    score=score,
                    match_type=MatchType.DIRECT,
                    confidence=score_confidence(score),
                )

        best = SmartMatcher._best(stack, raw_input, candidates, options.min_score)
        if best is not None:
            template, score = best
            logger.info("Smart match: %s (score %d)", template.name, score.total_score)
            return MatchResult(
                template=template,
                score=score,
                match_type=MatchType.SMART,
                confidence=score_confidence(score),
            )

        if options.fallback_to_default:
            default = SmartMatcher.find_template(templates, options.default_template)
            if default is not None:
                score = ScoreCalculator.calculate_score(stack, raw_input, default)
                logger.info("No template cleared min score %d; falling back to %s",
                            options.min_score, default.name)
                return MatchResult(
                    template=default,
                    score=score,
                    match_type=MatchType.FALLBACK,
                    confidence=fallback_confidence(score),
                )
            logger.warning("Default template %r not found in index", options.default_template)

        logger.info("No fixed template matched %r", raw_input)
        return None

    @staticmethod
    def match_multiple(
        stack: StackLike,
        raw_input: str,
        templates: list[TemplateEntry],
        options: MatcherConfig | None = None,
    ) -> list[MatchResult]:
        """Eligible templates scoring at least ``options.min_score``, best first.

        At most ``options.max_results`` results are returned.
        """
        options = options or MatcherConfig()
        results = []
        for template in SmartMatcher.eligible(stack, raw_input, templates):
            score = ScoreCalculator.calculate_score(stack, raw_input, template)
            if score.total_score >= options.min_score:
                results.append(
                    MatchResult(
                        template=template,
                        score=score,
                        match_type=MatchType.SMART,
                        confidence=score_confidence(score),
                    )
                )
        results.sort(key=lambda r: r.score.total_score, reverse=True)
        return results[: options.max_results]

    @staticmethod
    def find_template(templates: list[TemplateEntry], name: str) -> TemplateEntry | None:
        for template in templates:
            if template.id == name or template.name == name:
                return template
        return None

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @staticmethod
    def explain_match(result: MatchResult) -> str:
        """Multi-line human readable breakdown of a match."""
        descriptions = {
            MatchType.DIRECT: "direct keyword match",
            MatchType.SMART: "score-based match",
            MatchType.FALLBACK: "default template fallback",
        }
        score = result.score
        return "\n".join(
            [
                f"Template: {result.template.name}",
                f"Match type: {descriptions[result.match_type]}",
                f"Confidence: {result.confidence * 100:.1f}%",
                f"Total score: {score.total_score}",
                f"  - core stack: {score.core_score}",
                f"  - optional stack: {score.optional_score}",
                f"  - keywords: {score.keyword_score}",
                f"  - priority bonus: {score.priority_bonus}",
            ]
        )

    @staticmethod
    def validate_template(template: TemplateEntry) -> list[str]:
        """Structural problems with a template entry; empty when valid."""
        errors = []
        if not template.name:
            errors.append("template name must not be empty")
        if not template.matching.core:
            errors.append("template must declare core matching rules")
        if not 0 <= template.priority <= 100:
            errors.append("priority must be between 0 and 100")
        return errors

    @staticmethod
    def get_match_stats(stack: StackLike, raw_input: str, templates: list[TemplateEntry]) -> MatchStats:
        stats = MatchStats(total_templates=len(templates))
        for template in templates:
            if SmartMatcher.validate_template(template):
                continue
            stats.valid_templates += 1
            if ScoreCalculator.has_conflicts(stack, raw_input, template):
                stats.conflict_templates += 1
            elif ScoreCalculator.framework_mismatch(stack, template):
                continue
            elif ScoreCalculator.meets_requirements(stack, template):
                stats.matchable_templates += 1
        return stats
