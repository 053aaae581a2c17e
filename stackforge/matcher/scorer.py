"""Template scoring.

Scores how well a requested stack fits one template.  The score has four
independently capped parts:

* core      (0-100)  framework / builder / language
* optional  (0-50)   ui / style / state / router
* keyword   (0-30)   template keywords found in the raw input
* priority  (0-20)   tiered bonus from the template's declared priority

A framework that the template does not support zeroes the whole score; the
selector drops such templates outright.
"""

from __future__ import annotations

from typing import Union

from stackforge.logger import get_logger
from stackforge.parser.models import TechStack, ToolSet

from .models import MatchingScore, TemplateEntry

logger = get_logger(__name__)

StackLike = Union[ToolSet, TechStack, None]

FRAMEWORK_POINTS = 40
BUILDER_POINTS = 30
BUILDER_MISMATCH_PENALTY = 10
LANGUAGE_POINTS = 30
OPTIONAL_POINTS = 10
OPTIONAL_CAP = 50
KEYWORD_POINTS = 5
KEYWORD_CAP = 30

OPTIONAL_FIELDS: tuple[str, ...] = ("ui", "style", "state", "router")

# (minimum priority, bonus), checked top-down.
PRIORITY_TIERS: tuple[tuple[int, int], ...] = ((100, 20), (90, 15), (80, 10), (70, 5))


def as_tech_stack(stack: StackLike) -> TechStack:
    """Coerce a ``ToolSet`` (or nothing) into the single-valued ``TechStack`` view."""
    if stack is None:
        return TechStack()
    if isinstance(stack, ToolSet):
        return stack.tech_stack()
    return stack


class ScoreCalculator:
    """Stateless scoring functions; every method is a ``staticmethod``."""

    @staticmethod
    def calculate_score(stack: StackLike, raw_input: str, template: TemplateEntry) -> MatchingScore:
        """Score *template* against the requested stack and raw input text."""
        tech = as_tech_stack(stack)
        if ScoreCalculator.framework_mismatch(tech, template):
            logger.debug("Score %s: framework %s not supported", template.name, tech.framework)
            return MatchingScore()

        score = MatchingScore(
            core_score=ScoreCalculator.core_score(tech, template),
            optional_score=ScoreCalculator.optional_score(tech, template),
            keyword_score=ScoreCalculator.keyword_score(raw_input, template),
            priority_bonus=ScoreCalculator.priority_bonus(template),
        )
        logger.debug(
            "Score %s: core=%d optional=%d keyword=%d priority=%d total=%d",
            template.name,
            score.core_score,
            score.optional_score,
            score.keyword_score,
            score.priority_bonus,
            score.total_score,
        )
        return score

    @staticmethod
    def core_score(tech: TechStack, template: TemplateEntry) -> int:
        core = template.matching.core
        score = 0

        if tech.framework:
            if ScoreCalculator.framework_mismatch(tech, template):
                return 0
            score += FRAMEWORK_POINTS

        if tech.builder:
            if tech.builder in core.get("builder", []):
                score += BUILDER_POINTS
            else:
                score -= BUILDER_MISMATCH_PENALTY

        if tech.language and tech.language in core.get("language", []):
            score += LANGUAGE_POINTS

        return max(0, score)

    @staticmethod
    def optional_score(tech: TechStack, template: TemplateEntry) -> int:
        optional = template.matching.optional
        score = 0
        for field in OPTIONAL_FIELDS:
            value = tech.get(field)
            if value and value in optional.get(field, []):
                score += OPTIONAL_POINTS
        return min(OPTIONAL_CAP, score)

    @staticmethod
    def keyword_score(raw_input: str, template: TemplateEntry) -> int:
        if not template.keywords:
            return 0
        text = (raw_input or "").lower()
        matched = sum(1 for keyword in template.keywords if keyword and keyword.lower() in text)
        return min(KEYWORD_CAP, matched * KEYWORD_POINTS)

    @staticmethod
    def priority_bonus(template: TemplateEntry) -> int:
        for threshold, bonus in PRIORITY_TIERS:
            if template.priority >= threshold:
                return bonus
        return 0

    # ------------------------------------------------------------------
    # Hard filters
    # ------------------------------------------------------------------

    @staticmethod
    def framework_mismatch(stack: StackLike, template: TemplateEntry) -> bool:
        """True when a framework is requested and the template does not list it."""
        tech = as_tech_stack(stack)
        return bool(tech.framework) and tech.framework not in template.matching.core.get("framework", [])

    @staticmethod
    def has_conflicts(stack: StackLike, raw_input: str, template: TemplateEntry) -> bool:
        """True when a declared conflict token is in the stack or in the raw input."""
        conflicts = template.matching.conflicts
        if not conflicts:
            return False

        values = set(as_tech_stack(stack).values())
        text = (raw_input or "").lower()

        for conflict in conflicts:
            if conflict in values or (conflict and conflict.lower() in text):
                return True
        return False

    @staticmethod
    def meets_requirements(stack: StackLike, template: TemplateEntry) -> bool:
        """True when every slot listed in ``matching.required`` is set."""
        tech = as_tech_stack(stack)
        return all(tech.get(field) for field in template.matching.required)
