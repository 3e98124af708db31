"""
Importance Assigner for the Targeting context.

Derives a 0.0-1.0 importance weight for each job element from textual cues
in its context, its position in the posting, and how often it is mentioned.

Indicator tiers are grouped in a frozen dataclass of constants, with helper
functions that use them.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from tailor.contexts.intake.data_structures import Element, ParsedJob, TaggedElement
from tailor.utils.degradation import handle_importance_scoring_failure
from tailor.utils.event_logging import EventLog

BASELINE_IMPORTANCE = 0.5
MAX_POSITION_BOOST = 0.2
SECTION_BOOST = 0.1
NICE_TO_HAVE_PENALTY = 0.2
FREQUENCY_STEP = 0.1
MAX_FREQUENCY_BOOST = 0.2


@dataclass(frozen=True)
class IndicatorTier:
    name: str
    phrases: Tuple[str, ...]
    score_range: Tuple[float, float]

    @property
    def midpoint(self) -> float:
        low, high = self.score_range
        return (low + high) / 2


@dataclass(frozen=True)
class ImportanceIndicators:
    """Importance-indicator phrases grouped by tier, most important first."""

    HIGH = IndicatorTier(
        "high",
        ("required", "must have", "essential", "mandatory", "critical", "necessary"),
        (0.9, 1.0),
    )
    MEDIUM_HIGH = IndicatorTier(
        "medium_high",
        ("strongly preferred", "highly desired", "important", "strongly recommended"),
        (0.7, 0.8),
    )
    MEDIUM = IndicatorTier("medium", ("desired", "recommended", "should have"), (0.5, 0.6))
    MEDIUM_LOW = IndicatorTier("medium_low", ("preferred",), (0.4, 0.5))
    LOW = IndicatorTier(
        "low", ("nice to have", "bonus", "plus", "optional", "a plus"), (0.3, 0.5)
    )

    @classmethod
    def tiers(cls) -> Tuple[IndicatorTier, ...]:
        return (cls.HIGH, cls.MEDIUM_HIGH, cls.MEDIUM, cls.MEDIUM_LOW, cls.LOW)


REQUIREMENT_SECTION_CUES = ("requirement", "qualification")
NICE_TO_HAVE_CUES = ("nice to have", "bonus")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _co_occurs(phrase: str, element_text: str, context: str) -> bool:
    """True if phrase and element_text appear in the same '.'-free span, in either order."""
    phrase = re.escape(phrase)
    element = re.escape(element_text)
    pattern = rf"{phrase}[^.]*{element}|{element}[^.]*{phrase}"
    return re.search(pattern, context, re.IGNORECASE) is not None


def find_indicator_scores(element_text: str, context: str) -> list:
    """Midpoint score of every indicator tier with a phrase co-occurring with the element."""
    scores = []
    for tier in ImportanceIndicators.tiers():
        for phrase in tier.phrases:
            if _co_occurs(phrase, element_text, context):
                scores.append(tier.midpoint)
    return scores


def assign_importance(element: Element, context: str, position: Optional[float] = None) -> float:
    """
    Importance of a job element, in [0.0, 1.0].

    If any indicator phrase co-occurs with the element in its context, the
    highest matching tier midpoint wins. Otherwise the score starts at 0.5
    and is adjusted for position (earlier is better, up to +0.2), section
    cues (+0.1 for requirement/qualification, -0.2 for nice to have/bonus)
    and repeated mentions (+0.1 per extra mention, up to +0.2).

    Args:
        element: Element to score
        context: Surrounding text
        position: Relative position in the document (0.0 = start, 1.0 = end)

    Returns:
        Importance score

    Example:
        >>> assign_importance(Element("Python"), "Python is required")
        0.95
    """
    context_lower = (context or "").lower()
    element_text = element.text.lower()

    if element_text:
        indicator_scores = find_indicator_scores(element_text, context_lower)
        if indicator_scores:
            return _clamp(max(indicator_scores))

    score = BASELINE_IMPORTANCE

    if position is not None:
        score += (1.0 - position) * MAX_POSITION_BOOST

    if any(cue in context_lower for cue in REQUIREMENT_SECTION_CUES):
        score += SECTION_BOOST

    if any(cue in context_lower for cue in NICE_TO_HAVE_CUES):
        score -= NICE_TO_HAVE_PENALTY

    frequency = context_lower.count(element_text) if element_text else 0
    if frequency > 1:
        score += min(FREQUENCY_STEP * (frequency - 1), MAX_FREQUENCY_BOOST)

    return _clamp(score)


def assign_importance_scores(parsed_job: ParsedJob, event_log: Optional[EventLog] = None) -> ParsedJob:
    """
    Assign importance to every element of a parsed job.

    Each element's relative index (index / (count - 1), or 0.5 for a single
    element) is passed as its position. Elements become TaggedElements; an
    existing category is kept. If scoring one element fails, that element
    gets the default importance and the rest are unaffected.

    Returns:
        New ParsedJob (the input is not modified)
    """
    count = len(parsed_job.elements)
    tagged = []
    for index, element in enumerate(parsed_job.elements):
        position = index / (count - 1) if count > 1 else 0.5
        try:
            importance = assign_importance(element, element.context, position)
        except Exception as e:
            importance = handle_importance_scoring_failure(element, e, event_log)
        tagged.append(TaggedElement.from_element(element, importance=importance))

    return replace(parsed_job, elements=tagged)
