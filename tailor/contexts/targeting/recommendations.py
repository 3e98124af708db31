"""
Default recommendation-generation collaborator for the Targeting context.

Turns a MatchResult into prioritized, actionable edits:
- priority: missing high-importance requirements (importance >= 0.8)
- optional: missing medium-importance requirements (0.5 <= importance < 0.8)
- rewording: partial matches to reframe, strong matches to quantify or emphasize

Each list is sorted by importance, highest first.
"""

import re
from dataclasses import asdict, dataclass, field
from operator import attrgetter
from typing import Any, Dict, List, Optional, Sequence

from tailor.contexts.intake.data_structures import ElementCategory
from tailor.contexts.targeting.match_data_structures import Gap, MatchResult, SemanticMatch

HIGH_PRIORITY_IMPORTANCE = 0.8
MEDIUM_PRIORITY_IMPORTANCE = 0.5
CRITICAL_GAP_IMPORTANCE = 0.8
PARTIAL_MATCH_RANGE = (0.3, 0.7)
STRONG_MATCH_CONFIDENCE = 0.7
EMPHASIS_MIN_IMPORTANCE = 0.6
DEFAULT_RECOMMENDATION_IMPORTANCE = 0.5
SUMMARY_TOP_N = 3

HAS_DIGITS = re.compile(r"\d+")


class RecommendationType:
    """Enum-like class for recommendation types"""

    ADD_SKILL = "add_skill"
    ADD_EXPERIENCE = "add_experience"
    REFRAME = "reframe"
    QUANTIFY = "quantify"
    EMPHASIZE = "emphasize"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.ADD_SKILL, cls.ADD_EXPERIENCE, cls.REFRAME, cls.QUANTIFY, cls.EMPHASIZE]


@dataclass
class Recommendation:
    type: str
    element: str
    importance: float
    suggestion: str
    example: Optional[str] = None
    job_requirement_reference: str = ""
    explanation: str = ""


@dataclass
class RecommendationMetadata:
    iteration_round: int
    current_score: float
    target_score: float
    generation_failed: bool = False


@dataclass
class Recommendations:
    summary: str
    priority: List[Recommendation] = field(default_factory=list)
    optional: List[Recommendation] = field(default_factory=list)
    rewording: List[Recommendation] = field(default_factory=list)
    metadata: Optional[RecommendationMetadata] = None

    def all(self) -> List[Recommendation]:
        return [*self.priority, *self.optional, *self.rewording]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PrioritizedGaps:
    high: List[Gap] = field(default_factory=list)
    medium: List[Gap] = field(default_factory=list)
    low: List[Gap] = field(default_factory=list)


# =============================================================================
# TEXT TEMPLATES
# =============================================================================

_MISSING_SUGGESTIONS = {
    ElementCategory.SKILL: 'Highlight or reframe existing experience to make "{text}" explicit; '
    "if missing, add it to skills or demonstrate it in projects",
    ElementCategory.EXPERIENCE: 'Surface experience that aligns with "{text}" in your work history '
    "or projects; if missing, add a relevant example",
    ElementCategory.ATTRIBUTE: 'Emphasize "{text}" in your summary or through specific '
    "accomplishments if you already demonstrate it",
    ElementCategory.KEYWORD: 'Use "{text}" or closely aligned wording where it already fits your experience',
    ElementCategory.CONCEPT: 'Demonstrate familiarity with "{text}" using existing projects, '
    "publications, or certifications",
}

_MISSING_EXAMPLES = {
    ElementCategory.SKILL: 'Example: "Proficient in {text}" or "Developed solutions using {text}"',
    ElementCategory.EXPERIENCE: 'Example: "Led {text} initiatives that resulted in [specific outcome]"',
    ElementCategory.ATTRIBUTE: 'Example: "Demonstrated {text} by [specific achievement]"',
    ElementCategory.KEYWORD: 'Example: Naturally mention "{text}" in context of relevant projects',
    ElementCategory.CONCEPT: 'Example: "Applied {text} principles to [specific project or outcome]"',
}


def _requirement_reference(text: str, category: str, importance: float) -> str:
    return f'Job requirement: "{text}" ({category}, importance: {importance:.2f})'


def _missing_explanation(text: str, category: str, importance: float) -> str:
    if importance >= 0.9:
        level, consequence = "critical", "This is likely a must-have qualification for the role"
    elif importance >= 0.8:
        level = "high-priority"
        consequence = "This is a key qualification that will significantly impact your candidacy"
    elif importance >= 0.6:
        level, consequence = "important", "Including this will strengthen your application"
    else:
        level, consequence = "important", "Adding this would improve your match score"
    return (
        f'The job posting lists "{text}" as a {level} {category} requirement. {consequence}. '
        "If you already have related experience, make it explicit using the job's terminology."
    )


# =============================================================================
# GENERATORS
# =============================================================================


def prioritize_gaps(gaps: Sequence[Gap]) -> PrioritizedGaps:
    """
    Split gaps into high (>= 0.8), medium (>= 0.5) and low importance tiers.

    Gaps with an importance outside [0, 1] (or NaN) are skipped. Each tier is
    sorted by impact, highest first.
    """
    prioritized = PrioritizedGaps()
    for gap in gaps:
        if not 0.0 <= gap.importance <= 1.0:
            continue
        if gap.importance >= HIGH_PRIORITY_IMPORTANCE:
            prioritized.high.append(gap)
        elif gap.importance >= MEDIUM_PRIORITY_IMPORTANCE:
            prioritized.medium.append(gap)
        else:
            prioritized.low.append(gap)

    for tier in (prioritized.high, prioritized.medium, prioritized.low):
        tier.sort(key=lambda gap: gap.impact, reverse=True)
    return prioritized


def missing_element_recommendations(gaps: Sequence[Gap]) -> List[Recommendation]:
    """add_skill (skill gaps) or add_experience (everything else) per gap."""
    recommendations = []
    for gap in gaps:
        text = gap.element.text
        category = gap.category
        recommendations.append(
            Recommendation(
                type=RecommendationType.ADD_SKILL
                if category == ElementCategory.SKILL
                else RecommendationType.ADD_EXPERIENCE,
                element=text,
                importance=gap.importance,
                suggestion=_MISSING_SUGGESTIONS.get(category, 'Add "{text}" to strengthen your resume').format(
                    text=text
                ),
                example=_MISSING_EXAMPLES.get(category, 'Example: Include "{text}" in relevant sections').format(
                    text=text
                ),
                job_requirement_reference=_requirement_reference(text, category, gap.importance),
                explanation=_missing_explanation(text, category, gap.importance),
            )
        )
    return recommendations


def _job_element_info(match: SemanticMatch, gaps: Sequence[Gap]) -> tuple:
    """Importance and category of a match's job element."""
    importance = getattr(match.job_element, "importance", None)
    category = getattr(match.job_element, "category", None)
    if importance is None or category is None:
        gap = next(
            (g for g in gaps if g.element.normalized_text == match.job_element.normalized_text), None
        )
        if importance is None:
            importance = gap.importance if gap else DEFAULT_RECOMMENDATION_IMPORTANCE
        if category is None:
            category = gap.category if gap else ElementCategory.SKILL
    return importance, category


def rewording_recommendations(
    matches: Sequence[SemanticMatch], gaps: Sequence[Gap]
) -> List[Recommendation]:
    """reframe items for partial matches (confidence 0.3-0.7)."""
    low, high = PARTIAL_MATCH_RANGE
    recommendations = []
    for match in matches:
        if not low <= match.confidence <= high:
            continue
        job_text = match.job_element.text
        resume_text = match.resume_element.text
        importance, category = _job_element_info(match, gaps)
        recommendations.append(
            Recommendation(
                type=RecommendationType.REFRAME,
                element=job_text,
                importance=importance,
                suggestion=f'Strengthen match for "{job_text}" by using more specific or direct language',
                example=f'Before: "{resume_text}"\nAfter: "{job_text}" or similar phrasing '
                "that directly addresses the requirement",
                job_requirement_reference=_requirement_reference(job_text, category, importance),
                explanation=(
                    f'Your resume mentions "{resume_text}" which partially matches the job '
                    f'requirement "{job_text}" ({match.confidence * 100:.0f}% match). Using more '
                    "direct language that closely aligns with the job posting will improve your "
                    "match score."
                ),
            )
        )
    return recommendations


def emphasis_recommendations(
    matches: Sequence[SemanticMatch], gaps: Sequence[Gap]
) -> List[Recommendation]:
    """quantify (no numbers in the resume text yet) or emphasize items for strong matches."""
    recommendations = []
    for match in matches:
        if match.confidence <= STRONG_MATCH_CONFIDENCE:
            continue
        importance, category = _job_element_info(match, gaps)
        if importance < EMPHASIS_MIN_IMPORTANCE:
            continue

        job_text = match.job_element.text
        resume_text = match.resume_element.text
        reference = _requirement_reference(job_text, category, importance)
        if not HAS_DIGITS.search(resume_text):
            recommendations.append(
                Recommendation(
                    type=RecommendationType.QUANTIFY,
                    element=job_text,
                    importance=importance,
                    suggestion=f'Add specific metrics or quantifiable results to strengthen "{job_text}"',
                    example=f'Before: "{resume_text}"\nAfter: Add metrics like "Led team of 5", '
                    '"Increased efficiency by 30%", or "Managed $2M budget"',
                    job_requirement_reference=reference,
                    explanation=(
                        f'Your resume mentions "{resume_text}" which matches the job requirement '
                        f'"{job_text}". Adding quantifiable metrics will make this experience more '
                        f"concrete (importance: {importance:.2f})."
                    ),
                )
            )
        else:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.EMPHASIZE,
                    element=job_text,
                    importance=importance,
                    suggestion=f'Emphasize "{job_text}" more prominently in your resume',
                    example="Consider moving this to a more prominent position or expanding on the impact",
                    job_requirement_reference=reference,
                    explanation=(
                        f'Your resume demonstrates "{job_text}" which is an important job requirement '
                        f"(importance: {importance:.2f}). Consider emphasizing it more prominently."
                    ),
                )
            )
    return recommendations


def _summary_verb(recommendation: Recommendation) -> str:
    if recommendation.type in (RecommendationType.ADD_SKILL, RecommendationType.ADD_EXPERIENCE):
        return "Add"
    return "Improve"


def generate_summary(
    match_result: MatchResult,
    iteration_round: int,
    target_score: float,
    top_recommendations: Sequence[Recommendation],
) -> str:
    """One-paragraph summary: round, current vs target score, critical gaps and top items."""
    current = match_result.overall_score
    summary = (
        f"Iteration {iteration_round}: Current match score is {current * 100:.1f}% "
        f"(target: {target_score * 100:.1f}%). "
    )
    if current >= target_score:
        summary += "Target achieved! "
    else:
        summary += f"Gap to target: {(target_score - current) * 100:.1f}%. "

    critical = sum(1 for gap in match_result.gaps if gap.importance > CRITICAL_GAP_IMPORTANCE)
    if critical:
        summary += f"{critical} critical requirement{'s' if critical > 1 else ''} missing. "

    if top_recommendations:
        top = list(top_recommendations)[:SUMMARY_TOP_N]
        plural = "s" if len(top_recommendations) > 1 else ""
        items = [f'{i}) {_summary_verb(rec)} "{rec.element}"' for i, rec in enumerate(top, 1)]
        summary += f"Top {len(top)} recommendation{plural}: " + "; ".join(items)

    return summary.strip()


def generate_recommendations(
    match_result: MatchResult,
    matches: Sequence[SemanticMatch],
    iteration_round: int = 1,
    target_score: float = 0.8,
) -> Recommendations:
    """
    Build the full Recommendations object for one round.

    Args:
        match_result: Result of scoring this round
        matches: Semantic matches used for scoring (drive rewording items)
        iteration_round: 1-based round number
        target_score: Score the run is aiming for

    Returns:
        Recommendations with summary, priority, optional and rewording lists
    """
    prioritized = prioritize_gaps(match_result.gaps)
    by_importance = attrgetter("importance")

    priority = sorted(missing_element_recommendations(prioritized.high), key=by_importance, reverse=True)
    optional = sorted(missing_element_recommendations(prioritized.medium), key=by_importance, reverse=True)
    rewording = sorted(
        rewording_recommendations(matches, match_result.gaps)
        + emphasis_recommendations(matches, match_result.gaps),
        key=by_importance,
        reverse=True,
    )

    return Recommendations(
        summary=generate_summary(match_result, iteration_round, target_score, priority),
        priority=priority,
        optional=optional,
        rewording=rewording,
        metadata=RecommendationMetadata(
            iteration_round=iteration_round,
            current_score=match_result.overall_score,
            target_score=target_score,
        ),
    )
