"""
Scoring Engine for the Targeting context.

Given a parsed resume, a parsed job and the semantic matches between them,
computes per-dimension scores, a weighted overall score, per-element
contributions, and ranked gap/strength lists.

Pipeline (each step a pure function of its inputs):
1. Normalize job elements once (missing importance -> 0.5, category -> keyword)
2. Keep the single best match per job element
3. contribution = importance * match_quality for every job element
4. Average contributions per dimension (empty dimension -> 0.0; level fixed at 0.5)
5. Weighted sum of dimension scores, clamped to [0, 1]
6. Classify job elements as gaps or strengths

The optional dimension_scorers hook replaces a dimension's score. A scorer
that raises triggers the degradation policy: that dimension is zeroed and its
weight redistributed over the others.
"""

import math
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from tailor.contexts.intake.data_structures import (
    ElementCategory,
    JobElement,
    ParsedJob,
    ParsedResume,
    TaggedElement,
)
from tailor.contexts.targeting.logger import _log_debug
from tailor.contexts.targeting.match_data_structures import (
    DimensionBreakdown,
    ElementContribution,
    Gap,
    MatchResult,
    MatchType,
    ScoreBreakdown,
    SemanticMatch,
    Strength,
)
from tailor.utils.config import DIMENSIONS, DimensionWeights, ScoringConfig
from tailor.utils.degradation import DEFAULT_IMPORTANCE, handle_dimension_scoring_failure
from tailor.utils.event_logging import EventLog

ACCEPTANCE_THRESHOLD = 0.7
STRENGTH_MIN_IMPORTANCE = 0.5
LEVEL_PLACEHOLDER_SCORE = 0.5

# Category -> scoring dimension. "concept" elements feed no dimension.
CATEGORY_DIMENSIONS = {
    ElementCategory.KEYWORD: "keywords",
    ElementCategory.SKILL: "skills",
    ElementCategory.ATTRIBUTE: "attributes",
    ElementCategory.EXPERIENCE: "experience",
}

DimensionScorer = Callable[[Sequence[ElementContribution], ParsedResume, ParsedJob], float]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_job_element(element: JobElement) -> TaggedElement:
    """
    TaggedElement with importance and category filled in.

    Missing or non-numeric importance becomes 0.5 and out-of-range values are
    clamped; a missing or unknown category becomes "keyword".
    """
    importance = getattr(element, "importance", None)
    if not isinstance(importance, (int, float)) or math.isnan(importance):
        importance = DEFAULT_IMPORTANCE
    category = getattr(element, "category", None)
    if not ElementCategory.is_valid(category):
        category = ElementCategory.KEYWORD

    if (
        isinstance(element, TaggedElement)
        and element.importance == importance
        and element.category == category
        and 0.0 <= importance <= 1.0
    ):
        return element
    return TaggedElement.from_element(element, importance=_clamp(float(importance)), category=category)


def normalize_job_elements(parsed_job: ParsedJob) -> List[TaggedElement]:
    """Normalize every element of a parsed job (see normalize_job_element)."""
    return [normalize_job_element(element) for element in parsed_job.elements]


# =============================================================================
# MATCH LOOKUP
# =============================================================================


def _is_better_match(candidate: SemanticMatch, current: SemanticMatch) -> bool:
    if candidate.confidence != current.confidence:
        return candidate.confidence > current.confidence
    return MatchType.rank(candidate.match_type) < MatchType.rank(current.match_type)


def build_match_lookup(matches: Iterable[SemanticMatch]) -> Dict[str, SemanticMatch]:
    """
    Best match per job element, keyed by the job element's normalized_text.

    Highest confidence wins; ties go to the better match type, then to the
    match that came first.
    """
    lookup: Dict[str, SemanticMatch] = {}
    for match in matches:
        key = match.job_element.normalized_text
        existing = lookup.get(key)
        if existing is None or _is_better_match(match, existing):
            lookup[key] = match
    return lookup


def match_quality(match: Optional[SemanticMatch]) -> float:
    """Base quality of the match type times confidence; 0.0 when unmatched."""
    if match is None:
        return 0.0
    return match.quality


# =============================================================================
# CONTRIBUTIONS AND DIMENSIONS
# =============================================================================


def calculate_contributions(
    job_elements: Sequence[TaggedElement], lookup: Mapping[str, SemanticMatch]
) -> List[ElementContribution]:
    contributions = []
    for element in job_elements:
        match = lookup.get(element.normalized_text)
        quality = match_quality(match)
        contributions.append(
            ElementContribution(
                element=element,
                importance=element.importance,
                match_quality=quality,
                contribution=element.importance * quality,
                category=element.category,
                match_type=match.match_type if match else None,
            )
        )
    return contributions


def _average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _group_by_dimension(
    contributions: Sequence[ElementContribution],
) -> Dict[str, List[ElementContribution]]:
    grouped: Dict[str, List[ElementContribution]] = {name: [] for name in DIMENSIONS}
    for contribution in contributions:
        dimension = CATEGORY_DIMENSIONS.get(contribution.category)
        if dimension is not None:
            grouped[dimension].append(contribution)
    return grouped


def _default_dimension_score(name: str, contributions: Sequence[ElementContribution]) -> float:
    if name == "level":
        # Seniority matching has no algorithm yet; fixed placeholder
        return LEVEL_PLACEHOLDER_SCORE
    return _average([c.contribution for c in contributions])


def _run_dimension_scorer(
    scorer: DimensionScorer,
    contributions: Sequence[ElementContribution],
    parsed_resume: ParsedResume,
    parsed_job: ParsedJob,
) -> float:
    score = float(scorer(contributions, parsed_resume, parsed_job))
    if not math.isfinite(score):
        raise ValueError(f"Dimension scorer returned non-finite score: {score}")
    return _clamp(score)


# =============================================================================
# GAPS AND STRENGTHS
# =============================================================================


def identify_gaps(contributions: Sequence[ElementContribution]) -> List[Gap]:
    """Elements with match quality below 0.7, highest impact first."""
    gaps = [
        Gap(
            element=c.element,
            importance=c.importance,
            category=c.category,
            match_quality=c.match_quality,
            impact=c.importance * (1.0 - c.match_quality),
        )
        for c in contributions
        if c.match_quality < ACCEPTANCE_THRESHOLD
    ]
    gaps.sort(key=lambda gap: gap.impact, reverse=True)
    return gaps


def identify_strengths(contributions: Sequence[ElementContribution]) -> List[Strength]:
    """Elements with match quality >= 0.7 and importance >= 0.5, highest contribution first."""
    strengths = [
        Strength(
            element=c.element,
            importance=c.importance,
            category=c.category,
            match_type=c.match_type,
            match_quality=c.match_quality,
            contribution=c.contribution,
        )
        for c in contributions
        if c.match_type is not None
        and c.match_quality >= ACCEPTANCE_THRESHOLD
        and c.importance >= STRENGTH_MIN_IMPORTANCE
    ]
    strengths.sort(key=lambda strength: strength.contribution, reverse=True)
    return strengths


# =============================================================================
# ENTRY POINT
# =============================================================================


def calculate_match_score(
    parsed_resume: ParsedResume,
    parsed_job: ParsedJob,
    matches: Sequence[SemanticMatch],
    config: Optional[ScoringConfig] = None,
    dimension_scorers: Optional[Mapping[str, DimensionScorer]] = None,
    event_log: Optional[EventLog] = None,
) -> MatchResult:
    """
    Score a resume against a job.

    Args:
        parsed_resume: Parsed resume (its elements are only reached through matches)
        parsed_job: Parsed job; elements may be untagged or partially tagged
        matches: Semantic matches between resume and job elements
        config: Dimension weights (default weights when None)
        dimension_scorers: Optional per-dimension score overrides, each called
            as scorer(contributions, parsed_resume, parsed_job)
        event_log: Where dimension-scorer failures are recorded

    Returns:
        MatchResult with overall score in [0, 1]

    Raises:
        ValueError: If dimension_scorers names an unknown dimension
    """
    config = config or ScoringConfig()
    dimension_scorers = dimension_scorers or {}
    unknown = set(dimension_scorers) - set(DIMENSIONS)
    if unknown:
        raise ValueError(f"Unknown dimensions in dimension_scorers: {sorted(unknown)}")

    job_elements = normalize_job_elements(parsed_job)
    lookup = build_match_lookup(matches)
    contributions = calculate_contributions(job_elements, lookup)
    grouped = _group_by_dimension(contributions)

    weights: DimensionWeights = config.dimension_weights
    scores: Dict[str, float] = {}
    failed: List[str] = []
    for name in DIMENSIONS:
        scorer = dimension_scorers.get(name)
        if scorer is None:
            scores[name] = _default_dimension_score(name, grouped[name])
            continue
        try:
            scores[name] = _run_dimension_scorer(scorer, grouped[name], parsed_resume, parsed_job)
        except Exception as e:
            weights = handle_dimension_scoring_failure(weights, name, e, event_log)
            scores[name] = 0.0
            failed.append(name)

    weight_map = weights.as_dict()
    dimensions = {
        name: DimensionBreakdown(
            score=scores[name],
            weight=weight_map[name],
            weighted_score=scores[name] * weight_map[name],
            contributions=tuple(grouped[name]),
        )
        for name in DIMENSIONS
    }
    overall = _clamp(sum(d.weighted_score for d in dimensions.values()))

    breakdown = ScoreBreakdown(
        **dimensions,
        weights=weight_map,
        failed_dimensions=tuple(failed),
    )
    result = MatchResult(
        overall_score=overall,
        breakdown=breakdown,
        gaps=tuple(identify_gaps(contributions)),
        strengths=tuple(identify_strengths(contributions)),
    )
    _log_debug(
        f"Scored {len(job_elements)} job elements against {len(lookup)} matched: {overall:.3f}"
    )
    return result
