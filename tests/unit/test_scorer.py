"""Unit tests for the scoring engine."""

import pytest

from tailor.contexts.intake.data_structures import Element, ParsedJob, ParsedResume, TaggedElement
from tailor.contexts.targeting.match_data_structures import MatchType, SemanticMatch
from tailor.contexts.targeting.scorer import (
    build_match_lookup,
    calculate_match_score,
    normalize_job_element,
)
from tailor.utils.config import DimensionWeights, ScoringConfig
from tailor.utils.errors import ErrorCode, TailorError
from tailor.utils.event_logging import EntryType, EventLog


def job_element(text, importance=0.9, category="skill"):
    return TaggedElement(text, importance=importance, category=category)


def match(job_el, match_type=MatchType.EXACT, confidence=1.0, resume_text=None):
    return SemanticMatch(Element(resume_text or job_el.text), job_el, match_type, confidence)


def parsed_job(*elements):
    return ParsedJob(job_id="job-1", title="Engineer", elements=list(elements))


def parsed_resume(*texts):
    return ParsedResume(resume_id="resume-1", elements=[Element(t) for t in texts])


# =============================================================================
# SCENARIOS
# =============================================================================


@pytest.mark.unit
def test_exact_match_is_a_strength():
    """An exact match on an important skill is a strength."""
    python = job_element("Python", 0.9, "skill")

    result = calculate_match_score(parsed_resume("Python"), parsed_job(python), [match(python)])

    contribution = result.breakdown.skills.contributions[0]
    assert contribution.contribution == pytest.approx(0.9)
    assert result.breakdown.skills.score == pytest.approx(0.9)
    assert [s.element.text for s in result.strengths] == ["Python"]
    assert result.gaps == ()
    # skills 0.9 * 0.35 + level placeholder 0.5 * 0.10
    assert result.overall_score == pytest.approx(0.365)


@pytest.mark.unit
def test_unmatched_element_is_a_gap():
    """An unmatched element is a gap with impact equal to its importance."""
    python = job_element("Python", 0.9, "skill")

    result = calculate_match_score(parsed_resume(), parsed_job(python), [])

    assert len(result.gaps) == 1
    gap = result.gaps[0]
    assert gap.match_quality == 0.0
    assert gap.impact == pytest.approx(0.9)
    assert result.strengths == ()
    assert result.breakdown.skills.score == 0.0


@pytest.mark.unit
def test_empty_job_scores_only_level_placeholder():
    """With no job elements only the level placeholder scores."""
    result = calculate_match_score(parsed_resume("Python"), parsed_job(), [])

    assert result.breakdown.level.score == 0.5
    for name in ("keywords", "skills", "attributes", "experience"):
        assert result.breakdown.dimensions()[name].score == 0.0
    assert result.overall_score == pytest.approx(0.05)


# =============================================================================
# PROPERTIES
# =============================================================================


def _varied_inputs():
    elements = [
        job_element("Python", 1.0, "skill"),
        job_element("Leadership", 0.8, "attribute"),
        job_element("5 years backend", 0.7, "experience"),
        job_element("Agile", 0.3, "keyword"),
        job_element("Distributed systems", 0.6, "concept"),
        TaggedElement("Docker"),
    ]
    matches = [
        match(elements[0]),
        match(elements[1], MatchType.RELATED, 0.9, "Led a team"),
        match(elements[2], MatchType.SEMANTIC, 0.5, "Backend engineer"),
        match(elements[3], MatchType.SYNONYM, 1.0, "Scrum"),
    ]
    return parsed_resume("Python", "Led a team", "Backend engineer", "Scrum"), parsed_job(*elements), matches


@pytest.mark.unit
def test_scores_are_bounded():
    """Overall and dimension scores stay within [0, 1]."""
    resume, job, matches = _varied_inputs()
    result = calculate_match_score(resume, job, matches)

    assert 0.0 <= result.overall_score <= 1.0
    for score in result.breakdown.scores().values():
        assert 0.0 <= score <= 1.0


@pytest.mark.unit
def test_weights_sum_to_one():
    """The reported weights sum to 1.0."""
    resume, job, matches = _varied_inputs()
    result = calculate_match_score(resume, job, matches)
    assert sum(result.breakdown.weights.values()) == pytest.approx(1.0, abs=0.01)


@pytest.mark.unit
def test_gaps_and_strengths_are_disjoint():
    """No element is both a gap and a strength."""
    resume, job, matches = _varied_inputs()
    result = calculate_match_score(resume, job, matches)

    gap_texts = {gap.element.normalized_text for gap in result.gaps}
    strength_texts = {strength.element.normalized_text for strength in result.strengths}
    assert gap_texts.isdisjoint(strength_texts)


@pytest.mark.unit
def test_scoring_is_deterministic():
    """The same inputs give equal results."""
    resume, job, matches = _varied_inputs()
    first = calculate_match_score(resume, job, matches)
    second = calculate_match_score(resume, job, matches)
    assert first == second


@pytest.mark.unit
def test_gaps_sorted_by_impact_and_strengths_by_contribution():
    """Gaps are ordered by impact and strengths by contribution."""
    elements = [
        job_element("A", 0.5),
        job_element("B", 1.0),
        job_element("C", 0.8),
        job_element("D", 0.6),
        job_element("E", 0.9),
    ]
    matches = [match(elements[3]), match(elements[4])]

    result = calculate_match_score(parsed_resume("D", "E"), parsed_job(*elements), matches)

    assert [g.element.text for g in result.gaps] == ["B", "C", "A"]
    assert [s.element.text for s in result.strengths] == ["E", "D"]


@pytest.mark.unit
def test_unimportant_strong_match_is_in_neither_list():
    """A strong match below 0.5 importance is neither gap nor strength."""
    minor = job_element("Excel", 0.4, "skill")
    result = calculate_match_score(parsed_resume("Excel"), parsed_job(minor), [match(minor)])
    assert result.gaps == ()
    assert result.strengths == ()


@pytest.mark.unit
def test_concept_elements_feed_no_dimension():
    """Concept elements can be gaps but never reach a dimension."""
    concept = job_element("Distributed systems", 0.9, "concept")
    result = calculate_match_score(parsed_resume(), parsed_job(concept), [])

    for dimension in result.breakdown.dimensions().values():
        assert dimension.contributions == ()
    assert [g.category for g in result.gaps] == ["concept"]


# =============================================================================
# MATCH SELECTION AND DEFAULTS
# =============================================================================


@pytest.mark.unit
def test_highest_confidence_match_wins():
    """Only the most confident match per job element counts."""
    python = job_element("Python")
    matches = [
        match(python, MatchType.EXACT, 0.8),
        match(python, MatchType.SEMANTIC, 0.9, "Scripting"),
    ]

    lookup = build_match_lookup(matches)

    assert lookup["python"].match_type == MatchType.SEMANTIC
    result = calculate_match_score(parsed_resume("Python", "Scripting"), parsed_job(python), matches)
    assert result.breakdown.skills.contributions[0].match_quality == pytest.approx(0.6 * 0.9)


@pytest.mark.unit
def test_confidence_tie_goes_to_better_match_type():
    """Ties go to the better match type, then the first seen."""
    python = job_element("Python")
    matches = [
        match(python, MatchType.RELATED, 0.9, "Programming"),
        match(python, MatchType.SYNONYM, 0.9, "Py"),
        match(python, MatchType.SYNONYM, 0.9, "CPython"),
    ]

    best = build_match_lookup(matches)["python"]

    assert best.match_type == MatchType.SYNONYM
    assert best.resume_element.text == "Py"


@pytest.mark.unit
def test_unknown_match_type_uses_fallback_quality():
    """An unknown match type scores at the fallback quality."""
    python = job_element("Python", 1.0)
    odd = match(python, "fuzzy", 1.0)
    result = calculate_match_score(parsed_resume("Python"), parsed_job(python), [odd])
    assert result.breakdown.skills.score == pytest.approx(0.5)


@pytest.mark.unit
def test_missing_importance_and_category_default():
    """Untagged elements score as 0.5-importance keywords."""
    untagged = Element("Docker")
    normalized = normalize_job_element(untagged)
    assert normalized.importance == 0.5
    assert normalized.category == "keyword"

    result = calculate_match_score(parsed_resume("Docker"), parsed_job(untagged), [match(normalized)])
    assert result.breakdown.keywords.score == pytest.approx(0.5)


@pytest.mark.unit
def test_out_of_range_importance_is_clamped():
    """Importance outside [0, 1] is clamped and bad categories become keyword."""
    normalized = normalize_job_element(TaggedElement("Go", importance=1.7, category="bogus"))
    assert normalized.importance == 1.0
    assert normalized.category == "keyword"


@pytest.mark.unit
def test_custom_weights():
    """Custom weights change the overall score."""
    weights = DimensionWeights(keywords=0.0, skills=1.0, attributes=0.0, experience=0.0, level=0.0)
    python = job_element("Python", 0.8)

    result = calculate_match_score(
        parsed_resume("Python"), parsed_job(python), [match(python)], ScoringConfig(weights)
    )

    assert result.overall_score == pytest.approx(0.8)


@pytest.mark.unit
def test_unbalanced_weights_rejected():
    """Weights that do not sum to 1.0 cannot reach the scorer."""
    with pytest.raises(TailorError) as exc_info:
        ScoringConfig(DimensionWeights(keywords=0.9))

    assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR


@pytest.mark.unit
def test_breakdown_weights_are_read_only():
    """The weights stored on a result cannot be changed after scoring."""
    python = job_element("Python")

    result = calculate_match_score(parsed_resume("Python"), parsed_job(python), [match(python)])

    with pytest.raises(TypeError):
        result.breakdown.weights["skills"] = 1.0
    assert dict(result.breakdown.weights) == DimensionWeights().as_dict()


# =============================================================================
# DIMENSION SCORERS AND DEGRADATION
# =============================================================================


@pytest.mark.unit
def test_dimension_scorer_overrides_score_and_is_clamped():
    """A custom dimension scorer replaces the score, clamped to [0, 1]."""
    python = job_element("Python")

    def generous(contributions, resume, job):
        return 2.0

    result = calculate_match_score(
        parsed_resume("Python"), parsed_job(python), [], dimension_scorers={"skills": generous}
    )

    assert result.breakdown.skills.score == 1.0


@pytest.mark.unit
def test_failed_dimension_weight_is_redistributed():
    """A failing scorer zeroes its dimension and spreads its weight."""
    event_log = EventLog()
    python = job_element("Python", 1.0, "skill")
    agile = job_element("Agile", 1.0, "keyword")

    def broken(contributions, resume, job):
        raise RuntimeError("skills service down")

    result = calculate_match_score(
        parsed_resume("Python", "Agile"),
        parsed_job(python, agile),
        [match(python), match(agile)],
        dimension_scorers={"skills": broken},
        event_log=event_log,
    )

    weights = result.breakdown.weights
    assert result.breakdown.failed_dimensions == ("skills",)
    assert result.breakdown.skills.score == 0.0
    assert weights["skills"] == 0.0
    assert sum(weights.values()) == pytest.approx(1.0, abs=0.01)
    assert weights["keywords"] == pytest.approx(0.20 / 0.65)
    assert weights["level"] == pytest.approx(0.10 / 0.65)
    # keywords 1.0 and level 0.5 under redistributed weights
    assert result.overall_score == pytest.approx(0.20 / 0.65 + 0.5 * 0.10 / 0.65)
    assert event_log.get_entries(EntryType.ERROR)[0].data["failed_dimension"] == "skills"


@pytest.mark.unit
def test_non_finite_dimension_score_counts_as_failure():
    """NaN from a scorer is treated as a failure."""
    result = calculate_match_score(
        parsed_resume(),
        parsed_job(job_element("Python")),
        [],
        dimension_scorers={"experience": lambda contributions, resume, job: float("nan")},
    )
    assert result.breakdown.failed_dimensions == ("experience",)
    assert sum(result.breakdown.weights.values()) == pytest.approx(1.0, abs=0.01)


@pytest.mark.unit
def test_unknown_dimension_scorer_rejected():
    """Scorers for unknown dimensions are rejected up front."""
    with pytest.raises(ValueError, match="Unknown dimensions"):
        calculate_match_score(
            parsed_resume(), parsed_job(), [], dimension_scorers={"seniority": lambda *a: 0.5}
        )


@pytest.mark.unit
def test_redistribute_rejects_unknown_dimension():
    """Redistributing an unknown dimension is an error."""
    with pytest.raises(ValueError):
        DimensionWeights().redistribute("seniority")
