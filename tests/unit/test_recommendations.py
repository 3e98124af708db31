"""Unit tests for recommendation generation."""

import pytest

from tailor.contexts.intake.data_structures import Element, ParsedJob, ParsedResume, TaggedElement
from tailor.contexts.targeting.match_data_structures import Gap, MatchType, SemanticMatch
from tailor.contexts.targeting.recommendations import (
    RecommendationType,
    generate_recommendations,
    generate_summary,
    prioritize_gaps,
)
from tailor.contexts.targeting.scorer import calculate_match_score
from tailor.utils.config import DimensionWeights, ScoringConfig


@pytest.fixture
def scored_round():
    python = TaggedElement("Python", importance=0.9, category="skill")
    kubernetes = TaggedElement("Kubernetes", importance=0.85, category="experience")
    agile = TaggedElement("Agile", importance=0.6, category="keyword")
    excel = TaggedElement("Excel", importance=0.3, category="skill")
    leadership = TaggedElement("Leadership", importance=0.7, category="attribute")
    sql = TaggedElement("SQL", importance=0.8, category="skill")
    docker = TaggedElement("Docker", importance=0.7, category="skill")

    matches = [
        SemanticMatch(Element("Mentored interns"), leadership, MatchType.SEMANTIC, 0.5),
        SemanticMatch(Element("SQL"), sql, MatchType.EXACT, 1.0),
        SemanticMatch(Element("Docker for 3 services"), docker, MatchType.EXACT, 1.0),
    ]
    job = ParsedJob(
        job_id="job-1",
        title="Backend Engineer",
        elements=[python, kubernetes, agile, excel, leadership, sql, docker],
    )
    resume = ParsedResume(
        resume_id="resume-1",
        elements=[Element("Mentored interns"), Element("SQL"), Element("Docker for 3 services")],
    )
    return calculate_match_score(resume, job, matches), matches


@pytest.mark.unit
def test_priority_and_optional_lists(scored_round):
    """High gaps go to priority and medium gaps to optional."""
    match_result, matches = scored_round

    recommendations = generate_recommendations(match_result, matches, iteration_round=2)

    assert [(r.element, r.type) for r in recommendations.priority] == [
        ("Python", RecommendationType.ADD_SKILL),
        ("Kubernetes", RecommendationType.ADD_EXPERIENCE),
    ]
    assert [r.element for r in recommendations.optional] == ["Leadership", "Agile"]
    assert "Excel" not in [r.element for r in recommendations.all()]


@pytest.mark.unit
def test_rewording_list(scored_round):
    """Partial matches get reframed; strong important matches get quantified."""
    match_result, matches = scored_round

    recommendations = generate_recommendations(match_result, matches)

    by_element = {r.element: r for r in recommendations.rewording}
    assert by_element["Leadership"].type == RecommendationType.REFRAME
    assert by_element["SQL"].type == RecommendationType.QUANTIFY
    assert by_element["Docker"].type == RecommendationType.EMPHASIZE
    assert recommendations.rewording[0].element == "SQL"
    importances = [r.importance for r in recommendations.rewording]
    assert importances == sorted(importances, reverse=True)


@pytest.mark.unit
def test_recommendation_items_are_actionable(scored_round):
    """Each item has a suggestion, an example and a job reference."""
    match_result, matches = scored_round

    python = generate_recommendations(match_result, matches).priority[0]

    assert '"Python"' in python.suggestion
    assert python.example.startswith("Example:")
    assert "importance: 0.90" in python.job_requirement_reference
    assert "critical" in python.explanation


@pytest.mark.unit
def test_summary_and_metadata(scored_round):
    """The summary names the round, the scores and the top priorities."""
    match_result, matches = scored_round

    recommendations = generate_recommendations(match_result, matches, 2, 0.8)

    summary = recommendations.summary
    assert summary.startswith("Iteration 2: Current match score is ")
    assert "(target: 80.0%)" in summary
    assert "Gap to target:" in summary
    assert "2 critical requirements missing." in summary
    assert summary.endswith('Top 2 recommendations: 1) Add "Python"; 2) Add "Kubernetes"')

    metadata = recommendations.metadata
    assert metadata.iteration_round == 2
    assert metadata.current_score == match_result.overall_score
    assert metadata.target_score == 0.8
    assert not metadata.generation_failed


@pytest.mark.unit
def test_summary_when_target_achieved():
    """A score at target says so in the summary."""
    python = TaggedElement("Python", importance=0.9, category="skill")
    weights = DimensionWeights(keywords=0.0, skills=1.0, attributes=0.0, experience=0.0, level=0.0)
    match_result = calculate_match_score(
        ParsedResume(resume_id="r", elements=[Element("Python")]),
        ParsedJob(job_id="j", title="Engineer", elements=[python]),
        [SemanticMatch(Element("Python"), python, MatchType.EXACT, 1.0)],
        ScoringConfig(weights),
    )

    summary = generate_summary(match_result, 1, 0.8, [])

    assert summary == "Iteration 1: Current match score is 90.0% (target: 80.0%). Target achieved!"


@pytest.mark.unit
def test_prioritize_gaps_skips_invalid_importance():
    """Gaps with invalid importance are left out of every tier."""
    def gap(text, importance, impact):
        return Gap(TaggedElement(text), importance, "skill", 0.0, impact)

    prioritized = prioritize_gaps(
        [gap("A", 0.85, 0.5), gap("B", 0.95, 0.9), gap("C", 0.6, 0.6), gap("D", 1.5, 1.5), gap("E", 0.2, 0.2)]
    )

    assert [g.element.text for g in prioritized.high] == ["B", "A"]
    assert [g.element.text for g in prioritized.medium] == ["C"]
    assert [g.element.text for g in prioritized.low] == ["E"]


@pytest.mark.unit
def test_no_gaps_no_matches_gives_empty_lists():
    """Nothing to fix gives empty lists."""
    match_result = calculate_match_score(
        ParsedResume(resume_id="r"), ParsedJob(job_id="j", title="Engineer"), []
    )

    recommendations = generate_recommendations(match_result, [])

    assert recommendations.all() == []
    assert "recommendation" not in recommendations.summary
    assert recommendations.to_dict()["metadata"]["iteration_round"] == 1
