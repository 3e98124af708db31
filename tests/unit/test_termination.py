"""Unit tests for termination criteria and result assembly."""

import pytest

from tailor.contexts.intake.data_structures import ParsedJob, Resume
from tailor.contexts.iteration.controller import (
    complete_optimization_state,
    create_optimization_result,
    determine_termination_reason,
    evaluate_termination_criteria,
    fail_optimization_state,
    initialize_optimization_state,
    latest_score,
    score_history,
    update_optimization_state,
)
from tailor.contexts.iteration.data_structures import (
    IterationHistory,
    OptimizationStatus,
    TerminationReason,
)
from tailor.utils.config import OptimizationConfig


def history_of(*scores):
    return [IterationHistory(round=i, score=s) for i, s in enumerate(scores, 1)]


CONFIG = OptimizationConfig(
    target_score=0.8, max_iterations=10, early_stopping_rounds=2, min_improvement=0.01
)


# =============================================================================
# evaluate_termination_criteria
# =============================================================================


@pytest.mark.unit
def test_target_reached():
    """Reaching the target stops the run with a readable reason."""
    decision = evaluate_termination_criteria(0.85, history_of(0.6), CONFIG)

    assert not decision.should_continue
    assert decision.termination_reason == TerminationReason.TARGET_REACHED
    assert "Target score of 0.8 reached with score 0.850" == decision.reason


@pytest.mark.unit
def test_target_exactly_met_counts():
    """A score equal to the target counts as reaching it."""
    decision = evaluate_termination_criteria(0.8, [], CONFIG)
    assert decision.termination_reason == TerminationReason.TARGET_REACHED


@pytest.mark.unit
def test_target_beats_max_iterations():
    """Target reached wins over the iteration limit."""
    history = history_of(*[0.5] * 9)
    decision = evaluate_termination_criteria(0.9, history, CONFIG)
    assert decision.termination_reason == TerminationReason.TARGET_REACHED


@pytest.mark.unit
def test_target_beats_early_stopping():
    """Target reached wins over a plateau."""
    history = history_of(0.9, 0.9)
    config = OptimizationConfig(target_score=0.9, early_stopping_rounds=2)
    decision = evaluate_termination_criteria(0.9, history, config)
    assert decision.termination_reason == TerminationReason.TARGET_REACHED


@pytest.mark.unit
def test_max_iterations_reached():
    """The run stops at the iteration limit."""
    history = history_of(0.5, 0.55, 0.6, 0.62, 0.64, 0.66, 0.68, 0.7, 0.72, 0.74)
    decision = evaluate_termination_criteria(0.75, history, CONFIG)

    assert not decision.should_continue
    assert decision.termination_reason == TerminationReason.MAX_ITERATIONS
    assert "Maximum iterations" in decision.reason
    assert "(10)" in decision.reason


@pytest.mark.unit
def test_max_iterations_counts_current_round():
    """The round being evaluated counts toward the limit."""
    config = OptimizationConfig(max_iterations=3, early_stopping_rounds=5)
    assert evaluate_termination_criteria(0.1, history_of(0.0), config).should_continue
    decision = evaluate_termination_criteria(0.2, history_of(0.0, 0.1), config)
    assert decision.termination_reason == TerminationReason.MAX_ITERATIONS


@pytest.mark.unit
def test_single_iteration_budget_stops_after_first_round():
    """max_iterations=1 stops after one round."""
    config = OptimizationConfig(max_iterations=1)
    decision = evaluate_termination_criteria(0.3, [], config)
    assert decision.termination_reason == TerminationReason.MAX_ITERATIONS


@pytest.mark.unit
def test_early_stopping_on_plateau():
    """Deltas all below min_improvement stop the run."""
    history = history_of(0.5, 0.6, 0.7, 0.7, 0.7)
    decision = evaluate_termination_criteria(0.7, history, CONFIG)

    assert not decision.should_continue
    assert decision.termination_reason == TerminationReason.EARLY_STOPPING
    assert "Early stopping" in decision.reason
    assert "2 consecutive rounds" in decision.reason


@pytest.mark.unit
def test_early_stopping_on_regression():
    """Falling scores count as no improvement."""
    history = history_of(0.7, 0.6)
    decision = evaluate_termination_criteria(0.5, history, CONFIG)
    assert decision.termination_reason == TerminationReason.EARLY_STOPPING


@pytest.mark.unit
def test_early_stopping_needs_full_window():
    """Early stopping waits for a full window of scores."""
    decision = evaluate_termination_criteria(0.5, history_of(0.5), CONFIG)
    assert decision.should_continue


@pytest.mark.unit
def test_one_improving_delta_in_window_continues():
    """One real improvement in the window keeps the run going."""
    # Dip then rebound: last delta clears the threshold
    decision = evaluate_termination_criteria(0.65, history_of(0.6, 0.55), CONFIG)
    assert decision.should_continue


@pytest.mark.unit
def test_delta_equal_to_min_improvement_counts_as_improvement():
    """A delta of exactly min_improvement is an improvement."""
    config = OptimizationConfig(early_stopping_rounds=1, min_improvement=0.25)
    decision = evaluate_termination_criteria(0.75, history_of(0.5), config)
    assert decision.should_continue


@pytest.mark.unit
def test_continue_reason():
    """Continuing decisions report the round and score."""
    decision = evaluate_termination_criteria(0.42, history_of(0.3), CONFIG)

    assert decision.should_continue
    assert decision.termination_reason is None
    assert decision.score == 0.42
    assert decision.reason == "Continuing optimization (iteration 2/10, score: 0.420)"


# =============================================================================
# determine_termination_reason
# =============================================================================


@pytest.mark.unit
def test_determine_termination_reason():
    """Target beats max iterations; anything else is early stopping."""
    assert determine_termination_reason(0.8, 10, CONFIG) == TerminationReason.TARGET_REACHED
    assert determine_termination_reason(0.7, 10, CONFIG) == TerminationReason.MAX_ITERATIONS
    assert determine_termination_reason(0.7, 4, CONFIG) == TerminationReason.EARLY_STOPPING


# =============================================================================
# create_optimization_result
# =============================================================================


@pytest.mark.unit
def test_create_result_from_empty_history_fails():
    """A result needs at least one round."""
    with pytest.raises(ValueError, match="no iterations in history"):
        create_optimization_result(Resume(id="r", content="x"), [], CONFIG)


@pytest.mark.unit
def test_create_result_metrics():
    """Metrics are derived from the first and last rounds."""
    final_resume = Resume(id="r3", content="final")
    history = history_of(0.5, 0.65, 0.82)

    result = create_optimization_result(final_resume, history, CONFIG)

    assert result.final_resume is final_resume
    assert result.final_score == 0.82
    assert result.iterations == tuple(history)
    assert result.termination_reason == TerminationReason.TARGET_REACHED
    assert result.metrics.initial_score == 0.5
    assert result.metrics.final_score == 0.82
    assert result.metrics.improvement == pytest.approx(0.32)
    assert result.metrics.iteration_count == 3


@pytest.mark.unit
@pytest.mark.parametrize("length", [1, 2, 7])
def test_iteration_count_matches_history_length(length):
    """iteration_count is the number of rounds."""
    history = history_of(*[0.4] * length)
    result = create_optimization_result(Resume(id="r", content="x"), history, CONFIG)
    assert result.metrics.iteration_count == length


@pytest.mark.unit
def test_score_helpers():
    """Score helpers read the history and default to 0.0."""
    history = history_of(0.1, 0.2)
    assert score_history(history) == [0.1, 0.2]
    assert latest_score(history) == 0.2
    assert latest_score([]) == 0.0


# =============================================================================
# RUN STATE
# =============================================================================


def initial_state():
    return initialize_optimization_state(
        ParsedJob(job_id="job-1", title="Engineer"), Resume(id="r1", content="first"), CONFIG
    )


@pytest.mark.unit
def test_initial_state_is_running():
    """A fresh run is RUNNING on round 1 with no history."""
    state = initial_state()

    assert state.status == OptimizationStatus.RUNNING
    assert state.is_running
    assert state.history == ()
    assert state.current_iteration == 1


@pytest.mark.unit
def test_update_appends_history_and_swaps_draft():
    """Updates return new states; the original is unchanged."""
    state = initial_state()
    entry = IterationHistory(round=1, score=0.4, resume_version="r1")

    recorded = update_optimization_state(state, entry)
    revised = update_optimization_state(recorded, new_resume=Resume(id="r2", content="second"))

    assert state.history == ()
    assert recorded.history == (entry,)
    assert recorded.current_resume.id == "r1"
    assert revised.current_resume.id == "r2"
    assert revised.current_iteration == 2


@pytest.mark.unit
@pytest.mark.parametrize(
    "finish, status",
    [
        (complete_optimization_state, OptimizationStatus.COMPLETED),
        (fail_optimization_state, OptimizationStatus.FAILED),
    ],
)
def test_finished_state_rejects_updates(finish, status):
    """COMPLETED and FAILED are terminal."""
    finished = finish(initial_state())

    assert finished.status == status
    assert not finished.is_running
    with pytest.raises(ValueError, match=status):
        update_optimization_state(finished, IterationHistory(round=1, score=0.1))
