"""
Iteration Controller.

Drives an optimization run as a sequence of rounds. Each round parses the
current resume draft, matches it against the job, scores it, and decides
whether to stop. A run is either Running or Terminated; termination is
decided after every round in strict priority order:

1. Target reached:  score >= target_score
2. Max iterations:  len(history) + 1 >= max_iterations
3. Early stopping:  every delta across the last early_stopping_rounds + 1
                    scores (history plus current) is below min_improvement

Rounds are strictly sequential. The loop driver (start_optimization) carries
the run in an immutable OptimizationState that moves from RUNNING to
COMPLETED, or to FAILED when a round raises or times out. Collaborators may
be coroutine functions or blocking functions; blocking ones run in a worker
thread so a round timeout can interrupt them.
"""

import asyncio
from dataclasses import replace
from functools import partial
from typing import Callable, List, Optional, Sequence

from tailor.contexts.intake.data_structures import Element, JobPosting, ParsedJob, Resume
from tailor.contexts.intake.llm_parser import parse_job_description, parse_resume
from tailor.contexts.intake.validation import validate_job_posting, validate_resume
from tailor.contexts.iteration.data_structures import (
    IterationComponents,
    IterationDecision,
    IterationHistory,
    OptimizationMetrics,
    OptimizationResult,
    OptimizationState,
    OptimizationStatus,
    TerminationReason,
)
from tailor.contexts.iteration.logger import (
    _log_debug,
    _log_error,
    log_round_decision,
    log_run_complete,
    log_run_start,
)
from tailor.contexts.targeting.importance import assign_importance_scores
from tailor.contexts.targeting.recommendations import generate_recommendations
from tailor.contexts.targeting.scorer import calculate_match_score
from tailor.contexts.targeting.semantic_matcher import SemanticMatcher
from tailor.utils.config import OptimizationConfig, ScoringConfig
from tailor.utils.degradation import (
    call_collaborator,
    handle_parsing_failure,
    handle_recommendation_generation_failure,
    maybe_await,
    with_graceful_degradation,
)
from tailor.utils.errors import IterationError, TailorError
from tailor.utils.event_logging import EventLog
from tailor.utils.llm import LLMProvider

# =============================================================================
# TERMINATION CRITERIA
# =============================================================================


def score_history(history: Sequence[IterationHistory]) -> List[float]:
    """Scores of every completed round, in round order."""
    return [entry.score for entry in history]


def latest_score(history: Sequence[IterationHistory]) -> float:
    """Score of the most recent round, or 0.0 before the first round."""
    return history[-1].score if history else 0.0


def _is_stagnating(scores: Sequence[float], config: OptimizationConfig) -> bool:
    window = config.early_stopping_rounds + 1
    if len(scores) < window:
        return False
    recent = scores[-window:]
    # A delta counts as improvement only if it reaches min_improvement; regressions never do
    return all(later - earlier < config.min_improvement for earlier, later in zip(recent, recent[1:]))


def evaluate_termination_criteria(
    current_score: float,
    history: Sequence[IterationHistory],
    config: OptimizationConfig,
) -> IterationDecision:
    """
    Decide whether a run should stop after scoring current_score.

    Args:
        current_score: Score of the round just completed
        history: Rounds completed before this one
        config: Termination settings

    Returns:
        IterationDecision with should_continue, a human-readable reason, the
        score, and the TerminationReason when stopping
    """
    if current_score >= config.target_score:
        return IterationDecision(
            should_continue=False,
            reason=f"Target score of {config.target_score} reached with score {current_score:.3f}",
            score=current_score,
            termination_reason=TerminationReason.TARGET_REACHED,
        )

    if len(history) + 1 >= config.max_iterations:
        return IterationDecision(
            should_continue=False,
            reason=f"Maximum iterations ({config.max_iterations}) reached",
            score=current_score,
            termination_reason=TerminationReason.MAX_ITERATIONS,
        )

    if _is_stagnating(score_history(history) + [current_score], config):
        return IterationDecision(
            should_continue=False,
            reason=(
                f"Early stopping: no improvement for "
                f"{config.early_stopping_rounds} consecutive rounds"
            ),
            score=current_score,
            termination_reason=TerminationReason.EARLY_STOPPING,
        )

    return IterationDecision(
        should_continue=True,
        reason=(
            f"Continuing optimization (iteration {len(history) + 1}/{config.max_iterations}, "
            f"score: {current_score:.3f})"
        ),
        score=current_score,
    )


def determine_termination_reason(
    final_score: float, iteration_count: int, config: OptimizationConfig
) -> str:
    """
    Label a finished run: target_reached beats max_iterations; anything else
    is early_stopping by elimination.
    """
    if final_score >= config.target_score:
        return TerminationReason.TARGET_REACHED
    if iteration_count >= config.max_iterations:
        return TerminationReason.MAX_ITERATIONS
    return TerminationReason.EARLY_STOPPING


def create_optimization_result(
    final_resume: Resume,
    history: Sequence[IterationHistory],
    config: OptimizationConfig,
) -> OptimizationResult:
    """
    Assemble the terminal artifact of a run.

    Raises:
        ValueError: If history is empty
    """
    if not history:
        raise ValueError("Cannot create optimization result: no iterations in history")

    initial_score = history[0].score
    final_score = history[-1].score
    iteration_count = len(history)

    return OptimizationResult(
        final_resume=final_resume,
        final_score=final_score,
        iterations=tuple(history),
        termination_reason=determine_termination_reason(final_score, iteration_count, config),
        metrics=OptimizationMetrics(
            initial_score=initial_score,
            final_score=final_score,
            improvement=final_score - initial_score,
            iteration_count=iteration_count,
        ),
    )


# =============================================================================
# RUN STATE
# =============================================================================


def initialize_optimization_state(
    parsed_job: ParsedJob, initial_resume: Resume, config: OptimizationConfig
) -> OptimizationState:
    """RUNNING state before the first round."""
    return OptimizationState(parsed_job=parsed_job, current_resume=initial_resume, config=config)


def update_optimization_state(
    state: OptimizationState,
    iteration: Optional[IterationHistory] = None,
    new_resume: Optional[Resume] = None,
) -> OptimizationState:
    """
    Record a completed round and/or move on to a new draft.

    Raises:
        ValueError: If the run is no longer RUNNING
    """
    if not state.is_running:
        raise ValueError(f"Cannot update a run that is {state.status}")
    changes = {}
    if iteration is not None:
        changes["history"] = state.history + (iteration,)
    if new_resume is not None:
        changes["current_resume"] = new_resume
    return replace(state, **changes)


def complete_optimization_state(state: OptimizationState) -> OptimizationState:
    return replace(state, status=OptimizationStatus.COMPLETED)


def fail_optimization_state(state: OptimizationState) -> OptimizationState:
    return replace(state, status=OptimizationStatus.FAILED)


# =============================================================================
# SINGLE ROUND
# =============================================================================


async def process_iteration(
    resume_draft: Resume,
    parsed_job: ParsedJob,
    history: Sequence[IterationHistory],
    config: OptimizationConfig,
    components: IterationComponents,
    event_log: Optional[EventLog] = None,
) -> IterationDecision:
    """
    Run one round: parse, match, score, decide, and (if continuing) recommend.

    Recommendations are only generated when the run continues. A failure while
    parsing, matching or scoring aborts the run; a failure while generating
    recommendations falls back to a minimal Recommendations object.

    Raises:
        IterationError: "Failed to process iteration: <cause>", chained to the cause
    """
    round_number = len(history) + 1
    try:
        parsed_resume = await call_collaborator(components.parse_resume, resume_draft)
        matches = await call_collaborator(
            components.find_semantic_matches, parsed_resume.elements, parsed_job.elements
        )
        match_result = await call_collaborator(
            components.calculate_match_score, parsed_resume, parsed_job, matches
        )
    except Exception as e:
        _log_error(f"Round {round_number} failed: {e}")
        if event_log is not None:
            event_log.log_error(
                "process_iteration",
                e,
                fallback="abort_run",
                job_id=parsed_job.job_id,
                resume_id=resume_draft.id,
                round=round_number,
            )
        raise IterationError(e, round_number) from e

    if event_log is not None:
        event_log.log_semantic_analysis(resume_draft.id, parsed_job.job_id, len(matches))
        event_log.log_scoring(
            resume_draft.id,
            parsed_job.job_id,
            match_result.overall_score,
            match_result.breakdown.scores(),
            len(match_result.gaps),
            len(match_result.strengths),
        )

    decision = evaluate_termination_criteria(match_result.overall_score, history, config)
    decision.match_result = match_result
    if not decision.should_continue:
        return decision

    try:
        recommendations = await call_collaborator(
            components.generate_recommendations,
            match_result,
            matches,
            round_number,
            config.target_score,
        )
    except Exception as e:
        recommendations = handle_recommendation_generation_failure(
            e, round_number, match_result.overall_score, config.target_score, event_log
        )
    if event_log is not None:
        event_log.log_recommendations(
            resume_draft.id,
            parsed_job.job_id,
            round_number,
            len(recommendations.priority),
            len(recommendations.optional),
            len(recommendations.rewording),
        )
    decision.recommendations = recommendations
    return decision


# =============================================================================
# LOOP DRIVER
# =============================================================================


def default_components(
    provider: LLMProvider,
    scoring_config: Optional[ScoringConfig] = None,
    event_log: Optional[EventLog] = None,
) -> IterationComponents:
    """The built-in LLM-backed collaborators."""
    matcher = SemanticMatcher(provider, event_log)
    return IterationComponents(
        parse_resume=partial(parse_resume, provider=provider),
        find_semantic_matches=matcher.find_semantic_matches,
        calculate_match_score=partial(
            calculate_match_score, config=scoring_config, event_log=event_log
        ),
        generate_recommendations=generate_recommendations,
    )


async def prepare_job(
    job: JobPosting,
    parse_job: Callable[[JobPosting], ParsedJob],
    event_log: Optional[EventLog] = None,
    tag_elements: Optional[Callable[[Sequence[Element]], List[Element]]] = None,
) -> ParsedJob:
    """
    Parse a job posting, tag its elements and assign their importance.

    A parsing failure degrades to a job with no elements (flagged with
    parsing_failed in its metadata) instead of raising. When tag_elements is
    given it fills in tags for untagged elements before importance is assigned.
    """

    async def parse_and_weight() -> ParsedJob:
        parsed = await call_collaborator(parse_job, job)
        if event_log is not None:
            event_log.log_parsing("job", job.id, len(parsed.elements))
        if tag_elements is not None:
            parsed = replace(parsed, elements=await call_collaborator(tag_elements, parsed.elements))
        return assign_importance_scores(parsed, event_log)

    return await with_graceful_degradation(
        parse_and_weight,
        lambda error: handle_parsing_failure(
            "job", job.id, job.full_text(), error, event_log, title=job.title
        ),
        "parse_job_description",
        report=False,
    )


async def _run_round(
    resume: Resume,
    parsed_job: ParsedJob,
    history: Sequence[IterationHistory],
    config: OptimizationConfig,
    components: IterationComponents,
    event_log: Optional[EventLog],
    round_timeout: Optional[float],
) -> IterationDecision:
    round_coro = process_iteration(resume, parsed_job, tuple(history), config, components, event_log)
    if round_timeout is None:
        return await round_coro
    try:
        return await asyncio.wait_for(round_coro, timeout=round_timeout)
    except asyncio.TimeoutError as e:
        error = TailorError.round_timeout(len(history) + 1, round_timeout)
        _log_error(str(error))
        if event_log is not None:
            event_log.log_error("process_iteration", error, fallback="abort_run")
        raise error from e


async def start_optimization(
    job: JobPosting,
    initial_resume: Resume,
    config: OptimizationConfig,
    llm_client: Optional[LLMProvider] = None,
    on_recommendations: Optional[Callable] = None,
    scoring_config: Optional[ScoringConfig] = None,
    event_log: Optional[EventLog] = None,
    components: Optional[IterationComponents] = None,
    parse_job: Optional[Callable[[JobPosting], ParsedJob]] = None,
    round_timeout: Optional[float] = None,
    on_state_change: Optional[Callable[[OptimizationState], None]] = None,
) -> OptimizationResult:
    """
    Run rounds until a termination criterion is met.

    After each non-terminal round, on_recommendations(recommendations, round)
    (sync or async) is asked for the next resume draft. Without a callback,
    or when it returns None, the run ends after the current round.

    Args:
        job: Job posting to optimize against
        initial_resume: First resume draft
        config: Termination settings, fixed for the whole run
        llm_client: Provider for the default collaborators
        on_recommendations: Callback producing the next draft
        scoring_config: Dimension weights for the default scorer
        event_log: Where run events are recorded
        components: Replaces the default per-round collaborators
        parse_job: Replaces the default job parser (and skips element tagging)
        round_timeout: Seconds allowed per round; exceeding it aborts the run
        on_state_change: Called with every new OptimizationState, including
            the final COMPLETED or FAILED one

    Returns:
        OptimizationResult

    Raises:
        TailorError: Invalid job/resume input, or a round timeout
        IterationError: A round could not be parsed, matched or scored
    """
    validate_job_posting(job)
    validate_resume(initial_resume)

    if components is None or parse_job is None:
        if llm_client is None:
            raise ValueError("llm_client is required unless components and parse_job are given")
    components = components or default_components(llm_client, scoring_config, event_log)
    tag_elements = None
    if parse_job is None:
        parse_job = partial(parse_job_description, provider=llm_client)
        tag_elements = SemanticMatcher(llm_client, event_log).tag_elements

    def publish(new_state: OptimizationState) -> OptimizationState:
        if on_state_change is not None:
            on_state_change(new_state)
        return new_state

    log_run_start(job.id, initial_resume.id, config)
    parsed_job = await prepare_job(job, parse_job, event_log, tag_elements)
    state = publish(initialize_optimization_state(parsed_job, initial_resume, config))

    try:
        while True:
            round_number = state.current_iteration
            resume = state.current_resume
            decision = await _run_round(
                resume, parsed_job, state.history, config, components, event_log, round_timeout
            )
            state = publish(
                update_optimization_state(
                    state,
                    IterationHistory(
                        round=round_number,
                        score=decision.score,
                        recommendations=decision.recommendations if decision.should_continue else None,
                        resume_version=resume.id,
                    ),
                )
            )
            log_round_decision(round_number, decision)
            if event_log is not None:
                event_log.log_iteration_decision(
                    round_number,
                    decision.score,
                    decision.should_continue,
                    decision.reason,
                    job_id=job.id,
                    resume_id=resume.id,
                )

            if not decision.should_continue or on_recommendations is None:
                break

            next_resume = await maybe_await(on_recommendations(decision.recommendations, round_number))
            if next_resume is None:
                _log_debug(f"No revised resume after round {round_number}, stopping")
                break
            state = publish(update_optimization_state(state, new_resume=validate_resume(next_resume)))
    except Exception:
        publish(fail_optimization_state(state))
        raise

    state = publish(complete_optimization_state(state))
    result = create_optimization_result(state.current_resume, state.history, config)
    log_run_complete(result)
    if event_log is not None:
        event_log.log_optimization_complete(
            job.id,
            initial_resume.id,
            result.metrics.initial_score,
            result.metrics.final_score,
            result.metrics.iteration_count,
            result.termination_reason,
        )
    return result
