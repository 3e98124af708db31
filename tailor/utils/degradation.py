"""
Degradation Policy.

Wraps calls to external collaborators (parsing, semantic matching,
importance scoring, per-dimension scoring, recommendation generation) so a
failure there yields a safe fallback value plus a log entry instead of an
exception.

Fallbacks:
- Semantic analysis of one element  -> generic tags, importance 0.5, category "keyword"
- Importance scoring of one element -> importance 0.5
- Whole semantic-matching step      -> no matches (every job element becomes a gap)
- One scoring dimension             -> dimension zeroed, its weight redistributed
- Parsing                           -> no elements, raw text kept, parsing_failed flag
- Recommendation generation         -> empty lists with an apology summary

Every handler logs the error (operation name and fallback chosen) to loguru
and, when given one, to an EventLog. None of them hold state across calls.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from loguru import logger

from tailor.contexts.intake.data_structures import (
    Element,
    ElementCategory,
    ParsedJob,
    ParsedResume,
    TaggedElement,
)
from tailor.contexts.targeting.recommendations import RecommendationMetadata, Recommendations
from tailor.utils.config import DimensionWeights
from tailor.utils.errors import TailorError
from tailor.utils.event_logging import EventLog

DEFAULT_IMPORTANCE = 0.5
FALLBACK_TAGS = ("general",)
FALLBACK_SUMMARY = (
    "Unable to generate detailed recommendations due to an error. Please review manually."
)

T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await value if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


def _is_coroutine_callable(func: Callable) -> bool:
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__call__", None)
    )


async def call_collaborator(func: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Call a collaborator that may be a coroutine function or a blocking function.

    Blocking functions run in a worker thread, so the event loop keeps running
    and an enclosing asyncio.wait_for can still time the call out. Awaitable
    results are awaited.
    """
    if _is_coroutine_callable(func):
        return await func(*args, **kwargs)
    return await maybe_await(await asyncio.to_thread(func, *args, **kwargs))


def _report(
    operation: str,
    error: BaseException,
    fallback: str,
    event_log: Optional[EventLog] = None,
    **context,
) -> None:
    if isinstance(error, TailorError):
        logger.warning(
            f"[degrade] {operation} failed ({error.code}, {error.category}/{error.severity}): "
            f"{error} -> {fallback}"
        )
    else:
        logger.opt(exception=error).warning(
            f"[degrade] {operation} failed ({type(error).__name__}): {error} -> {fallback}"
        )
    if event_log is not None:
        event_log.log_error(operation, error, fallback=fallback, **context)


# =============================================================================
# GENERIC WRAPPERS
# =============================================================================


async def with_graceful_degradation(
    operation: Callable[[], Any],
    fallback: Callable[[Exception], T],
    operation_name: str,
    event_log: Optional[EventLog] = None,
    report: bool = True,
) -> T:
    """
    Run operation, returning fallback(error) if it raises.

    operation may be a coroutine function or a blocking function (run through
    call_collaborator); its result is awaited when needed.

    Args:
        operation: Zero-argument callable doing the real work
        fallback: Called with the caught exception to produce the substitute value
        operation_name: Name used when logging the failure
        event_log: Optional EventLog to record the failure in
        report: Record the failure here. Pass False when fallback is one of the
            handle_* functions below, which record it themselves.

    Example:
        matches = await with_graceful_degradation(
            lambda: matcher.find_semantic_matches(resume_elements, job_elements),
            lambda error: handle_semantic_matching_failure(error, event_log),
            "semantic_matching",
            report=False,
        )
    """
    try:
        return await call_collaborator(operation)
    except Exception as e:
        if report:
            _report(operation_name, e, "using_fallback_value", event_log)
        else:
            logger.debug(f"[degrade] {operation_name} failed, handing off to its fallback")
        return fallback(e)


def with_graceful_degradation_sync(
    operation: Callable[[], T],
    fallback: Callable[[Exception], T],
    operation_name: str,
    event_log: Optional[EventLog] = None,
    report: bool = True,
) -> T:
    """Synchronous counterpart of with_graceful_degradation."""
    try:
        return operation()
    except Exception as e:
        if report:
            _report(operation_name, e, "using_fallback_value", event_log)
        else:
            logger.debug(f"[degrade] {operation_name} failed, handing off to its fallback")
        return fallback(e)


# =============================================================================
# FAILURE HANDLERS
# =============================================================================


def handle_semantic_analysis_failure(
    element: Element, error: BaseException, event_log: Optional[EventLog] = None
) -> TaggedElement:
    """Basic keyword tagging for an element whose semantic analysis failed."""
    _report(
        "semantic_analysis",
        error,
        "basic_keyword_matching",
        event_log,
        element=element.text,
    )
    return TaggedElement.from_element(
        Element(
            text=element.text,
            normalized_text=element.normalized_text,
            tags=FALLBACK_TAGS,
            context=element.context,
            position=element.position,
        ),
        importance=DEFAULT_IMPORTANCE,
        category=ElementCategory.KEYWORD,
    )


def handle_importance_scoring_failure(
    element: Element, error: BaseException, event_log: Optional[EventLog] = None
) -> float:
    _report(
        "importance_scoring",
        error,
        f"default_importance_{DEFAULT_IMPORTANCE}",
        event_log,
        element=element.text,
    )
    return DEFAULT_IMPORTANCE


def handle_semantic_matching_failure(
    error: BaseException, event_log: Optional[EventLog] = None, **context
) -> List:
    _report("semantic_matching", error, "empty_matches", event_log, **context)
    return []


def handle_dimension_scoring_failure(
    weights: DimensionWeights,
    failed_dimension: str,
    error: BaseException,
    event_log: Optional[EventLog] = None,
) -> DimensionWeights:
    """
    Weights after dropping a failed dimension.

    The failed dimension's weight is zeroed and the remaining weights are
    scaled by 1 / (1 - failed_weight) so they still sum to 1.0.
    """
    _report(
        "dimension_scoring",
        error,
        "calculate_from_remaining_dimensions",
        event_log,
        failed_dimension=failed_dimension,
    )
    return weights.redistribute(failed_dimension)


def handle_parsing_failure(
    kind: str,
    item_id: str,
    raw_text: str,
    error: BaseException,
    event_log: Optional[EventLog] = None,
    title: str = "",
) -> Union[ParsedJob, ParsedResume]:
    """
    Empty parse result for a job ("job") or resume ("resume") that failed to parse.

    Downstream scoring still runs, against zero elements on this side.
    """
    _report("parsing", error, "minimal_structure", event_log, kind=kind, item_id=item_id)
    if event_log is not None:
        event_log.log_parsing(kind, item_id, 0, success=False, error=str(error))

    metadata: Dict[str, Any] = {"parsing_failed": True, "error": str(error)}
    if kind == "job":
        return ParsedJob(job_id=item_id, title=title, raw_text=raw_text, metadata=metadata)
    return ParsedResume(resume_id=item_id, raw_text=raw_text, metadata=metadata)


def handle_recommendation_generation_failure(
    error: BaseException,
    iteration_round: int,
    current_score: float,
    target_score: float,
    event_log: Optional[EventLog] = None,
) -> Recommendations:
    _report(
        "recommendation_generation",
        error,
        "minimal_recommendations",
        event_log,
        iteration_round=iteration_round,
    )
    return Recommendations(
        summary=FALLBACK_SUMMARY,
        priority=[],
        optional=[],
        rewording=[],
        metadata=RecommendationMetadata(
            iteration_round=iteration_round,
            current_score=current_score,
            target_score=target_score,
            generation_failed=True,
        ),
    )
