"""
Data structures for the Iteration context.

IterationHistory entries are append-only. The loop driver carries them in an
OptimizationState and the controller functions only ever read them.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from tailor.contexts.intake.data_structures import Element, ParsedJob, ParsedResume, Resume
from tailor.contexts.targeting.match_data_structures import MatchResult, SemanticMatch
from tailor.contexts.targeting.recommendations import Recommendations
from tailor.utils.config import OptimizationConfig


class TerminationReason:
    """Enum-like class for why an optimization run stopped"""

    TARGET_REACHED = "target_reached"
    MAX_ITERATIONS = "max_iterations"
    EARLY_STOPPING = "early_stopping"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.TARGET_REACHED, cls.MAX_ITERATIONS, cls.EARLY_STOPPING]


@dataclass(frozen=True)
class IterationHistory:
    """
    One completed round.

    Attributes:
        round: 1-based round number
        score: Overall match score of that round
        recommendations: Recommendations produced (None on the terminal round)
        resume_version: Opaque marker of the resume draft that was scored
    """

    round: int
    score: float
    recommendations: Optional[Recommendations] = None
    resume_version: Optional[str] = None


@dataclass
class IterationDecision:
    """Outcome of evaluating one round."""

    should_continue: bool
    reason: str
    recommendations: Optional[Recommendations] = None
    score: Optional[float] = None
    match_result: Optional[MatchResult] = None
    termination_reason: Optional[str] = None


@dataclass(frozen=True)
class OptimizationMetrics:
    initial_score: float
    final_score: float
    improvement: float
    iteration_count: int


@dataclass(frozen=True)
class OptimizationResult:
    final_resume: Resume
    final_score: float
    iterations: Tuple[IterationHistory, ...]
    termination_reason: str
    metrics: OptimizationMetrics


@dataclass
class IterationComponents:
    """
    Collaborators used by a single round.

    Attributes:
        parse_resume: (resume) -> ParsedResume
        find_semantic_matches: (resume_elements, job_elements) -> list of SemanticMatch
        calculate_match_score: (parsed_resume, parsed_job, matches) -> MatchResult
        generate_recommendations: (match_result, matches, iteration_round, target_score)
            -> Recommendations
    """

    parse_resume: Callable[[Resume], Union[ParsedResume, Awaitable[ParsedResume]]]
    find_semantic_matches: Callable[
        [Sequence[Element], Sequence[Element]],
        Union[List[SemanticMatch], Awaitable[List[SemanticMatch]]],
    ]
    calculate_match_score: Callable[[ParsedResume, ParsedJob, Sequence[SemanticMatch]], MatchResult]
    generate_recommendations: Callable[
        [MatchResult, Sequence[SemanticMatch], int, float],
        Union[Recommendations, Awaitable[Recommendations]],
    ]


class OptimizationStatus:
    """Enum-like class for the lifecycle of a run"""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.RUNNING, cls.COMPLETED, cls.FAILED]


@dataclass(frozen=True)
class OptimizationState:
    """
    Snapshot of a run. Every transition returns a new instance.

    A run starts RUNNING and moves exactly once to COMPLETED (a termination
    criterion was met or no further draft was supplied) or FAILED (a round
    raised or timed out).

    Attributes:
        parsed_job: The job every round is scored against
        current_resume: Draft that the next (or last) round scores
        config: Termination settings, fixed for the run
        history: Completed rounds, oldest first
        status: OptimizationStatus value
    """

    parsed_job: ParsedJob
    current_resume: Resume
    config: OptimizationConfig
    history: Tuple[IterationHistory, ...] = ()
    status: str = OptimizationStatus.RUNNING

    @property
    def current_iteration(self) -> int:
        """1-based number of the round in progress (or about to start)."""
        return len(self.history) + 1

    @property
    def is_running(self) -> bool:
        return self.status == OptimizationStatus.RUNNING
