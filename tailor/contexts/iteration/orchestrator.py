"""
Resume optimizer: the public entry point of the engine.

Wires the default LLM-backed collaborators (parser, semantic matcher,
scorer, recommendation generator) to the iteration controller, and keeps
an EventLog of everything that happens across runs.
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from tailor.contexts.intake.data_structures import JobPosting, ParsedJob, ParsedResume, Resume
from tailor.contexts.intake.llm_parser import parse_job_description, parse_resume
from tailor.contexts.intake.validation import validate_job_posting, validate_resume
from tailor.contexts.iteration.controller import prepare_job, start_optimization
from tailor.contexts.iteration.data_structures import OptimizationResult, OptimizationState
from tailor.contexts.iteration.logger import _log_info
from tailor.contexts.targeting.logger import log_match_result
from tailor.contexts.targeting.match_data_structures import MatchResult
from tailor.contexts.targeting.recommendations import Recommendations, generate_recommendations
from tailor.contexts.targeting.scorer import calculate_match_score
from tailor.contexts.targeting.semantic_matcher import SemanticMatcher
from tailor.utils.config import (
    LLMConfig,
    OptimizationConfig,
    ScoringConfig,
    TailorConfig,
    load_config,
    update_optimization_config,
)
from tailor.utils.degradation import (
    handle_parsing_failure,
    handle_semantic_matching_failure,
    with_graceful_degradation,
)
from tailor.utils.event_logging import EventLog
from tailor.utils.llm import LLMProvider, get_provider


@dataclass
class AnalysisResult:
    """Single-shot analysis of one resume against one job."""

    match_result: MatchResult
    recommendations: Recommendations
    parsed_job: ParsedJob
    parsed_resume: ParsedResume

    def to_dict(self) -> dict:
        return {
            "job_id": self.parsed_job.job_id,
            "resume_id": self.parsed_resume.resume_id,
            "match_result": self.match_result.to_dict(),
            "recommendations": self.recommendations.to_dict(),
        }


async def analyze_match(
    job: JobPosting,
    resume: Resume,
    provider: LLMProvider,
    scoring_config: Optional[ScoringConfig] = None,
    target_score: float = OptimizationConfig.target_score,
    event_log: Optional[EventLog] = None,
) -> AnalysisResult:
    """
    Parse, match and score once, then produce round 1 recommendations.

    Untagged job elements are tagged before importance is assigned; a tagging
    failure on one element falls back to basic keyword tagging. Parsing
    failures on either side and a failing semantic-matching step degrade to
    empty results instead of raising.

    Raises:
        TailorError: If job or resume fails input validation
    """
    validate_job_posting(job)
    validate_resume(resume)

    matcher = SemanticMatcher(provider, event_log)
    parsed_job = await prepare_job(
        job,
        partial(parse_job_description, provider=provider),
        event_log,
        tag_elements=matcher.tag_elements,
    )

    def parse_and_log() -> ParsedResume:
        parsed = parse_resume(resume, provider)
        if event_log is not None:
            event_log.log_parsing("resume", resume.id, len(parsed.elements))
        return parsed

    parsed_resume = await with_graceful_degradation(
        parse_and_log,
        lambda error: handle_parsing_failure("resume", resume.id, resume.content, error, event_log),
        "parse_resume",
        report=False,
    )

    matches = await with_graceful_degradation(
        lambda: matcher.find_semantic_matches(parsed_resume.elements, parsed_job.elements),
        lambda error: handle_semantic_matching_failure(
            error, event_log, job_id=job.id, resume_id=resume.id
        ),
        "find_semantic_matches",
        report=False,
    )

    match_result = calculate_match_score(
        parsed_resume, parsed_job, matches, config=scoring_config, event_log=event_log
    )
    recommendations = generate_recommendations(match_result, matches, 1, target_score)

    if event_log is not None:
        event_log.log_scoring(
            resume.id,
            job.id,
            match_result.overall_score,
            match_result.breakdown.scores(),
            len(match_result.gaps),
            len(match_result.strengths),
        )
    log_match_result(match_result)

    return AnalysisResult(
        match_result=match_result,
        recommendations=recommendations,
        parsed_job=parsed_job,
        parsed_resume=parsed_resume,
    )


class ResumeOptimizer:
    """
    Holds the configuration, LLM provider and event log for a series of runs.

    Configuration updates return a new frozen OptimizationConfig and apply to
    subsequent runs only; a run in progress keeps the config it started with.

    Example:
        optimizer = ResumeOptimizer.from_config(Path("config/tailor.yaml"))
        analysis = asyncio.run(optimizer.analyze_match(job, resume))
        result = asyncio.run(optimizer.optimize(job, resume, on_recommendations=ask_user))
    """

    def __init__(
        self,
        config: Optional[OptimizationConfig] = None,
        provider: Optional[LLMProvider] = None,
        scoring_config: Optional[ScoringConfig] = None,
        event_log: Optional[EventLog] = None,
        llm_config: Optional[LLMConfig] = None,
    ):
        self.config = config or OptimizationConfig()
        self.scoring_config = scoring_config or ScoringConfig()
        self.event_log = event_log if event_log is not None else EventLog()
        self.llm_config = llm_config or LLMConfig()
        self._provider = provider
        self._state: Optional[OptimizationState] = None

    @classmethod
    def from_config(
        cls, config_path=None, overrides=None, provider: Optional[LLMProvider] = None
    ) -> "ResumeOptimizer":
        """
        Build an optimizer from YAML/env/override configuration.

        The provider is created lazily from the llm section unless given.
        """
        tailor_config: TailorConfig = load_config(config_path, overrides)
        return cls(
            config=tailor_config.optimization,
            provider=provider,
            scoring_config=tailor_config.scoring,
            event_log=EventLog.from_config(tailor_config.logging),
            llm_config=tailor_config.llm,
        )

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_provider(self.llm_config.provider, self.llm_config.model)
        return self._provider

    async def analyze_match(self, job: JobPosting, resume: Resume) -> AnalysisResult:
        return await analyze_match(
            job,
            resume,
            self.provider,
            scoring_config=self.scoring_config,
            target_score=self.config.target_score,
            event_log=self.event_log,
        )

    async def optimize(
        self,
        job: JobPosting,
        resume: Resume,
        on_recommendations: Optional[Callable] = None,
        round_timeout: Optional[float] = None,
    ) -> OptimizationResult:
        """
        Run the optimization loop with the current configuration.

        Args:
            job: Job posting
            resume: Initial resume draft
            on_recommendations: (recommendations, round) -> next Resume or None
            round_timeout: Optional per-round time limit in seconds
        """
        config = self.config
        _log_info(f"Optimizing resume {resume.id} for job {job.id}")
        return await start_optimization(
            job,
            resume,
            config,
            self.provider,
            on_recommendations,
            scoring_config=self.scoring_config,
            event_log=self.event_log,
            round_timeout=round_timeout,
            on_state_change=self._track_state,
        )

    def _track_state(self, state: OptimizationState) -> None:
        self._state = state

    def get_state(self) -> Optional[OptimizationState]:
        """State of the current or most recent run (None before the first run)."""
        return self._state

    def is_running(self) -> bool:
        return self._state is not None and self._state.is_running

    def update_config(self, **changes) -> OptimizationConfig:
        """
        Replace termination settings for future runs.

        Raises:
            TailorError: CONFIGURATION_ERROR if the result is invalid
        """
        self.config = update_optimization_config(self.config, **changes)
        return self.config

    def get_config(self) -> OptimizationConfig:
        return self.config

    def get_logs(self, entry_type: Optional[str] = None) -> list:
        return self.event_log.get_entries(entry_type)

    def clear_logs(self) -> None:
        self.event_log.clear()
