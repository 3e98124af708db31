"""
Iteration context logger.

Provides logging interface for iteration context with automatic [iterate] prefix.
All iteration modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from tailor.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[iterate]"


def setup_iteration_logger(
    log_dir: Optional[Path] = None, extra_provenance: dict = None
) -> Optional[Path]:
    """
    Setup logger for iteration context.

    Args:
        log_dir: Directory for this optimization session (console only when None)
        extra_provenance: Run settings to record in the provenance header

    Returns:
        Path to log file, or None

    Example:
        from tailor.contexts.iteration.logger import setup_iteration_logger

        setup_iteration_logger(Path("outs/logs/optimize_20260101_120000"),
                               {"Target score": 0.8, "Max iterations": 10})
    """
    return _setup_logger(context_name="iterate", log_dir=log_dir, extra_provenance=extra_provenance)


def _log_info(message: str) -> None:
    """Log info message with [iterate] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [iterate] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [iterate] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [iterate] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [iterate] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level iteration-specific logging helpers


def log_run_start(job_id: str, resume_id: str, config) -> None:
    """Log start of an optimization run with its termination settings."""
    _log_info(f"Starting optimization: job {job_id}, resume {resume_id}")
    _log_debug(
        f"  target={config.target_score} max_iterations={config.max_iterations} "
        f"early_stopping_rounds={config.early_stopping_rounds} "
        f"min_improvement={config.min_improvement}"
    )


def log_round_decision(round_number: int, decision) -> None:
    """Log the decision reached at the end of a round."""
    score = f"{decision.score:.3f}" if decision.score is not None else "n/a"
    if decision.should_continue:
        _log_info(f"Round {round_number} ({score}): {decision.reason}")
    else:
        _log_success(f"Round {round_number} ({score}): {decision.reason}")


def log_run_complete(result) -> None:
    """
    Log the final OptimizationResult.

    Args:
        result: OptimizationResult from create_optimization_result()
    """
    metrics = result.metrics
    _log_success(
        f"Optimization finished ({result.termination_reason}) after "
        f"{metrics.iteration_count} round(s): {metrics.initial_score:.3f} -> "
        f"{metrics.final_score:.3f} ({metrics.improvement:+.3f})"
    )
