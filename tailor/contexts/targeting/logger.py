"""
Targeting context logger.

Provides logging interface for targeting context with automatic [target] prefix.
All targeting modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from tailor.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[target]"


def setup_targeting_logger(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Setup logger for targeting context.

    Args:
        log_dir: Directory for this session (console only when None)

    Returns:
        Path to log file, or None
    """
    return _setup_logger(context_name="target", log_dir=log_dir)


def _log_info(message: str) -> None:
    """Log info message with [target] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [target] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [target] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [target] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [target] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level targeting-specific logging helpers


def log_match_result(result, verbose: bool = False) -> None:
    """
    Log a MatchResult: overall score, per-dimension scores and top gaps/strengths.

    Args:
        result: MatchResult from calculate_match_score()
        verbose: Show every gap and strength instead of the top three
    """
    _log_info(f"Match score: {result.overall_score:.3f}")
    for name, dimension in result.breakdown.dimensions().items():
        _log_debug(f"  {name}: {dimension.score:.3f} x {dimension.weight:.2f}")
    if result.breakdown.failed_dimensions:
        _log_warning(f"Failed dimensions: {', '.join(result.breakdown.failed_dimensions)}")

    limit = None if verbose else 3
    for gap in result.gaps[:limit]:
        _log_debug(f"  Gap: {gap.element.text} (impact {gap.impact:.2f})")
    for strength in result.strengths[:limit]:
        _log_debug(f"  Strength: {strength.element.text} ({strength.match_type})")


def log_matches_found(match_count: int, job_element_count: int) -> None:
    _log_info(f"Matched {match_count} resume elements against {job_element_count} job elements")
