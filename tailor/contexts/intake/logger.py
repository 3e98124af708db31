"""
Intake context logger.

Provides logging interface for intake context with automatic [intake] prefix.
All intake modules should import from this module, not from utils.logger directly.
"""

from typing import Optional

from loguru import logger

CONTEXT_PREFIX = "[intake]"


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level intake-specific logging helpers


def log_parse_result(kind: str, item_id: str, element_count: int, duplicates: int = 0) -> None:
    """Log the outcome of parsing one job or resume."""
    _log_success(f"Parsed {kind} {item_id}: {element_count} elements")
    if duplicates:
        _log_debug(f"  Merged {duplicates} duplicate elements")


def log_validation_failure(kind: str, item_id: Optional[str], issues: list) -> None:
    """Log every validation issue for a rejected input."""
    _log_error(f"Invalid {kind} {item_id or '<missing id>'}: {len(issues)} issue(s)")
    for issue in issues:
        _log_error(f"  {issue.field}: {issue.message}")
