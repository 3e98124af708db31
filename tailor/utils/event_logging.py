"""
Structured event logging for TAILOR (Tier 2 logging).

An EventLog is an injectable observer that records what the engine did
(parsing, matching, scoring, recommendations, iteration decisions, errors)
in a bounded ring buffer. Oldest entries are evicted first once the buffer
is full. Each run or test owns its own EventLog, so nothing leaks between
them. Every entry is also mirrored to loguru at DEBUG.

For detailed within-context logging (Tier 1), use tailor.utils.logger instead.

Usage:
    from tailor.utils.event_logging import EventLog

    event_log = EventLog(max_entries=1000)
    event_log.log_scoring("resume-1", "job-1", 0.72, {"skills": 0.8})
    event_log.get_entries(EntryType.SCORING)
"""

import json
import traceback
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from tailor.utils.errors import TailorError
from tailor.utils.timestamp import now_exact

DEFAULT_MAX_ENTRIES = 5000


class EntryType:
    """Enum-like class for event log entry types"""

    PARSING = "parsing"
    SEMANTIC_ANALYSIS = "semantic_analysis"
    SCORING = "scoring"
    RECOMMENDATION = "recommendation"
    ITERATION = "iteration"
    DECISION = "decision"
    ERROR = "error"
    INFO = "info"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [
            cls.PARSING,
            cls.SEMANTIC_ANALYSIS,
            cls.SCORING,
            cls.RECOMMENDATION,
            cls.ITERATION,
            cls.DECISION,
            cls.ERROR,
            cls.INFO,
        ]


@dataclass
class LogEntry:
    """One event in the log."""

    entry_type: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    job_id: Optional[str] = None
    resume_id: Optional[str] = None
    timestamp: str = field(default_factory=now_exact)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "entry_type": self.entry_type,
            "message": self.message,
            "job_id": self.job_id,
            "resume_id": self.resume_id,
            "data": self.data,
        }


class EventLog:
    """
    Bounded, in-memory event log.

    Args:
        max_entries: Ring buffer capacity (oldest entries evicted first)
        enabled: When False, nothing is recorded or mirrored
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES, enabled: bool = True):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self.enabled = enabled
        self._entries: deque = deque(maxlen=max_entries)

    @classmethod
    def from_config(cls, config) -> "EventLog":
        """Build from an EventLogConfig."""
        return cls(max_entries=config.max_entries, enabled=config.enabled)

    def __len__(self) -> int:
        return len(self._entries)

    def _record(
        self,
        entry_type: str,
        message: str,
        job_id: Optional[str] = None,
        resume_id: Optional[str] = None,
        **data,
    ) -> Optional[LogEntry]:
        if not self.enabled:
            return None
        entry = LogEntry(
            entry_type=entry_type,
            message=message,
            data=data,
            job_id=job_id,
            resume_id=resume_id,
        )
        self._entries.append(entry)
        logger.debug(f"[event:{entry_type}] {message}")
        return entry

    # =========================================================================
    # RECORDING
    # =========================================================================

    def log_parsing(
        self,
        kind: str,
        item_id: str,
        element_count: int,
        success: bool = True,
        error: Optional[str] = None,
    ) -> Optional[LogEntry]:
        """Record the outcome of parsing a job ("job") or resume ("resume")."""
        status = "Parsed" if success else "Failed to parse"
        ids = {"job_id": item_id} if kind == "job" else {"resume_id": item_id}
        return self._record(
            EntryType.PARSING,
            f"{status} {kind} {item_id}: {element_count} elements",
            kind=kind,
            element_count=element_count,
            success=success,
            error=error,
            **ids,
        )

    def log_semantic_analysis(
        self,
        resume_id: Optional[str],
        job_id: Optional[str],
        match_count: int,
        match_types: Optional[Dict[str, int]] = None,
    ) -> Optional[LogEntry]:
        return self._record(
            EntryType.SEMANTIC_ANALYSIS,
            f"Found {match_count} semantic matches",
            job_id=job_id,
            resume_id=resume_id,
            match_count=match_count,
            match_types=match_types or {},
        )

    def log_scoring(
        self,
        resume_id: Optional[str],
        job_id: Optional[str],
        overall_score: float,
        dimension_scores: Optional[Dict[str, float]] = None,
        gap_count: int = 0,
        strength_count: int = 0,
    ) -> Optional[LogEntry]:
        return self._record(
            EntryType.SCORING,
            f"Match score: {overall_score:.3f}",
            job_id=job_id,
            resume_id=resume_id,
            overall_score=overall_score,
            dimension_scores=dimension_scores or {},
            gap_count=gap_count,
            strength_count=strength_count,
        )

    def log_recommendations(
        self,
        resume_id: Optional[str],
        job_id: Optional[str],
        iteration_round: int,
        priority_count: int,
        optional_count: int,
        rewording_count: int,
    ) -> Optional[LogEntry]:
        total = priority_count + optional_count + rewording_count
        return self._record(
            EntryType.RECOMMENDATION,
            f"Generated {total} recommendations for round {iteration_round}",
            job_id=job_id,
            resume_id=resume_id,
            iteration_round=iteration_round,
            priority_count=priority_count,
            optional_count=optional_count,
            rewording_count=rewording_count,
        )

    def log_iteration_decision(
        self,
        round_number: int,
        score: float,
        should_continue: bool,
        reason: str,
        job_id: Optional[str] = None,
        resume_id: Optional[str] = None,
    ) -> Optional[LogEntry]:
        decision = "continue" if should_continue else "stop"
        return self._record(
            EntryType.DECISION,
            f"Round {round_number} ({score:.3f}): {decision} - {reason}",
            job_id=job_id,
            resume_id=resume_id,
            round=round_number,
            score=score,
            should_continue=should_continue,
            reason=reason,
        )

    def log_optimization_complete(
        self,
        job_id: Optional[str],
        resume_id: Optional[str],
        initial_score: float,
        final_score: float,
        iteration_count: int,
        termination_reason: str,
    ) -> Optional[LogEntry]:
        return self._record(
            EntryType.ITERATION,
            f"Optimization complete after {iteration_count} rounds: "
            f"{initial_score:.3f} -> {final_score:.3f} ({termination_reason})",
            job_id=job_id,
            resume_id=resume_id,
            initial_score=initial_score,
            final_score=final_score,
            improvement=final_score - initial_score,
            iteration_count=iteration_count,
            termination_reason=termination_reason,
        )

    def log_error(
        self,
        operation: str,
        error: BaseException,
        fallback: Optional[str] = None,
        job_id: Optional[str] = None,
        resume_id: Optional[str] = None,
        **context,
    ) -> Optional[LogEntry]:
        """
        Record a caught error with enough context to reconstruct what happened.

        TailorError instances contribute their code, category, severity and
        retryability. Any other exception contributes its class name and
        traceback.
        """
        if isinstance(error, TailorError):
            details = {
                "code": error.code,
                "category": error.category,
                "severity": error.severity,
                "retryable": error.retryable,
            }
        else:
            details = {
                "error_class": type(error).__name__,
                "stack": "".join(
                    traceback.format_exception(type(error), error, error.__traceback__)
                ),
            }
        return self._record(
            EntryType.ERROR,
            f"{operation} failed: {error}",
            job_id=job_id,
            resume_id=resume_id,
            operation=operation,
            fallback=fallback,
            **details,
            **context,
        )

    def log_info(self, message: str, **data) -> Optional[LogEntry]:
        return self._record(EntryType.INFO, message, **data)

    # =========================================================================
    # QUERYING
    # =========================================================================

    def get_entries(self, entry_type: Optional[str] = None) -> List[LogEntry]:
        """All entries (oldest first), optionally filtered by type."""
        if entry_type is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.entry_type == entry_type]

    def get_recent(self, n: int = 10) -> List[LogEntry]:
        """The last n entries (most recent last)."""
        if n <= 0:
            return []
        return list(self._entries)[-n:]

    def get_entries_for_pair(self, job_id: str, resume_id: str) -> List[LogEntry]:
        """Entries tagged with this job or this resume."""
        return [
            entry
            for entry in self._entries
            if entry.job_id == job_id or entry.resume_id == resume_id
        ]

    def clear(self) -> None:
        self._entries.clear()

    def export_json(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._entries], indent=2, default=str)

    def export_jsonl(self, path: Path) -> Path:
        """Write all entries to path in JSON Lines format (one object per line)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for entry in self._entries:
                f.write(json.dumps(entry.to_dict(), default=str) + "\n")
        return path
