"""
Error taxonomy for TAILOR.

Every failure the engine reports carries a machine-readable code, a category,
a severity and a retryability flag so callers (and the event log) can decide
what to do without re-running any LLM calls.

Taxonomy:
- Input validation errors: fatal, surfaced immediately, never retried
- Collaborator failures: caught by the degradation policy (utils/degradation.py)
  except inside a round, where they abort the run as IterationError
- Configuration errors: programmer errors, never caught internally
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tailor.utils.timestamp import now_exact


class ErrorCategory:
    """Enum-like class for error categories"""

    VALIDATION = "validation"
    PARSING = "parsing"
    NETWORK = "network"
    STORAGE = "storage"
    SCORING = "scoring"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity:
    """Enum-like class for error severities"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Enum-like class for TAILOR error codes"""

    # Input validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JOB_POSTING = "INVALID_JOB_POSTING"
    INVALID_RESUME = "INVALID_RESUME"

    # Parsing
    JOB_PARSING_FAILED = "JOB_PARSING_FAILED"
    RESUME_PARSING_FAILED = "RESUME_PARSING_FAILED"

    # Semantic analysis
    SEMANTIC_ANALYSIS_FAILED = "SEMANTIC_ANALYSIS_FAILED"
    MATCHING_FAILED = "MATCHING_FAILED"

    # Scoring
    IMPORTANCE_SCORING_FAILED = "IMPORTANCE_SCORING_FAILED"
    SCORING_ERROR = "SCORING_ERROR"

    # Recommendations and iteration
    RECOMMENDATION_GENERATION_FAILED = "RECOMMENDATION_GENERATION_FAILED"
    ITERATION_FAILED = "ITERATION_FAILED"

    # Transport
    AGENT_TIMEOUT = "AGENT_TIMEOUT"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


@dataclass
class ValidationIssue:
    """A single field-level validation problem."""

    field: str
    message: str
    received: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message, "received": self.received}


class TailorError(Exception):
    """
    Structured error raised by TAILOR components.

    Attributes:
        code: ErrorCode value
        user_message: Short human-readable description
        technical_details: Details for logs and debugging
        category: ErrorCategory value
        severity: ErrorSeverity value
        context: Extra structured context (ids, operation names, ...)
        validation_errors: Field-level issues for validation failures
        retryable: Whether the application layer may retry the operation
        suggested_action: What the caller should do next
        timestamp: ISO timestamp of when the error was created
    """

    def __init__(
        self,
        code: str,
        user_message: str,
        technical_details: str = "",
        category: str = ErrorCategory.UNEXPECTED,
        severity: str = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        validation_errors: Optional[List[ValidationIssue]] = None,
        retryable: bool = False,
        suggested_action: Optional[str] = None,
    ):
        self.code = code
        self.user_message = user_message
        self.technical_details = technical_details
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.validation_errors = validation_errors or []
        self.retryable = retryable
        self.suggested_action = suggested_action
        self.timestamp = now_exact()

        parts = [user_message]
        if technical_details:
            parts.append(technical_details)
        super().__init__(": ".join(parts))

    def to_error_response(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Convert to the dict shape returned to external callers."""
        return {
            "error": self.code,
            "message": self.user_message,
            "details": self.technical_details,
            "timestamp": self.timestamp,
            "request_id": request_id,
            "validation_errors": [issue.to_dict() for issue in self.validation_errors],
            "retryable": self.retryable,
            "suggested_action": self.suggested_action,
        }

    # =========================================================================
    # FACTORY METHODS
    # =========================================================================

    @classmethod
    def invalid_input(cls, field: str, message: str, received: Any = None) -> "TailorError":
        return cls(
            ErrorCode.INVALID_INPUT,
            f"Invalid input: {field}",
            message,
            category=ErrorCategory.VALIDATION,
            validation_errors=[ValidationIssue(field, message, received)],
            suggested_action="Check input format and required fields",
        )

    @classmethod
    def invalid_job_posting(cls, issues: List[ValidationIssue]) -> "TailorError":
        return cls(
            ErrorCode.INVALID_JOB_POSTING,
            "Job posting validation failed",
            "; ".join(f"{issue.field}: {issue.message}" for issue in issues),
            category=ErrorCategory.VALIDATION,
            validation_errors=issues,
            suggested_action="Ensure job posting has id, title, and description fields",
        )

    @classmethod
    def invalid_resume(cls, issues: List[ValidationIssue]) -> "TailorError":
        return cls(
            ErrorCode.INVALID_RESUME,
            "Resume validation failed",
            "; ".join(f"{issue.field}: {issue.message}" for issue in issues),
            category=ErrorCategory.VALIDATION,
            validation_errors=issues,
            suggested_action="Ensure resume has id and content fields",
        )

    @classmethod
    def parsing_failed(
        cls, kind: str, reason: str, context: Optional[Dict[str, Any]] = None
    ) -> "TailorError":
        code = ErrorCode.JOB_PARSING_FAILED if kind == "job" else ErrorCode.RESUME_PARSING_FAILED
        return cls(
            code,
            f"Failed to parse {kind}",
            reason,
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggested_action="Check text format and encoding",
        )

    @classmethod
    def semantic_analysis_failed(
        cls, reason: str, context: Optional[Dict[str, Any]] = None
    ) -> "TailorError":
        return cls(
            ErrorCode.SEMANTIC_ANALYSIS_FAILED,
            "Semantic analysis failed",
            reason,
            category=ErrorCategory.PARSING,
            context=context,
            retryable=True,
            suggested_action="Will fall back to basic keyword matching",
        )

    @classmethod
    def scoring_failed(
        cls, reason: str, context: Optional[Dict[str, Any]] = None
    ) -> "TailorError":
        return cls(
            ErrorCode.SCORING_ERROR,
            "Match score calculation failed",
            reason,
            category=ErrorCategory.SCORING,
            severity=ErrorSeverity.HIGH,
            context=context,
            suggested_action="Check that resume and job have valid elements",
        )

    @classmethod
    def iteration_failed(
        cls, reason: str, context: Optional[Dict[str, Any]] = None
    ) -> "TailorError":
        return cls(
            ErrorCode.ITERATION_FAILED,
            "Failed to process iteration",
            reason,
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.HIGH,
            context=context,
        )

    @classmethod
    def agent_timeout(cls, agent_name: str, timeout_s: float) -> "TailorError":
        return cls(
            ErrorCode.AGENT_TIMEOUT,
            f"Communication with {agent_name} timed out",
            f"No response received within {timeout_s}s",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.HIGH,
            context={"agent_name": agent_name, "timeout_s": timeout_s},
            retryable=True,
            suggested_action="Retry the operation or increase timeout",
        )

    @classmethod
    def round_timeout(cls, round_number: int, timeout_s: float) -> "TailorError":
        return cls(
            ErrorCode.TIMEOUT,
            f"Optimization round {round_number} timed out",
            f"Round did not complete within {timeout_s}s",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.HIGH,
            context={"round": round_number, "timeout_s": timeout_s},
            retryable=True,
            suggested_action="Retry the run or increase the round timeout",
        )

    @classmethod
    def rate_limit_exceeded(cls, details: str) -> "TailorError":
        return cls(
            ErrorCode.RATE_LIMIT,
            "Rate limit exceeded",
            details,
            category=ErrorCategory.NETWORK,
            retryable=True,
            suggested_action="Wait before retrying",
        )

    @classmethod
    def configuration_error(cls, field: str, reason: str) -> "TailorError":
        return cls(
            ErrorCode.CONFIGURATION_ERROR,
            "Configuration error",
            f"Invalid configuration for {field}: {reason}",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context={"field": field},
            suggested_action="Check configuration settings",
        )


class IterationError(TailorError):
    """
    Raised when a single optimization round cannot be completed.

    The message is always "Failed to process iteration: <cause>" and the
    original exception is chained as __cause__.
    """

    def __init__(self, cause: BaseException, round_number: Optional[int] = None):
        self.cause = cause
        self.round_number = round_number
        super().__init__(
            ErrorCode.ITERATION_FAILED,
            "Failed to process iteration",
            str(cause) or type(cause).__name__,
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.HIGH,
            context={"round": round_number} if round_number is not None else None,
        )
