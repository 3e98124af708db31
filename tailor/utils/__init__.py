"""
Shared utilities for TAILOR.

Common functionality used across contexts:
- Configuration loading and validation
- Error types and the degradation policy
- Logging (console/file) and the in-memory event log
- LLM provider access
"""

from tailor.utils.timestamp import now_exact, run_stamp

__all__ = ["now_exact", "run_stamp"]
