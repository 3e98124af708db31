"""Unit tests for job posting and resume validation."""

import pytest

from tailor.contexts.intake.data_structures import JobPosting, Resume
from tailor.contexts.intake.validation import (
    collect_job_posting_issues,
    collect_resume_issues,
    validate_job_posting,
    validate_resume,
)
from tailor.utils.errors import ErrorCategory, ErrorCode, TailorError


@pytest.mark.unit
def test_valid_inputs_pass_through(job_posting, resume):
    """Valid inputs are returned unchanged."""
    assert validate_job_posting(job_posting) is job_posting
    assert validate_resume(resume) is resume


@pytest.mark.unit
def test_any_one_job_section_is_enough():
    """A job needs only one non-empty section."""
    job = JobPosting(id="job-2", title="Analyst", qualifications="SQL")
    assert collect_job_posting_issues(job) == []


@pytest.mark.unit
def test_job_posting_reports_every_issue():
    """All job problems are reported together."""
    job = JobPosting(id=" ", title="", description="  ")

    with pytest.raises(TailorError) as exc_info:
        validate_job_posting(job)

    error = exc_info.value
    assert error.code == ErrorCode.INVALID_JOB_POSTING
    assert error.category == ErrorCategory.VALIDATION
    assert not error.retryable
    assert [issue.field for issue in error.validation_errors] == ["id", "title", "description"]


@pytest.mark.unit
def test_resume_reports_every_issue():
    """All resume problems are reported together."""
    resume = Resume(id="", content="   ", format="pdf")

    with pytest.raises(TailorError) as exc_info:
        validate_resume(resume)

    error = exc_info.value
    assert error.code == ErrorCode.INVALID_RESUME
    assert [issue.field for issue in error.validation_errors] == ["id", "content", "format"]
    assert error.validation_errors[2].received == "pdf"


@pytest.mark.unit
@pytest.mark.parametrize("resume_format", ["text", "markdown", "obsidian"])
def test_accepted_resume_formats(resume_format):
    """text, markdown and obsidian resumes are accepted."""
    assert collect_resume_issues(Resume(id="r", content="Python", format=resume_format)) == []


@pytest.mark.unit
def test_non_string_fields_are_rejected():
    """Fields of the wrong type are invalid."""
    job = JobPosting(id=None, title=42, description="Build things")
    assert {issue.field for issue in collect_job_posting_issues(job)} == {"id", "title"}


@pytest.mark.unit
def test_error_response_lists_validation_errors():
    """The error response lists each validation issue."""
    with pytest.raises(TailorError) as exc_info:
        validate_resume(Resume(id="r", content=""))

    response = exc_info.value.to_error_response(request_id="req-1")
    assert response["error"] == ErrorCode.INVALID_RESUME
    assert response["request_id"] == "req-1"
    assert response["validation_errors"][0]["field"] == "content"
    assert response["suggested_action"]
