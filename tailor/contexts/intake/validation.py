"""
Input validation for job postings and resumes.

Malformed input is a fatal error: it is reported immediately with every
problem listed and is never retried.
"""

from typing import List

from tailor.contexts.intake.data_structures import JobPosting, Resume, ResumeFormat
from tailor.contexts.intake.logger import log_validation_failure
from tailor.utils.errors import TailorError, ValidationIssue


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def collect_job_posting_issues(job: JobPosting) -> List[ValidationIssue]:
    """Return every validation problem with a job posting (empty list when valid)."""
    issues = []
    if _is_blank(job.id):
        issues.append(ValidationIssue("id", "Job id must be a non-empty string", job.id))
    if _is_blank(job.title):
        issues.append(ValidationIssue("title", "Job title must be a non-empty string", job.title))
    if all(_is_blank(text) for text in (job.description, job.requirements, job.qualifications)):
        issues.append(
            ValidationIssue(
                "description",
                "At least one of description, requirements or qualifications is required",
            )
        )
    return issues


def collect_resume_issues(resume: Resume) -> List[ValidationIssue]:
    """Return every validation problem with a resume (empty list when valid)."""
    issues = []
    if _is_blank(resume.id):
        issues.append(ValidationIssue("id", "Resume id must be a non-empty string", resume.id))
    if _is_blank(resume.content):
        issues.append(ValidationIssue("content", "Resume content must be a non-empty string"))
    if resume.format not in ResumeFormat.get_all_types():
        issues.append(
            ValidationIssue(
                "format",
                f"Format must be one of {', '.join(ResumeFormat.get_all_types())}",
                resume.format,
            )
        )
    return issues


def validate_job_posting(job: JobPosting) -> JobPosting:
    """
    Validate a job posting.

    Returns:
        The job posting unchanged

    Raises:
        TailorError: INVALID_JOB_POSTING listing every issue found
    """
    issues = collect_job_posting_issues(job)
    if issues:
        log_validation_failure("job posting", job.id, issues)
        raise TailorError.invalid_job_posting(issues)
    return job


def validate_resume(resume: Resume) -> Resume:
    """
    Validate a resume.

    Returns:
        The resume unchanged

    Raises:
        TailorError: INVALID_RESUME listing every issue found
    """
    issues = collect_resume_issues(resume)
    if issues:
        log_validation_failure("resume", resume.id, issues)
        raise TailorError.invalid_resume(issues)
    return resume
