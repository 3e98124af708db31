"""Shared fixtures and fakes for TAILOR tests."""

import json

import pytest

from tailor.contexts.intake.data_structures import JobPosting, Resume
from tailor.utils.event_logging import EventLog
from tailor.utils.llm import LLMProvider, LLMResponse


class FakeProvider(LLMProvider):
    """
    LLM provider returning canned responses.

    Routes on the user prompt: job descriptions get job_elements, resumes get
    resume_elements, match requests get matches.
    """

    _provider_prefix = "fake"
    _retryable_exception = ConnectionError
    _retry_message = "Fake provider busy"

    def __init__(self, job_elements=None, resume_elements=None, matches=None, fail_on=()):
        self.update_model("fake-model")
        self.job_elements = job_elements or []
        self.resume_elements = resume_elements or []
        self.matches = matches or []
        self.fail_on = set(fail_on)
        self.calls = []

    def _call_api(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        if "this job description" in user_prompt:
            kind, payload = "job", {"elements": self.job_elements}
        elif "this resume" in user_prompt:
            kind, payload = "resume", {"elements": self.resume_elements}
        elif "Match each job element" in user_prompt:
            kind, payload = "match", {"matches": self.matches}
        else:
            kind, payload = "tags", {"tags": ["general"]}

        self.calls.append(kind)
        if kind in self.fail_on:
            raise RuntimeError(f"{kind} call failed")
        return LLMResponse(content=json.dumps(payload), model=self.model)


@pytest.fixture
def event_log():
    return EventLog(max_entries=100)


@pytest.fixture
def job_posting():
    return JobPosting(
        id="job-1",
        title="Senior Python Engineer",
        description="Build data pipelines. Python is required.",
        requirements="Docker experience is a plus.",
    )


@pytest.fixture
def resume():
    return Resume(id="resume-1", content="Python developer with 5 years of experience.")


@pytest.fixture
def fake_provider():
    return FakeProvider(
        job_elements=[
            {"text": "Python", "category": "skill", "context": "Python is required"},
            {"text": "Docker", "category": "skill", "context": "Docker experience is a plus"},
        ],
        resume_elements=[{"text": "Python", "category": "skill"}],
    )


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances with custom canned responses."""
    return FakeProvider
