"""Unit tests for the in-memory event log."""

import json

import pytest

from tailor.utils.config import EventLogConfig
from tailor.utils.errors import ErrorCode, TailorError
from tailor.utils.event_logging import EntryType, EventLog


@pytest.mark.unit
def test_entries_recorded_in_order():
    """Entries keep insertion order and carry their type and data."""
    event_log = EventLog()
    event_log.log_parsing("job", "job-1", 12)
    event_log.log_scoring("resume-1", "job-1", 0.72, {"skills": 0.8}, gap_count=3)
    event_log.log_info("checkpoint", stage="after scoring")

    entries = event_log.get_entries()
    assert [e.entry_type for e in entries] == [EntryType.PARSING, EntryType.SCORING, EntryType.INFO]
    assert entries[0].message == "Parsed job job-1: 12 elements"
    assert entries[0].job_id == "job-1"
    assert entries[1].message == "Match score: 0.720"
    assert entries[1].data["gap_count"] == 3
    assert entries[2].data == {"stage": "after scoring"}


@pytest.mark.unit
def test_ring_buffer_evicts_oldest():
    """Past max_entries the oldest entries are dropped."""
    event_log = EventLog(max_entries=3)
    for i in range(5):
        event_log.log_info(f"event {i}")

    assert len(event_log) == 3
    assert [e.message for e in event_log.get_entries()] == ["event 2", "event 3", "event 4"]


@pytest.mark.unit
def test_max_entries_must_be_positive():
    """A zero-size log is rejected."""
    with pytest.raises(ValueError):
        EventLog(max_entries=0)


@pytest.mark.unit
def test_disabled_log_records_nothing():
    """A disabled log ignores every write."""
    event_log = EventLog.from_config(EventLogConfig(enabled=False))
    assert event_log.log_info("ignored") is None
    assert len(event_log) == 0


@pytest.mark.unit
def test_filter_by_type_and_recent():
    """Entries can be filtered by type and limited to the most recent."""
    event_log = EventLog()
    event_log.log_info("a")
    event_log.log_iteration_decision(1, 0.5, True, "Continuing optimization")
    event_log.log_info("b")

    decisions = event_log.get_entries(EntryType.DECISION)
    assert len(decisions) == 1
    assert decisions[0].message == "Round 1 (0.500): continue - Continuing optimization"
    assert [e.message for e in event_log.get_recent(2)][-1] == "b"
    assert event_log.get_recent(0) == []


@pytest.mark.unit
def test_entries_for_pair():
    """Entries can be looked up by job and resume id."""
    event_log = EventLog()
    event_log.log_scoring("resume-1", "job-1", 0.5)
    event_log.log_scoring("resume-2", "job-2", 0.6)
    event_log.log_parsing("resume", "resume-1", 4)

    entries = event_log.get_entries_for_pair("job-1", "resume-1")
    assert len(entries) == 2


@pytest.mark.unit
def test_error_entries_for_structured_and_plain_errors():
    """TailorErrors log their code; plain exceptions log their class."""
    event_log = EventLog()
    event_log.log_error("parsing", TailorError.parsing_failed("job", "bad json"), fallback="minimal")
    event_log.log_error("matching", KeyError("index"), fallback="empty", round=2)

    structured, plain = event_log.get_entries(EntryType.ERROR)
    assert structured.data["code"] == ErrorCode.JOB_PARSING_FAILED
    assert structured.data["severity"] == "high"
    assert structured.data["fallback"] == "minimal"
    assert plain.data["error_class"] == "KeyError"
    assert plain.data["round"] == 2
    assert "stack" in plain.data


@pytest.mark.unit
def test_optimization_complete_entry():
    """Run completion records scores, rounds and the termination reason."""
    event_log = EventLog()
    entry = event_log.log_optimization_complete("job-1", "resume-1", 0.4, 0.85, 3, "target_reached")

    assert entry.entry_type == EntryType.ITERATION
    assert entry.data["improvement"] == pytest.approx(0.45)
    assert "target_reached" in entry.message


@pytest.mark.unit
def test_export_and_clear(tmp_path):
    """Entries export to JSON and JSONL, and clear empties the log."""
    event_log = EventLog()
    event_log.log_recommendations("resume-1", "job-1", 1, 2, 1, 0)
    event_log.log_semantic_analysis("resume-1", "job-1", 5, {"exact": 5})

    exported = json.loads(event_log.export_json())
    assert exported[0]["message"] == "Generated 3 recommendations for round 1"
    assert exported[1]["data"]["match_types"] == {"exact": 5}

    path = event_log.export_jsonl(tmp_path / "logs" / "events.jsonl")
    lines = path.read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["entry_type"] == EntryType.SEMANTIC_ANALYSIS

    event_log.clear()
    assert event_log.get_entries() == []


@pytest.mark.unit
def test_separate_logs_do_not_share_state():
    """Two logs never see each other's entries."""
    first, second = EventLog(), EventLog()
    first.log_info("only in first")
    assert len(second) == 0
