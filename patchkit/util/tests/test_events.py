from patchkit.util.events import EventLogger, EventType
from patchkit.util.jsonl import read_jsonl


def test_event_logger_appends_events(tmp_path):
    events_path = tmp_path / "events.jsonl"
    logger = EventLogger(events_file=events_path, run_id="01TEST")

    logger.log(EventType.TOOL_CALL_STARTED, {"request_id": "req-1"})
    logger.log(EventType.PATCH_APPLIED, {"request_id": "req-1", "changes": 1})

    records = list(read_jsonl(events_path))

    assert [r["event_type"] for r in records] == ["tool_call_started", "patch_applied"]
    assert [r["step_id"] for r in records] == [1, 2]
    assert all(r["run_id"] == "01TEST" for r in records)
    assert records[1]["payload"]["changes"] == 1


def test_event_logger_generates_run_id(tmp_path):
    logger = EventLogger(events_file=tmp_path / "events.jsonl")

    assert len(logger.run_id) == 26


def test_log_returns_event(tmp_path):
    logger = EventLogger(events_file=tmp_path / "events.jsonl", run_id="01TEST")

    event = logger.log(EventType.PATCH_FAILED, {"error": "context_not_found"})

    assert event.event_type == EventType.PATCH_FAILED
    assert event.timestamp.tzinfo is not None
