import logging
from datetime import datetime, timedelta

from interview_lab.interview import (
    Session, Speaker, TranscriptEntry, transcript_duration,
    SessionEventBus, SessionMetrics, EventType, StatusChangedEvent, NotificationEvent,
    TranscriptEntryAddedEvent,
)

T0 = datetime(2024, 1, 1, 12, 0, 0)


def entry(speaker, text, seconds):
    return TranscriptEntry(speaker=speaker, text=text, timestamp=T0 + timedelta(seconds=seconds))


def test_duration_is_floored():
    entries = [entry(Speaker.ASSISTANT, "Hello", 0), entry(Speaker.PARTICIPANT, "Hi", 37.9)]
    assert transcript_duration(entries) == 37


def test_duration_zero_below_two_entries():
    assert transcript_duration([]) == 0
    assert transcript_duration([entry(Speaker.ASSISTANT, "Hello", 5)]) == 0


def test_entry_ids_are_unique():
    assert entry(Speaker.ASSISTANT, "a", 0).id != entry(Speaker.ASSISTANT, "a", 0).id


def test_entry_to_dict_uses_stored_speaker_names():
    data = entry(Speaker.PARTICIPANT, "Hi", 1).to_dict()

    assert data["type"] == "user"
    assert data["text"] == "Hi"
    assert data["timestamp"] == "2024-01-01T12:00:01"


def test_build_save_payload():
    session = Session(project_id=3, session_id="asst_1", participant_name="")
    session.transcript = [entry(Speaker.ASSISTANT, "Hello", 0), entry(Speaker.PARTICIPANT, "Hi", 12.4)]

    payload = session.build_save_payload()

    assert payload["projectId"] == 3
    assert payload["assistantId"] == "asst_1"
    assert payload["participantName"] is None
    assert payload["duration"] == 12
    assert [e["type"] for e in payload["transcriptData"]] == ["assistant", "user"]


def test_event_bus_isolates_failing_handlers(caplog):
    bus = SessionEventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(EventType.STATUS_CHANGED, broken)
    bus.subscribe(EventType.STATUS_CHANGED, received.append)
    bus.subscribe_all(received.append)

    with caplog.at_level(logging.ERROR, logger="events"):
        bus.emit(StatusChangedEvent("s1", 0.0, "idle", "connecting"))

    assert len(received) == 2
    assert "boom" in caplog.text


def test_event_bus_unsubscribe_and_clear():
    bus = SessionEventBus()
    received = []
    bus.subscribe(EventType.NOTIFICATION, received.append)
    bus.unsubscribe(EventType.NOTIFICATION, received.append)
    bus.unsubscribe(EventType.NOTIFICATION, received.append)

    bus.emit(NotificationEvent("s1", 0.0, "Title", "Body"))
    assert received == []

    bus.subscribe_all(received.append)
    bus.clear_handlers()
    bus.emit(NotificationEvent("s1", 0.0, "Title", "Body"))
    assert received == []


def test_session_metrics():
    metrics = SessionMetrics()
    for event in [
        StatusChangedEvent("s1", 0.0, "connecting", "active"),
        TranscriptEntryAddedEvent("s1", 0.0, "e1", "assistant", "Hello", 0),
        NotificationEvent("s1", 0.0, "Interview error", "x", variant="destructive"),
        NotificationEvent("s1", 0.0, "Transcript saved", "y"),
        StatusChangedEvent("s1", 0.0, "active", "ended"),
    ]:
        metrics.handle_event(event)

    assert metrics.get_metrics() == {
        "sessions_started": 1,
        "sessions_ended": 1,
        "transcript_entries": 1,
        "transcripts_saved": 0,
        "errors_reported": 1,
    }

    metrics.reset()
    assert metrics.get_metrics()["sessions_started"] == 0
