import pytest

from interview_lab.config import ConfigurationError
from interview_lab.interview import (
    SessionController, SessionStatus, Speaker, EndReason, SimulatedVoiceAgent,
    SessionEventBus, EventType,
)
from interview_lab.interview.testing import (
    ManualScheduler, MockBackend, FakeVoiceClient, make_test_config,
)
from interview_lab.infrastructure.voice import VoiceEvent, transcript_message

PLACEHOLDER_ID = "mock-assistant-1700000000000"


def make_controller(backend=None, config=None, **kwargs):
    scheduler = ManualScheduler()
    bus = SessionEventBus()
    events = []
    bus.subscribe_all(events.append)
    controller = SessionController(
        project_id=7,
        backend=backend or MockBackend(),
        config=config or make_test_config(),
        scheduler=scheduler,
        event_bus=bus,
        **kwargs
    )
    return controller, scheduler, events


def notifications(events):
    return [e for e in events if e.event_type == EventType.NOTIFICATION]


def start_session(controller):
    session_id = controller.create_session()
    assert controller.start(session_id)
    return session_id


def test_create_session_returns_backend_id():
    backend = MockBackend()
    controller, _, _ = make_controller(backend)

    assert controller.create_session() == PLACEHOLDER_ID
    assert controller.session_id == PLACEHOLDER_ID
    assert backend.create_calls == [7]


def test_create_session_without_api_key_fails_fast():
    backend = MockBackend()
    controller, _, _ = make_controller(backend, config=make_test_config(vapi_api_key=None))

    with pytest.raises(ConfigurationError):
        controller.create_session()
    assert backend.create_calls == []


def test_start_without_api_key_fails_fast():
    controller, _, _ = make_controller(config=make_test_config(vapi_api_key=""))

    with pytest.raises(ConfigurationError):
        controller.start(PLACEHOLDER_ID)
    assert controller.status == SessionStatus.IDLE


def test_create_session_backend_failure_notifies():
    controller, _, events = make_controller(MockBackend(fail_create=True))

    assert controller.create_session() is None
    assert [e.title for e in notifications(events)] == ["Failed to create interview"]
    assert controller.status == SessionStatus.IDLE


def test_placeholder_id_always_uses_simulated_client():
    built = []

    def live_factory():
        built.append("live")
        return FakeVoiceClient()

    controller, _, _ = make_controller(client_factory=live_factory)
    start_session(controller)

    assert built == []
    assert isinstance(controller.client, SimulatedVoiceAgent)
    assert controller.client.kind == "simulated"
    assert controller.status == SessionStatus.ACTIVE


def test_simulated_transcript_grows_in_script_order():
    controller, scheduler, _ = make_controller()
    start_session(controller)

    # Opening line is immediate, then one line per 8 seconds
    assert len(controller.transcript) == 1
    scheduler.advance(7.5)
    assert len(controller.transcript) == 1
    scheduler.advance(0.5)
    assert len(controller.transcript) == 2
    scheduler.advance(16)
    assert len(controller.transcript) == 4

    script = controller.client.script
    assert [e.text for e in controller.transcript] == [text for _, text in script[:4]]
    expected = [Speaker.ASSISTANT if role == "assistant" else Speaker.PARTICIPANT for role, _ in script[:4]]
    assert [e.speaker for e in controller.transcript] == expected


def test_full_script_then_no_more_lines():
    controller, scheduler, _ = make_controller()
    start_session(controller)

    scheduler.advance(200)
    assert len(controller.transcript) == len(controller.client.script)


def test_end_saves_transcript_once():
    backend = MockBackend()
    controller, scheduler, events = make_controller(backend)
    start_session(controller)
    scheduler.advance(16)

    controller.end()
    controller.end(EndReason.REMOTE_ENDED)
    controller.end(EndReason.COMPONENT_UNMOUNTED)

    assert len(backend.save_attempts) == 1
    assert controller.saved
    assert controller.status == SessionStatus.ENDED

    payload = backend.saved[0]
    assert payload["projectId"] == 7
    assert payload["assistantId"] == PLACEHOLDER_ID
    assert payload["duration"] == 16
    assert [e["type"] for e in payload["transcriptData"]] == ["assistant", "assistant", "user"]

    saved_events = [e for e in events if e.event_type == EventType.TRANSCRIPT_SAVED]
    assert len(saved_events) == 1
    assert saved_events[0].data["transcript_id"] == 1
    assert "Transcript saved" in [e.title for e in notifications(events)]


def test_late_remote_hang_up_does_not_save_again():
    backend = MockBackend()
    controller, scheduler, _ = make_controller(backend)
    start_session(controller)
    agent = controller.client

    controller.end()
    agent.trigger_call_end()

    assert len(backend.save_attempts) == 1


def test_remote_hang_up_ends_and_saves():
    backend = MockBackend()
    controller, scheduler, events = make_controller(backend)
    start_session(controller)
    scheduler.advance(8)

    controller.client.schedule_hang_up(3)
    scheduler.advance(3)

    assert controller.status == SessionStatus.ENDED
    assert len(backend.saved) == 1
    ended = [e for e in events if e.event_type == EventType.STATUS_CHANGED and e.data["current"] == "ended"]
    assert ended[0].data["reason"] == "remote-ended"


def test_no_save_on_empty_transcript():
    backend = MockBackend()
    controller, scheduler, _ = make_controller(
        backend, simulated_factory=lambda: SimulatedVoiceAgent(scheduler, script=[])
    )
    start_session(controller)

    for reason in EndReason:
        controller.end(reason)

    assert backend.save_attempts == []
    assert not controller.saved


def test_timers_cleaned_up_after_end():
    controller, scheduler, events = make_controller()
    start_session(controller)
    scheduler.advance(10)

    controller.end()
    entries = len(controller.transcript)
    volume = controller.volume_level
    event_count = len(events)

    assert scheduler.pending == 0
    scheduler.advance(1000)

    assert len(controller.transcript) == entries
    assert controller.volume_level == volume
    assert len(events) == event_count


def test_duration_floors_whole_seconds():
    backend = MockBackend(assistant_id="asst_live")
    fake = FakeVoiceClient()
    controller, scheduler, _ = make_controller(backend, client_factory=lambda: fake)
    controller.start("asst_live")
    fake.fire("call-start")

    fake.fire("message", transcript_message("assistant", "Hello"))
    scheduler.advance(37.9)
    fake.fire("message", transcript_message("user", "Hi there"))
    controller.end()

    assert backend.saved[0]["duration"] == 37


def test_single_entry_duration_is_zero():
    backend = MockBackend()
    controller, scheduler, _ = make_controller(
        backend, simulated_factory=lambda: SimulatedVoiceAgent(scheduler, script=[("assistant", "Hello")])
    )
    start_session(controller)
    scheduler.advance(30)
    controller.end()

    assert backend.saved[0]["duration"] == 0


def test_toggle_mute_before_client_is_noop():
    controller, _, _ = make_controller()

    controller.toggle_mute()
    assert controller.muted is False


def test_toggle_mute_forwards_to_client():
    fake = FakeVoiceClient()
    controller, _, _ = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)
    start_session(controller)
    fake.fire("call-start")

    controller.toggle_mute()
    controller.toggle_mute()

    assert fake.muted_calls == [True, False]
    assert controller.muted is False


def test_handlers_registered_before_client_start():
    fake = FakeVoiceClient()
    controller, _, _ = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)

    start_session(controller)

    assert fake.registered_at_start == sorted(e.value for e in VoiceEvent)
    assert fake.started_with == ["asst_live"]


def test_live_client_waits_for_call_start():
    fake = FakeVoiceClient()
    controller, _, _ = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)

    start_session(controller)
    assert controller.status == SessionStatus.CONNECTING

    fake.fire("call-start")
    assert controller.status == SessionStatus.ACTIVE


def test_start_failure_stops_client_and_ends():
    fake = FakeVoiceClient(fail_on_start=True)
    controller, _, events = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)

    session_id = controller.create_session()
    assert controller.start(session_id) is False

    assert controller.status == SessionStatus.ENDED
    assert fake.stop_calls == 1
    assert controller.client is None
    assert [e.title for e in notifications(events)] == ["Failed to start interview"]


def test_start_is_ignored_unless_idle():
    controller, _, _ = make_controller()
    start_session(controller)
    first_client = controller.client

    assert controller.start(PLACEHOLDER_ID) is False
    assert controller.client is first_client


def test_message_handling():
    fake = FakeVoiceClient()
    controller, _, _ = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)
    start_session(controller)

    fake.fire("message", transcript_message("user", "I use it daily"))
    fake.fire("message", {"type": "transcript", "transcriptType": "partial", "role": "user", "transcript": "I u"})
    fake.fire("message", {"type": "function-call", "name": "lookup"})
    fake.fire("message", transcript_message("assistant", "   "))

    assert [(e.speaker, e.text) for e in controller.transcript] == [(Speaker.PARTICIPANT, "I use it daily")]


def test_volume_level_overwrites():
    fake = FakeVoiceClient()
    controller, _, _ = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)
    start_session(controller)

    fake.fire("volume-level", 0.3)
    fake.fire("volume-level", 0.1)

    assert controller.volume_level == pytest.approx(0.1)


def test_error_event_only_notifies():
    fake = FakeVoiceClient()
    controller, _, events = make_controller(MockBackend(assistant_id="asst_live"), client_factory=lambda: fake)
    start_session(controller)
    fake.fire("call-start")

    fake.fire("error", RuntimeError("socket closed"))

    assert controller.status == SessionStatus.ACTIVE
    assert [e.title for e in notifications(events)] == ["Interview error"]
    assert notifications(events)[0].is_error


def test_save_failure_notifies_and_is_not_retried_automatically():
    backend = MockBackend(save_failures=1)
    controller, scheduler, events = make_controller(backend)
    start_session(controller)

    controller.end()
    controller.end()

    assert len(backend.save_attempts) == 1
    assert not controller.saved
    assert "Failed to save transcript" in [e.title for e in notifications(events)]

    # The manual save is still available
    assert controller.save_with_participant("Ana")
    assert backend.saved[0]["participantName"] == "Ana"


def test_manual_save_after_auto_save_is_skipped():
    backend = MockBackend()
    controller, _, _ = make_controller(backend)
    start_session(controller)
    controller.end()

    assert controller.save_with_participant("Ana") is False
    assert len(backend.save_attempts) == 1
    assert backend.saved[0]["participantName"] is None


def test_manual_save_first_wins_over_auto_save():
    backend = MockBackend()
    controller, scheduler, _ = make_controller(backend)
    start_session(controller)
    scheduler.advance(8)

    assert controller.save_with_participant("  Ana  ")
    controller.client.trigger_call_end()

    assert len(backend.save_attempts) == 1
    assert backend.saved[0]["participantName"] == "Ana"
    assert controller.status == SessionStatus.ENDED


def test_transcript_property_is_a_copy():
    controller, _, _ = make_controller()
    start_session(controller)

    controller.transcript.clear()
    assert len(controller.transcript) == 1


def test_create_session_after_end_keeps_session():
    backend = MockBackend()
    controller, _, _ = make_controller(backend)
    session_id = start_session(controller)
    controller.end()

    assert controller.create_session() is None
    assert backend.create_calls == [7]
    assert controller.session_id == session_id
    assert controller.status == SessionStatus.ENDED
