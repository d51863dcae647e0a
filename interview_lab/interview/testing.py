"""
Testing infrastructure with mock collaborators for the interview lab.
"""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..infrastructure.timers import Scheduler, TimerHandle, TimerCallback
from ..infrastructure.voice import VoiceAgentClient, VoiceAgentError, VoiceEvent
from ..config import Config

TEST_API_KEY = "test-voice-key"


class _ManualTimer:
    def __init__(self, due: float, seq: int, callback: TimerCallback,
                 interval: Optional[float], handle: TimerHandle):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.interval = interval
        self.handle = handle


class ManualScheduler(Scheduler):
    """
    Scheduler driven by `advance()` instead of a real clock.

    `now()` moves with the simulated time, so transcript timestamps and durations
    follow it too.
    """

    def __init__(self, start: Optional[datetime] = None):
        self.start = start or datetime(2024, 1, 1, 12, 0, 0)
        self.elapsed = 0.0
        self._timers: List[_ManualTimer] = []
        self._seq = 0

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        return self._add(delay, callback, None)

    def call_every(self, interval: float, callback: TimerCallback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._add(interval, callback, interval)

    def _add(self, delay: float, callback: TimerCallback, interval: Optional[float]) -> TimerHandle:
        handle = TimerHandle()
        self._seq += 1
        self._timers.append(_ManualTimer(self.elapsed + max(0.0, delay), self._seq, callback, interval, handle))
        return handle

    @property
    def pending(self) -> int:
        """Timers that can still fire."""
        return sum(1 for t in self._timers if not t.handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in time order."""
        target = self.elapsed + seconds
        while True:
            due = [t for t in self._timers if not t.handle.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.elapsed = timer.due

            if timer.interval is None:
                timer.handle._cancelled = True
            else:
                self._seq += 1
                timer.due += timer.interval
                timer.seq = self._seq

            timer.callback()

        self.elapsed = target
        self._timers = [t for t in self._timers if not t.handle.cancelled]


class MockBackend:
    """Backend stand-in recording every create/save call."""

    def __init__(self, assistant_id: str = "mock-assistant-1700000000000",
                 fail_create: bool = False, save_failures: int = 0):
        self.assistant_id = assistant_id
        self.fail_create = fail_create
        self.save_failures = save_failures
        self.create_calls: List[int] = []
        self.save_attempts: List[Dict[str, Any]] = []
        self.saved: List[Dict[str, Any]] = []

    def create_interview(self, project_id: int) -> Dict[str, str]:
        self.create_calls.append(project_id)
        if self.fail_create:
            raise RuntimeError("backend unavailable")
        return {"assistantId": self.assistant_id}

    def save_transcript(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.save_attempts.append(payload)
        if self.save_failures > 0:
            self.save_failures -= 1
            raise RuntimeError("storage unavailable")

        record = dict(payload)
        record["id"] = len(self.saved) + 1
        record["conductedAt"] = datetime.now().isoformat()
        self.saved.append(record)
        return record


class FakeVoiceClient(VoiceAgentClient):
    """Live-kind client whose events are fired by the test."""

    kind = "real"

    def __init__(self, fail_on_start: bool = False):
        super().__init__()
        self.fail_on_start = fail_on_start
        self.started_with: List[Optional[str]] = []
        self.registered_at_start: List[str] = []
        self.stop_calls = 0
        self.muted_calls: List[bool] = []

    def start(self, session_id: Optional[str] = None) -> None:
        self.registered_at_start = sorted(e.value for e in self._callbacks)
        self.started_with.append(session_id)
        if self.fail_on_start:
            raise VoiceAgentError("microphone permission denied")

    def stop(self) -> None:
        self.stop_calls += 1

    def set_muted(self, muted: bool) -> None:
        super().set_muted(muted)
        self.muted_calls.append(self.muted)

    def fire(self, event: str, *args: Any) -> None:
        self.emit(VoiceEvent(event), *args)


class MockLLMClient:
    """Mock LLM client for testing."""

    def __init__(self, mock_responses: Optional[List[str]] = None, fail: bool = False):
        self.mock_responses = list(mock_responses or [])
        self.current_response_idx = 0
        self.fail = fail
        self.request_history: List[Dict[str, Any]] = []

    def generate_content(self, prompt_text: str, system_instruction: Optional[str] = None, **kwargs) -> str:
        self.request_history.append({
            "prompt": prompt_text,
            "system_instruction": system_instruction,
            "kwargs": kwargs,
        })
        if self.fail:
            raise RuntimeError("LLM unavailable")

        if self.current_response_idx < len(self.mock_responses):
            response = self.mock_responses[self.current_response_idx]
            self.current_response_idx += 1
            return response
        return "## Identity\nYou are an experienced UX researcher."

    def generate_json(self, prompt: str, system_instruction: Optional[str] = None) -> Dict[str, Any]:
        return json.loads(self.generate_content(prompt, system_instruction=system_instruction))


class MockVoiceAgentServer:
    """Voice agent server stand-in."""

    def __init__(self, assistant_id: str = "asst_123", fail: bool = False):
        self.assistant_id = assistant_id
        self.fail = fail
        self.created: List[Dict[str, Any]] = []

    def create_assistant(self, **kwargs) -> str:
        self.created.append(kwargs)
        if self.fail:
            raise VoiceAgentError("Voice agent error 401: Unauthorized")
        return self.assistant_id

    def get_call(self, call_id: str) -> Dict[str, Any]:
        return {"id": call_id, "status": "ended"}


def make_test_config(**overrides) -> Config:
    """Config with a voice agent key set, for controller tests."""
    values = {"vapi_api_key": TEST_API_KEY}
    values.update(overrides)
    return Config(**values)


def create_test_transcript_payload(project_id: int = 1, entries: int = 2) -> Dict[str, Any]:
    """Transcript payload as a session controller would submit it."""
    base = datetime(2024, 1, 1, 12, 0, 0)
    data = []
    for i in range(entries):
        data.append({
            "id": f"entry-{i}",
            "type": "assistant" if i % 2 == 0 else "user",
            "text": f"Line {i}",
            "timestamp": (base + timedelta(seconds=10 * i)).isoformat(),
        })
    return {
        "projectId": project_id,
        "assistantId": "mock-assistant-1700000000000",
        "participantName": None,
        "transcriptData": data,
        "duration": 10 * (entries - 1) if entries > 1 else 0,
    }
