"""
Voice agent client interface and the adapter for the live platform.

A client is an event emitter with four methods (`on`, `start`, `stop`, `set_muted`)
and seven events. Transcript fragments arrive as `message` events shaped
`{"type": "transcript", "role": "assistant" | "user", "transcript": "<text>"}`.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .server import VoiceAgentServer
from ..timers import Scheduler, TimerHandle
from ...config import REMOTE_POLL_INTERVAL

logger = logging.getLogger("voice_client")


class VoiceEvent(str, Enum):
    """Events emitted by a voice agent client."""
    VOLUME_LEVEL = "volume-level"
    CALL_START = "call-start"
    CALL_END = "call-end"
    SPEECH_START = "speech-start"
    SPEECH_END = "speech-end"
    MESSAGE = "message"
    ERROR = "error"


EventCallback = Callable[..., None]


def transcript_message(role: str, text: str) -> Dict[str, Any]:
    """Build a transcript `message` event payload."""
    return {"type": "transcript", "role": role, "transcript": text}


class VoiceAgentClient(ABC):
    """Capability interface shared by the live and simulated clients."""

    kind = "real"

    def __init__(self):
        self._callbacks: Dict[VoiceEvent, EventCallback] = {}
        self.muted = False

    def on(self, event: str, callback: EventCallback) -> None:
        """
        Register the callback for an event. A second registration for the same event
        replaces the first.

        Raises:
            ValueError: If the event name is not one of VoiceEvent
        """
        self._callbacks[VoiceEvent(event)] = callback

    def emit(self, event: VoiceEvent, *args: Any) -> None:
        callback = self._callbacks.get(event)
        if callback is not None:
            callback(*args)

    @abstractmethod
    def start(self, session_id: Optional[str] = None) -> Any:
        """Connect the call."""

    @abstractmethod
    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._cancel_polling()

        # Hang up any call that exists and has not ended, connecting ones included
        if not self._call_ended and self.control_url:
            self.scheduler.call_blocking(
                lambda: self.server.end_call(self.control_url),
                self._on_end_call_result,
                self._on_end_call_error,
            )

    def set_muted(self, muted: bool) -> None:
        super().set_muted(muted)
        # Microphone muting happens in the participant's browser
        logger.info(f"Call {self.call_id} muted={self.muted}")

    def _cancel_polling(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
        if self._fetch_handle is not None:
            self._fetch_handle.cancel()
            self._fetch_handle = None

    def _on_end_call_result(self, _result: Any) -> None:
        logger.info(f"Requested hang-up for call {self.call_id}")

    def _on_end_call_error(self, error: BaseException) -> None:
        logger.error(f"Failed to end call {self.call_id}: {error}")

    def _poll(self) -> None:
        if self._fetching:
            return
        self._fetching = True
        call_id = self.call_id
        self._fetch_handle = self.scheduler.call_blocking(
            lambda: self.server.fetch_call(call_id),
            self._on_call_record,
            self._on_poll_error,
        )

    def _on_poll_error(self, error: BaseException) -> None:
        self._fetching = False
        if self._stopped:
            return
        logger.warning(f"Polling call {self.call_id} failed: {error}")
        self.emit(VoiceEvent.ERROR, error)

    def _on_call_record(self, call: Dict[str, Any]) -> None:
        self._fetching = False
        if self._stopped:
            return

        status = call.get("status")
        if not self._call_started and (status in self.LIVE_STATUSES or status == self.ENDED_STATUS):
            self._call_started = True
            self.emit(VoiceEvent.CALL_START)

        messages = self._extract_messages(call)
        for role, text in messages[self._seen_messages:]:
            self.emit(VoiceEvent.MESSAGE, transcript_message(role, text))
        self._seen_messages = max(self._seen_messages, len(messages))

        if status == self.ENDED_STATUS and not self._call_ended:
            self._call_ended = True
            self._cancel_polling()
            logger.info(f"Call {self.call_id} ended remotely ({call.get('endedReason', 'unknown reason')})")
            self.emit(VoiceEvent.CALL_END)

    @staticmethod
    def _extract_messages(call: Dict[str, Any]) -> List[tuple]:
        """Pull (role, text) pairs for spoken lines out of a call record."""
        raw = (call.get("artifact") or {}).get("messages") or call.get("messages") or []

        lines = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            role = item.get("role")
            if role in ("bot", "assistant"):
                role = "assistant"
            elif role != "user":
                continue
            text = item.get("message") or item.get("content") or ""
            if text.strip():
                lines.append((role, text))
        return lines
