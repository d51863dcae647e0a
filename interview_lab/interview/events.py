"""
Event-driven notifications from an interview session to the UI.
"""
import logging
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    STATUS_CHANGED = "status_changed"
    TRANSCRIPT_ENTRY_ADDED = "transcript_entry_added"
    VOLUME_CHANGED = "volume_changed"
    SPEECH_STARTED = "speech_started"
    SPEECH_ENDED = "speech_ended"
    TRANSCRIPT_SAVED = "transcript_saved"
    NOTIFICATION = "notification"


@dataclass
class SessionEvent:
    """Base class for all session events."""
    event_type: EventType
    session_id: Optional[str]
    timestamp: float
    data: Dict[str, Any]


@dataclass
class StatusChangedEvent(SessionEvent):
    """Event fired on every status transition."""
    def __init__(self, session_id: Optional[str], timestamp: float, previous: str, current: str,
                 reason: Optional[str] = None):
        super().__init__(
            event_type=EventType.STATUS_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"previous": previous, "current": current, "reason": reason}
        )


@dataclass
class TranscriptEntryAddedEvent(SessionEvent):
    """Event fired when a transcript line is appended."""
    def __init__(self, session_id: Optional[str], timestamp: float, entry_id: str,
                 speaker: str, text: str, index: int):
        super().__init__(
            event_type=EventType.TRANSCRIPT_ENTRY_ADDED,
            session_id=session_id,
            timestamp=timestamp,
            data={"id": entry_id, "speaker": speaker, "text": text, "index": index}
        )


@dataclass
class VolumeChangedEvent(SessionEvent):
    """Event fired when the voice agent reports a new volume level."""
    def __init__(self, session_id: Optional[str], timestamp: float, level: float):
        super().__init__(
            event_type=EventType.VOLUME_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"level": level}
        )


@dataclass
class SpeechStartedEvent(SessionEvent):
    """Event fired when the assistant starts speaking."""
    def __init__(self, session_id: Optional[str], timestamp: float):
        super().__init__(
            event_type=EventType.SPEECH_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class SpeechEndedEvent(SessionEvent):
    """Event fired when the assistant stops speaking."""
    def __init__(self, session_id: Optional[str], timestamp: float):
        super().__init__(
            event_type=EventType.SPEECH_ENDED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class TranscriptSavedEvent(SessionEvent):
    """Event fired after the transcript has been stored."""
    def __init__(self, session_id: Optional[str], timestamp: float, transcript_id: Optional[int],
                 entry_count: int, duration: int):
        super().__init__(
            event_type=EventType.TRANSCRIPT_SAVED,
            session_id=session_id,
            timestamp=timestamp,
            data={"transcript_id": transcript_id, "entry_count": entry_count, "duration": duration}
        )


@dataclass
class NotificationEvent(SessionEvent):
    """User-visible notification (toast)."""
    def __init__(self, session_id: Optional[str], timestamp: float, title: str, description: str,
                 variant: str = "default"):
        super().__init__(
            event_type=EventType.NOTIFICATION,
            session_id=session_id,
            timestamp=timestamp,
            data={"title": title, "description": description, "variant": variant}
        )

    @property
    def title(self) -> str:
        return self.data["title"]

    @property
    def is_error(self) -> bool:
        return self.data["variant"] == "destructive"


EventHandler = Callable[[SessionEvent], None]


class SessionEventBus:
    """Event bus between a session controller and its views."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: SessionEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and does not stop delivery to the others.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    # Volume updates arrive every second; keep them out of INFO
    QUIET_EVENTS = (EventType.VOLUME_CHANGED,)

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: SessionEvent) -> None:
        level = logging.DEBUG if event.event_type in self.QUIET_EVENTS else logging.INFO
        self.logger.log(level, f"Event: {event.event_type} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from session events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: SessionEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.STATUS_CHANGED:
            if event.data["current"] == "active":
                self.sessions_started += 1
            elif event.data["current"] == "ended":
                self.sessions_ended += 1
        elif event.event_type == EventType.TRANSCRIPT_ENTRY_ADDED:
            self.transcript_entries += 1
        elif event.event_type == EventType.TRANSCRIPT_SAVED:
            self.transcripts_saved += 1
        elif event.event_type == EventType.NOTIFICATION and event.data["variant"] == "destructive":
            self.errors_reported += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "sessions_started": self.sessions_started,
            "sessions_ended": self.sessions_ended,
            "transcript_entries": self.transcript_entries,
            "transcripts_saved": self.transcripts_saved,
            "errors_reported": self.errors_reported,
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_started = 0
        self.sessions_ended = 0
        self.transcript_entries = 0
        self.transcripts_saved = 0
        self.errors_reported = 0
