"""
Data models for interview sessions.
"""
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List, Any


class SessionStatus(str, Enum):
    """Lifecycle of one interview session: idle -> connecting -> active -> ended."""
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"


class Speaker(str, Enum):
    """Who said a transcript line."""
    ASSISTANT = "assistant"
    PARTICIPANT = "participant"

    @property
    def stored_type(self) -> str:
        """Speaker name as written in saved transcripts."""
        return "assistant" if self is Speaker.ASSISTANT else "user"


class EndReason(str, Enum):
    """Why a session ended. All reasons lead to the same save decision."""
    USER_REQUESTED = "user-requested"
    REMOTE_ENDED = "remote-ended"
    COMPONENT_UNMOUNTED = "component-unmounted"


def new_entry_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class TranscriptEntry:
    """One attributed line of dialogue, stamped when it was received."""
    speaker: Speaker
    text: str
    timestamp: datetime
    id: str = field(default_factory=new_entry_id)

    def to_dict(self) -> Dict[str, Any]:
        """Stored layout: {id, type, text, timestamp}."""
        return {
            "id": self.id,
            "type": self.speaker.stored_type,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


def transcript_duration(entries: List[TranscriptEntry]) -> int:
    """
    Whole seconds between the first and last entry, floored.
    Fewer than two entries give 0.
    """
    if len(entries) < 2:
        return 0
    elapsed = (entries[-1].timestamp - entries[0].timestamp).total_seconds()
    return max(0, math.floor(elapsed))


@dataclass
class Session:
    """Ephemeral state of one interview; never persisted as its own record."""
    project_id: int
    session_id: Optional[str] = None
    status: SessionStatus = SessionStatus.IDLE
    muted: bool = False
    volume_level: float = 0.0
    transcript: List[TranscriptEntry] = field(default_factory=list)
    saved: bool = False
    participant_name: Optional[str] = None
    saved_transcript_id: Optional[int] = None

    @property
    def duration(self) -> int:
        return transcript_duration(self.transcript)

    def build_save_payload(self) -> Dict[str, Any]:
        """Payload accepted by the transcript write of the storage collaborator."""
        return {
            "projectId": self.project_id,
            "assistantId": self.session_id,
            "participantName": self.participant_name or None,
            "transcriptData": [entry.to_dict() for entry in self.transcript],
            "duration": self.duration,
        }
