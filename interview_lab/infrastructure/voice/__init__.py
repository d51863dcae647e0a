"""Voice agent platform infrastructure."""

from .server import VoiceAgentServer, VoiceAgentError, make_placeholder_id, is_placeholder_id
from .client import VoiceAgentClient, RemoteVoiceAgentClient, VoiceEvent, transcript_message

__all__ = [
    "VoiceAgentServer", "VoiceAgentError", "make_placeholder_id", "is_placeholder_id",
    "VoiceAgentClient", "RemoteVoiceAgentClient", "VoiceEvent", "transcript_message",
]
