"""Interview system components.

This module contains the business logic for running AI-assisted research interviews:
the session controller, the simulated voice agent, and the backend services for
projects, prompts and transcripts.
"""

# Session controller
from .session import SessionController

# Data models
from .models import Session, SessionStatus, Speaker, EndReason, TranscriptEntry, transcript_duration

# Simulated voice agent
from .simulated import SimulatedVoiceAgent, DEFAULT_INTERVIEW_SCRIPT

# Service classes
from .services import (
    ProjectService, PromptEnhancementService, InterviewAssistantService,
    TranscriptService, InterviewBackend,
    ServiceError, NotFound, AccessDenied, ValidationError, PromptEnhancementError,
)

# Analysis and export
from .analysis import TranscriptAnalyzer, render_transcript_markdown, format_duration, sentiment_label

# Event system
from .events import (
    SessionEventBus, EventLogger, SessionMetrics,
    EventType, SessionEvent, StatusChangedEvent, TranscriptEntryAddedEvent,
    VolumeChangedEvent, SpeechStartedEvent, SpeechEndedEvent,
    TranscriptSavedEvent, NotificationEvent,
)

__all__ = [
    # Controller
    "SessionController",

    # Data models
    "Session", "SessionStatus", "Speaker", "EndReason", "TranscriptEntry", "transcript_duration",

    # Simulated agent
    "SimulatedVoiceAgent", "DEFAULT_INTERVIEW_SCRIPT",

    # Services
    "ProjectService", "PromptEnhancementService", "InterviewAssistantService",
    "TranscriptService", "InterviewBackend",
    "ServiceError", "NotFound", "AccessDenied", "ValidationError", "PromptEnhancementError",

    # Analysis
    "TranscriptAnalyzer", "render_transcript_markdown", "format_duration", "sentiment_label",

    # Events
    "SessionEventBus", "EventLogger", "SessionMetrics",
    "EventType", "SessionEvent", "StatusChangedEvent", "TranscriptEntryAddedEvent",
    "VolumeChangedEvent", "SpeechStartedEvent", "SpeechEndedEvent",
    "TranscriptSavedEvent", "NotificationEvent",
]
