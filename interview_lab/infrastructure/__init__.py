"""Infrastructure components for the interview lab.

This module contains the low-level clients and stores the interview services are
built on: the LLM client, the voice agent platform clients, timers and storage.
"""

# LLM infrastructure
from .llm import VertexRestClient

# Voice agent platform
from .voice import VoiceAgentServer, VoiceAgentClient, RemoteVoiceAgentClient, VoiceEvent

# Timers
from .timers import Scheduler, AsyncioScheduler, TimerHandle

# Storage
from .data import Storage, MemoryStorage, JsonFileStorage

__all__ = [
    # LLM client
    "VertexRestClient",

    # Voice agent
    "VoiceAgentServer", "VoiceAgentClient", "RemoteVoiceAgentClient", "VoiceEvent",

    # Timers
    "Scheduler", "AsyncioScheduler", "TimerHandle",

    # Storage
    "Storage", "MemoryStorage", "JsonFileStorage",
]
