"""
Interview Lab Configuration
===========================

This file contains ALL configuration for the interview lab.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when a required setting (such as an API key) is missing."""


# =============================================================================
# USER SETTINGS - Edit these to customize the interview lab
# =============================================================================

# Voice agent platform
VAPI_API_KEY = None  # Set via environment variable VAPI_API_KEY
VAPI_BASE_URL = "https://api.vapi.ai"

# Prompt enhancement / transcript analysis (Vertex AI)
GOOGLE_CLOUD_PROJECT = None  # Set via environment variable GOOGLE_CLOUD_PROJECT
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Interview assistant
ASSISTANT_MODEL_PROVIDER = "openai"
ASSISTANT_MODEL = "gpt-4o"
ASSISTANT_VOICE_PROVIDER = "openai"
ASSISTANT_VOICE = "nova"
ASSISTANT_FIRST_MESSAGE = (
    "Hello, I'm your AI interviewer today. "
    "I'll be asking some questions based on our research objectives."
)

# Storage
DATA_FILE = "./_interview_lab/data.json"

# Logging
LOG_FILE = "./_interview_lab/interview_lab.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Placeholder identifiers handed out when the voice agent is unreachable
PLACEHOLDER_ASSISTANT_PREFIX = "mock-assistant-"
PLACEHOLDER_CALL_PREFIX = "mock-call-"

# Simulated voice agent cadence (seconds)
SIMULATED_VOLUME_INTERVAL = 1.0
SIMULATED_VOLUME_MAX = 0.5
SIMULATED_CALL_START_DELAY = 0.5
SIMULATED_SCRIPT_INTERVAL = 8.0

# Remote voice agent
REMOTE_POLL_INTERVAL = 2.0
VOICE_AGENT_TIMEOUT = 30

# Knowledge base excerpts sent with prompt enhancement
KNOWLEDGE_BASE_EXCERPT_CHARS = 1000

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 1000
ENHANCE_TEMPERATURE = 0.7


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    vapi_api_key: Optional[str] = None
    vapi_base_url: str = VAPI_BASE_URL
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    assistant_model_provider: str = ASSISTANT_MODEL_PROVIDER
    assistant_model: str = ASSISTANT_MODEL
    assistant_voice_provider: str = ASSISTANT_VOICE_PROVIDER
    assistant_voice: str = ASSISTANT_VOICE
    assistant_first_message: str = ASSISTANT_FIRST_MESSAGE
    data_file: str = DATA_FILE
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL
    volume_interval: float = SIMULATED_VOLUME_INTERVAL
    call_start_delay: float = SIMULATED_CALL_START_DELAY
    script_interval: float = SIMULATED_SCRIPT_INTERVAL
    poll_interval: float = REMOTE_POLL_INTERVAL

    def require_vapi_api_key(self) -> str:
        """Return the voice agent key or fail fast when it is not configured."""
        if not self.vapi_api_key:
            raise ConfigurationError(
                "Voice agent API key is not configured. Set VAPI_API_KEY in config.py or as environment variable"
            )
        return self.vapi_api_key

    def require_google_cloud_project(self) -> str:
        """Return the Vertex AI project or fail fast when it is not configured."""
        if not self.google_cloud_project:
            raise ConfigurationError(
                "Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable"
            )
        return self.google_cloud_project


def get_config() -> Config:
    """Load configuration from the environment, falling back to the settings above."""
    return Config(
        vapi_api_key=os.getenv("VAPI_API_KEY") or VAPI_API_KEY,
        vapi_base_url=os.getenv("VAPI_BASE_URL") or VAPI_BASE_URL,
        google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT,
        google_application_credentials=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS,
        data_file=os.getenv("INTERVIEW_LAB_DATA_FILE") or DATA_FILE,
        log_file=os.getenv("INTERVIEW_LAB_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("INTERVIEW_LAB_LOG_LEVEL") or LOG_LEVEL,
    )
