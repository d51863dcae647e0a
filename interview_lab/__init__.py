"""
Interview Lab: plan, run and review AI-assisted user research interviews.

Projects hold a research objective and knowledge-base files, an LLM turns the
objective into an interview prompt, a hosted voice agent runs the interview,
and the resulting transcripts are saved for review.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.session import SessionController
from .interview.models import SessionStatus, TranscriptEntry, EndReason

__all__ = ["SessionController", "SessionStatus", "TranscriptEntry", "EndReason"]
