"""
Interview prompt templates and generation.

This module contains the prompt templates used for interview prompt enhancement,
interview assistant instructions and transcript analysis, keeping them separate
from the business logic for easier maintenance and editing.
"""

from typing import List, Optional, Sequence, Tuple
import json


DEFAULT_INTERVIEWER_PROMPT = "You are an interviewer. Ask questions to understand the user better."


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def enhancement_system_instruction() -> str:
        """System instruction that turns a research objective into a structured interview prompt."""
        return """
You are an expert in creating effective interview prompts for user research.
Your task is to format a research objective into a comprehensive and effective interview prompt.

Format the prompt with the following sections:

## Identity
[Who the bot should pretend to be, e.g. "You are an experienced UX researcher"]

## Style
[The tone and communication style of the bot, e.g. "Speak in a conversational, friendly tone. Use simple language."]

## Response Guidelines
[How the bot should structure their responses, e.g. "Keep responses concise. Ask one question at a time."]

## Task & Goals
[The main objective of the interview, with 3-5 key areas to explore]

## Error Handling
[How to gracefully handle off-topic responses or confusion]
        """.strip()

    @staticmethod
    def enhancement_request(objective: str, knowledge_base_excerpts: Optional[Sequence[str]] = None) -> str:
        """User message for prompt enhancement, with optional knowledge-base excerpts."""
        if not knowledge_base_excerpts:
            return objective.strip()

        excerpts = "\n\n".join(knowledge_base_excerpts)
        return f"""
Research objective:
{objective.strip()}

Knowledge base excerpts (use them to make the interview topics specific):
{excerpts}
        """.strip()

    @staticmethod
    def objective_interviewer_prompt(objective: str) -> str:
        """Fallback interviewer instructions when only a research objective exists."""
        return (
            f"You are a user researcher conducting an interview. Your research objective is: {objective}. "
            "Ask open-ended questions to understand the user's perspective on this topic."
        )

    @staticmethod
    def material_context(documents: List[Tuple[str, str]]) -> str:
        """Context block appended to the interviewer prompt from text research materials."""
        content = "".join(f"\n\n{name}:\n{text}" for name, text in documents)
        return (
            f"\n\nAdditional context from research materials:{content}\n\n"
            "Use this context to inform your questions, but do not directly reference these documents to the user."
        )

    @staticmethod
    def transcript_analysis_prompt(research_objective: Optional[str], transcript_lines: List[str]) -> str:
        """Prompt asking for a summary, key findings and a 0-4 sentiment score."""
        objective = research_objective or "(no research objective recorded)"
        return f"""
You are analysing a user research interview.

Research objective: {json.dumps(objective, ensure_ascii=False)}

Transcript:
{chr(10).join(transcript_lines)}

Return a JSON object with:
{{"summary":"<3-5 sentence summary of what the participant said>","keyFindings":"<bullet list of the most important findings, one per line starting with '- '>","sentimentScore":<integer 0 (very negative) to 4 (very positive)>}}
        """.strip()


class PromptFormatter:
    """Helpers that shape inputs for the prompt templates."""

    TRUNCATION_MARKER = "...(truncated)"

    @staticmethod
    def excerpt(file_name: str, content: str, limit: int) -> str:
        """Knowledge-base excerpt: the first `limit` characters of a file, marked when cut."""
        text = content[:limit]
        if len(content) > limit:
            text += PromptFormatter.TRUNCATION_MARKER
        return f"File: {file_name}\n{text}"

    @staticmethod
    def transcript_lines(transcript_data: List[dict]) -> List[str]:
        lines = []
        for message in transcript_data:
            role = "Interviewer" if message.get("type") == "assistant" else "Participant"
            lines.append(f"{role}: {message.get('text', '')}")
        return lines
