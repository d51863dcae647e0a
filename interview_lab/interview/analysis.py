"""
Analysis and export of saved interview transcripts.
Produces the summary, key findings and sentiment fields of a transcript record and
renders transcripts as markdown for download.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from .prompts import InterviewPrompts, PromptFormatter
from ..infrastructure.data import TranscriptRecord

logger = logging.getLogger("interview_analysis")

SENTIMENT_MIN = 0
SENTIMENT_MAX = 4

# (threshold, label), checked from the top
SENTIMENT_LABELS = [
    (4, "Very Positive"),
    (3, "Positive"),
    (2, "Neutral"),
    (1, "Negative"),
]


def format_duration(seconds: Optional[int]) -> str:
    """`m:ss`, or "Unknown" when there is no duration."""
    if not seconds:
        return "Unknown"
    minutes, remaining = divmod(int(seconds), 60)
    return f"{minutes}:{remaining:02d}"


def sentiment_label(score: Optional[int]) -> str:
    if score is None:
        return "Unknown"
    for threshold, label in SENTIMENT_LABELS:
        if score >= threshold:
            return label
    return "Very Negative"


def render_transcript_markdown(record: TranscriptRecord) -> str:
    """Markdown export of a transcript with its analysis fields."""
    content = "# Interview Transcript\n\n"
    content += f"Date: {record.conductedAt.strftime('%B %d, %Y')}\n"
    content += f"Participant: {record.participantName or 'Anonymous'}\n"
    content += f"Duration: {format_duration(record.duration)}\n\n"

    if record.summary:
        content += f"## Summary\n{record.summary}\n\n"

    if record.keyFindings:
        content += f"## Key Findings\n{record.keyFindings}\n\n"

    content += "## Transcript\n\n"
    for line in PromptFormatter.transcript_lines(record.transcriptData):
        content += f"{line}\n\n"

    return content


def export_filename(record: TranscriptRecord) -> str:
    return f"interview-{record.conductedAt.strftime('%Y-%m-%d')}.md"


class TranscriptAnalyzer:
    """Runs the LLM analysis step over a saved transcript."""

    def __init__(self, llm_client, transcripts, storage):
        """
        Args:
            llm_client: Client with `generate_json(prompt)`
            transcripts: TranscriptService used to read and update records
            storage: Storage used to look up the project's research objective
        """
        self.llm_client = llm_client
        self.transcripts = transcripts
        self.storage = storage

    def analyze(self, transcript_id: Any) -> TranscriptRecord:
        """Analyse a transcript and store summary, key findings and sentiment on it."""
        record = self.transcripts.get_transcript(transcript_id)
        project = self.storage.get_project(record.projectId)
        objective = project.researchObjective if project else None

        lines = PromptFormatter.transcript_lines(record.transcriptData)
        if not lines:
            logger.info(f"Transcript {record.id} is empty; skipping analysis")
            return record

        result = self.llm_client.generate_json(InterviewPrompts.transcript_analysis_prompt(objective, lines))
        summary, key_findings, sentiment = self.parse_analysis(result)

        logger.info(f"Analysed transcript {record.id}: sentiment {sentiment} ({sentiment_label(sentiment)})")
        return self.transcripts.update_analysis(record.id, summary, key_findings, sentiment)

    @staticmethod
    def parse_analysis(result: Dict[str, Any]) -> Tuple[str, str, int]:
        """Normalise the LLM's JSON: text fields as strings, sentiment clamped to 0-4."""
        summary = str(result.get("summary") or "").strip()

        findings = result.get("keyFindings") or ""
        if isinstance(findings, list):
            findings = "\n".join(f"- {item}" for item in findings)
        key_findings = str(findings).strip()

        try:
            sentiment = int(round(float(result.get("sentimentScore"))))
        except (TypeError, ValueError):
            logger.warning(f"Invalid sentiment score from LLM: {result.get('sentimentScore')!r}")
            sentiment = 2
        sentiment = max(SENTIMENT_MIN, min(SENTIMENT_MAX, sentiment))

        return summary, key_findings, sentiment
