"""
Service classes behind the interview lab backend.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from .prompts import InterviewPrompts, PromptFormatter, DEFAULT_INTERVIEWER_PROMPT
from ..config import (
    KNOWLEDGE_BASE_EXCERPT_CHARS, ENHANCE_TEMPERATURE, MAX_OUTPUT_TOKENS,
    ASSISTANT_FIRST_MESSAGE, Config,
)
from ..infrastructure.data import Storage, Project, ResearchMaterial, TranscriptRecord
from ..infrastructure.voice import VoiceAgentServer, make_placeholder_id

logger = logging.getLogger("services")


class ServiceError(Exception):
    """Base class for backend service failures."""


class NotFound(ServiceError):
    """Requested record does not exist."""


class AccessDenied(ServiceError):
    """Record belongs to another user."""


class ValidationError(ServiceError, ValueError):
    """Request data is malformed."""


class PromptEnhancementError(ServiceError):
    """The LLM could not produce an interview prompt."""


def parse_id(value: Any, label: str = "ID") -> int:
    """Parse a numeric record id the way route parameters arrive (int or digit string)."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {label}") from None


def read_text_materials(materials: List[ResearchMaterial]) -> List[Tuple[str, str]]:
    """
    Read the text research materials of a project.

    Non-text files are skipped; unreadable files are logged and skipped.

    Returns:
        (file name, content) pairs in material order
    """
    documents = []
    for material in materials:
        if not material.is_text:
            continue
        try:
            with open(material.filePath, 'r', encoding='utf-8') as f:
                documents.append((material.fileName, f.read()))
        except OSError as e:
            logger.error(f"Error reading file {material.fileName}: {e}")
    return documents


class ProjectService:
    """Projects and their research materials."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def create_project(self, user_id: int, name: str, description: str) -> Project:
        if not name or not name.strip():
            raise ValidationError("Project name is required")
        return self.storage.create_project(user_id, name.strip(), description or "")

    def list_projects(self, user_id: int) -> List[Project]:
        return self.storage.get_projects(user_id)

    def get_project(self, project_id: Any, user_id: Optional[int] = None) -> Project:
        """
        Fetch a project, checking ownership when `user_id` is given.

        Raises:
            ValidationError: If the id is not numeric
            NotFound: If no such project exists
            AccessDenied: If the project belongs to another user
        """
        project = self.storage.get_project(parse_id(project_id, "project ID"))
        if project is None:
            raise NotFound("Project not found")
        if user_id is not None and project.userId != user_id:
            raise AccessDenied("Access denied")
        return project

    def update_project(self, project_id: Any, user_id: Optional[int] = None,
                       name: Optional[str] = None, description: Optional[str] = None) -> Project:
        project = self.get_project(project_id, user_id)
        changes = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Project name is required")
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        return self.storage.update_project(project.id, **changes)

    def delete_project(self, project_id: Any, user_id: Optional[int] = None) -> bool:
        project = self.get_project(project_id, user_id)
        deleted = self.storage.delete_project(project.id)
        logger.info(f"Deleted project {project.id}: {deleted}")
        return deleted

    def update_research_objective(self, project_id: Any, objective: str,
                                  user_id: Optional[int] = None) -> Project:
        if not isinstance(objective, str):
            raise ValidationError("objective must be a string")
        project = self.get_project(project_id, user_id)
        return self.storage.update_research_objective(project.id, objective)

    def add_research_materials(self, project_id: Any, files: List[Dict[str, Any]],
                               user_id: Optional[int] = None) -> List[ResearchMaterial]:
        """
        Register already-stored files as research materials.

        Args:
            files: Dicts with fileName, fileType, fileSize and filePath
        """
        project = self.get_project(project_id, user_id)
        if not files:
            raise ValidationError("No files uploaded")

        saved = []
        for info in files:
            try:
                saved.append(self.storage.create_research_material(
                    project.id,
                    file_name=info["fileName"],
                    file_type=info["fileType"],
                    file_size=int(info["fileSize"]),
                    file_path=info["filePath"],
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"Invalid file description: {e}") from e
        return saved

    def list_research_materials(self, project_id: Any, user_id: Optional[int] = None) -> List[ResearchMaterial]:
        project = self.get_project(project_id, user_id)
        return self.storage.get_research_materials(project.id)

    def delete_research_material(self, material_id: Any) -> bool:
        return self.storage.delete_research_material(parse_id(material_id, "material ID"))


class PromptEnhancementService:
    """Turns a research objective into a structured interview prompt with the LLM."""

    def __init__(self, storage: Storage, llm_client,
                 excerpt_chars: int = KNOWLEDGE_BASE_EXCERPT_CHARS,
                 temperature: float = ENHANCE_TEMPERATURE):
        self.storage = storage
        self.llm_client = llm_client
        self.excerpt_chars = excerpt_chars
        self.temperature = temperature

    def knowledge_base_excerpts(self, project_id: int) -> List[str]:
        materials = self.storage.get_research_materials(project_id)
        logger.info(f"Found {len(materials)} research materials for project {project_id}")
        return [
            PromptFormatter.excerpt(name, content, self.excerpt_chars)
            for name, content in read_text_materials(materials)
        ]

    def enhance(self, project_id: Any, objective: str, use_knowledge_base: bool = False,
                user_id: Optional[int] = None) -> str:
        """
        Save the objective, generate the interview prompt and store it on the project.

        The objective is stored before the LLM call so it survives a failed enhancement.

        Raises:
            NotFound / AccessDenied / ValidationError: For bad project references
            PromptEnhancementError: If the LLM call fails
        """
        if not isinstance(objective, str) or not objective.strip():
            raise ValidationError("objective must be a non-empty string")

        project = ProjectService(self.storage).get_project(project_id, user_id)
        self.storage.update_research_objective(project.id, objective)
        logger.info(f"Updated research objective for project {project.id}")

        excerpts = self.knowledge_base_excerpts(project.id) if use_knowledge_base else []
        logger.info(f"Enhancing prompt for project {project.id} with {len(excerpts)} documents")

        try:
            prompt = self.llm_client.generate_content(
                InterviewPrompts.enhancement_request(objective, excerpts),
                system_instruction=InterviewPrompts.enhancement_system_instruction(),
                temperature=self.temperature,
                max_output_tokens=MAX_OUTPUT_TOKENS,
            )
        except Exception as e:
            logger.error("Error enhancing prompt: %s", e)
            raise PromptEnhancementError("Failed to enhance prompt with AI. Please try again.") from e

        prompt = (prompt or "").strip() or "Could not generate prompt"
        self.storage.update_interview_prompt(project.id, prompt)
        logger.info(f"Updated interview prompt for project {project.id}")
        return prompt


class InterviewAssistantService:
    """Creates voice interview assistants for projects."""

    def __init__(self, storage: Storage, voice_server: Optional[VoiceAgentServer],
                 config: Optional[Config] = None):
        self.storage = storage
        self.voice_server = voice_server
        self.config = config or Config()

    def build_assistant_prompt(self, project: Project) -> str:
        """Interviewer instructions: stored prompt, else objective-based, else generic; plus material context."""
        if project.interviewPrompt:
            prompt = project.interviewPrompt
        elif project.researchObjective:
            prompt = InterviewPrompts.objective_interviewer_prompt(project.researchObjective)
        else:
            prompt = DEFAULT_INTERVIEWER_PROMPT

        documents = read_text_materials(self.storage.get_research_materials(project.id))
        if documents:
            prompt += InterviewPrompts.material_context(documents)
        return prompt

    def create_interview(self, project_id: Any, user_id: Optional[int] = None) -> Dict[str, str]:
        """
        Create an assistant for the project.

        A voice agent failure does not propagate: a placeholder id is returned instead so
        the interview can still run against the simulated agent.

        Returns:
            {"assistantId": id}
        """
        project = ProjectService(self.storage).get_project(project_id, user_id)
        prompt = self.build_assistant_prompt(project)

        if self.voice_server is None:
            logger.warning("Voice agent not configured; providing placeholder assistant id")
            return {"assistantId": make_placeholder_id()}

        try:
            assistant_id = self.voice_server.create_assistant(
                name=f"{project.name} Interview Assistant",
                system_prompt=prompt,
                first_message=self.config.assistant_first_message or ASSISTANT_FIRST_MESSAGE,
                model=self.config.assistant_model,
                model_provider=self.config.assistant_model_provider,
                voice=self.config.assistant_voice,
                voice_provider=self.config.assistant_voice_provider,
            )
        except Exception as e:
            logger.error("Voice agent API error: %s", e)
            logger.info("Providing placeholder assistant id")
            return {"assistantId": make_placeholder_id()}

        return {"assistantId": assistant_id}

    def generate_shareable_link(self, project_id: Any, user_id: Optional[int] = None) -> Dict[str, str]:
        """Assistant id to embed in a shareable interview link."""
        return self.create_interview(project_id, user_id)

    def get_call(self, call_id: str) -> Dict[str, Any]:
        if self.voice_server is None:
            return VoiceAgentServer.placeholder_call(call_id, error="Voice agent not configured")
        return self.voice_server.get_call(call_id)


class TranscriptService:
    """Stores and reads interview transcripts."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def save_transcript(self, payload: Dict[str, Any]) -> TranscriptRecord:
        """
        Store a transcript payload `{projectId, assistantId, participantName?, transcriptData, duration}`.

        Raises:
            ValidationError: If the payload is malformed
            NotFound: If the project does not exist
        """
        if not isinstance(payload, dict):
            raise ValidationError("Transcript payload must be an object")

        project_id = parse_id(payload.get("projectId"), "project ID")
        assistant_id = payload.get("assistantId")
        transcript_data = payload.get("transcriptData")
        duration = payload.get("duration")
        participant_name = payload.get("participantName") or None

        if not isinstance(assistant_id, str) or not assistant_id:
            raise ValidationError("assistantId is required")
        if not isinstance(transcript_data, list):
            raise ValidationError("transcriptData must be a list")
        if duration is not None and (not isinstance(duration, int) or duration < 0):
            raise ValidationError("duration must be a non-negative integer")
        if self.storage.get_project(project_id) is None:
            raise NotFound("Project not found")

        return self.storage.create_transcript(
            project_id, assistant_id, transcript_data,
            participant_name=participant_name, duration=duration,
        )

    def list_transcripts(self, project_id: Any) -> List[TranscriptRecord]:
        return self.storage.get_project_transcripts(parse_id(project_id, "project ID"))

    def get_transcript(self, transcript_id: Any) -> TranscriptRecord:
        record = self.storage.get_transcript(parse_id(transcript_id, "transcript ID"))
        if record is None:
            raise NotFound("Transcript not found")
        return record

    def update_analysis(self, transcript_id: Any, summary: str, key_findings: str,
                        sentiment_score: int) -> TranscriptRecord:
        record = self.storage.update_transcript_analysis(
            parse_id(transcript_id, "transcript ID"), summary, key_findings, sentiment_score
        )
        if record is None:
            raise NotFound("Transcript not found")
        return record


class InterviewBackend:
    """The two backend calls a session controller makes."""

    def __init__(self, assistants: InterviewAssistantService, transcripts: TranscriptService):
        self.assistants = assistants
        self.transcripts = transcripts

    def create_interview(self, project_id: int) -> Dict[str, str]:
        return self.assistants.create_interview(project_id)

    def save_transcript(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.transcripts.save_transcript(payload).to_dict()
