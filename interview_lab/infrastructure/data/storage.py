"""
Key-based storage for projects, research materials and transcripts.
"""
import os
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from .records import Project, ResearchMaterial, TranscriptRecord

logger = logging.getLogger("storage")

# Fields a project update is allowed to touch
PROJECT_UPDATE_FIELDS = ("name", "description", "researchObjective", "interviewPrompt")


class Storage(ABC):
    """Storage interface used by the backend services."""

    # Project methods
    @abstractmethod
    def create_project(self, user_id: int, name: str, description: str) -> Project:
        ...

    @abstractmethod
    def get_projects(self, user_id: int) -> List[Project]:
        ...

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[Project]:
        ...

    @abstractmethod
    def update_project(self, project_id: int, **changes: Any) -> Optional[Project]:
        ...

    @abstractmethod
    def delete_project(self, project_id: int) -> bool:
        ...

    # Research material methods
    @abstractmethod
    def create_research_material(self, project_id: int, file_name: str, file_type: str,
                                 file_size: int, file_path: str) -> ResearchMaterial:
        ...

    @abstractmethod
    def get_research_materials(self, project_id: int) -> List[ResearchMaterial]:
        ...

    @abstractmethod
    def delete_research_material(self, material_id: int) -> bool:
        ...

    # Transcript methods
    @abstractmethod
    def create_transcript(self, project_id: int, assistant_id: str,
                          transcript_data: List[Dict[str, Any]],
                          participant_name: Optional[str] = None,
                          duration: Optional[int] = None) -> TranscriptRecord:
        ...

    @abstractmethod
    def get_project_transcripts(self, project_id: int) -> List[TranscriptRecord]:
        ...

    @abstractmethod
    def get_transcript(self, transcript_id: int) -> Optional[TranscriptRecord]:
        ...

    @abstractmethod
    def update_transcript_analysis(self, transcript_id: int, summary: str,
                                   key_findings: str, sentiment_score: int) -> Optional[TranscriptRecord]:
        ...

    # Research objective and prompt helpers
    def update_research_objective(self, project_id: int, objective: str) -> Optional[Project]:
        return self.update_project(project_id, researchObjective=objective)

    def update_interview_prompt(self, project_id: int, prompt: str) -> Optional[Project]:
        return self.update_project(project_id, interviewPrompt=prompt)


class MemoryStorage(Storage):
    """Dictionary-backed storage with sequential ids."""

    def __init__(self):
        self.projects: Dict[int, Project] = {}
        self.research_materials: Dict[int, ResearchMaterial] = {}
        self.transcripts: Dict[int, TranscriptRecord] = {}
        self.current_project_id = 1
        self.current_material_id = 1
        self.current_transcript_id = 1

    def _changed(self) -> None:
        """Hook called after every successful write."""

    def create_project(self, user_id: int, name: str, description: str) -> Project:
        project = Project(
            id=self.current_project_id,
            userId=user_id,
            name=name,
            description=description,
        )
        self.current_project_id += 1
        self.projects[project.id] = project
        self._changed()
        logger.debug(f"Created project {project.id} for user {user_id}")
        return project

    def get_projects(self, user_id: int) -> List[Project]:
        return [p for p in self.projects.values() if p.userId == user_id]

    def get_project(self, project_id: int) -> Optional[Project]:
        return self.projects.get(project_id)

    def update_project(self, project_id: int, **changes: Any) -> Optional[Project]:
        project = self.projects.get(project_id)
        if project is None:
            return None

        for key, value in changes.items():
            if key not in PROJECT_UPDATE_FIELDS:
                raise KeyError(f"Unknown project field: {key}")
            setattr(project, key, value)

        self._changed()
        return project

    def delete_project(self, project_id: int) -> bool:
        # Materials belong to the project and go with it
        material_ids = [m.id for m in self.research_materials.values() if m.projectId == project_id]
        for material_id in material_ids:
            del self.research_materials[material_id]

        deleted = self.projects.pop(project_id, None) is not None
        if deleted or material_ids:
            self._changed()
        return deleted

    def create_research_material(self, project_id: int, file_name: str, file_type: str,
                                 file_size: int, file_path: str) -> ResearchMaterial:
        material = ResearchMaterial(
            id=self.current_material_id,
            projectId=project_id,
            fileName=file_name,
            fileType=file_type,
            fileSize=file_size,
            filePath=file_path,
        )
        self.current_material_id += 1
        self.research_materials[material.id] = material
        self._changed()
        return material

    def get_research_materials(self, project_id: int) -> List[ResearchMaterial]:
        return [m for m in self.research_materials.values() if m.projectId == project_id]

    def delete_research_material(self, material_id: int) -> bool:
        deleted = self.research_materials.pop(material_id, None) is not None
        if deleted:
            self._changed()
        return deleted

    def create_transcript(self, project_id: int, assistant_id: str,
                          transcript_data: List[Dict[str, Any]],
                          participant_name: Optional[str] = None,
                          duration: Optional[int] = None) -> TranscriptRecord:
        record = TranscriptRecord(
            id=self.current_transcript_id,
            projectId=project_id,
            assistantId=assistant_id,
            transcriptData=list(transcript_data),
            participantName=participant_name,
            conductedAt=datetime.now(),
            duration=duration,
        )
        self.current_transcript_id += 1
        self.transcripts[record.id] = record
        self._changed()
        logger.info(f"Stored transcript {record.id} for project {project_id} ({len(record.transcriptData)} entries)")
        return record

    def get_project_transcripts(self, project_id: int) -> List[TranscriptRecord]:
        records = [t for t in self.transcripts.values() if t.projectId == project_id]
        # Most recent first
        return sorted(records, key=lambda t: (t.conductedAt, t.id), reverse=True)

    def get_transcript(self, transcript_id: int) -> Optional[TranscriptRecord]:
        return self.transcripts.get(transcript_id)

    def update_transcript_analysis(self, transcript_id: int, summary: str,
                                   key_findings: str, sentiment_score: int) -> Optional[TranscriptRecord]:
        record = self.transcripts.get(transcript_id)
        if record is None:
            return None

        record.summary = summary
        record.keyFindings = key_findings
        record.sentimentScore = sentiment_score
        self._changed()
        return record


class JsonFileStorage(MemoryStorage):
    """
    MemoryStorage persisted to a single JSON document.

    The whole document is rewritten after every write and loaded once at construction.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.load()

    def load(self) -> None:
        """Load all records from disk."""
        if not os.path.exists(self.path):
            return

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        self.projects = {p["id"]: Project.from_dict(p) for p in data.get("projects", [])}
        self.research_materials = {
            m["id"]: ResearchMaterial.from_dict(m) for m in data.get("researchMaterials", [])
        }
        self.transcripts = {t["id"]: TranscriptRecord.from_dict(t) for t in data.get("transcripts", [])}

        counters = data.get("counters", {})
        self.current_project_id = counters.get("project", max(self.projects, default=0) + 1)
        self.current_material_id = counters.get("researchMaterial", max(self.research_materials, default=0) + 1)
        self.current_transcript_id = counters.get("transcript", max(self.transcripts, default=0) + 1)

        logger.info(
            f"Loaded {len(self.projects)} projects, {len(self.research_materials)} materials "
            f"and {len(self.transcripts)} transcripts from {self.path}"
        )

    def save(self) -> None:
        """Write all records to disk."""
        data = {
            "projects": [p.to_dict() for p in self.projects.values()],
            "researchMaterials": [m.to_dict() for m in self.research_materials.values()],
            "transcripts": [t.to_dict() for t in self.transcripts.values()],
            "counters": {
                "project": self.current_project_id,
                "researchMaterial": self.current_material_id,
                "transcript": self.current_transcript_id,
            },
        }

        tmp_path = self.path + ".tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def _changed(self) -> None:
        self.save()
