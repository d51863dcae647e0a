"""
Persisted record layouts for projects, research materials and interview transcripts.

Field names match the stored layout exactly (camelCase), so `to_dict()` output can be
handed to the storage backend or returned to the UI without translation.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Project:
    """A research project owned by a user."""
    id: int
    userId: int
    name: str
    description: str
    createdAt: datetime = field(default_factory=datetime.now)
    researchObjective: Optional[str] = None
    interviewPrompt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["createdAt"] = _iso(self.createdAt)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Project':
        data = dict(data)
        data["createdAt"] = _parse(data.get("createdAt"))
        return cls(**data)


@dataclass
class ResearchMaterial:
    """A knowledge-base file attached to a project."""
    id: int
    projectId: int
    fileName: str
    fileType: str
    fileSize: int
    filePath: str
    uploadedAt: datetime = field(default_factory=datetime.now)

    @property
    def is_text(self) -> bool:
        return self.fileType.startswith("text/")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["uploadedAt"] = _iso(self.uploadedAt)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResearchMaterial':
        data = dict(data)
        data["uploadedAt"] = _parse(data.get("uploadedAt"))
        return cls(**data)


@dataclass
class TranscriptRecord:
    """A saved interview transcript plus its optional analysis fields."""
    id: int
    projectId: int
    assistantId: str
    transcriptData: List[Dict[str, Any]] = field(default_factory=list)
    participantName: Optional[str] = None
    conductedAt: datetime = field(default_factory=datetime.now)
    summary: Optional[str] = None
    keyFindings: Optional[str] = None
    sentimentScore: Optional[int] = None
    duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["conductedAt"] = _iso(self.conductedAt)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranscriptRecord':
        data = dict(data)
        data["conductedAt"] = _parse(data.get("conductedAt"))
        return cls(**data)
