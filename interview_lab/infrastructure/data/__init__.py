"""
Data management infrastructure for projects, research materials and transcripts.
"""

from .records import Project, ResearchMaterial, TranscriptRecord
from .storage import Storage, MemoryStorage, JsonFileStorage

__all__ = [
    'Project',
    'ResearchMaterial',
    'TranscriptRecord',
    'Storage',
    'MemoryStorage',
    'JsonFileStorage',
]
