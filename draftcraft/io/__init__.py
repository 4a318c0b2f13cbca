"""File I/O and data handling modules."""

from .file_handler import FileHandler
from .project_loader import ProjectLoader, ProjectStore
from .history_store import JsonFileBackend, MemoryBackend, SnapshotStore

__all__ = [
    "FileHandler",
    "ProjectLoader",
    "ProjectStore",
    "JsonFileBackend",
    "MemoryBackend",
    "SnapshotStore",
]
