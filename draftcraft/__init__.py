"""
DraftCraft - draft revision and history engine for AI-assisted fiction writing.
"""

__version__ = "1.0.0"

from .config import Config, AISettings
from .core import Chapter, Character, Project, HistoryEntry, HistoryEntryType
from .engine import DraftEngine

__all__ = [
    "Config",
    "AISettings",
    "Chapter",
    "Character",
    "Project",
    "HistoryEntry",
    "HistoryEntryType",
    "DraftEngine",
]
