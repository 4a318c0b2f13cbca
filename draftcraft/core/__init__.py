"""Core domain models for DraftCraft."""

from .document import Chapter, find_chapter, new_id
from .character import Character, CharacterRole
from .project import Project
from .history import HistoryEntry, HistoryEntryType, ImprovementLogEntry, Suggestion
from .plot import PlotFormState, PlotSettings, PlotStructureType, PlotVariant
from .diff import DiffKind, DiffSegment, diff_lines, has_diff

__all__ = [
    "Chapter",
    "find_chapter",
    "new_id",
    "Character",
    "CharacterRole",
    "Project",
    "HistoryEntry",
    "HistoryEntryType",
    "ImprovementLogEntry",
    "Suggestion",
    "PlotFormState",
    "PlotSettings",
    "PlotStructureType",
    "PlotVariant",
    "DiffKind",
    "DiffSegment",
    "diff_lines",
    "has_diff",
]
