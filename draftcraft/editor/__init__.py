"""Stateful editing controllers for DraftCraft."""

from .history_controller import ChapterState, HistoryController
from .undo_stack import UndoHistoryState, UndoRedoStack
from .protection import ProtectionWindow
from .plot_editor import PlotEditor

__all__ = [
    "ChapterState",
    "HistoryController",
    "UndoHistoryState",
    "UndoRedoStack",
    "ProtectionWindow",
    "PlotEditor",
]
