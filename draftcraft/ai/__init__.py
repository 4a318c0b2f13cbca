"""AI integration modules for DraftCraft."""

from .claude_client import ClaudeClient, GenerationResult
from .ai_log import AILogBook, AILogEntry
from .prompts import SuggestionType
from .suggestions import SuggestionPipeline
from .self_refine import SelfRefineEngine
from .draft_actions import DraftAction, DraftActionPipeline
from .batch_generator import BatchGenerator, BatchResult, BatchState, ChapterStatus

__all__ = [
    "ClaudeClient",
    "GenerationResult",
    "AILogBook",
    "AILogEntry",
    "SuggestionType",
    "SuggestionPipeline",
    "SelfRefineEngine",
    "DraftAction",
    "DraftActionPipeline",
    "BatchGenerator",
    "BatchResult",
    "BatchState",
    "ChapterStatus",
]
