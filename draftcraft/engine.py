"""Draft engine: the single entry point for editing surfaces.

The engine owns the live draft of the active chapter and the editor
selection, and wires the history controller, suggestion pipeline,
self-refine engine, whole-draft actions, batch generator and plot
editor to one project.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .ai.ai_log import AILogBook
from .ai.batch_generator import BatchGenerator, BatchResult
from .ai.draft_actions import DraftAction, DraftActionPipeline
from .ai.prompts import SuggestionType
from .ai.self_refine import SelfRefineEngine
from .ai.suggestions import SuggestionPipeline
from .config import Config
from .core.diff import DiffSegment
from .core.document import Chapter
from .core.history import HistoryEntry, ImprovementLogEntry, Suggestion
from .core.project import Project
from .editor.history_controller import HistoryController
from .editor.plot_editor import PlotEditor
from .exceptions import ChapterRequiredError, SelectionRequiredError
from .io.history_store import SnapshotStore

logger = logging.getLogger(__name__)


class DraftEngine:
    """Editing workspace for one project."""

    def __init__(
        self,
        project: Project,
        project_store,
        client,
        snapshot_store: Optional[SnapshotStore] = None,
        config: Optional[Config] = None,
        ai_log: Optional[AILogBook] = None,
    ):
        self.project = project
        self.project_store = project_store
        self.client = client
        self.config = config or Config()
        self.ai_log = ai_log or AILogBook(self.config.ai_log_limit)
        store = snapshot_store or SnapshotStore(max_entries=self.config.history_max_entries)

        self.history = HistoryController(store, self, project.id, self.config)
        self.suggestions = SuggestionPipeline(client, self.history, self, self.config, self.ai_log)
        self.self_refine = SelfRefineEngine(client, self.history, self, self.config, self.ai_log)
        self.draft_actions = DraftActionPipeline(client, self.history, self, self.config, self.ai_log)
        self.batch = BatchGenerator(client, project_store, self.config, self.ai_log)
        self.plot = PlotEditor(project_store, self.config)
        self.plot.load(project)

        self.chapter_id: Optional[str] = None
        self.draft = ""
        self.selection: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------
    # Workspace interface used by the history controller and pipelines
    # ------------------------------------------------------------------

    def get_draft(self, chapter_id: str) -> str:
        if chapter_id == self.chapter_id:
            return self.draft
        return self.saved_draft(chapter_id)

    def saved_draft(self, chapter_id: str) -> str:
        chapter = self.project.get_chapter(chapter_id)
        return chapter.draft if chapter else ""

    async def apply_draft(self, chapter_id: str, content: str) -> None:
        """Overwrite a chapter draft and persist the project."""
        if chapter_id == self.chapter_id:
            self.draft = content
            self.selection = None
        self.project.update_chapter_draft(chapter_id, content)
        await self.project_store.save_project(self.project)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    @property
    def chapter(self) -> Optional[Chapter]:
        return self.project.get_chapter(self.chapter_id)

    def _require_chapter(self) -> Chapter:
        chapter = self.chapter
        if chapter is None:
            raise ChapterRequiredError()
        return chapter

    async def open_chapter(self, chapter_id: str) -> List[HistoryEntry]:
        """Switch chapters, saving the outgoing one before loading the next."""
        chapter = self.project.get_chapter(chapter_id)
        if chapter is None:
            raise ChapterRequiredError(f"Chapter {chapter_id} does not exist.")
        if self.chapter_id == chapter_id:
            return await self.history.load(chapter_id)
        if self.chapter_id is not None:
            await self.history.flush(self.chapter_id)
            await self.save_draft()
            self.suggestions.clear()
        self.chapter_id = chapter.id
        self.draft = chapter.draft
        self.selection = None
        return await self.history.load(chapter.id)

    def edit(self, content: str) -> None:
        """Replace the live draft; schedules an auto-save snapshot."""
        chapter = self._require_chapter()
        self.draft = content
        self.selection = None
        self.history.notify_edit(chapter.id)

    def select_text(self, start: int, end: int) -> str:
        if not 0 <= start <= end <= len(self.draft):
            raise SelectionRequiredError(f"Invalid selection {start}:{end}")
        self.selection = (start, end)
        return self.draft[start:end]

    @property
    def selected_text(self) -> str:
        if self.selection is None:
            return ""
        start, end = self.selection
        return self.draft[start:end]

    async def save_draft(self) -> bool:
        """Persist the live draft if it differs from the saved one."""
        chapter = self.chapter
        if chapter is None or chapter.draft == self.draft:
            return False
        self.project.update_chapter_draft(chapter.id, self.draft)
        await self.project_store.save_project(self.project)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def entries(self) -> List[HistoryEntry]:
        return self.history.entries(self._require_chapter().id)

    async def snapshot(self, label: Optional[str] = None) -> HistoryEntry:
        return await self.history.manual_snapshot(self._require_chapter().id, label)

    async def restore(self, entry_id: Optional[str] = None) -> bool:
        return await self.history.restore(self._require_chapter().id, entry_id)

    async def delete_entry(self, entry_id: str) -> bool:
        return await self.history.delete(self._require_chapter().id, entry_id)

    def diff(self) -> List[DiffSegment]:
        return self.history.diff_selected(self._require_chapter().id)

    # ------------------------------------------------------------------
    # AI
    # ------------------------------------------------------------------

    async def request_suggestions(self, suggestion_type: SuggestionType = SuggestionType.REWRITE) -> List[Suggestion]:
        return await self.suggestions.request(self.chapter, self.selection, suggestion_type, self.project)

    async def apply_suggestion(self, suggestion: Suggestion) -> str:
        return await self.suggestions.apply(suggestion)

    async def refine(self) -> Optional[ImprovementLogEntry]:
        return await self.self_refine.run(self.chapter, self.project)

    async def run_action(self, action: DraftAction) -> Optional[str]:
        return await self.draft_actions.run(action, self.chapter, self.project)

    def improvement_logs(self) -> List[ImprovementLogEntry]:
        return self.self_refine.logs(self._require_chapter().id)

    def request_generate_all(self) -> None:
        self.batch.request(self.project)

    async def confirm_generate_all(self) -> BatchResult:
        """Run the confirmed batch and pick up the new active draft."""
        if self.chapter_id is not None:
            await self.history.flush(self.chapter_id)
            await self.save_draft()
        result = await self.batch.confirm()
        if self.chapter_id in result.updated:
            self.draft = self.saved_draft(self.chapter_id)
            self.selection = None
            self.history.notify_edit(self.chapter_id)
        return result

    def cancel(self) -> Dict[str, bool]:
        """Abort every in-flight AI request."""
        return {
            "suggestions": self.suggestions.cancel(),
            "self_refine": self.self_refine.cancel(),
            "draft_action": self.draft_actions.cancel(),
            "batch": self.batch.cancel(),
        }

    async def close(self) -> None:
        """Flush pending work and release timers."""
        if self.chapter_id is not None:
            await self.history.flush(self.chapter_id)
            await self.save_draft()
        await self.plot.flush()
        self.history.close()
        self.plot.close()
