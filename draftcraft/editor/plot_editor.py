"""Plot structure editor with undo/redo and structure-change protection."""

import asyncio
import logging
from typing import Optional, Tuple

from ..config import Config
from ..core.plot import PlotFormState, PlotStructureType, PlotVariant
from ..core.project import Project
from .protection import ProtectionWindow
from .undo_stack import UndoHistoryState, UndoRedoStack

logger = logging.getLogger(__name__)


class PlotEditor:
    """Edits a project's plot outline.

    Field edits are written back to the project store after a short
    debounce. Structure changes are written back immediately and open a
    protection window during which ``sync_from_project`` keeps the local
    structure choice instead of the incoming one.
    """

    def __init__(self, project_store, config: Optional[Config] = None):
        self.project_store = project_store
        self.config = config or Config()
        self.history: UndoRedoStack[UndoHistoryState] = UndoRedoStack(self.config.plot_history_size)
        self.guard = ProtectionWindow(self.config.structure_guard_duration)
        self.project: Optional[Project] = None
        self.form = PlotFormState()
        self.structure = PlotStructureType.KISHOTENKETSU
        self._save_task: Optional[asyncio.Task] = None

    @property
    def active(self) -> PlotVariant:
        return self.form.get(self.structure)

    def load(self, project: Project) -> None:
        """Take over a project, starting a fresh undo history."""
        self.guard.cancel()
        self._cancel_save()
        self.project = project
        self.form = project.plot.form
        self.structure = project.plot.structure
        self.history.reset()
        self.history.initialize(self._state())

    def sync_from_project(self, project: Project) -> bool:
        """Apply an external project update; returns True if the structure followed it."""
        if self.project is None or project.id != self.project.id:
            self.load(project)
            return True
        self.project = project
        self.form = project.plot.form
        if self.guard.is_active:
            logger.debug(f"Keeping structure {self.structure.value} during protection window")
            project.plot.structure = self.structure
            return False
        self.structure = project.plot.structure
        return True

    async def set_structure(self, structure: PlotStructureType) -> bool:
        """Switch the active structure and persist it right away."""
        if structure == self.structure:
            return False
        self.guard.start()
        self.structure = structure
        self.history.push(self._state())
        await self._write_back()
        return True

    def update_field(self, name: str, value: str) -> None:
        """Edit one field of the active structure."""
        self.form = self.form.with_field(self.structure, name, value)
        self.history.push(self._state())
        self._schedule_save()

    def reset_fields(self) -> None:
        """Clear every field of the active structure."""
        self.form = self.form.cleared(self.structure)
        self.history.push(self._state())
        self._schedule_save()

    def undo(self) -> bool:
        return self._apply(self.history.undo())

    def redo(self) -> bool:
        return self._apply(self.history.redo())

    def progress(self) -> Tuple[int, int]:
        return self.active.progress()

    async def flush(self) -> None:
        """Write a pending field edit immediately."""
        if self._cancel_save():
            await self._write_back()

    def close(self) -> None:
        self.guard.close()
        self._cancel_save()

    def _state(self) -> UndoHistoryState:
        return UndoHistoryState(form=self.form, structure=self.structure)

    def _apply(self, state: Optional[UndoHistoryState]) -> bool:
        if state is None:
            return False
        self.form = state.form
        self.structure = state.structure
        self._schedule_save()
        return True

    def _schedule_save(self) -> None:
        self._cancel_save()
        self._save_task = asyncio.ensure_future(self._save_later())

    def _cancel_save(self) -> bool:
        task, self._save_task = self._save_task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def _save_later(self) -> None:
        await asyncio.sleep(self.config.plot_save_delay)
        self._save_task = None
        await self._write_back()

    async def _write_back(self) -> None:
        if self.project is None:
            return
        self.project.plot.form = self.form
        self.project.plot.structure = self.structure
        try:
            await self.project_store.save_project(self.project)
        except Exception as e:
            logger.error(f"Failed to save plot for project {self.project.id}: {e}")
