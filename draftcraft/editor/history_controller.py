"""Chapter history controller.

Owns when snapshots are taken: trailing-edge auto-save after edits,
explicit manual saves, and the bracketing snapshots around restores.
Each chapter moves between ``IDLE`` and ``PENDING_AUTO_SAVE``; every edit
cancels the pending timer and starts a new one.
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional, Set

from ..config import Config
from ..core.diff import DiffSegment, diff_lines, diff_stats
from ..core.history import HISTORY_TYPE_LABELS, HistoryEntry, HistoryEntryType
from ..exceptions import PersistenceError
from ..io.history_store import SnapshotStore

logger = logging.getLogger(__name__)

INITIAL_STATE_LABEL = "initial state"
PRE_RESTORE_LABEL = "pre-restore"


class ChapterState(Enum):
    IDLE = "idle"
    PENDING_AUTO_SAVE = "pending_auto_save"


class HistoryController:
    """Per-chapter snapshot timelines on top of a ``SnapshotStore``.

    ``workspace`` is the editing collaborator. It must provide
    ``get_draft(chapter_id)`` for the live text, ``saved_draft(chapter_id)``
    for the last persisted text, and ``async apply_draft(chapter_id, content)``
    to overwrite and persist the draft.
    """

    def __init__(self, store: SnapshotStore, workspace, project_id: str, config: Optional[Config] = None):
        self.store = store
        self.workspace = workspace
        self.project_id = project_id
        self.config = config or Config()
        self._entries: Dict[str, List[HistoryEntry]] = {}
        self._selected: Dict[str, Optional[str]] = {}
        self._last_content: Dict[str, Optional[str]] = {}
        self._timers: Dict[str, asyncio.Task] = {}
        self._loaded: Set[str] = set()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, chapter_id: str, reload: bool = False) -> List[HistoryEntry]:
        """Load a chapter's timeline once, seeding a baseline if it is empty."""
        if chapter_id in self._loaded and not reload:
            return self.entries(chapter_id)

        try:
            entries = await self.store.list(self.project_id, chapter_id)
        except PersistenceError as e:
            logger.error(f"Failed to load history for chapter {chapter_id}: {e}")
            entries = []
        self._entries[chapter_id] = entries[:self.config.history_max_entries]
        self._loaded.add(chapter_id)

        if entries:
            self._selected[chapter_id] = entries[0].id
            self._last_content[chapter_id] = entries[0].content
        else:
            saved = self.workspace.saved_draft(chapter_id) or ""
            self._selected[chapter_id] = None
            self._last_content[chapter_id] = saved
            if saved:
                await self.snapshot(
                    chapter_id,
                    HistoryEntryType.MANUAL,
                    content=saved,
                    label=INITIAL_STATE_LABEL,
                    force=True,
                )
        return self.entries(chapter_id)

    def is_loaded(self, chapter_id: str) -> bool:
        return chapter_id in self._loaded

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def _snapshot(
        self,
        chapter_id: str,
        entry_type: HistoryEntryType,
        content: Optional[str],
        label: Optional[str],
        force: bool,
    ) -> Optional[HistoryEntry]:
        if content is None:
            content = self.workspace.get_draft(chapter_id) or ""
        entries = self._entries.setdefault(chapter_id, [])
        if not force and entries and entries[0].content == content:
            return None

        label = label or HISTORY_TYPE_LABELS[entry_type]
        entry_id = await self.store.save(self.project_id, chapter_id, content, entry_type, label)
        # Re-read so the in-memory entry carries the stored timestamp.
        stored = await self.store.list(self.project_id, chapter_id)
        entry = next((e for e in stored if e.id == entry_id), None)
        if entry is None:
            raise PersistenceError(f"Snapshot {entry_id} was not found after saving")

        self._entries[chapter_id] = [entry] + [e for e in entries if e.id != entry_id]
        del self._entries[chapter_id][self.config.history_max_entries:]
        self._selected[chapter_id] = entry.id
        self._last_content[chapter_id] = content
        logger.info(f"Created {entry_type.value} snapshot '{label}' for chapter {chapter_id}")
        return entry

    async def snapshot(
        self,
        chapter_id: str,
        entry_type: HistoryEntryType = HistoryEntryType.AUTO,
        content: Optional[str] = None,
        label: Optional[str] = None,
        force: bool = False,
    ) -> bool:
        """Try to snapshot; returns False on dedup or failure, never raises."""
        try:
            return await self._snapshot(chapter_id, entry_type, content, label, force) is not None
        except Exception as e:
            logger.error(f"Failed to create history snapshot for chapter {chapter_id}: {e}")
            return False

    async def manual_snapshot(self, chapter_id: str, label: Optional[str] = None) -> HistoryEntry:
        """Explicit save requested by the user; persistence errors propagate."""
        try:
            entry = await self._snapshot(
                chapter_id, HistoryEntryType.MANUAL, None, label, force=True
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Could not save snapshot: {e}") from e
        self.cancel_pending(chapter_id)
        return entry

    # ------------------------------------------------------------------
    # Auto-save debounce
    # ------------------------------------------------------------------

    def state(self, chapter_id: str) -> ChapterState:
        timer = self._timers.get(chapter_id)
        if timer is not None and not timer.done():
            return ChapterState.PENDING_AUTO_SAVE
        return ChapterState.IDLE

    def notify_edit(self, chapter_id: str) -> ChapterState:
        """Restart the auto-save timer after a draft change."""
        self.cancel_pending(chapter_id)
        draft = self.workspace.get_draft(chapter_id) or ""
        if draft == self._last_content.get(chapter_id):
            return ChapterState.IDLE
        self._timers[chapter_id] = asyncio.ensure_future(self._auto_save_later(chapter_id))
        return ChapterState.PENDING_AUTO_SAVE

    async def _auto_save_later(self, chapter_id: str) -> None:
        await asyncio.sleep(self.config.history_auto_save_delay)
        if self._timers.get(chapter_id) is asyncio.current_task():
            del self._timers[chapter_id]
        await self.snapshot(chapter_id, HistoryEntryType.AUTO)

    def cancel_pending(self, chapter_id: str) -> bool:
        """Drop a pending auto-save without snapshotting."""
        timer = self._timers.pop(chapter_id, None)
        if timer is None or timer.done():
            return False
        timer.cancel()
        return True

    async def flush(self, chapter_id: str) -> bool:
        """Run a pending auto-save immediately."""
        if not self.cancel_pending(chapter_id):
            return False
        return await self.snapshot(chapter_id, HistoryEntryType.AUTO)

    # ------------------------------------------------------------------
    # Restore and delete
    # ------------------------------------------------------------------

    async def restore(self, chapter_id: str, entry_id: Optional[str] = None) -> bool:
        """Bring back an entry's content, snapshotting the current draft first."""
        entry = self.get_entry(chapter_id, entry_id) if entry_id else self.selected_entry(chapter_id)
        if entry is None:
            return False
        draft = self.workspace.get_draft(chapter_id) or ""
        if entry.content == draft:
            return False

        self.cancel_pending(chapter_id)
        # The current draft must be recoverable before it is overwritten.
        try:
            await self._snapshot(chapter_id, HistoryEntryType.RESTORE, draft, PRE_RESTORE_LABEL, True)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Could not save the current draft before restoring: {e}") from e
        await self.workspace.apply_draft(chapter_id, entry.content)
        logger.info(f"Restored chapter {chapter_id} to snapshot {entry.id}")
        return True

    async def delete(self, chapter_id: str, entry_id: str) -> bool:
        """Delete an entry from the store and the timeline."""
        deleted = await self.store.delete(entry_id)
        entries = self._entries.get(chapter_id, [])
        self._entries[chapter_id] = [e for e in entries if e.id != entry_id]
        if self._selected.get(chapter_id) == entry_id:
            self._selected[chapter_id] = None
        return deleted

    # ------------------------------------------------------------------
    # Selection and diff
    # ------------------------------------------------------------------

    def entries(self, chapter_id: str) -> List[HistoryEntry]:
        return list(self._entries.get(chapter_id, []))

    def get_entry(self, chapter_id: str, entry_id: str) -> Optional[HistoryEntry]:
        return next((e for e in self._entries.get(chapter_id, []) if e.id == entry_id), None)

    def select(self, chapter_id: str, entry_id: str) -> Optional[HistoryEntry]:
        entry = self.get_entry(chapter_id, entry_id)
        if entry is not None:
            self._selected[chapter_id] = entry.id
        return entry

    def selected_entry(self, chapter_id: str) -> Optional[HistoryEntry]:
        """The selected entry, falling back to the newest one."""
        selected_id = self._selected.get(chapter_id)
        entry = self.get_entry(chapter_id, selected_id) if selected_id else None
        if entry is None:
            entries = self._entries.get(chapter_id, [])
            entry = entries[0] if entries else None
            self._selected[chapter_id] = entry.id if entry else None
        return entry

    def diff_selected(self, chapter_id: str) -> List[DiffSegment]:
        """Diff from the selected entry to the live draft."""
        entry = self.selected_entry(chapter_id)
        if entry is None:
            return []
        return diff_lines(entry.content, self.workspace.get_draft(chapter_id) or "")

    def diff_summary(self, chapter_id: str) -> Dict[str, int]:
        return diff_stats(self.diff_selected(chapter_id))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def forget_chapter(self, chapter_id: str) -> None:
        """Drop all in-memory state for a chapter."""
        self.cancel_pending(chapter_id)
        self._entries.pop(chapter_id, None)
        self._selected.pop(chapter_id, None)
        self._last_content.pop(chapter_id, None)
        self._loaded.discard(chapter_id)

    def close(self) -> None:
        for chapter_id in list(self._timers):
            self.cancel_pending(chapter_id)
