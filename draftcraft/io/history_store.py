"""Persistent per-chapter snapshot timelines.

Each chapter's timeline is stored under one key,
``chapterHistory_{project_id}_{chapter_id}``, as a list of entry records
ordered newest first. The store prepends new entries and evicts the oldest
once the timeline exceeds its capacity; deciding *when* to snapshot is left
to the history controller.
"""

import logging
import secrets
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.history import HistoryEntry, HistoryEntryType, now_ms
from ..exceptions import PersistenceError
from .file_handler import FileHandler

logger = logging.getLogger(__name__)

KEY_PREFIX = "chapterHistory"

Record = Dict[str, Any]


class MemoryBackend:
    """Key-value backend kept in a dict."""

    def __init__(self):
        self._data: Dict[str, List[Record]] = {}

    async def load(self, key: str) -> Optional[List[Record]]:
        records = self._data.get(key)
        return [dict(r) for r in records] if records is not None else None

    async def store(self, key: str, records: List[Record]) -> None:
        self._data[key] = [dict(r) for r in records]

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class JsonFileBackend:
    """Key-value backend storing one JSON file per key in a directory."""

    def __init__(self, directory: Union[str, Path], file_handler: FileHandler = None):
        self.directory = Path(directory)
        self.file_handler = file_handler or FileHandler()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def load(self, key: str) -> Optional[List[Record]]:
        path = self._path(key)
        if not path.exists():
            return None
        return self.file_handler.read_json(path)

    async def store(self, key: str, records: List[Record]) -> None:
        self.file_handler.write_json(self._path(key), records)

    async def delete(self, key: str) -> None:
        self.file_handler.delete_file(self._path(key))

    async def keys(self, prefix: str = "") -> List[str]:
        return [p.stem for p in self.file_handler.list_files(self.directory, f"{prefix}*.json")]


def _new_entry_id(timestamp_ms: int) -> str:
    return f"{timestamp_ms}-{secrets.token_hex(4)}"


class SnapshotStore:
    """CRUD over capped, newest-first chapter timelines."""

    def __init__(self, backend=None, max_entries: int = 30):
        self.backend = backend if backend is not None else MemoryBackend()
        self.max_entries = max_entries
        # entry id -> storage key, filled as timelines are read or written
        self._index: Dict[str, str] = {}

    @staticmethod
    def key(project_id: str, chapter_id: str) -> str:
        return f"{KEY_PREFIX}_{project_id}_{chapter_id}"

    async def _read(self, key: str) -> List[Record]:
        try:
            records = await self.backend.load(key)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read history '{key}': {e}") from e
        return list(records or [])

    async def _write(self, key: str, records: List[Record]) -> None:
        try:
            if records:
                await self.backend.store(key, records)
            else:
                await self.backend.delete(key)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write history '{key}': {e}") from e

    async def save(
        self,
        project_id: str,
        chapter_id: str,
        content: str,
        entry_type: HistoryEntryType,
        label: str,
    ) -> str:
        """Prepend a new entry to the chapter timeline and return its id."""
        key = self.key(project_id, chapter_id)
        records = await self._read(key)
        timestamp = now_ms()
        entry = HistoryEntry(
            id=_new_entry_id(timestamp),
            chapter_id=chapter_id,
            timestamp_ms=timestamp,
            content=content,
            type=entry_type,
            label=label,
        )
        records.insert(0, entry.to_dict())
        for evicted in records[self.max_entries:]:
            self._index.pop(evicted.get("id"), None)
        records = records[:self.max_entries]
        await self._write(key, records)
        self._index[entry.id] = key
        logger.debug(f"Saved {entry_type.value} snapshot {entry.id} for chapter {chapter_id}")
        return entry.id

    async def list(self, project_id: str, chapter_id: str) -> List[HistoryEntry]:
        """Return the chapter timeline, newest first."""
        key = self.key(project_id, chapter_id)
        entries = []
        for record in await self._read(key):
            try:
                entry = HistoryEntry.from_dict(record)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed history record in {key}: {e}")
                continue
            self._index[entry.id] = key
            entries.append(entry)
        return entries

    async def delete(self, entry_id: str) -> bool:
        """Delete one entry by id; returns False if it was not found."""
        key = self._index.get(entry_id)
        candidates = [key] if key else await self._keys(f"{KEY_PREFIX}_")
        for candidate in candidates:
            records = await self._read(candidate)
            remaining = [r for r in records if r.get("id") != entry_id]
            if len(remaining) != len(records):
                await self._write(candidate, remaining)
                self._index.pop(entry_id, None)
                return True
        return False

    async def clear_chapter(self, project_id: str, chapter_id: str) -> None:
        """Drop a chapter's whole timeline, e.g. when the chapter is deleted."""
        key = self.key(project_id, chapter_id)
        await self._write(key, [])
        self._forget_key(key)

    async def clear_project(self, project_id: str) -> int:
        """Drop every timeline of a project; returns the number removed."""
        keys = await self._keys(f"{KEY_PREFIX}_{project_id}_")
        for key in keys:
            await self._write(key, [])
            self._forget_key(key)
        return len(keys)

    async def delete_before(self, cutoff_ms: int, project_id: Optional[str] = None) -> int:
        """Remove entries older than ``cutoff_ms``; returns the count removed."""
        prefix = f"{KEY_PREFIX}_{project_id}_" if project_id else f"{KEY_PREFIX}_"
        removed = 0
        for key in await self._keys(prefix):
            records = await self._read(key)
            kept = [r for r in records if int(r.get("timestamp_ms", 0)) >= cutoff_ms]
            if len(kept) != len(records):
                for record in records:
                    if record not in kept:
                        self._index.pop(record.get("id"), None)
                removed += len(records) - len(kept)
                await self._write(key, kept)
        if removed:
            logger.info(f"Removed {removed} history entries older than {cutoff_ms}")
        return removed

    async def _keys(self, prefix: str) -> List[str]:
        try:
            return await self.backend.keys(prefix)
        except OSError as e:
            raise PersistenceError(f"Could not list history keys: {e}") from e

    def _forget_key(self, key: str) -> None:
        for entry_id in [i for i, k in self._index.items() if k == key]:
            del self._index[entry_id]
