"""Audit log of AI requests and responses."""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ..core.history import now_ms
from ..io.file_handler import FileHandler

logger = logging.getLogger(__name__)


@dataclass
class AILogEntry:
    type: str
    prompt: str
    response: str
    error: Optional[str] = None
    chapter_id: Optional[str] = None
    suggestion_type: Optional[str] = None
    timestamp_ms: int = field(default_factory=now_ms)


class AILogBook:
    """Capped in-memory log, optionally mirrored to a JSON Lines file."""

    def __init__(self, limit: int = 200, log_file: Optional[Union[str, Path]] = None):
        self.limit = limit
        self.log_file = Path(log_file) if log_file else None
        self.file_handler = FileHandler()
        self._entries: List[AILogEntry] = []

    def add_log(
        self,
        type: str,
        prompt: str,
        response: str,
        error: Optional[str] = None,
        chapter_id: Optional[str] = None,
        suggestion_type: Optional[str] = None,
    ) -> AILogEntry:
        """Record one request; never raises."""
        entry = AILogEntry(
            type=type,
            prompt=prompt,
            response=response or "",
            error=error,
            chapter_id=chapter_id,
            suggestion_type=suggestion_type,
        )
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        if self.log_file is not None:
            try:
                self.file_handler.append_jsonl(self.log_file, asdict(entry))
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to write AI log to {self.log_file}: {e}")
        return entry

    def entries(self, type: Optional[str] = None, chapter_id: Optional[str] = None) -> List[AILogEntry]:
        """Newest first, optionally filtered."""
        return [
            e for e in self._entries
            if (type is None or e.type == type) and (chapter_id is None or e.chapter_id == chapter_id)
        ]

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)
