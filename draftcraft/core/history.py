"""History, improvement log and suggestion records."""

from enum import Enum
from typing import Dict, Any, List
from dataclasses import dataclass, field
import time


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class HistoryEntryType(Enum):
    """Provenance of a chapter snapshot."""
    AUTO = "auto"
    MANUAL = "manual"
    RESTORE = "restore"


HISTORY_TYPE_LABELS: Dict[HistoryEntryType, str] = {
    HistoryEntryType.AUTO: "auto save",
    HistoryEntryType.MANUAL: "manual save",
    HistoryEntryType.RESTORE: "before restore",
}


@dataclass(frozen=True)
class HistoryEntry:
    """A full-text snapshot of a chapter draft."""

    id: str
    chapter_id: str
    timestamp_ms: int
    content: str
    type: HistoryEntryType
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "chapter_id": self.chapter_id,
            "timestamp_ms": self.timestamp_ms,
            "content": self.content,
            "type": self.type.value,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=data["id"],
            chapter_id=data["chapter_id"],
            timestamp_ms=int(data["timestamp_ms"]),
            content=data.get("content", ""),
            type=HistoryEntryType(data.get("type", "auto")),
            label=data.get("label", ""),
        )


@dataclass(frozen=True)
class ImprovementLogEntry:
    """Record of one self-refine run."""

    id: str
    chapter_id: str
    timestamp_ms: int
    critique_raw: str
    revision_summary: str
    change_list: List[str] = field(default_factory=list)
    original_length: int = 0
    revised_length: int = 0


@dataclass(frozen=True)
class Suggestion:
    """A single AI suggestion for a selected passage."""

    id: str
    title: str
    body: str
