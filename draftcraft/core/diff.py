"""Line-level diff between two draft versions."""

import difflib
from enum import Enum
from typing import Dict, List
from dataclasses import dataclass


class DiffKind(Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffSegment:
    """A run of lines that were added, removed or left unchanged."""
    text: str
    kind: DiffKind


def diff_lines(before: str, after: str) -> List[DiffSegment]:
    """Compute a line-level change script from ``before`` to ``after``.

    Joining the unchanged and added segments gives back ``after``; joining
    the unchanged and removed segments gives back ``before``.
    """
    old_lines = before.splitlines(keepends=True)
    new_lines = after.splitlines(keepends=True)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    segments: List[DiffSegment] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            segments.append(DiffSegment("".join(old_lines[i1:i2]), DiffKind.UNCHANGED))
            continue
        if tag in ("replace", "delete"):
            segments.append(DiffSegment("".join(old_lines[i1:i2]), DiffKind.REMOVED))
        if tag in ("replace", "insert"):
            segments.append(DiffSegment("".join(new_lines[j1:j2]), DiffKind.ADDED))
    return segments


def has_diff(segments: List[DiffSegment]) -> bool:
    return any(s.kind is not DiffKind.UNCHANGED for s in segments)


def reconstruct(segments: List[DiffSegment], side: str = "after") -> str:
    """Rebuild one side of the diff."""
    skip = DiffKind.REMOVED if side == "after" else DiffKind.ADDED
    return "".join(s.text for s in segments if s.kind is not skip)


def diff_stats(segments: List[DiffSegment]) -> Dict[str, int]:
    """Count added, removed and unchanged lines."""
    stats = {kind.value: 0 for kind in DiffKind}
    for segment in segments:
        stats[segment.kind.value] += len(segment.text.splitlines()) or 1
    return stats
