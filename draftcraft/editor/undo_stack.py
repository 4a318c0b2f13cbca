"""Bounded linear undo/redo history."""

from typing import Generic, List, Optional, TypeVar
from dataclasses import dataclass, field

from ..core.history import now_ms
from ..core.plot import PlotFormState, PlotStructureType

T = TypeVar("T")


@dataclass(frozen=True)
class UndoHistoryState:
    """A plot editor snapshot: the whole form plus the active structure."""
    form: PlotFormState
    structure: PlotStructureType
    timestamp_ms: int = field(default_factory=now_ms)


class UndoRedoStack(Generic[T]):
    """Array of states with a movable index.

    ``0 <= index < len(states)`` holds whenever the stack is non-empty;
    an empty stack has ``index == -1``. Pushing after an undo discards
    every redo-able state.
    """

    def __init__(self, max_size: int = 50):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._states: List[T] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self._states)

    @property
    def current(self) -> Optional[T]:
        if self.index < 0:
            return None
        return self._states[self.index]

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self._states) - 1

    def push(self, state: T) -> None:
        """Record a new state, dropping the redo branch."""
        del self._states[self.index + 1:]
        self._states.append(state)
        if len(self._states) > self.max_size:
            self._states.pop(0)
        else:
            self.index += 1

    def undo(self) -> Optional[T]:
        if not self.can_undo:
            return None
        self.index -= 1
        return self._states[self.index]

    def redo(self) -> Optional[T]:
        if not self.can_redo:
            return None
        self.index += 1
        return self._states[self.index]

    def reset(self) -> None:
        """Clear everything, e.g. when switching projects."""
        self._states = []
        self.index = -1

    def initialize(self, state: T) -> None:
        """Start over with a single baseline state."""
        self._states = [state]
        self.index = 0
