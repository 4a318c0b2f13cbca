"""Tests for the undo/redo stack."""

import pytest

from draftcraft.editor.undo_stack import UndoRedoStack


def test_empty_stack():
    """Test the empty state."""
    stack = UndoRedoStack(5)
    assert stack.index == -1
    assert stack.current is None
    assert stack.undo() is None
    assert stack.redo() is None


def test_undo_then_redo_is_identity():
    """Test that k undos followed by k redos return to the same state."""
    stack = UndoRedoStack(10)
    for n in range(6):
        stack.push(n)
    for k in range(1, 6):
        for _ in range(k):
            stack.undo()
        for _ in range(k):
            stack.redo()
        assert stack.current == 5


def test_undo_stops_at_first_state():
    """Test that undo never moves below index 0."""
    stack = UndoRedoStack(10)
    stack.push("a")
    stack.push("b")
    assert stack.undo() == "a"
    assert stack.undo() is None
    assert stack.index == 0


def test_push_after_undo_discards_redo_branch():
    """Test classic branch discard."""
    stack = UndoRedoStack(10)
    for state in ("a", "b", "c"):
        stack.push(state)
    stack.undo()
    stack.undo()
    stack.push("x")
    assert stack.redo() is None
    assert len(stack) == 2
    assert stack.undo() == "a"


def test_capacity_evicts_oldest():
    """Test the bound and that the index stays on the newest state."""
    stack = UndoRedoStack(3)
    for n in range(5):
        stack.push(n)
    assert len(stack) == 3
    assert stack.index == 2
    assert stack.current == 4
    assert stack.undo() == 3
    assert stack.undo() == 2
    assert stack.undo() is None


def test_reset_and_initialize():
    """Test clearing on context change."""
    stack = UndoRedoStack(3)
    stack.push("a")
    stack.reset()
    assert len(stack) == 0
    assert stack.index == -1
    stack.initialize("base")
    assert stack.current == "base"
    assert not stack.can_undo
    assert not stack.can_redo


def test_invalid_size():
    """Test that a stack needs room for one state."""
    with pytest.raises(ValueError):
        UndoRedoStack(0)
