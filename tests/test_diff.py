"""Tests for the line diff."""

from draftcraft.core.diff import DiffKind, diff_lines, diff_stats, has_diff, reconstruct


def test_identical_text_has_no_diff():
    """Test that equal texts produce only unchanged segments."""
    segments = diff_lines("a\nb\n", "a\nb\n")
    assert not has_diff(segments)
    assert [s.kind for s in segments] == [DiffKind.UNCHANGED]


def test_empty_texts():
    """Test diffing two empty strings."""
    assert not has_diff(diff_lines("", ""))
    assert has_diff(diff_lines("", "new\n"))


def test_added_and_removed_lines():
    """Test a replaced middle line."""
    before = "one\ntwo\nthree\n"
    after = "one\n2\nthree\nfour\n"
    segments = diff_lines(before, after)
    assert has_diff(segments)
    kinds = [s.kind for s in segments]
    assert kinds[0] is DiffKind.UNCHANGED
    assert DiffKind.REMOVED in kinds and DiffKind.ADDED in kinds
    assert reconstruct(segments, "after") == after
    assert reconstruct(segments, "before") == before


def test_trailing_newline_counts_as_change():
    """Test that a missing final newline is a difference."""
    assert has_diff(diff_lines("line", "line\n"))


def test_diff_stats():
    """Test line counting per kind."""
    stats = diff_stats(diff_lines("a\nb\nc\n", "a\nx\ny\nc\n"))
    assert stats == {"added": 2, "removed": 1, "unchanged": 2}
