"""Tests for the draft engine facade."""

import asyncio
import json

import pytest

from draftcraft.ai.draft_actions import DraftAction
from draftcraft.core.history import HistoryEntryType
from draftcraft.editor.history_controller import ChapterState
from draftcraft.engine import DraftEngine
from draftcraft.exceptions import ChapterRequiredError, SelectionRequiredError
from conftest import FakeClient, FakeProjectStore

BLOCKS = (
    "=== Chapter 1: Part 1 ===\nThe storm arrived.\n"
    "=== Chapter 2: Part 2 ===\nMara found the key.\n"
)


def make_engine(project, config, responses=None):
    return DraftEngine(project, FakeProjectStore(), FakeClient(responses), config=config)


def test_open_chapter_bootstraps_history(project, config):
    """Test the first open of a chapter."""
    engine = make_engine(project, config)
    entries = asyncio.run(engine.open_chapter("c1"))
    assert engine.draft == "Draft of chapter 1."
    assert len(entries) == 1
    assert entries[0].label == "initial state"
    assert entries[0].content == "Draft of chapter 1."


def test_requires_a_chapter(project, config):
    """Test operations that need an open chapter."""
    engine = make_engine(project, config)
    with pytest.raises(ChapterRequiredError):
        asyncio.run(engine.open_chapter("missing"))
    with pytest.raises(ChapterRequiredError):
        engine.edit("text")
    with pytest.raises(ChapterRequiredError):
        engine.entries()
    with pytest.raises(ChapterRequiredError):
        asyncio.run(engine.refine())


def test_select_text(project, config):
    """Test selection bounds."""
    engine = make_engine(project, config)
    asyncio.run(engine.open_chapter("c1"))
    assert engine.select_text(0, 5) == "Draft"
    assert engine.selected_text == "Draft"
    with pytest.raises(SelectionRequiredError):
        engine.select_text(5, 200)


def test_switching_chapters_flushes_and_saves(project, config):
    """Test that leaving a chapter snapshots and persists its edits."""
    engine = make_engine(project, config)

    async def run():
        await engine.open_chapter("c1")
        engine.edit("Rewritten opening.")
        pending = engine.history.state("c1")
        await engine.open_chapter("c2")
        state = engine.history.state("c1")
        await engine.close()
        return pending, state

    pending, state = asyncio.run(run())
    assert pending is ChapterState.PENDING_AUTO_SAVE
    assert state is ChapterState.IDLE
    assert project.chapters[0].draft == "Rewritten opening."
    entries = engine.history.entries("c1")
    assert [e.type for e in entries] == [HistoryEntryType.AUTO, HistoryEntryType.MANUAL]
    assert entries[0].content == "Rewritten opening."
    assert engine.draft == "Draft of chapter 2."


def test_reopening_same_chapter_keeps_edits(project, config):
    """Test that reopening the open chapter does not reset the live draft."""
    engine = make_engine(project, config)

    async def run():
        await engine.open_chapter("c1")
        engine.edit("Unsaved words.")
        await engine.open_chapter("c1")
        draft = engine.draft
        engine.history.close()
        return draft

    assert asyncio.run(run()) == "Unsaved words."


def test_restore_through_engine(project, config):
    """Test restoring the selected entry into the live draft."""
    engine = make_engine(project, config)

    async def run():
        await engine.open_chapter("c1")
        engine.edit("Something else.")
        restored = await engine.restore()
        await engine.close()
        return restored

    assert asyncio.run(run()) is True
    assert engine.draft == "Draft of chapter 1."
    assert project.chapters[0].draft == "Draft of chapter 1."
    assert engine.entries()[0].content == "Something else."


def test_suggestion_round_trip(project, config):
    """Test selecting, requesting and applying a suggestion."""
    response = json.dumps({"suggestions": [{"title": "Short", "body": "Sketch"}]})
    engine = make_engine(project, config, [response])

    async def run():
        await engine.open_chapter("c1")
        engine.select_text(0, 5)
        suggestions = await engine.request_suggestions()
        await engine.apply_suggestion(suggestions[0])
        await engine.close()

    asyncio.run(run())
    assert engine.draft == "Sketch of chapter 1."
    assert project.chapters[0].draft == "Sketch of chapter 1."
    assert engine.entries()[0].label == "after apply"


def test_suggestion_rejected_after_edit(project, config):
    """Test that editing before the selection stops a stale splice."""
    response = json.dumps({"suggestions": [{"title": "Bright", "body": "BRIGHT"}]})
    engine = make_engine(project, config, [response])

    async def run():
        await engine.open_chapter("c1")
        engine.edit("The dark night.")
        engine.select_text(4, 8)
        suggestions = await engine.request_suggestions()
        engine.edit("Once upon a time, the dark night.")
        try:
            await engine.apply_suggestion(suggestions[0])
        finally:
            await engine.close()

    with pytest.raises(SelectionRequiredError):
        asyncio.run(run())
    assert engine.draft == "Once upon a time, the dark night."


def test_run_action_improves_open_chapter(project, config):
    """Test a whole-draft action through the engine."""
    engine = make_engine(project, config, ["A fuller draft of chapter 1."])

    async def run():
        await engine.open_chapter("c1")
        text = await engine.run_action(DraftAction.IMPROVE)
        await engine.close()
        return text

    assert asyncio.run(run()) == "A fuller draft of chapter 1."
    assert engine.draft == "A fuller draft of chapter 1."
    assert project.chapters[0].draft == "A fuller draft of chapter 1."
    assert [e.label for e in engine.entries()] == ["after improve", "before improve", "initial state"]


def test_generate_all_refreshes_live_draft(project, config):
    """Test that a batch run replaces the open chapter's live draft."""
    engine = make_engine(project, config, [BLOCKS])

    async def run():
        await engine.open_chapter("c1")
        engine.edit("Unsaved edit.")
        engine.request_generate_all()
        result = await engine.confirm_generate_all()
        await engine.close()
        return result

    result = asyncio.run(run())
    assert result.updated == ["c1", "c2"]
    assert engine.draft == "The storm arrived."
    contents = [e.content for e in engine.history.entries("c1")]
    assert contents == ["The storm arrived.", "Unsaved edit.", "Draft of chapter 1."]


def test_cancel_when_idle(project, config):
    """Test that cancelling with nothing running reports nothing cancelled."""
    engine = make_engine(project, config)
    assert engine.cancel() == {"suggestions": False, "self_refine": False, "draft_action": False, "batch": False}
