"""Tests for the whole-draft AI actions."""

import asyncio

import pytest

from draftcraft.ai.ai_log import AILogBook
from draftcraft.ai.claude_client import GenerationResult
from draftcraft.ai.draft_actions import DraftAction, DraftActionPipeline
from draftcraft.core.history import HistoryEntryType
from draftcraft.exceptions import (
    ChapterRequiredError,
    EmptyDraftError,
    ProviderError,
    ProviderNotConfiguredError,
)
from conftest import FakeClient

ORIGINAL = "First line.\nSecond line.\n"


def make_pipeline(history, workspace, config, client):
    return DraftActionPipeline(client, history, workspace, config, AILogBook())


def test_shorten_replaces_draft_between_snapshots(history, workspace, config, project):
    """Test that an action result is bracketed by history entries."""
    client = FakeClient(["  Shorter text.\n"])
    pipeline = make_pipeline(history, workspace, config, client)

    async def run():
        await history.load("c1")
        return await pipeline.run(DraftAction.SHORTEN, project.chapters[0], project)

    result = asyncio.run(run())
    assert result == "Shorter text."
    assert workspace.drafts["c1"] == "Shorter text."
    assert client.calls[0]["type"] == "draft"
    assert ORIGINAL in client.calls[0]["prompt"]
    assert "70-80%" in client.calls[0]["prompt"]

    entries = history.entries("c1")
    assert [(e.type, e.label, e.content) for e in entries[:2]] == [
        (HistoryEntryType.MANUAL, "after shorten", "Shorter text."),
        (HistoryEntryType.RESTORE, "before shorten", ORIGINAL),
    ]
    log = pipeline.ai_log.entries()[0]
    assert log.type == "shorten"
    assert log.chapter_id == "c1"


def test_continue_appends_to_draft(history, workspace, config, project):
    """Test that a continuation is added after the existing text."""
    client = FakeClient(["Third line."])
    pipeline = make_pipeline(history, workspace, config, client)
    result = asyncio.run(pipeline.run(DraftAction.CONTINUE, project.chapters[0], project))
    assert result == "First line.\nSecond line.\n\nThird line."
    assert workspace.drafts["c1"] == result
    prompt = client.calls[0]["prompt"]
    assert ORIGINAL in prompt
    assert "Part 1" in prompt
    assert "[Mara]" in prompt


def test_generate_on_empty_chapter(history, workspace, config, project):
    """Test drafting a chapter that has no text yet."""
    client = FakeClient(["The lamp flickered."])
    pipeline = make_pipeline(history, workspace, config, client)
    result = asyncio.run(pipeline.run(DraftAction.GENERATE, project.chapters[1], project))

    assert result == "The lamp flickered."
    assert workspace.applied == [("c2", "The lamp flickered.")]
    prompt = client.calls[0]["prompt"]
    assert "Chapter 1: Part 1" in prompt
    assert "Draft of chapter 1." in prompt
    assert "Summary 2" in prompt
    assert [e.label for e in history.entries("c2")] == ["after generate"]


def test_first_chapter_prompt_has_no_previous_story(history, workspace, config, project):
    """Test the story-so-far block for the opening chapter."""
    client = FakeClient(["Opening."])
    pipeline = make_pipeline(history, workspace, config, client)
    asyncio.run(pipeline.run(DraftAction.GENERATE, project.chapters[0], project))
    assert "This is the first chapter." in client.calls[0]["prompt"]


@pytest.mark.parametrize("action", [
    DraftAction.ENHANCE_DESCRIPTION,
    DraftAction.ADJUST_STYLE,
    DraftAction.SHORTEN,
    DraftAction.IMPROVE,
])
def test_rewrite_actions_need_a_draft(history, workspace, config, project, action):
    """Test that rewriting actions refuse an empty draft."""
    workspace.drafts["c1"] = "  \n"
    pipeline = make_pipeline(history, workspace, config, FakeClient(["x"]))
    with pytest.raises(EmptyDraftError):
        asyncio.run(pipeline.run(action, project.chapters[0], project))
    assert pipeline.client.calls == []


def test_validation(history, workspace, config, project):
    """Test the chapter and provider preconditions."""
    pipeline = make_pipeline(history, workspace, config, FakeClient())
    with pytest.raises(ChapterRequiredError):
        asyncio.run(pipeline.run(DraftAction.IMPROVE, None, project))
    offline = make_pipeline(history, workspace, config, FakeClient(configured=False))
    with pytest.raises(ProviderNotConfiguredError):
        asyncio.run(offline.run(DraftAction.IMPROVE, project.chapters[0], project))


def test_provider_error_leaves_draft(history, workspace, config, project):
    """Test that a failed request changes nothing and is logged."""
    client = FakeClient([GenerationResult(error="429 Too Many Requests")])
    pipeline = make_pipeline(history, workspace, config, client)
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(pipeline.run(DraftAction.IMPROVE, project.chapters[0], project))
    assert excinfo.value.kind == "rate_limit"
    assert workspace.drafts["c1"] == ORIGINAL
    assert workspace.applied == []
    assert history.entries("c1") == []
    assert pipeline.ai_log.entries()[0].error == "429 Too Many Requests"


def test_cancel(history, workspace, config, project):
    """Test that cancelling returns None and changes nothing."""
    pipeline = make_pipeline(history, workspace, config, FakeClient(hang=True))

    async def run():
        task = asyncio.ensure_future(pipeline.run(DraftAction.ADJUST_STYLE, project.chapters[0], project))
        await asyncio.sleep(0.01)
        running = pipeline.current_action
        cancelled = pipeline.cancel()
        return running, cancelled, await task

    running, cancelled, result = asyncio.run(run())
    assert running is DraftAction.ADJUST_STYLE
    assert cancelled is True
    assert result is None
    assert pipeline.is_running is False
    assert workspace.applied == []
