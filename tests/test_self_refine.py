"""Tests for the self-refine engine."""

import asyncio
import json

import pytest

from draftcraft.ai.ai_log import AILogBook
from draftcraft.ai.claude_client import GenerationResult
from draftcraft.ai.self_refine import RefinePhase, SelfRefineEngine, truncate_draft
from draftcraft.core.history import HistoryEntryType
from draftcraft.exceptions import (
    ChapterRequiredError,
    EmptyDraftError,
    ProviderError,
    ProviderNotConfiguredError,
    ResponseParseError,
)
from conftest import FakeClient

CRITIQUE = json.dumps({
    "scores": {"plot": 6, "style": 8},
    "weaknesses": [
        {"aspect": "Plot", "score": 6, "problem": "The motive is unclear", "solutions": ["Hint earlier"]},
    ],
    "summary": "Clarify the motive.",
})

REVISED = (
    "First line, now sharper and carrying the weight of the storm outside.\n"
    "Second line, where Mara finally admits why she came back to the lighthouse."
)

REVISION = json.dumps({
    "revisedText": REVISED,
    "improvementSummary": "Made the motive explicit.",
    "changes": ["Added motive", "Tightened opening"],
})


def make_engine(history, workspace, config, client):
    return SelfRefineEngine(client, history, workspace, config, AILogBook())


def test_truncate_draft():
    """Test the revise-phase cap."""
    assert truncate_draft("abc", 3) == "abc"
    assert truncate_draft("abcdef", 3) == "abc\n\n[truncated]"


def test_run_applies_revision(history, workspace, config, project):
    """Test a full critique-then-revise cycle."""
    client = FakeClient([CRITIQUE, REVISION])
    engine = make_engine(history, workspace, config, client)

    async def run():
        await history.load("c1")
        return await engine.run(project.chapters[0], project)

    entry = asyncio.run(run())
    original = "First line.\nSecond line.\n"
    assert workspace.drafts["c1"] == REVISED
    assert entry.chapter_id == "c1"
    assert entry.critique_raw == CRITIQUE
    assert entry.revision_summary == "Made the motive explicit."
    assert entry.change_list == ["Added motive", "Tightened opening"]
    assert entry.original_length == len(original)
    assert entry.revised_length == len(REVISED)
    assert engine.logs("c1") == [entry]
    assert engine.phase is RefinePhase.IDLE

    assert [call["type"] for call in client.calls] == ["critique", "revise"]
    assert original in client.calls[0]["prompt"]
    assert "The motive is unclear" in client.calls[1]["prompt"]
    assert [e.type for e in engine.ai_log.entries()] == ["self-refine-revise", "self-refine-critique"]

    entries = history.entries("c1")
    assert len(entries) == 3
    assert (entries[0].type, entries[0].label, entries[0].content) == (
        HistoryEntryType.MANUAL, "after self-refine", REVISED
    )
    assert (entries[1].type, entries[1].label, entries[1].content) == (
        HistoryEntryType.RESTORE, "before self-refine", original
    )


def test_long_draft_is_truncated_for_revision(history, workspace, config, project):
    """Test that the revise prompt gets a capped draft but the full length."""
    workspace.drafts["c1"] = "word " * 1000
    client = FakeClient([CRITIQUE, REVISION])
    engine = make_engine(history, workspace, config, client)
    asyncio.run(engine.run(project.chapters[0], project))

    revise_prompt = client.calls[1]["prompt"]
    assert "[truncated]" in revise_prompt
    assert "(5000 characters)" in revise_prompt
    assert "word " * 1000 in client.calls[0]["prompt"]


def test_validation(history, workspace, config, project):
    """Test the preconditions."""
    engine = make_engine(history, workspace, config, FakeClient())
    with pytest.raises(ChapterRequiredError):
        asyncio.run(engine.run(None))
    workspace.drafts["c1"] = "   "
    with pytest.raises(EmptyDraftError):
        asyncio.run(engine.run(project.chapters[0]))
    offline = make_engine(history, workspace, config, FakeClient(configured=False))
    with pytest.raises(ProviderNotConfiguredError):
        asyncio.run(offline.run(project.chapters[0]))


def test_unusable_revision_leaves_draft(history, workspace, config, project):
    """Test that a revision without prose is rejected."""
    engine = make_engine(history, workspace, config, FakeClient([CRITIQUE, '{"revisedText": "too short"}']))
    with pytest.raises(ResponseParseError):
        asyncio.run(engine.run(project.chapters[0], project))
    assert workspace.drafts["c1"] == "First line.\nSecond line.\n"
    assert workspace.applied == []
    assert engine.logs("c1") == []
    assert engine.phase is RefinePhase.IDLE


def test_provider_error_in_critique(history, workspace, config, project):
    """Test that a failed critique stops before revising."""
    client = FakeClient([GenerationResult(error="Connection refused")])
    engine = make_engine(history, workspace, config, client)
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(engine.run(project.chapters[0], project))
    assert excinfo.value.kind == "network"
    assert len(client.calls) == 1
    assert engine.ai_log.entries()[0].error == "Connection refused"


def test_cancel(history, workspace, config, project):
    """Test that cancelling returns None and changes nothing."""
    engine = make_engine(history, workspace, config, FakeClient(hang=True))

    async def run():
        task = asyncio.ensure_future(engine.run(project.chapters[0], project))
        await asyncio.sleep(0.01)
        phase = engine.phase
        engine.cancel()
        return phase, await task

    phase, result = asyncio.run(run())
    assert phase is RefinePhase.CRITIQUE
    assert result is None
    assert engine.phase is RefinePhase.IDLE
    assert workspace.applied == []


def test_improvement_log_is_capped(history, workspace, config, project):
    """Test the per-chapter log bound, newest first."""
    config.improvement_log_limit = 2
    client = FakeClient([CRITIQUE, REVISION] * 3)
    engine = make_engine(history, workspace, config, client)

    async def run():
        return [await engine.run(project.chapters[0], project) for _ in range(3)]

    results = asyncio.run(run())
    assert engine.logs("c1") == [results[2], results[1]]
