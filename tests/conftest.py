"""Shared fixtures and fakes for DraftCraft tests."""

import asyncio

import pytest

from draftcraft.ai.claude_client import GenerationResult
from draftcraft.config import AISettings, Config
from draftcraft.core import Chapter, Character, CharacterRole, Project
from draftcraft.editor.history_controller import HistoryController
from draftcraft.io.history_store import MemoryBackend, SnapshotStore


class FakeClient:
    """Generation collaborator returning queued responses."""

    def __init__(self, responses=None, configured=True, hang=False):
        self.responses = list(responses or [])
        self.is_configured = configured
        self.hang = hang
        self.calls = []

    async def generate_content(self, prompt, generation_type="draft", settings=None, timeout=None):
        self.calls.append({"prompt": prompt, "type": generation_type, "timeout": timeout})
        if self.hang:
            await asyncio.sleep(3600)
        item = self.responses.pop(0) if self.responses else ""
        if isinstance(item, GenerationResult):
            return item
        if not item:
            return GenerationResult(error="The AI returned an empty response", error_kind="empty")
        return GenerationResult(content=item)


class FakeWorkspace:
    """Editing collaborator holding drafts in dicts."""

    def __init__(self, drafts=None):
        self.drafts = dict(drafts or {})
        self.saved = dict(self.drafts)
        self.applied = []

    def get_draft(self, chapter_id):
        return self.drafts.get(chapter_id, "")

    def saved_draft(self, chapter_id):
        return self.saved.get(chapter_id, "")

    async def apply_draft(self, chapter_id, content):
        self.drafts[chapter_id] = content
        self.saved[chapter_id] = content
        self.applied.append((chapter_id, content))


class FakeProjectStore:
    """Project persistence collaborator that records saves."""

    def __init__(self):
        self.saved = []

    async def save_project(self, project):
        self.saved.append(project.plot.structure)


class FailingBackend(MemoryBackend):
    """Backend whose writes always fail."""

    async def store(self, key, records):
        raise OSError("disk full")


@pytest.fixture
def config():
    """Config with short timers."""
    return Config(
        history_auto_save_delay=0.05,
        plot_save_delay=0.02,
        structure_guard_buffer=0.05,
        ai=AISettings(api_key="test-key"),
    )


@pytest.fixture
def project():
    """Five-chapter project."""
    return Project(
        id="p1",
        title="The Lighthouse",
        main_genre="Mystery",
        chapters=[
            Chapter(id=f"c{n}", title=f"Part {n}", summary=f"Summary {n}", draft=f"Draft of chapter {n}.")
            for n in range(1, 6)
        ],
        characters=[Character(name="Mara", role=CharacterRole.PROTAGONIST, personality="Stubborn")],
    )


@pytest.fixture
def workspace():
    return FakeWorkspace({"c1": "First line.\nSecond line.\n"})


@pytest.fixture
def store(config):
    return SnapshotStore(MemoryBackend(), config.history_max_entries)


@pytest.fixture
def history(store, workspace, config):
    return HistoryController(store, workspace, "p1", config)
