"""Basic tests for DraftCraft models."""

import pytest
from dataclasses import FrozenInstanceError
from draftcraft.core import Chapter, Character, CharacterRole, Project
from draftcraft.core.history import HistoryEntry, HistoryEntryType
from draftcraft.core.plot import PlotStructureType


def test_chapter_creation():
    """Test chapter creation."""
    chapter = Chapter(title="Test Chapter", draft="This is a test chapter.")
    assert chapter.title == "Test Chapter"
    assert chapter.word_count == 5
    assert chapter.id.startswith("chapter-")


def test_chapter_details_fill_missing_values():
    """Test chapter details used in prompts."""
    chapter = Chapter(title="Storm", characters=["Mara", "Ivo"])
    details = chapter.details()
    assert details["characters"] == "Mara, Ivo"
    assert details["setting"] == "Not set"


def test_character_creation():
    """Test character creation."""
    character = Character(name="Test Character")
    assert character.name == "Test Character"
    assert character.role is CharacterRole.SUPPORTING
    assert "[Test Character]" in character.profile()


def test_project_round_trip(project):
    """Test project serialization."""
    project.plot.structure = PlotStructureType.THREE_ACT
    project.plot.form = project.plot.form.with_field(PlotStructureType.THREE_ACT, "act1", "A storm arrives")
    restored = Project.from_dict(project.to_dict())
    assert restored.id == "p1"
    assert [c.id for c in restored.chapters] == ["c1", "c2", "c3", "c4", "c5"]
    assert restored.chapters[0].draft == "Draft of chapter 1."
    assert restored.characters[0].role is CharacterRole.PROTAGONIST
    assert restored.plot.structure is PlotStructureType.THREE_ACT
    assert restored.plot.active.act1 == "A storm arrives"


def test_project_update_chapter_draft(project):
    """Test updating a chapter draft through the project."""
    assert project.update_chapter_draft("c2", "New text")
    assert project.get_chapter("c2").draft == "New text"
    assert not project.update_chapter_draft("missing", "x")
    assert project.remove_chapter("c5")
    assert project.get_chapter("c5") is None


def test_history_entry_round_trip():
    """Test history entry serialization."""
    entry = HistoryEntry(
        id="1-ab", chapter_id="c1", timestamp_ms=1000, content="text",
        type=HistoryEntryType.RESTORE, label="pre-restore",
    )
    assert HistoryEntry.from_dict(entry.to_dict()) == entry
    with pytest.raises(FrozenInstanceError):
        entry.content = "changed"
