"""Project model for DraftCraft."""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

from .document import Chapter, find_chapter, new_id
from .character import Character
from .plot import PlotSettings


@dataclass
class Project:
    """A novel writing project: metadata, characters, plot and chapters."""

    title: str = ""
    id: str = field(default_factory=lambda: new_id("project"))
    main_genre: str = ""
    sub_genre: str = ""
    target_reader: str = ""
    theme: str = ""
    chapters: List[Chapter] = field(default_factory=list)
    characters: List[Character] = field(default_factory=list)
    plot: PlotSettings = field(default_factory=PlotSettings)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def get_chapter(self, chapter_id: Optional[str]) -> Optional[Chapter]:
        """Get a chapter by id."""
        return find_chapter(self.chapters, chapter_id)

    def remove_chapter(self, chapter_id: str) -> bool:
        """Remove a chapter; returns False if it did not exist."""
        chapter = self.get_chapter(chapter_id)
        if chapter is None:
            return False
        self.chapters.remove(chapter)
        self.touch()
        return True

    def update_chapter_draft(self, chapter_id: str, content: str) -> bool:
        """Set the saved draft of a chapter."""
        chapter = self.get_chapter(chapter_id)
        if chapter is None:
            return False
        chapter.update_draft(content)
        self.touch()
        return True

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert project to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "main_genre": self.main_genre,
            "sub_genre": self.sub_genre,
            "target_reader": self.target_reader,
            "theme": self.theme,
            "chapters": [chapter.to_dict() for chapter in self.chapters],
            "characters": [character.to_dict() for character in self.characters],
            "plot": self.plot.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create project from dictionary."""
        project = cls(
            id=data.get("id") or new_id("project"),
            title=data.get("title", ""),
            main_genre=data.get("main_genre", ""),
            sub_genre=data.get("sub_genre", ""),
            target_reader=data.get("target_reader", ""),
            theme=data.get("theme", ""),
            chapters=[Chapter.from_dict(c) for c in data.get("chapters", [])],
            characters=[Character.from_dict(c) for c in data.get("characters", [])],
            plot=PlotSettings.from_dict(data.get("plot")),
        )
        if "created_at" in data:
            project.created_at = datetime.fromisoformat(data["created_at"])
        if "updated_at" in data:
            project.updated_at = datetime.fromisoformat(data["updated_at"])
        return project
