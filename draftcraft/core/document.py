"""Chapter model for DraftCraft."""

from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
import uuid


def new_id(prefix: str = "") -> str:
    """Generate a short unique identifier."""
    token = uuid.uuid4().hex[:12]
    return f"{prefix}-{token}" if prefix else token


@dataclass
class Chapter:
    """A chapter of the novel with its working draft."""

    id: str = field(default_factory=lambda: new_id("chapter"))
    title: str = ""
    summary: str = ""
    draft: str = ""
    characters: List[str] = field(default_factory=list)
    setting: str = ""
    mood: str = ""
    key_events: List[str] = field(default_factory=list)
    modified_at: datetime = field(default_factory=datetime.now)

    @property
    def word_count(self) -> int:
        return len(self.draft.split()) if self.draft else 0

    def update_draft(self, content: str) -> None:
        """Replace the working draft."""
        self.draft = content
        self.modified_at = datetime.now()

    def details(self) -> Dict[str, str]:
        """Flattened chapter details used in prompts."""
        return {
            "characters": ", ".join(self.characters) or "Not set",
            "setting": self.setting or "Not set",
            "mood": self.mood or "Not set",
            "key_events": ", ".join(self.key_events) or "Not set",
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert chapter to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "draft": self.draft,
            "characters": self.characters,
            "setting": self.setting,
            "mood": self.mood,
            "key_events": self.key_events,
            "modified_at": self.modified_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chapter":
        """Create chapter from dictionary."""
        chapter = cls(
            id=data.get("id") or new_id("chapter"),
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            draft=data.get("draft", ""),
            characters=list(data.get("characters", [])),
            setting=data.get("setting", ""),
            mood=data.get("mood", ""),
            key_events=list(data.get("key_events", [])),
        )
        if data.get("modified_at"):
            chapter.modified_at = datetime.fromisoformat(data["modified_at"])
        return chapter


def find_chapter(chapters: List[Chapter], chapter_id: Optional[str]) -> Optional[Chapter]:
    """Look up a chapter by id."""
    if not chapter_id:
        return None
    for chapter in chapters:
        if chapter.id == chapter_id:
            return chapter
    return None
