"""Character model for DraftCraft."""

from enum import Enum
from typing import Dict, Any
from dataclasses import dataclass


class CharacterRole(Enum):
    """Character role in the story."""
    PROTAGONIST = "protagonist"
    ANTAGONIST = "antagonist"
    SUPPORTING = "supporting"
    MINOR = "minor"


@dataclass
class Character:
    """Represents a character in the novel."""

    name: str
    role: CharacterRole = CharacterRole.SUPPORTING
    appearance: str = ""
    personality: str = ""
    background: str = ""

    def profile(self) -> str:
        """Render the character as a prompt block."""
        return (
            f"[{self.name}]\n"
            f"Role: {self.role.value}\n"
            f"Appearance: {self.appearance or 'Not set'}\n"
            f"Personality: {self.personality or 'Not set'}\n"
            f"Background: {self.background or 'Not set'}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert character to dictionary for serialization."""
        return {
            "name": self.name,
            "role": self.role.value,
            "appearance": self.appearance,
            "personality": self.personality,
            "background": self.background,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        """Create character from dictionary."""
        return cls(
            name=data["name"],
            role=CharacterRole(data.get("role", "supporting")),
            appearance=data.get("appearance", ""),
            personality=data.get("personality", ""),
            background=data.get("background", ""),
        )
