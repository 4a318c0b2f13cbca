"""Configuration for DraftCraft."""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from .io.file_handler import FileHandler

logger = logging.getLogger(__name__)


@dataclass
class AISettings:
    """Generation provider settings."""
    provider: str = "claude"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""))
    max_tokens: int = 16000
    temperature: float = 0.7
    timeout: float = 120.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class Config:
    """Central configuration for the draft engine."""
    # Chapter history
    history_max_entries: int = 30
    history_auto_save_delay: float = 20.0  # seconds

    # Self-refine
    improvement_log_limit: int = 20
    refine_draft_limit: int = 4000
    critique_summary_limit: int = 1500
    min_revision_length: int = 100

    # Suggestions
    max_suggestion_length: int = 2000

    # Plot editor
    plot_history_size: int = 50
    plot_save_delay: float = 2.0
    structure_guard_buffer: float = 1.0

    # Batch generation
    batch_timeout: float = 600.0

    # Audit log
    ai_log_limit: int = 200

    ai: AISettings = field(default_factory=AISettings)

    @property
    def structure_guard_duration(self) -> float:
        """Protection window length: the plot save debounce plus a buffer."""
        return self.plot_save_delay + self.structure_guard_buffer

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "Config":
        """Build a config from the environment, loading a .env file first."""
        load_dotenv(env_file)
        config = cls()
        config._apply({
            f.name: os.environ[f"DRAFTCRAFT_{f.name.upper()}"]
            for f in fields(cls)
            if f.name != "ai" and f"DRAFTCRAFT_{f.name.upper()}" in os.environ
        })
        config.ai.model = os.getenv("DRAFTCRAFT_MODEL", config.ai.model)
        config.ai.api_key = os.getenv("ANTHROPIC_API_KEY", config.ai.api_key)
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Config":
        """Load a YAML config file on top of the environment defaults."""
        config = cls.from_env()
        data = FileHandler().read_yaml(path)
        ai_data = data.pop("ai", None) or {}
        config._apply(data)
        for key, value in ai_data.items():
            if key in {f.name for f in fields(AISettings)}:
                setattr(config.ai, key, value)
            else:
                logger.warning(f"Ignoring unknown AI setting: {key}")
        return config

    def _apply(self, values: Dict[str, Any]) -> None:
        """Set known fields, coercing to the type of the current value."""
        known = {f.name for f in fields(self)} - {"ai"}
        for key, raw in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            current = getattr(self, key)
            setattr(self, key, type(current)(raw))
