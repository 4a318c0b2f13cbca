"""Drafting every chapter of a project in a single request."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import Config
from ..core.project import Project
from ..exceptions import (
    DraftCraftError,
    GenerationCancelled,
    NoChaptersError,
    PersistenceError,
    ProviderError,
    ProviderNotConfiguredError,
    ResponseParseError,
)
from .cancellation import InflightRequest
from .prompts import build_full_draft_prompt

logger = logging.getLogger(__name__)

# "=== Chapter 3: Title ===" or "=== 第3章: Title ==="
CHAPTER_DELIMITER = re.compile(
    r"===\s*(?:Chapter\s+\d+|第\s*\d+\s*章)\s*[:：][^\n]*?===",
    re.IGNORECASE,
)


class BatchState(Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    GENERATING = "generating"


class ChapterStatus(Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ChapterProgress:
    chapter_id: str
    title: str
    status: ChapterStatus = ChapterStatus.PENDING


@dataclass
class BatchResult:
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False


def split_chapter_blocks(raw: str) -> List[str]:
    """Split a response on chapter delimiters, dropping the preamble."""
    parts = CHAPTER_DELIMITER.split(raw or "")
    return [part.strip() for part in parts[1:]]


class BatchGenerator:
    """Confirm-gated generation of all chapter drafts.

    ``request`` validates and moves to ``CONFIRMING``; ``confirm`` sends the
    request; ``decline`` backs out. Chapters whose block is missing or empty
    are left untouched.
    """

    def __init__(self, client, project_store, config: Optional[Config] = None, ai_log=None):
        self.client = client
        self.project_store = project_store
        self.config = config or Config()
        self.ai_log = ai_log
        self.inflight = InflightRequest("batch generation")
        self.state = BatchState.IDLE
        self.project: Optional[Project] = None
        self.progress: List[ChapterProgress] = []
        self.status = ""
        self.error: Optional[str] = None

    @property
    def current(self) -> int:
        return sum(1 for p in self.progress if p.status is ChapterStatus.COMPLETED)

    @property
    def total(self) -> int:
        return len(self.progress)

    def request(self, project: Project) -> None:
        """Validate the project and wait for confirmation."""
        if not self.client.is_configured:
            raise ProviderNotConfiguredError()
        if not project.chapters:
            raise NoChaptersError()
        self.project = project
        self.error = None
        self.state = BatchState.CONFIRMING

    def decline(self) -> None:
        if self.state is BatchState.CONFIRMING:
            self.state = BatchState.IDLE
            self.project = None

    async def confirm(self) -> BatchResult:
        """Send the request and apply the parsed chapters."""
        if self.state is not BatchState.CONFIRMING or self.project is None:
            raise DraftCraftError("Batch generation has not been requested")
        project = self.project
        self.state = BatchState.GENERATING
        self.progress = [
            ChapterProgress(chapter_id=c.id, title=c.title, status=ChapterStatus.GENERATING)
            for c in project.chapters
        ]
        self.status = f"Generating {len(project.chapters)} chapters..."
        prompt = build_full_draft_prompt(project)

        try:
            result = await self.inflight.run(
                self.client.generate_content(prompt, "draft", timeout=self.config.batch_timeout)
            )
        except GenerationCancelled:
            self._reset_generating(ChapterStatus.PENDING)
            self.status = "Cancelled"
            self.state = BatchState.IDLE
            return BatchResult(cancelled=True)

        try:
            if not result.ok:
                raise result.to_error()
            outcome = await self._apply(project, result.content)
        except DraftCraftError as e:
            self._reset_generating(ChapterStatus.ERROR)
            self.error = e.user_message("Failed to generate chapters: ") if isinstance(e, ProviderError) else str(e)
            self.status = "Failed"
            self._log(prompt, result.content or "", str(e))
            raise
        finally:
            self.state = BatchState.IDLE

        self._log(prompt, result.content)
        return outcome

    async def generate(self, project: Project) -> BatchResult:
        """Request and confirm in one step."""
        self.request(project)
        return await self.confirm()

    def cancel(self) -> bool:
        return self.inflight.cancel()

    async def _apply(self, project: Project, content: str) -> BatchResult:
        blocks = split_chapter_blocks(content)
        if not any(blocks):
            raise ResponseParseError("No chapter blocks were found in the response")

        outcome = BatchResult()
        previous = {}
        for index, chapter in enumerate(project.chapters):
            block = blocks[index] if index < len(blocks) else ""
            if not block:
                outcome.skipped.append(chapter.id)
                continue
            previous[chapter.id] = (chapter.draft, chapter.modified_at)
            chapter.update_draft(block)
            outcome.updated.append(chapter.id)

        try:
            await self.project_store.save_project(project)
        except Exception as e:
            # Nothing was written, so put the old drafts back.
            for chapter in project.chapters:
                if chapter.id in previous:
                    chapter.draft, chapter.modified_at = previous[chapter.id]
            if isinstance(e, DraftCraftError):
                raise
            raise PersistenceError(f"Could not save generated chapters: {e}") from e

        for progress in self.progress:
            if progress.chapter_id in previous:
                progress.status = ChapterStatus.COMPLETED
            else:
                progress.status = ChapterStatus.ERROR
        self.status = f"Generated {len(outcome.updated)} of {len(project.chapters)} chapters"
        logger.info(self.status)
        return outcome

    def _reset_generating(self, status: ChapterStatus) -> None:
        for progress in self.progress:
            if progress.status is ChapterStatus.GENERATING:
                progress.status = status

    def _log(self, prompt: str, response: str, error: Optional[str] = None) -> None:
        if self.ai_log is not None:
            self.ai_log.add_log(type="generate-all", prompt=prompt, response=response, error=error)
