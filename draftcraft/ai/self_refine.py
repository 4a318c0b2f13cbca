"""Two-phase critique-then-revise improvement of a chapter draft."""

import logging
from enum import Enum
from typing import Dict, List, Optional

from ..config import Config
from ..core.document import Chapter, new_id
from ..core.history import HistoryEntryType, ImprovementLogEntry, now_ms
from ..core.project import Project
from ..editor.history_controller import HistoryController
from ..exceptions import (
    ChapterRequiredError,
    EmptyDraftError,
    GenerationCancelled,
    ProviderNotConfiguredError,
)
from .cancellation import InflightRequest
from .prompts import build_critique_prompt, build_revise_prompt
from .response_parser import Critique, Revision, parse_critique, parse_revision

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[truncated]"
BEFORE_REFINE_LABEL = "before self-refine"
AFTER_REFINE_LABEL = "after self-refine"


class RefinePhase(Enum):
    IDLE = "idle"
    CRITIQUE = "critique"
    REVISE = "revise"


def truncate_draft(draft: str, limit: int) -> str:
    """Cap the draft sent to the revise phase, marking the cut."""
    if len(draft) <= limit:
        return draft
    return draft[:limit] + TRUNCATION_MARKER


class SelfRefineEngine:
    """Critiques the chapter draft, then rewrites it to address the critique."""

    def __init__(self, client, history: HistoryController, workspace, config: Optional[Config] = None, ai_log=None):
        self.client = client
        self.history = history
        self.workspace = workspace
        self.config = config or Config()
        self.ai_log = ai_log
        self.inflight = InflightRequest("self-refine")
        self.phase = RefinePhase.IDLE
        self.last_critique: Optional[Critique] = None
        self._logs: Dict[str, List[ImprovementLogEntry]] = {}

    async def run(self, chapter: Optional[Chapter], project: Optional[Project] = None) -> Optional[ImprovementLogEntry]:
        """Run both phases and apply the revision.

        Returns the improvement log entry, or None if cancelled.
        """
        if chapter is None:
            raise ChapterRequiredError()
        if not self.client.is_configured:
            raise ProviderNotConfiguredError()
        draft = self.workspace.get_draft(chapter.id) or ""
        if not draft.strip():
            raise EmptyDraftError()

        try:
            self.phase = RefinePhase.CRITIQUE
            critique_prompt = build_critique_prompt(draft, chapter, project)
            critique_raw = await self._generate(critique_prompt, "critique", chapter.id)
            critique = parse_critique(critique_raw, self.config.critique_summary_limit)
            self.last_critique = critique
            logger.info(f"Critique for chapter {chapter.id}: {len(critique.weaknesses)} weaknesses")

            self.phase = RefinePhase.REVISE
            revise_prompt = build_revise_prompt(
                truncate_draft(draft, self.config.refine_draft_limit),
                critique.prompt_text,
                len(draft),
                chapter,
                project,
            )
            revision_raw = await self._generate(revise_prompt, "revise", chapter.id)
            revision = parse_revision(revision_raw, self.config.min_revision_length)
        except GenerationCancelled:
            return None
        finally:
            self.phase = RefinePhase.IDLE

        return await self._apply(chapter.id, draft, critique, revision)

    async def _generate(self, prompt: str, generation_type: str, chapter_id: str) -> str:
        result = await self.inflight.run(self.client.generate_content(prompt, generation_type))
        if self.ai_log is not None:
            self.ai_log.add_log(
                type=f"self-refine-{generation_type}",
                prompt=prompt,
                response=result.content or "",
                error=result.error,
                chapter_id=chapter_id,
            )
        if not result.ok:
            raise result.to_error()
        return result.content

    async def _apply(self, chapter_id: str, draft: str, critique: Critique, revision: Revision) -> ImprovementLogEntry:
        await self.history.snapshot(
            chapter_id, HistoryEntryType.RESTORE, content=draft, label=BEFORE_REFINE_LABEL, force=True
        )
        await self.workspace.apply_draft(chapter_id, revision.text)
        await self.history.snapshot(
            chapter_id, HistoryEntryType.MANUAL, content=revision.text, label=AFTER_REFINE_LABEL, force=True
        )

        entry = ImprovementLogEntry(
            id=new_id("log"),
            chapter_id=chapter_id,
            timestamp_ms=now_ms(),
            critique_raw=critique.raw,
            revision_summary=revision.summary or "No improvement summary was returned.",
            change_list=list(revision.changes),
            original_length=len(draft),
            revised_length=len(revision.text),
        )
        logs = self._logs.setdefault(chapter_id, [])
        logs.insert(0, entry)
        del logs[self.config.improvement_log_limit:]
        logger.info(f"Self-refine revised chapter {chapter_id}: {len(draft)} -> {len(revision.text)} chars")
        return entry

    def logs(self, chapter_id: str) -> List[ImprovementLogEntry]:
        """Improvement log for a chapter, newest first."""
        return list(self._logs.get(chapter_id, []))

    def cancel(self) -> bool:
        return self.inflight.cancel()
