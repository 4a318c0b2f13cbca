"""Whole-draft AI actions: generate, continue, enhance, restyle, shorten and improve."""

import logging
from enum import Enum
from typing import Optional

from ..config import Config
from ..core.document import Chapter
from ..core.history import HistoryEntryType
from ..core.project import Project
from ..editor.history_controller import HistoryController
from ..exceptions import (
    ChapterRequiredError,
    EmptyDraftError,
    GenerationCancelled,
    ProviderNotConfiguredError,
)
from .cancellation import InflightRequest
from .prompts import (
    build_adjust_style_prompt,
    build_chapter_prompt,
    build_continue_prompt,
    build_enhance_description_prompt,
    build_improve_prompt,
    build_shorten_prompt,
)

logger = logging.getLogger(__name__)


class DraftAction(Enum):
    GENERATE = "generate"
    CONTINUE = "continue"
    ENHANCE_DESCRIPTION = "enhance-description"
    ADJUST_STYLE = "adjust-style"
    SHORTEN = "shorten"
    IMPROVE = "improve"

    @property
    def needs_draft(self) -> bool:
        return self not in (DraftAction.GENERATE, DraftAction.CONTINUE)

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


def action_choices():
    return [a.value for a in DraftAction]


class DraftActionPipeline:
    """Runs one whole-draft action and swaps the result into the chapter.

    The previous draft and the result are both recorded in the chapter
    history, so every action can be undone from the history panel.
    """

    def __init__(self, client, history: HistoryController, workspace, config: Optional[Config] = None, ai_log=None):
        self.client = client
        self.history = history
        self.workspace = workspace
        self.config = config or Config()
        self.ai_log = ai_log
        self.inflight = InflightRequest("draft action")
        self.current_action: Optional[DraftAction] = None

    @property
    def is_running(self) -> bool:
        return self.current_action is not None

    async def run(
        self, action: DraftAction, chapter: Optional[Chapter], project: Project
    ) -> Optional[str]:
        """Run ``action`` on the chapter draft.

        Returns the new draft, or None if the request was cancelled.
        """
        if chapter is None:
            raise ChapterRequiredError()
        if not self.client.is_configured:
            raise ProviderNotConfiguredError()
        draft = self.workspace.get_draft(chapter.id) or ""
        if action.needs_draft and not draft.strip():
            raise EmptyDraftError()

        prompt = self._build_prompt(action, draft, chapter, project)
        self.current_action = action
        try:
            result = await self.inflight.run(self.client.generate_content(prompt, "draft"))
        except GenerationCancelled:
            logger.info(f"Draft action {action.value} cancelled for chapter {chapter.id}")
            return None
        finally:
            self.current_action = None

        if self.ai_log is not None:
            self.ai_log.add_log(
                type=action.value,
                prompt=prompt,
                response=result.content or "",
                error=result.error,
                chapter_id=chapter.id,
            )
        if not result.ok:
            raise result.to_error()

        text = result.content.strip()
        if action is DraftAction.CONTINUE and draft.strip():
            text = draft.rstrip() + "\n\n" + text
        return await self._apply(chapter.id, action, draft, text)

    def _build_prompt(self, action: DraftAction, draft: str, chapter: Chapter, project: Project) -> str:
        if action is DraftAction.GENERATE:
            return build_chapter_prompt(chapter, project)
        if action is DraftAction.CONTINUE:
            return build_continue_prompt(draft, chapter, project)
        if action is DraftAction.ENHANCE_DESCRIPTION:
            return build_enhance_description_prompt(draft)
        if action is DraftAction.ADJUST_STYLE:
            return build_adjust_style_prompt(draft)
        if action is DraftAction.SHORTEN:
            return build_shorten_prompt(draft)
        return build_improve_prompt(draft, chapter)

    async def _apply(self, chapter_id: str, action: DraftAction, draft: str, text: str) -> str:
        if draft.strip():
            await self.history.snapshot(
                chapter_id, HistoryEntryType.RESTORE, content=draft, label=f"before {action.label}", force=True
            )
        await self.workspace.apply_draft(chapter_id, text)
        await self.history.snapshot(
            chapter_id, HistoryEntryType.MANUAL, content=text, label=f"after {action.label}", force=True
        )
        logger.info(f"Applied {action.value} to chapter {chapter_id}: {len(draft)} -> {len(text)} chars")
        return text

    def cancel(self) -> bool:
        return self.inflight.cancel()
