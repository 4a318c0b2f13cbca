"""Selection-scoped AI suggestions."""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from ..config import Config
from ..core.document import Chapter
from ..core.history import HistoryEntryType, Suggestion
from ..core.project import Project
from ..editor.history_controller import HistoryController
from ..exceptions import (
    ChapterRequiredError,
    GenerationCancelled,
    ProviderError,
    ProviderNotConfiguredError,
    ResponseParseError,
    SelectionRequiredError,
)
from .cancellation import InflightRequest
from .prompts import SUGGESTION_TYPES, SuggestionType, build_suggestion_prompt
from .response_parser import parse_suggestions

logger = logging.getLogger(__name__)

BEFORE_APPLY_LABEL = "before apply"
AFTER_APPLY_LABEL = "after apply"


class SuggestionStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def truncate_selection(text: str, limit: int) -> Tuple[str, bool]:
    """Strip a selection and cap it at ``limit`` characters."""
    text = text.strip()
    if len(text) > limit:
        return text[:limit], True
    return text, False


class SuggestionPipeline:
    """Asks the model for alternatives to the selected passage and splices one in."""

    def __init__(self, client, history: HistoryController, workspace, config: Optional[Config] = None, ai_log=None):
        self.client = client
        self.history = history
        self.workspace = workspace
        self.config = config or Config()
        self.ai_log = ai_log
        self.inflight = InflightRequest("suggestion request")
        self.clear()

    def clear(self) -> None:
        """Forget suggestions and the stored selection."""
        self.status = SuggestionStatus.IDLE
        self.suggestions: List[Suggestion] = []
        self.error: Optional[str] = None
        self.suggestion_type = SuggestionType.REWRITE
        self.last_selected_text = ""
        self.was_truncated = False
        self.chapter_id: Optional[str] = None
        self.selection_range: Optional[Tuple[int, int]] = None
        self.selected_raw = ""

    @property
    def is_loading(self) -> bool:
        return self.status is SuggestionStatus.LOADING

    async def request(
        self,
        chapter: Optional[Chapter],
        selection_range: Optional[Tuple[int, int]],
        suggestion_type: SuggestionType = SuggestionType.REWRITE,
        project: Optional[Project] = None,
    ) -> List[Suggestion]:
        """Generate suggestions for the selected range of the chapter draft.

        Returns an empty list if the request was cancelled.
        """
        if chapter is None:
            raise ChapterRequiredError()
        if not self.client.is_configured:
            raise ProviderNotConfiguredError()
        draft = self.workspace.get_draft(chapter.id) or ""
        start, end = selection_range or (0, 0)
        selected, truncated = truncate_selection(draft[start:end], self.config.max_suggestion_length)
        if not selected:
            raise SelectionRequiredError()

        self.chapter_id = chapter.id
        self.selection_range = (start, end)
        self.selected_raw = draft[start:end]
        self.last_selected_text = selected
        self.was_truncated = truncated
        self.suggestion_type = suggestion_type
        self.suggestions = []
        self.error = None
        self.status = SuggestionStatus.LOADING
        if truncated:
            logger.info(f"Selection truncated to {self.config.max_suggestion_length} characters")

        prompt = build_suggestion_prompt(suggestion_type, selected, chapter, project)
        try:
            result = await self.inflight.run(self.client.generate_content(prompt, "suggestion"))
        except GenerationCancelled:
            self.status = SuggestionStatus.IDLE
            return []

        if not result.ok:
            error = result.to_error()
            self._log(prompt, result.content or "", str(error))
            raise self._fail(error)

        suggestions = parse_suggestions(result.content)
        if not suggestions:
            self._log(prompt, result.content, "could not parse suggestions")
            raise self._fail(ResponseParseError("Could not parse suggestions from the AI response."))

        self._log(prompt, result.content)
        self.suggestions = suggestions
        self.status = SuggestionStatus.READY
        logger.info(f"Received {len(suggestions)} {SUGGESTION_TYPES[suggestion_type].label} suggestions")
        return list(suggestions)

    async def apply(self, suggestion: Suggestion) -> str:
        """Replace the stored selection with the suggestion, bracketed by snapshots."""
        if self.chapter_id is None or self.selection_range is None:
            raise SelectionRequiredError("There is no selection to apply the suggestion to.")
        chapter_id = self.chapter_id
        start, end = self.selection_range
        draft = self.workspace.get_draft(chapter_id) or ""
        if draft[start:end] != self.selected_raw:
            raise SelectionRequiredError("The selected text has changed since the suggestions were requested.")

        await self.history.snapshot(
            chapter_id, HistoryEntryType.RESTORE, content=draft, label=BEFORE_APPLY_LABEL, force=True
        )
        updated = draft[:start] + suggestion.body + draft[end:]
        await self.workspace.apply_draft(chapter_id, updated)
        await self.history.snapshot(
            chapter_id, HistoryEntryType.MANUAL, content=updated, label=AFTER_APPLY_LABEL, force=True
        )
        self.selection_range = (start, start + len(suggestion.body))
        self.selected_raw = suggestion.body
        return updated

    def cancel(self) -> bool:
        return self.inflight.cancel()

    def _fail(self, error: Exception) -> Exception:
        self.status = SuggestionStatus.ERROR
        self.error = error.user_message() if isinstance(error, ProviderError) else str(error)
        return error

    def _log(self, prompt: str, response: str, error: Optional[str] = None) -> None:
        if self.ai_log is None:
            return
        self.ai_log.add_log(
            type="suggestion",
            prompt=prompt,
            response=response,
            error=error,
            chapter_id=self.chapter_id,
            suggestion_type=self.suggestion_type.value,
        )
