"""Prompt templates for the draft revision pipelines."""

from enum import Enum
from typing import Dict, NamedTuple, Optional

from ..core.document import Chapter
from ..core.project import Project


def _or_unset(value: Optional[str]) -> str:
    return value if value else "Not set"


# ============================================================================
# Selection suggestions
# ============================================================================

class SuggestionType(Enum):
    REWRITE = "rewrite"
    TONE = "tone"
    SUMMARY = "summary"


class SuggestionSpec(NamedTuple):
    label: str
    description: str
    instructions: str
    response_shape: str


SUGGESTION_TYPES: Dict[SuggestionType, SuggestionSpec] = {
    SuggestionType.REWRITE: SuggestionSpec(
        label="Rewrite",
        description="Versions that read smoothly while keeping the scene vivid.",
        instructions=(
            "You are an experienced fiction editor. Rework the passage below so "
            "that it flows naturally and draws the reader in."
        ),
        response_shape=(
            '    { "title": "Short description of the version", "body": "The rewritten passage (about 200 words)" }'
        ),
    ),
    SuggestionType.TONE: SuggestionSpec(
        label="Tone",
        description="Variations that bring out the mood and emotional tone.",
        instructions=(
            "You are an editor who shapes the tone of a story. Propose three "
            "variations of the passage below that heighten its emotion and atmosphere. "
            "Give each variation a different feeling, such as tension, melancholy or hope."
        ),
        response_shape=(
            '    { "title": "The tone being emphasized", "body": "The adjusted passage (about 180 words)" }'
        ),
    ),
    SuggestionType.SUMMARY: SuggestionSpec(
        label="Summary and key phrases",
        description="Condenses the passage and pulls out what matters.",
        instructions=(
            "You are an editorial assistant. Summarize the passage below and extract "
            "information that will help with the rest of the draft. Start bullet points with '-'."
        ),
        response_shape=(
            '    { "title": "Summary", "body": "A 3-4 sentence summary" },\n'
            '    { "title": "Foreshadowing and emotional cues", "body": "Points to watch, as bullets" },\n'
            '    { "title": "Key phrases", "body": "Important words and ideas" }'
        ),
    ),
}


def build_suggestion_prompt(
    suggestion_type: SuggestionType,
    selected_text: str,
    chapter: Optional[Chapter] = None,
    project: Optional[Project] = None,
) -> str:
    """Prompt asking for three {title, body} suggestions as JSON."""
    spec = SUGGESTION_TYPES[suggestion_type]
    shape = spec.response_shape
    if shape.count("{") == 1:
        shape = ",\n".join([shape] * 3)
    return f"""{spec.instructions}

Title: {_or_unset(project.title if project else None)}
Chapter title: {_or_unset(chapter.title if chapter else None)}
Chapter summary: {_or_unset(chapter.summary if chapter else None)}

Passage:
\"\"\"{selected_text}\"\"\"

Reply with JSON in exactly this shape and nothing else:
{{
  "suggestions": [
{shape}
  ]
}}"""


# ============================================================================
# Self-refine
# ============================================================================

def build_critique_prompt(draft: str, chapter: Optional[Chapter] = None, project: Optional[Project] = None) -> str:
    """Phase 1: ask for a scored critique of the full draft."""
    return f"""You are a demanding professional fiction editor. Evaluate the text below objectively for structure, character consistency, description, style and emotional impact.

CHAPTER INFORMATION:
- Title: {_or_unset(project.title if project else None)}
- Chapter title: {_or_unset(chapter.title if chapter else None)}
- Chapter summary: {_or_unset(chapter.summary if chapter else None)}

TEXT TO EVALUATE:
{draft}

CRITERIA (score each from 0 to 10):
1. Plot consistency: no contradictions or leaps in logic; clear timeline and causality.
2. Character depth: characters are many-sided and act believably.
3. Concrete description: the senses are engaged and the scene comes across.
4. Reader empathy: emotions feel authentic and the characters' feelings come through.
5. Style: the rhythm is even and the prose reads well without redundancy.

Output ONLY JSON in this format:
{{
  "scores": {{"plot": 0, "character": 0, "description": 0, "empathy": 0, "style": 0}},
  "weaknesses": [
    {{
      "aspect": "Name of the criterion",
      "score": 0,
      "problem": "The concrete problem (about 50 words)",
      "solutions": ["Concrete fix 1", "Concrete fix 2", "Concrete fix 3"]
    }}
  ],
  "summary": "Overall assessment and the most important improvement (about 80 words)"
}}

RULES:
- Every criterion scored 7 or lower must appear in weaknesses.
- Do not wrap the JSON in code fences or add any other text."""


def build_revise_prompt(
    draft: str,
    critique: str,
    original_length: int,
    chapter: Optional[Chapter] = None,
    project: Optional[Project] = None,
) -> str:
    """Phase 2: ask for a revision that addresses the critique."""
    return f"""Rewrite the text below so that it overcomes the weaknesses identified in the critique.

CHAPTER INFORMATION:
- Title: {_or_unset(project.title if project else None)}
- Chapter title: {_or_unset(chapter.title if chapter else None)}
- Chapter summary: {_or_unset(chapter.summary if chapter else None)}

ORIGINAL TEXT:
{draft}

CRITIQUE:
{critique}

REVISION INSTRUCTIONS:
1. Address every weakness, applying the proposed fixes for criteria scored 7 or lower.
2. Keep the story's flow, the characters' personalities and the setting consistent.
3. Add concrete sensory description and deepen the characters' inner life.
4. Keep roughly the current length ({original_length} characters).
5. Use ordinary line breaks (\\n) between paragraphs.

Output ONLY JSON in this format:
{{
  "revisedText": "The full revised text",
  "improvementSummary": "Summary of the strategy applied (about 80 words)",
  "changes": ["Main change 1", "Main change 2", "Main change 3"]
}}

Do not wrap the JSON in code fences or add any other text."""


# ============================================================================
# Batch generation
# ============================================================================

def build_full_draft_prompt(project: Project) -> str:
    """Prompt for drafting every chapter of a project in one response."""
    plot = project.plot
    characters = "\n\n".join(c.profile() for c in project.characters) or "No characters defined"
    chapters = []
    for number, chapter in enumerate(project.chapters, 1):
        details = chapter.details()
        chapters.append(
            f"Chapter {number}: {chapter.title}\n"
            f"Summary: {_or_unset(chapter.summary)}\n"
            f"Characters: {details['characters']}\n"
            f"Setting: {details['setting']}\n"
            f"Mood: {details['mood']}\n"
            f"Key events: {details['key_events']}"
        )
    chapter_outline = "\n\n".join(chapters)

    return f"""Using the project information below, write a consistent and compelling draft of every chapter of the novel.

PROJECT:
- Title: {_or_unset(project.title)}
- Main genre: {_or_unset(project.main_genre)}
- Sub genre: {_or_unset(project.sub_genre)}
- Target reader: {_or_unset(project.target_reader)}
- Theme: {_or_unset(project.theme)}

PLOT BASICS:
- Theme: {_or_unset(plot.theme)}
- Setting: {_or_unset(plot.setting)}
- Hook: {_or_unset(plot.hook)}
- Protagonist's goal: {_or_unset(plot.protagonist_goal)}
- Main obstacle: {_or_unset(plot.main_obstacle)}

STRUCTURE:
{plot.structure_details()}

CHARACTERS:
{characters}

CHAPTERS:
{chapter_outline}

WRITING INSTRUCTIONS:
1. Keep characters, setting and story flow consistent across all chapters.
2. Aim for roughly 1500-2500 words per chapter.
3. Include plenty of natural dialogue and concrete, sensory description.
4. Follow each chapter's summary so that every chapter moves the story forward.

OUTPUT FORMAT:
Write each chapter under a delimiter line exactly like this:

=== Chapter 1: [Chapter title] ===
[Chapter draft]

=== Chapter 2: [Chapter title] ===
[Chapter draft]

Continue for all {len(project.chapters)} chapters, in order."""


# ============================================================================
# Whole-draft actions
# ============================================================================

PREVIOUS_CHAPTER_TAIL = 1000


def build_chapter_prompt(chapter: Chapter, project: Project) -> str:
    """Prompt for drafting a single chapter in the context of the ones before it."""
    plot = project.plot
    details = chapter.details()
    characters = "\n\n".join(c.profile() for c in project.characters) or "No characters defined"
    index = next((i for i, c in enumerate(project.chapters) if c.id == chapter.id), 0)
    previous = project.chapters[:index]
    previous_story = "\n\n".join(
        f"Chapter {number}: {c.title}\nSummary: {c.summary or '(no summary)'}"
        for number, c in enumerate(previous, 1)
    ) or "This is the first chapter."

    lead_in = ""
    if previous and previous[-1].draft.strip():
        tail = previous[-1].draft.strip()
        if len(tail) > PREVIOUS_CHAPTER_TAIL:
            tail = "..." + tail[-PREVIOUS_CHAPTER_TAIL:]
        lead_in = f"""
END OF THE PREVIOUS CHAPTER (continue naturally from here):
---
{tail}
---
"""

    return f"""Write the draft of the chapter below so that it fits the rest of the novel.

PROJECT:
- Title: {_or_unset(project.title)}
- Main genre: {_or_unset(project.main_genre)}
- Sub genre: {_or_unset(project.sub_genre)}
- Target reader: {_or_unset(project.target_reader)}

PLOT:
- Theme: {_or_unset(plot.theme)}
- Setting: {_or_unset(plot.setting)}
{plot.structure_details()}

CHARACTERS:
{characters}

STORY SO FAR:
{previous_story}
{lead_in}
CHAPTER:
- Title: {_or_unset(chapter.title)}
- Summary: {_or_unset(chapter.summary)}
- Characters: {details['characters']}
- Setting: {details['setting']}
- Mood: {details['mood']}
- Key events: {details['key_events']}

WRITING INSTRUCTIONS:
1. Aim for roughly 1500-2500 words.
2. Include plenty of natural dialogue and concrete, sensory description.
3. Follow the chapter summary and move the story forward.
4. Use ordinary line breaks (\\n) between paragraphs.

Output only the chapter text."""


def build_continue_prompt(draft: str, chapter: Chapter, project: Project) -> str:
    """Prompt for the next stretch of an unfinished draft."""
    plot = project.plot
    characters = "\n\n".join(c.profile() for c in project.characters) or "No characters defined"
    return f"""Continue the chapter below from exactly where it stops.

CHAPTER:
- Title: {_or_unset(chapter.title)}
- Summary: {_or_unset(chapter.summary)}

PLOT:
- Theme: {_or_unset(plot.theme)}
- Setting: {_or_unset(plot.setting)}
{plot.structure_details()}

CHARACTERS:
{characters}

TEXT SO FAR:
{draft}

INSTRUCTIONS:
- Write the natural continuation of the text above, about 500-800 words.
- Keep the characters' personalities and the setting consistent.
- Favor dialogue and vivid description, and move the chapter toward its purpose.
- Use ordinary line breaks (\\n) between paragraphs.

Output only the new text, without repeating what is already written."""


def build_enhance_description_prompt(draft: str) -> str:
    return f"""Make the description in the text below richer and more engaging.

CURRENT TEXT:
{draft}

INSTRUCTIONS:
- Add detail to the scenery and settings.
- Deepen the characters' emotions and inner life while keeping dialogue natural.
- Draw on all five senses.
- Make the result about 1.2-1.5 times the original length.
- Use ordinary line breaks (\\n) between paragraphs.

Output only the enhanced text."""


def build_adjust_style_prompt(draft: str) -> str:
    return f"""Adjust the style of the text below so that it reads more smoothly.

CURRENT TEXT:
{draft}

INSTRUCTIONS:
- Even out the rhythm of the sentences.
- Tighten redundant phrasing.
- Improve only the expression; do not change the content.
- Use ordinary line breaks (\\n) between paragraphs.

Output only the adjusted text."""


def build_shorten_prompt(draft: str) -> str:
    return f"""Condense the text below and cut what is redundant.

CURRENT TEXT:
{draft}

INSTRUCTIONS:
- Keep everything important and keep the flow of the text.
- Shorten it to about 70-80% of its current length.
- Use ordinary line breaks (\\n) between paragraphs.

Output only the shortened text."""


def build_improve_prompt(draft: str, chapter: Optional[Chapter] = None) -> str:
    """Combined description and style pass over a whole chapter."""
    return f"""Improve the chapter draft below as a whole.

CHAPTER:
- Title: {_or_unset(chapter.title if chapter else None)}
- Summary: {_or_unset(chapter.summary if chapter else None)}

CURRENT DRAFT:
{draft}

INSTRUCTIONS:
1. Description: add sensory detail and deepen the characters' emotions while keeping dialogue natural.
2. Style: even out the rhythm and tighten redundant phrasing.
3. Length: keep roughly the current length ({len(draft)} characters) and keep every important event.
4. Use ordinary line breaks (\\n) between paragraphs.

Output only the improved draft."""
