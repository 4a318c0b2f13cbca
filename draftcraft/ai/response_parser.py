"""Parsing of model responses.

Models are asked for JSON but often wrap it in prose or code fences,
double the braces of the template, or cut the response short. The
functions here recover as much as possible. Revised text is recovered
by an ordered list of independent strategies, each a pure
``strategy(raw) -> Optional[str]``; the first candidate that looks like
prose wins.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.document import new_id
from ..core.history import Suggestion
from ..exceptions import ResponseParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_BLANK_LINES_RE = re.compile(r"\n{2,}")


# ============================================================================
# JSON extraction
# ============================================================================

def strip_fences(text: str) -> str:
    """Remove a surrounding code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        match = _FENCE_RE.search(text)
        if match:
            return match.group(1).strip()
        return re.sub(r"```(?:json)?", "", text).strip()
    return text


def _largest_brace_block(text: str) -> Optional[str]:
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Find and parse the largest brace-delimited object in ``text``."""
    if not text:
        return None
    block = _largest_brace_block(strip_fences(text))
    if block is None:
        return None
    # Templated prompts sometimes come back with doubled braces.
    candidates = [block, block.replace("{{", "{").replace("}}", "}")]
    if block.startswith("{{") and block.endswith("}}"):
        candidates.insert(1, block[1:-1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


# ============================================================================
# Suggestions
# ============================================================================

def parse_suggestions(raw: str) -> List[Suggestion]:
    """Turn a suggestion response into records.

    A ``{"suggestions": [...]}`` object is preferred; entries without a body
    are dropped. Otherwise blank-line separated segments become suggestions.
    """
    raw = raw or ""
    record = extract_json_object(raw)
    if record is not None and isinstance(record.get("suggestions"), list):
        suggestions = []
        for index, item in enumerate(record["suggestions"]):
            if not isinstance(item, dict):
                continue
            body = str(item.get("body") or "").strip()
            if not body:
                continue
            title = str(item.get("title") or "").strip() or f"Suggestion {index + 1}"
            suggestions.append(Suggestion(id=new_id("suggestion"), title=title, body=body))
        return suggestions

    segments = [s.strip() for s in _BLANK_LINES_RE.split(raw) if s.strip()]
    if segments:
        logger.warning("Suggestion response was not JSON; splitting on blank lines")
    return [
        Suggestion(id=new_id("suggestion"), title=f"Suggestion {i + 1}", body=segment)
        for i, segment in enumerate(segments)
    ]


# ============================================================================
# Critique
# ============================================================================

_CRITIQUE_KEYWORDS = ("problem", "improve", "weak", "score", "assessment", "issue")


@dataclass
class Weakness:
    aspect: str
    problem: str
    score: Optional[float] = None
    solutions: List[str] = field(default_factory=list)

    def describe(self, with_score: bool = True) -> str:
        head = f"[{self.aspect}]"
        if with_score and self.score is not None:
            head += f" (score: {self.score:g}/10)"
        return f"{head}\nProblem: {self.problem}\nFixes: {'; '.join(self.solutions[:2])}"


@dataclass
class Critique:
    """Parsed phase-1 output."""
    raw: str
    data: Optional[Dict[str, Any]] = None
    weaknesses: List[Weakness] = field(default_factory=list)
    summary: str = ""
    digest: str = ""

    @property
    def prompt_text(self) -> str:
        """What the revise prompt receives."""
        if self.data is not None:
            return json.dumps(self.data, indent=2, ensure_ascii=False)
        return self.raw


def _to_weakness(item: Any) -> Optional[Weakness]:
    if not isinstance(item, dict) or not item.get("aspect") or not item.get("problem"):
        return None
    try:
        score = float(item["score"]) if item.get("score") is not None else None
    except (TypeError, ValueError):
        score = None
    solutions = item.get("solutions")
    return Weakness(
        aspect=str(item["aspect"]),
        problem=str(item["problem"]),
        score=score,
        solutions=[str(s) for s in solutions] if isinstance(solutions, list) else [],
    )


def parse_critique(raw: str, digest_limit: int = 1500) -> Critique:
    """Parse a critique and build a short digest of its main weaknesses.

    Weaknesses scored 7 or lower are listed first (at most five); when none
    carry a score the first three are used. Without a JSON record the digest
    falls back to the lines that mention problems or scores.
    """
    raw = raw or ""
    data = extract_json_object(raw)
    critique = Critique(raw=raw, data=data)

    if data is not None:
        critique.summary = str(data.get("summary") or "")
        items = data.get("weaknesses") if isinstance(data.get("weaknesses"), list) else []
        critique.weaknesses = [w for w in map(_to_weakness, items) if w is not None]
        low = [w for w in critique.weaknesses if w.score is not None and w.score <= 7][:5]
        if low:
            parts = [w.describe() for w in low]
        else:
            parts = [w.describe(with_score=False) for w in critique.weaknesses[:3]]
        if parts:
            digest = "\n\n".join(parts)
            if critique.summary:
                digest += f"\n\nOverall: {critique.summary}"
        else:
            digest = critique.summary or raw[:1000]
    else:
        logger.warning("Critique response was not JSON; using keyword lines")
        lines = [line for line in raw.splitlines() if line.strip()]
        important = [line for line in lines if any(k in line.lower() for k in _CRITIQUE_KEYWORDS)]
        digest = "\n".join((important or lines)[:10])

    if len(digest) > digest_limit:
        digest = digest[:digest_limit] + "..."
    critique.digest = digest
    return critique


# ============================================================================
# Revision recovery chain
# ============================================================================

RevisionStrategy = Callable[[str], Optional[str]]

_FIELD_RE = re.compile(r'"(?:revisedText|revised_text)"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_LABELED_RE = re.compile(
    r"(?:revised|improved|rewritten)\s+(?:text|draft|version)\s*[:：]\s*([^\n]+(?:\n[^\n]+)*)",
    re.IGNORECASE,
)
_KEY_VALUE_RE = re.compile(r'^"[A-Za-z_][\w ]*"\s*:')
_JSON_NOISE_RE = re.compile(r'^[\s\[\]{}",:]*$')
_BRACE_BLOCK_RE = re.compile(r"\{[\s\S]*?\}")


def looks_like_prose(text: Optional[str], min_length: int = 100) -> bool:
    if not text:
        return False
    stripped = text.strip()
    return len(stripped) >= min_length and any(ch.isalpha() for ch in stripped)


def from_json_record(raw: str) -> Optional[str]:
    """Read ``revisedText`` from the embedded JSON record."""
    record = extract_json_object(raw)
    if record is None:
        return None
    text = record.get("revisedText") or record.get("revised_text")
    return text.strip() if isinstance(text, str) else None


def from_json_field(raw: str) -> Optional[str]:
    """Pull the ``revisedText`` string out of a truncated or broken record."""
    match = _FIELD_RE.search(raw)
    if not match:
        return None
    value = match.group(1)
    try:
        return json.loads(f'"{value}"').strip()
    except json.JSONDecodeError:
        return value.replace("\\n", "\n").replace('\\"', '"').strip()


def from_labeled_section(raw: str) -> Optional[str]:
    """Text following a "Revised text:" style label."""
    match = _LABELED_RE.search(raw)
    return match.group(1).strip() if match else None


def from_prose_lines(raw: str) -> Optional[str]:
    """Drop lines that look like JSON structure and keep the prose."""
    kept: List[str] = []
    in_text = False
    for line in raw.splitlines():
        stripped = line.strip()
        if stripped.startswith(("{", "}", "```")) or _KEY_VALUE_RE.match(stripped):
            continue
        if len(stripped) > 20 and not _JSON_NOISE_RE.match(stripped):
            kept.append(line)
            in_text = True
        elif in_text:
            kept.append(line)
    text = "\n".join(kept).strip()
    return text or None


def from_raw(raw: str) -> Optional[str]:
    """Whole response, minus brace blocks when enough text remains."""
    cleaned = _BRACE_BLOCK_RE.sub("", raw).strip()
    return cleaned if len(cleaned) > 100 else raw.strip()


REVISION_STRATEGIES: Tuple[RevisionStrategy, ...] = (
    from_json_record,
    from_json_field,
    from_labeled_section,
    from_prose_lines,
    from_raw,
)


@dataclass
class Revision:
    """Parsed phase-2 output."""
    text: str
    summary: str = ""
    changes: List[str] = field(default_factory=list)
    strategy: str = ""


def parse_revision(
    raw: str,
    min_length: int = 100,
    strategies: Tuple[RevisionStrategy, ...] = REVISION_STRATEGIES,
) -> Revision:
    """Recover revised text, raising ``ResponseParseError`` if nothing usable remains."""
    raw = raw or ""
    record = extract_json_object(raw) or {}
    summary = record.get("improvementSummary") or record.get("improvement_summary") or ""
    changes = record.get("changes") if isinstance(record.get("changes"), list) else []

    for strategy in strategies:
        candidate = strategy(raw)
        if looks_like_prose(candidate, min_length):
            if strategy is not strategies[0]:
                logger.warning(f"Revision recovered with fallback strategy {strategy.__name__}")
            return Revision(
                text=candidate.strip(),
                summary=str(summary),
                changes=[str(c) for c in changes],
                strategy=strategy.__name__,
            )
    raise ResponseParseError("Could not extract revised text from the response")
