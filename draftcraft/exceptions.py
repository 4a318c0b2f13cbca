"""Exception hierarchy for DraftCraft.

Errors fall into four groups: validation problems detected before any
provider call, provider failures, unrecoverable response parsing, and
persistence failures. Cancellation is not an error; ``GenerationCancelled``
only travels between an owned in-flight request and the pipeline that
started it.
"""

from typing import Optional


class DraftCraftError(Exception):
    """Base class for all DraftCraft errors."""


# ============================================================================
# Validation
# ============================================================================

class ValidationError(DraftCraftError):
    """Raised when an operation's preconditions are not met."""


class ChapterRequiredError(ValidationError):
    """No chapter is selected."""

    def __init__(self, message: str = "Select a chapter to use this feature."):
        super().__init__(message)


class SelectionRequiredError(ValidationError):
    """No text is selected in the editor."""

    def __init__(self, message: str = "Select the passage you want suggestions for."):
        super().__init__(message)


class ProviderNotConfiguredError(ValidationError):
    """The AI provider has no credentials."""

    def __init__(self, message: str = "AI settings are required. Configure an API key first."):
        super().__init__(message)


class NoChaptersError(ValidationError):
    """The project has no chapters to work on."""

    def __init__(self, message: str = "No chapters are defined. Create chapters before generating drafts."):
        super().__init__(message)


class EmptyDraftError(ValidationError):
    """The chapter draft is empty."""

    def __init__(self, message: str = "The chapter draft is empty."):
        super().__init__(message)


# ============================================================================
# Provider
# ============================================================================

# Checked in order; "rate limit" must win over the broader "limit".
_ERROR_KIND_MARKERS = (
    ("network", ("network", "fetch", "connection", "connect")),
    ("timeout", ("timeout", "timed out")),
    ("rate_limit", ("rate limit", "rate_limit", "429", "too many requests")),
    ("quota", ("quota", "limit", "exhausted", "credit")),
    ("auth", ("unauthorized", "401", "403", "api key", "authentication", "permission")),
)

_REMEDIATION_HINTS = {
    "network": "A network error occurred. Check your internet connection.",
    "timeout": "The request timed out. Wait a moment and try again.",
    "rate_limit": "The request rate limit was reached. Wait a little before retrying.",
    "quota": "The API usage limit was reached. Try again later or check your plan.",
    "auth": "The API key is invalid. Check the key in your AI settings.",
    "empty": "The AI returned an empty response. Try again.",
    "unknown": "Try again later. If the problem persists, generate chapters individually.",
}


def classify_provider_error(message: Optional[str]) -> str:
    """Map an error message to a provider error kind."""
    if not message:
        return "unknown"
    lowered = message.lower()
    for kind, markers in _ERROR_KIND_MARKERS:
        if any(marker in lowered for marker in markers):
            return kind
    return "unknown"


def remediation_hint(kind: str) -> str:
    """Return the user-facing remediation hint for an error kind."""
    return _REMEDIATION_HINTS.get(kind, _REMEDIATION_HINTS["unknown"])


class ProviderError(DraftCraftError):
    """Raised when the generation provider fails."""

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind or classify_provider_error(message)

    @property
    def hint(self) -> str:
        return remediation_hint(self.kind)

    def user_message(self, prefix: str = "") -> str:
        """Error text with the remediation hint appended."""
        head = f"{prefix}{self}" if prefix else str(self)
        return f"{head}\n\n{self.hint}"


# ============================================================================
# Parsing, persistence, cancellation
# ============================================================================

class ResponseParseError(DraftCraftError):
    """Raised when a model response cannot be turned into usable output."""


class PersistenceError(DraftCraftError):
    """Raised when storage fails during an explicit user action."""


class GenerationCancelled(DraftCraftError):
    """Raised when an owned in-flight request was cancelled on purpose."""
