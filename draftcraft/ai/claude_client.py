"""Claude AI client for DraftCraft."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import AISettings
from ..exceptions import ProviderError, ProviderNotConfiguredError, classify_provider_error

logger = logging.getLogger(__name__)

# Failures worth retrying; auth and bad requests fail fast.
TRANSIENT_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

SYSTEM_PROMPTS: Dict[str, str] = {
    "draft": "You are a professional novelist who writes vivid, consistent fiction.",
    "suggestion": "You are an experienced fiction editor who answers in the requested JSON format.",
    "critique": "You are a demanding fiction editor who evaluates drafts objectively.",
    "revise": "You are a professional novelist revising a draft to address an editor's critique.",
}


@dataclass
class GenerationResult:
    """Outcome of one generation call."""
    content: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.content)

    def to_error(self) -> ProviderError:
        if self.error:
            return ProviderError(self.error, self.error_kind)
        return ProviderError("The AI returned an empty response", "empty")


def error_kind(exc: BaseException) -> str:
    """Map an exception from the provider to an error kind."""
    if isinstance(exc, (anthropic.APITimeoutError, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, anthropic.APIConnectionError):
        return "network"
    if isinstance(exc, anthropic.RateLimitError):
        return "rate_limit"
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return "auth"
    return classify_provider_error(str(exc))


class ClaudeClient:
    """The generation collaborator, backed by the Claude API with streaming support."""

    def __init__(self, settings: Optional[AISettings] = None, client: Optional[AsyncAnthropic] = None):
        self.settings = settings or AISettings()
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self.settings.is_configured

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self.settings.api_key:
                raise ProviderNotConfiguredError()
            self._client = AsyncAnthropic(api_key=self.settings.api_key)
        return self._client

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _make_request(self, messages: List[Dict[str, str]], system: str, settings: AISettings) -> str:
        """Make a request to Claude API with retry logic and streaming support."""
        try:
            # Long generations stream so the connection is not held idle.
            if settings.max_tokens > 10000:
                return await self._make_streaming_request(messages, system, settings)
            response = await self.client.messages.create(
                model=settings.model,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                system=system,
                messages=messages,
                timeout=settings.timeout,
            )
            return "".join(block.text for block in response.content if getattr(block, "text", None))
        except TRANSIENT_ERRORS as e:
            logger.warning(f"API request failed, may retry: {e}")
            raise

    async def _make_streaming_request(self, messages: List[Dict[str, str]], system: str, settings: AISettings) -> str:
        """Make a streaming request to Claude API for long operations."""
        full_response = []
        async with self.client.messages.stream(
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            system=system,
            messages=messages,
        ) as stream:
            async for text in stream.text_stream:
                full_response.append(text)
        return "".join(full_response)

    async def generate_content(
        self,
        prompt: str,
        generation_type: str = "draft",
        settings: Optional[AISettings] = None,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Generate text for a prompt.

        Provider failures come back as ``GenerationResult.error`` with a
        classified ``error_kind``. Cancelling the calling task propagates.
        """
        settings = settings or self.settings
        system = SYSTEM_PROMPTS.get(generation_type, SYSTEM_PROMPTS["draft"])
        messages = [{"role": "user", "content": prompt}]
        try:
            request = self._make_request(messages, system, settings)
            if timeout:
                content = await asyncio.wait_for(request, timeout)
            else:
                content = await request
        except ProviderNotConfiguredError as e:
            return GenerationResult(error=str(e), error_kind="auth")
        except asyncio.TimeoutError:
            logger.error(f"{generation_type} request timed out after {timeout}s")
            return GenerationResult(error=f"Request timed out after {timeout} seconds", error_kind="timeout")
        except Exception as e:
            logger.error(f"{generation_type} request failed: {e}")
            return GenerationResult(error=str(e), error_kind=error_kind(e))

        if not content or not content.strip():
            return GenerationResult(error="The AI returned an empty response", error_kind="empty")
        return GenerationResult(content=content)
