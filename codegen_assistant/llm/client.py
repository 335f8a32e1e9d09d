"""Completion endpoint client with admission control, retry and timeouts."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from codegen_assistant.errors import (
    ConfigurationError,
    RequestTimeoutError,
    UpstreamError,
)
from codegen_assistant.llm.gate import AdmissionGate
from codegen_assistant.models.options import RequestOptions
from codegen_assistant.models.result import GenerateResult

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 0.5


def backoff_delay(attempt: int, base: float = RETRY_BASE_DELAY) -> float:
    """Seconds to wait after the given failed attempt (1-based)."""
    return base * 2 ** (attempt - 1)


def _first_choice(data: Mapping[str, Any]) -> Mapping[str, Any] | None:
    choices = data.get("choices")
    if isinstance(choices, Sequence) and not isinstance(choices, str) and choices:
        first = choices[0]
        if isinstance(first, Mapping):
            return first
    return None


def _choice_message_content(data: Mapping[str, Any]) -> Any:
    choice = _first_choice(data)
    if choice is None:
        return None
    message = choice.get("message")
    return message.get("content") if isinstance(message, Mapping) else None


def _choice_text(data: Mapping[str, Any]) -> Any:
    choice = _first_choice(data)
    return choice.get("text") if choice is not None else None


def _non_blank(value: Any) -> Any:
    return value if isinstance(value, str) and value.strip() else None


def _top_level_content(data: Mapping[str, Any]) -> Any:
    return _non_blank(data.get("content"))


def _top_level_result(data: Mapping[str, Any]) -> Any:
    return _non_blank(data.get("result"))


CONTENT_EXTRACTORS: Sequence[Callable[[Mapping[str, Any]], Any]] = (
    _choice_message_content,
    _choice_text,
    _top_level_content,
    _top_level_result,
)


def extract_content(data: Any) -> str:
    """Return the generated text from a decoded response body.

    Tries each known response shape in order and returns the first non-empty
    string. Choice fields are returned as given; the flat ``content`` and
    ``result`` fields must contain more than whitespace. Unknown shapes yield
    an empty string.
    """
    if not isinstance(data, Mapping):
        return ""

    for extractor in CONTENT_EXTRACTORS:
        value = extractor(data)
        if isinstance(value, str) and value:
            return value
    return ""


@dataclass(frozen=True, kw_only=True)
class LlmClient:
    """Client for a completion endpoint.

    Every ``generate`` call waits for a slot in a shared admission gate, then
    makes up to ``max_attempts`` sequential attempts, each bounded by the
    configured timeout.
    """

    options: RequestOptions
    session: aiohttp.ClientSession = field(repr=False)
    output: logging.Logger = field(default=log, repr=False)
    max_attempts: int = MAX_ATTEMPTS
    retry_base_delay: float = RETRY_BASE_DELAY
    gate: AdmissionGate = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "gate", AdmissionGate(self.options.max_concurrent_requests)
        )

    @classmethod
    @asynccontextmanager
    async def from_options(
        cls,
        options: RequestOptions,
        output: logging.Logger | None = None,
    ) -> AsyncGenerator["LlmClient", None]:
        """Create client with managed session lifecycle."""
        async with aiohttp.ClientSession() as session:
            yield cls(options=options, session=session, output=output or log)

    async def generate(self, prompt: str) -> GenerateResult:
        """Request a completion for the prompt.

        Raises:
            ConfigurationError: If the endpoint or credential is not set
            RequestTimeoutError: If the final attempt timed out
            UpstreamError: If the final attempt got a non-success status

        """
        if not self.options.api_url:
            raise ConfigurationError("API URL is not configured")
        if not self.options.api_key.get_secret_value():
            raise ConfigurationError("API key is not configured")

        async with self.gate:
            return await self._call_with_retry(prompt)

    async def _call_with_retry(self, prompt: str) -> GenerateResult:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._call(prompt)
            except Exception as exc:
                self.output.warning("Attempt %d failed: %s", attempt, exc)
                if attempt == self.max_attempts:
                    raise
                await asyncio.sleep(backoff_delay(attempt, self.retry_base_delay))

        raise RuntimeError("Unexpected retry failure")  # pragma: no cover

    async def _call(self, prompt: str) -> GenerateResult:
        payload = {
            "model": self.options.model,
            "prompt": prompt,
            "max_tokens": self.options.max_tokens,
            "temperature": self.options.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.options.api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

        try:
            async with asyncio.timeout(self.options.timeout):
                async with self.session.post(
                    self.options.api_url, json=payload, headers=headers
                ) as response:
                    if not response.ok:
                        raise UpstreamError(response.status, response.reason)
                    data = await response.json(content_type=None)
        except TimeoutError as exc:
            raise RequestTimeoutError("request timed out") from exc

        return GenerateResult(content=extract_content(data), raw=data)
