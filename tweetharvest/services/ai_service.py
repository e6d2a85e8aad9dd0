"""
AI content-type analysis over an OpenAI-compatible chat completions API.

The service URL is normalized to end in ``/v1``. Results are requested in
JSON mode and parsed leniently (markdown fences are stripped).
"""

from __future__ import annotations

import json
import re
import time
from typing import Any

import structlog
from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, OpenAIError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tweetharvest.config.settings import Settings
from tweetharvest.core.exceptions import ClassificationError, ConfigurationError

logger = structlog.get_logger(__name__)


CONTENT_TYPE_ANALYSIS_PROMPT = """You are an experienced content editor. Analyze the type of the
content provided and explain your decision.

1. Judge the content type from the text and the image descriptions.
2. Content types:
    - Social media post: post
    - AI image-generation prompt: ai_draw
    - Article: article
3. Consider the keywords, the focus and the core message of the content.

**Output format:**

You must return JSON in exactly this format:
{
    "content_type": "post",
    "analysis_reason": "Why the content was judged to be a post",
    "content_type_score": 0.8
}"""


def normalize_service_url(url: str) -> str:
    """Strip trailing slashes and make sure the URL ends in ``/v1``."""
    url = url.rstrip("/")
    if not url.endswith("/v1"):
        url += "/v1"
    return url


def parse_json_reply(text: str) -> dict[str, Any]:
    """Parse a JSON object from a model reply.

    Raises:
        ValueError: If no JSON object can be found.
    """
    text = text.strip()

    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            raise ValueError(f"Could not parse JSON from response: {text[:500]}")
        parsed = json.loads(match.group())

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class AIService:
    """
    Chat-completions client used for content-type analysis.

    Usage:
        service = AIService.from_settings(get_settings())
        result = await service.content_type_analysis(prompt)
        result["content_type"]
    """

    def __init__(
        self,
        service_url: str,
        token: str,
        model: str = "gpt-3.5-turbo",
        timeout: float = 120,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.service_url = normalize_service_url(service_url)
        self.model = model
        self.timeout = timeout
        self._token = token
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> AIService:
        """Build the service from settings.

        Raises:
            ConfigurationError: If the URL or token is missing.
        """
        settings.require("ai_service_url", "ai_service_token")
        if settings.ai_service_url is None or settings.ai_service_token is None:
            raise ConfigurationError("AI service is not configured", "ai_service_url")
        return cls(
            service_url=settings.ai_service_url,
            token=settings.ai_service_token.get_secret_value(),
            model=settings.ai_service_model,
            timeout=settings.ai_service_timeout,
        )

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the async client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self.service_url,
                api_key=self._token,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type((APIConnectionError, APITimeoutError)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(2),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "ai_service_retry",
            attempt=retry_state.attempt_number,
        ),
    )
    async def chat_completion(
        self,
        system_prompt: str,
        user_messages: list[str],
        *,
        temperature: float = 0.7,
        format_json: bool = False,
    ) -> str:
        """Send one chat completion request and return the reply text."""
        messages: list[dict[str, str]] = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": "user", "content": m} for m in user_messages)

        kwargs: dict[str, Any] = {}
        if format_json:
            kwargs["response_format"] = {"type": "json_object"}

        started = time.monotonic()
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
        logger.info(
            "ai_service_completed",
            model=self.model,
            elapsed_seconds=round(time.monotonic() - started, 2),
        )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def content_type_analysis(self, content: str) -> dict[str, Any]:
        """Classify content.

        Returns:
            Dict with ``content_type``, ``analysis_reason`` and
            ``content_type_score``.

        Raises:
            ClassificationError: If the call fails or the reply is not a JSON object.
        """
        try:
            reply = await self.chat_completion(
                CONTENT_TYPE_ANALYSIS_PROMPT, [content], format_json=True
            )
        except OpenAIError as e:
            raise ClassificationError(
                f"AI service call failed: {e}",
                {"error_type": type(e).__name__},
            ) from e

        try:
            return parse_json_reply(reply)
        except ValueError as e:
            raise ClassificationError(f"Malformed AI reply: {e}") from e
