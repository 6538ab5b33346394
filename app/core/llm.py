"""LLM client utilities: text generation with timeouts and JSON extraction."""

import asyncio
import json
import re
from typing import Protocol

from langchain_openai import ChatOpenAI

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class GenerationError(Exception):
    """Text-generation call failed, timed out or returned nothing usable."""


class PageParseError(GenerationError):
    """Response did not contain a parseable JSON object."""


def get_llm(model: str | None = None, temperature: float = 0.7, max_tokens: int | None = None) -> ChatOpenAI:
    """
    Get configured chat model for the conversational reply.

    Args:
        model: Model name override (defaults to CHAT_MODEL)
        temperature: Sampling temperature
        max_tokens: Max tokens override (defaults to CHAT_MAX_TOKENS)

    Returns:
        ChatOpenAI instance configured with API key and model
    """
    settings = get_settings()

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.CHAT_MODEL,
        temperature=temperature,
        max_tokens=max_tokens or settings.CHAT_MAX_TOKENS,
    )


class TextGenerator(Protocol):
    """Anything that can turn a system + user prompt into text."""

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> str: ...


class AnthropicTextGenerator:
    """Anthropic Messages API client with a caller-enforced timeout."""

    def __init__(self, api_key: str | None = None, default_model: str | None = None):
        settings = get_settings()
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.default_model = default_model or settings.PAGE_MODEL
        self._client = None

    def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> str:
        """
        Run one generation call.

        Raises:
            GenerationError: On API errors, timeout, or an empty response
        """
        kwargs = {
            "model": model or self.default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await asyncio.wait_for(
                self._get_client().messages.create(**kwargs), timeout=timeout
            )
        except TimeoutError as e:
            raise GenerationError(f"Generation timed out after {timeout}s") from e
        except Exception as e:
            raise GenerationError(f"Generation call failed: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        if not text:
            raise GenerationError("Empty response from generation service")
        return text


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def extract_json_object(raw_output: str) -> dict:
    """
    Extract the first brace-delimited JSON object from LLM output.

    Tolerates code fences and prose before or after the object.

    Raises:
        PageParseError: If no object is found or it fails to parse
    """
    cleaned = _strip_llm_fences(raw_output)
    start = cleaned.find("{")
    if start == -1:
        raise PageParseError("No JSON object found in response")

    try:
        parsed, _ = json.JSONDecoder().raw_decode(cleaned[start:])
    except json.JSONDecodeError as e:
        raise PageParseError(f"Invalid JSON in response: {e}") from e

    if not isinstance(parsed, dict):
        raise PageParseError("Response JSON is not an object")
    return parsed
