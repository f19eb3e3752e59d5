"""Thin client for the hosted text-generation API used by post creation."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Protocol

import httpx
from fastapi import status
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..errors import ServiceError

logger = logging.getLogger("content")

DEFAULT_SUBJECT = "The future of AI technology"
DEFAULT_TONE = "professional"
IDEAS_REQUEST_TYPE = "askai"


class ContentGenerationFailed(ServiceError):
    code = "content_generation_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Content generation failed."


class ContentConfigurationError(ServiceError):
    code = "content_misconfigured"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server misconfiguration: text generation API key missing"


@dataclass(frozen=True)
class ContentConfig:
    api_key: Optional[str]
    model: str
    api_base: Optional[str]
    timeout: float


def load_content_config(env: Optional[Mapping[str, str]] = None) -> ContentConfig:
    """Load :class:`ContentConfig` from environment variables."""

    env_mapping = os.environ if env is None else env
    api_key = (env_mapping.get("GEMINI_API_KEY") or env_mapping.get("GOOGLE_API_KEY") or "").strip() or None
    raw_timeout = env_mapping.get("CONTENT_TIMEOUT") or "30"
    try:
        timeout = float(raw_timeout)
    except ValueError as exc:
        raise ValueError(f"Expected float value, got {raw_timeout!r}") from exc
    return ContentConfig(
        api_key=api_key,
        model=env_mapping.get("GEMINI_MODEL", "gemini-2.0-flash"),
        api_base=(env_mapping.get("GEMINI_API_BASE") or "").strip() or None,
        timeout=timeout,
    )


def build_prompt(
    *,
    request_type: Optional[str] = None,
    topic: Optional[str] = None,
    tone: Optional[str] = None,
    prompt: Optional[str] = None,
    category: Optional[str] = None,
) -> str:
    subject = prompt or topic or category or DEFAULT_SUBJECT

    if request_type == IDEAS_REQUEST_TYPE:
        return (
            "Return ONLY valid JSON.\n"
            "Generate 3 LinkedIn post ideas for:\n"
            f'"{subject}"\n\n'
            '{\n  "ideas": [\n    { "title": "", "topic": "", "tone": "" }\n  ]\n}'
        )

    return (
        "Write a professional LinkedIn post.\n\n"
        f"Topic: {subject}\n"
        f"Tone: {tone or DEFAULT_TONE}\n\n"
        "Rules:\n"
        "- Strong hook\n"
        "- Short paragraphs\n"
        "- Emojis\n"
        "- CTA at end\n"
    )


class ContentGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


def _extract_text(response: Any) -> Optional[str]:
    if not getattr(response, "candidates", None):
        return None
    text = (response.text or "").strip()
    return text or None


class GeminiContentGenerator:
    """Calls ``models.generate_content`` and returns the first candidate's text."""

    def __init__(self, config: ContentConfig, *, client: Optional[genai.Client] = None) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._config.api_key:
                raise ContentConfigurationError()
            http_options = genai_types.HttpOptions(
                base_url=self._config.api_base,
                timeout=int(self._config.timeout * 1000),
            )
            self._client = genai.Client(api_key=self._config.api_key, http_options=http_options)
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.models.generate_content(model=self._config.model, contents=prompt)
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.warning(
                "Text generation request failed",
                extra={"content_model": self._config.model, "error": str(exc)},
            )
            raise ContentGenerationFailed() from exc

        text = _extract_text(response)
        if text is None:
            logger.warning("Text generation returned no candidates", extra={"content_model": self._config.model})
            raise ContentGenerationFailed("The model returned no content.")
        return text


@lru_cache(maxsize=1)
def get_content_generator() -> ContentGenerator:
    return GeminiContentGenerator(load_content_config())


__all__ = [
    "ContentConfig",
    "ContentConfigurationError",
    "ContentGenerationFailed",
    "ContentGenerator",
    "GeminiContentGenerator",
    "build_prompt",
    "get_content_generator",
    "load_content_config",
]
