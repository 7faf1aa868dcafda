"""Gemini provider using google-genai SDK with native async."""

import logging
import os

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from synapse.models import ErrorKind, ProviderReply, TokenUsage
from synapse.providers.base import AIProvider, ProviderError, error_kind_for_status

logger = logging.getLogger(__name__)


def classify_gemini_error(exc: Exception) -> ErrorKind:
    if isinstance(exc, genai_errors.APIError):
        return error_kind_for_status(exc.code)
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.MALFORMED_RESPONSE


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, ErrorKind.UNAUTHORIZED, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def display_name(self) -> str:
        return self._config.display_name

    def model_string(self) -> str:
        return self._config.model

    async def invoke(self, prompt: str, model: str) -> ProviderReply:
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    max_output_tokens=self._config.max_tokens,
                ),
            )
        except Exception as exc:
            raise ProviderError(self._config.name, classify_gemini_error(exc), f"API call failed: {exc}") from exc

        if not response.text:
            raise ProviderError(self._config.name, ErrorKind.MALFORMED_RESPONSE, "Empty response text")

        usage: TokenUsage | None = None
        if response.usage_metadata:
            meta = response.usage_metadata
            usage = TokenUsage(
                prompt_tokens=meta.prompt_token_count or 0,
                completion_tokens=meta.candidates_token_count or 0,
                total_tokens=meta.total_token_count or 0,
            )

        logger.debug("Gemini %s: %s tokens", model, usage.total_tokens if usage else None)

        return ProviderReply(text=response.text, model=model, usage=usage)
