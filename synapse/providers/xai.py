"""xAI Grok provider using openai SDK (OpenAI-compatible API)."""

import logging
import os

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from synapse.models import ErrorKind, ProviderReply, TokenUsage
from synapse.providers.base import AIProvider, ProviderError
from synapse.providers.openai_provider import classify_openai_error

logger = logging.getLogger(__name__)


class XAIProvider(AIProvider):
    """xAI Grok provider via OpenAI-compatible API."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, ErrorKind.UNAUTHORIZED, f"Missing API key: {config.api_key_env}")
        if not config.base_url:
            raise ProviderError(config.name, ErrorKind.MALFORMED_RESPONSE, "base_url is required for xAI provider")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def display_name(self) -> str:
        return self._config.display_name

    def model_string(self) -> str:
        return self._config.model

    async def invoke(self, prompt: str, model: str) -> ProviderReply:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._config.max_tokens,
            )
        except Exception as exc:
            raise ProviderError(self._config.name, classify_openai_error(exc), f"API call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, ErrorKind.MALFORMED_RESPONSE, "Empty response content")

        usage: TokenUsage | None = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        logger.debug("xAI %s: %s tokens", model, usage.total_tokens if usage else None)

        return ProviderReply(text=choice.message.content, model=model, usage=usage)
