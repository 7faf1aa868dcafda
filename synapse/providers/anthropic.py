"""Anthropic Claude provider using anthropic SDK with native async."""

import logging
import os

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from synapse.models import ErrorKind, ProviderReply, TokenUsage
from synapse.providers.base import AIProvider, ProviderError, error_kind_for_status

logger = logging.getLogger(__name__)


def classify_anthropic_error(exc: Exception) -> ErrorKind:
    if isinstance(exc, anthropic_sdk.APITimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, anthropic_sdk.APIConnectionError):
        return ErrorKind.NETWORK_ERROR
    if isinstance(exc, anthropic_sdk.APIStatusError):
        return error_kind_for_status(exc.status_code)
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.MALFORMED_RESPONSE


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, ErrorKind.UNAUTHORIZED, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def display_name(self) -> str:
        return self._config.display_name

    def model_string(self) -> str:
        return self._config.model

    async def invoke(self, prompt: str, model: str) -> ProviderReply:
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=self._config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as exc:
            raise ProviderError(self._config.name, classify_anthropic_error(exc), f"API call failed: {exc}") from exc

        if not response.content:
            raise ProviderError(self._config.name, ErrorKind.MALFORMED_RESPONSE, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, ErrorKind.MALFORMED_RESPONSE, "No text blocks in response")

        usage: TokenUsage | None = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        logger.debug("Anthropic %s: %s tokens", model, usage.total_tokens if usage else None)

        return ProviderReply(text="\n".join(text_blocks), model=model, usage=usage)
