"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time
from collections.abc import Callable

import anthropic as anthropic_sdk

from arena.models import GenerationContext
from arena.providers.base import AIProvider, ProviderError, system_prompt
from config.config_loader import ModelConfig

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env or "", "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def supports_streaming(self) -> bool:
        return True

    async def generate(self, prompt: str, context: GenerationContext) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    system=system_prompt(context),
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info(
            "Anthropic %s/%s: %.2fs, %s tokens",
            context.round_type.value,
            context.position.value,
            time.monotonic() - start,
            token_count,
        )
        return "\n".join(text_blocks)

    async def generate_stream(
        self,
        prompt: str,
        context: GenerationContext,
        on_chunk: Callable[[str], None],
    ) -> str:
        parts: list[str] = []
        try:
            async with self._client.messages.stream(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                system=system_prompt(context),
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    parts.append(text)
                    on_chunk(text)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"Streaming call failed: {exc}") from exc

        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty streamed content")
        return content
