"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time
from collections.abc import Callable

from openai import AsyncOpenAI

from arena.models import GenerationContext
from arena.providers.base import AIProvider, ProviderError, system_prompt
from config.config_loader import ModelConfig

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        self._client = self._build_client(config)

    def _build_client(self, config: ModelConfig) -> AsyncOpenAI:
        api_key = os.environ.get(config.api_key_env or "", "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        return AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def supports_streaming(self) -> bool:
        return True

    def _messages(self, prompt: str, context: GenerationContext) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt(context)},
            {"role": "user", "content": prompt},
        ]

    async def generate(self, prompt: str, context: GenerationContext) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=self._messages(prompt, context),
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info(
            "%s %s/%s: %.2fs, %s tokens",
            self._config.name,
            context.round_type.value,
            context.position.value,
            time.monotonic() - start,
            token_count,
        )
        return choice.message.content

    async def generate_stream(
        self,
        prompt: str,
        context: GenerationContext,
        on_chunk: Callable[[str], None],
    ) -> str:
        parts: list[str] = []
        try:
            stream = await self._client.chat.completions.create(
                model=self._config.model,
                messages=self._messages(prompt, context),
                max_tokens=self._config.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    on_chunk(delta)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"Streaming call failed: {exc}") from exc

        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty streamed content")
        return content
