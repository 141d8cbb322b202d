"""OpenAI-compatible endpoints (xAI, DeepSeek, local Ollama) via the openai SDK."""

import os

from openai import AsyncOpenAI

from arena.providers.base import ProviderError
from arena.providers.openai_provider import OpenAIProvider
from config.config_loader import ModelConfig

# Local servers ignore the key but the SDK refuses to start without one
_KEYLESS_PLACEHOLDER = "not-needed"


class OpenAICompatibleProvider(OpenAIProvider):
    """Any chat-completions endpoint reachable at config.base_url."""

    def _build_client(self, config: ModelConfig) -> AsyncOpenAI:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for an OpenAI-compatible provider")
        if config.api_key_env:
            api_key = os.environ.get(config.api_key_env, "").strip()
            if not api_key:
                raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        else:
            api_key = _KEYLESS_PLACEHOLDER
        return AsyncOpenAI(api_key=api_key, base_url=config.base_url)
