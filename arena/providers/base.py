"""Abstract base for all debater backends."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from arena.models import GenerationContext, Position


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


def system_prompt(context: GenerationContext) -> str:
    """Role framing sent alongside every prompt."""
    side = "in favor of" if context.position is Position.AFFIRMATIVE else "against"
    lines = [
        f"You are a debater arguing {side} the motion: \"{context.topic}\".",
        "Stay in role for the whole debate and never argue the other side.",
    ]
    if context.preparation_material:
        lines.append("Your private preparation notes:\n" + context.preparation_material)
    return "\n\n".join(lines)


class AIProvider(ABC):
    """Abstract base for all debater backends."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, context: GenerationContext) -> str:
        """Generate a reply for the given prompt.

        Args:
            prompt: The full prompt text to send.
            context: Position, round and prior statements for this turn.

        Returns:
            The generated text.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...

    def supports_streaming(self) -> bool:
        return False

    async def generate_stream(
        self,
        prompt: str,
        context: GenerationContext,
        on_chunk: Callable[[str], None],
    ) -> str:
        """Generate while reporting text chunks as they arrive.

        Backends without native streaming deliver the whole reply as one chunk.
        """
        text = await self.generate(prompt, context)
        on_chunk(text)
        return text
