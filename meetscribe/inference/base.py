"""Abstract base class for streaming text-generation backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator


@dataclass
class GenerationRequest:
    """A single streaming generation request."""
    system_instructions: str
    user_prompt: str
    max_output_tokens: int = 2000
    temperature: float = 0.3
    stream: bool = True


class AbstractGenerationBackend(ABC):
    """Abstract base class for generation backends."""

    @abstractmethod
    def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Issue the request and yield text deltas in order.

        Raises:
            InferenceError: On transport or backend failure
        """
        pass
