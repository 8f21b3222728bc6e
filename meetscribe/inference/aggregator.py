"""Streaming aggregation of generation deltas into one growing text value."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .base import AbstractGenerationBackend, GenerationRequest
from ..errors import ErrorKind, InferenceError

logger = logging.getLogger(__name__)

PartialCallback = Callable[[str], None]


@dataclass
class StreamingAggregate:
    """Text accumulated by one in-flight request."""
    accumulated: str = ""
    deltas: int = 0

    def append(self, delta: str) -> str:
        self.accumulated += delta
        self.deltas += 1
        return self.accumulated


class StreamingAggregator:
    """Consumes a backend's delta stream and reports the full text so far."""

    def __init__(self, backend: AbstractGenerationBackend, fallback_text: str = ""):
        """Initialize aggregator.

        Args:
            backend: Generation backend to stream from
            fallback_text: Returned when the stream completes without any text
        """
        self.backend = backend
        self.fallback_text = fallback_text

    async def run(self, request: GenerationRequest, on_partial: Optional[PartialCallback] = None) -> str:
        """Issue one streaming request and return the complete text.

        Args:
            request: Generation request
            on_partial: Called with the full accumulated text after every delta

        Returns:
            The concatenated deltas, or the fallback text if there were none

        Raises:
            InferenceError: If the stream fails; partial text is discarded
        """
        aggregate = StreamingAggregate()
        try:
            async for delta in self.backend.stream(request):
                if not delta:
                    continue
                text = aggregate.append(delta)
                if on_partial:
                    on_partial(text)
        except InferenceError as e:
            logger.error(f"Generation stream failed after {aggregate.deltas} deltas: {e.reason}")
            raise
        except Exception as e:
            logger.error(f"Generation stream failed after {aggregate.deltas} deltas: {e}", exc_info=True)
            raise InferenceError(str(e), ErrorKind.UNKNOWN) from e

        logger.debug(f"Generation stream complete: {aggregate.deltas} deltas, {len(aggregate.accumulated)} chars")
        return aggregate.accumulated or self.fallback_text
