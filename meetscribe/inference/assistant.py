"""Meeting assistant: transcript analysis and grounded follow-up answers."""

import logging
from typing import Optional

from .aggregator import StreamingAggregator, PartialCallback
from .base import AbstractGenerationBackend, GenerationRequest
from .prompts import (
    ANALYSIS_SYSTEM_INSTRUCTIONS,
    CHAT_SYSTEM_INSTRUCTIONS,
    NO_CONTEXT_REFUSAL,
    build_analysis_prompt,
    build_chat_prompt,
)
from ..errors import PreconditionUnmetError

logger = logging.getLogger(__name__)

ANALYSIS_FALLBACK = "No analysis generated"
ANSWER_FALLBACK = "Sorry, I could not generate a response."


class MeetingAssistant:
    """Two call sites layered on one streaming aggregation mechanism."""

    def __init__(self,
                 backend: AbstractGenerationBackend,
                 analysis_max_tokens: int = 2000,
                 analysis_temperature: float = 0.3,
                 chat_max_tokens: int = 1000,
                 chat_temperature: float = 0.3):
        self.analysis_aggregator = StreamingAggregator(backend, fallback_text=ANALYSIS_FALLBACK)
        self.chat_aggregator = StreamingAggregator(backend, fallback_text=ANSWER_FALLBACK)
        self.analysis_max_tokens = analysis_max_tokens
        self.analysis_temperature = analysis_temperature
        self.chat_max_tokens = chat_max_tokens
        self.chat_temperature = chat_temperature

    async def analyze_transcript(self, transcript: str, on_partial: Optional[PartialCallback] = None) -> str:
        """Stream an analysis of the transcript.

        Raises:
            PreconditionUnmetError: If the transcript is blank (no request is made)
            InferenceError: If the generation backend fails
        """
        if not transcript.strip():
            raise PreconditionUnmetError("No transcript available for analysis")

        logger.info(f"Requesting analysis of {len(transcript.split())}-word transcript")
        request = GenerationRequest(
            system_instructions=ANALYSIS_SYSTEM_INSTRUCTIONS,
            user_prompt=build_analysis_prompt(transcript),
            max_output_tokens=self.analysis_max_tokens,
            temperature=self.analysis_temperature,
        )
        return await self.analysis_aggregator.run(request, on_partial)

    async def answer_question(self,
                              question: str,
                              transcript: str,
                              analysis: str,
                              on_partial: Optional[PartialCallback] = None) -> str:
        """Stream an answer grounded in the transcript and its analysis.

        Without a transcript, an analysis and a question this returns a
        refusal string instead of calling the backend.

        Raises:
            InferenceError: If the generation backend fails
        """
        if not transcript.strip() or not analysis.strip() or not question.strip():
            logger.info("Follow-up question refused: missing transcript, analysis or question")
            return NO_CONTEXT_REFUSAL

        request = GenerationRequest(
            system_instructions=CHAT_SYSTEM_INSTRUCTIONS,
            user_prompt=build_chat_prompt(question, transcript, analysis),
            max_output_tokens=self.chat_max_tokens,
            temperature=self.chat_temperature,
        )
        return await self.chat_aggregator.run(request, on_partial)
