"""Session orchestrator tying live transcription to analysis and follow-up chat."""

import logging
from typing import List, Optional

from ..errors import InferenceError, PreconditionUnmetError
from ..inference.aggregator import PartialCallback
from ..inference.assistant import MeetingAssistant
from ..models.session import ChatMessage, SessionRecord
from ..models.transcription import ConnectionStatus
from ..storage.history_store import HistoryStore
from ..transcription.session import TranscriptionSession

logger = logging.getLogger(__name__)

ANALYSIS_APOLOGY = (
    "Sorry, I couldn't analyze the meeting transcript. "
    "Please check your OpenAI API key and try again."
)
CHAT_APOLOGY = "Sorry, I encountered an error. Please check your OpenAI API key."
CONNECTING_NOTICE = "Still connecting to speech recognition. Try again once the session is connected."


class SessionOrchestrator:
    """Thin coordinator over one transcription session and the meeting assistant.

    The analysis value is published on the session publisher's analysis
    topic on every partial and once more when the request completes.
    """

    def __init__(self,
                 session: TranscriptionSession,
                 assistant: MeetingAssistant,
                 store: Optional[HistoryStore] = None):
        """Initialize orchestrator.

        Args:
            session: Transcription session to drive
            assistant: Assistant producing analyses and answers
            store: Optional history store receiving analyzed meetings
        """
        self.session = session
        self.assistant = assistant
        self.store = store
        self.publisher = session.publisher

        self._analysis = ""
        self.session_analyses: List[str] = []
        self.chat_messages: List[ChatMessage] = []

    @property
    def status(self) -> ConnectionStatus:
        return self.session.status

    @property
    def transcript(self) -> str:
        return self.session.transcript

    @property
    def audio_level(self) -> float:
        return self.session.audio_level

    @property
    def error(self) -> Optional[str]:
        return self.session.error

    @property
    def analysis(self) -> str:
        return self._analysis

    @property
    def is_active(self) -> bool:
        return self.session.is_active

    def start_session(self) -> None:
        """Start recording a new meeting; the previous chat is cleared."""
        self.chat_messages = []
        self.session.start()

    def stop_session(self) -> None:
        self.session.stop()

    async def request_analysis(self,
                               transcript: Optional[str] = None,
                               on_partial: Optional[PartialCallback] = None) -> str:
        """Analyze the transcript (the live one by default).

        Returns:
            The analysis, or a notice/apology string when it cannot be produced
        """
        if self.session.status == ConnectionStatus.CONNECTING:
            logger.info("Analysis refused while the session is connecting")
            return CONNECTING_NOTICE

        transcript = self.session.transcript if transcript is None else transcript

        def report(partial: str) -> None:
            self._set_analysis(partial)
            if on_partial:
                on_partial(partial)

        try:
            result = await self.assistant.analyze_transcript(transcript, report)
        except PreconditionUnmetError as e:
            logger.warning(f"Analysis not requested: {e.reason}")
            return e.reason
        except InferenceError as e:
            logger.error(f"Analysis failed: {e.reason}")
            self._set_analysis(ANALYSIS_APOLOGY)
            return ANALYSIS_APOLOGY

        self._set_analysis(result)
        self.session_analyses.append(result)
        if self.store:
            try:
                self.store.save_record(transcript, result)
            except OSError as e:
                logger.error(f"Could not save meeting to history: {e}")
        return result

    async def request_answer(self,
                             question: str,
                             transcript: Optional[str] = None,
                             analysis: Optional[str] = None,
                             on_partial: Optional[PartialCallback] = None) -> str:
        """Answer a follow-up question about the meeting.

        Both the question and the reply are appended to ``chat_messages``.
        """
        transcript = self.session.transcript if transcript is None else transcript
        analysis = self._analysis if analysis is None else analysis

        self.chat_messages.append(ChatMessage(role="user", content=question))
        try:
            answer = await self.assistant.answer_question(question, transcript, analysis, on_partial)
        except InferenceError as e:
            logger.error(f"Chat message failed: {e.reason}")
            answer = CHAT_APOLOGY

        self.chat_messages.append(ChatMessage(role="assistant", content=answer))
        return answer

    def history(self) -> List[SessionRecord]:
        """Stored meetings, oldest first (empty without a store)."""
        if not self.store:
            return []
        return self.store.list_records()

    def _set_analysis(self, analysis: str) -> None:
        self._analysis = analysis
        self.publisher.publish_analysis(analysis)
