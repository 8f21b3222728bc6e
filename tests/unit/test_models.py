"""Unit tests for data models and the error taxonomy."""

import time
from datetime import datetime

import pytest

from meetscribe.errors import ErrorKind, USER_MESSAGES, user_message
from meetscribe.models.events import AudioEvent
from meetscribe.models.session import ChatMessage, SessionRecord
from meetscribe.models.transcription import Transcript, TranscriptSegment


@pytest.mark.unit
class TestTranscript:

    def test_visible_text_is_committed_plus_pending(self):
        transcript = Transcript()

        transcript.apply(TranscriptSegment("good"))
        transcript.apply(TranscriptSegment("good morning"))
        assert transcript.text == "good morning"

        transcript.apply(TranscriptSegment("Good morning.", final=True))
        transcript.apply(TranscriptSegment("let's"))

        assert transcript.committed == "Good morning. "
        assert transcript.pending == "let's"
        assert transcript.text == "Good morning. let's"

    def test_empty_final_clears_pending_without_separator(self):
        transcript = Transcript()
        transcript.apply(TranscriptSegment("Hello.", final=True))
        transcript.apply(TranscriptSegment("uh"))

        transcript.apply(TranscriptSegment("", final=True))

        assert transcript.committed == "Hello. "
        assert transcript.pending == ""
        assert transcript.text == "Hello. "

    def test_discard_pending(self):
        transcript = Transcript()
        assert transcript.discard_pending() is False

        transcript.apply(TranscriptSegment("maybe"))
        assert transcript.discard_pending() is True
        assert transcript.text == ""


@pytest.mark.unit
class TestSessionModels:

    def test_record_serialization(self):
        record = SessionRecord(id="1714560000000_ab12", timestamp=datetime(2024, 5, 1, 12, 0),
                               transcript="t", analysis="a")

        data = record.to_dict()

        assert data["timestamp"] == "2024-05-01T12:00:00"
        assert SessionRecord.from_dict(data) == record

    def test_record_is_immutable(self):
        record = SessionRecord(id="1", timestamp=datetime.now(), transcript="t", analysis="a")

        with pytest.raises(AttributeError):
            record.transcript = "changed"

    def test_chat_message_gets_id(self):
        message = ChatMessage(role="user", content="hi")

        assert message.id.startswith(str(int(message.timestamp.timestamp() * 1000)))


@pytest.mark.unit
class TestAudioEvent:

    def test_duration_from_pcm16(self):
        event = AudioEvent("chunk_1", b'\x00' * 9600, time.time(), 1, sample_rate=48000)

        assert event.chunk_duration_ms == pytest.approx(100.0)

    def test_duration_stereo(self):
        event = AudioEvent("chunk_1", b'\x00' * 6400, time.time(), 1, sample_rate=16000, channels=2)

        assert event.chunk_duration_ms == pytest.approx(100.0)


@pytest.mark.unit
class TestUserMessages:

    def test_every_known_kind_has_message(self):
        for kind in ErrorKind:
            if kind is ErrorKind.UNKNOWN:
                continue
            assert user_message(kind) == USER_MESSAGES[kind]

    def test_unknown_uses_detail(self):
        assert user_message(ErrorKind.UNKNOWN, "codec") == "Speech recognition error: codec"
        assert user_message(ErrorKind.UNKNOWN) == "Speech recognition error"
