"""Session state publisher for pub/sub observers."""

import logging
from typing import Optional
from pubsub import pub
from ..models.transcription import ConnectionStatus

logger = logging.getLogger(__name__)


def _status_proto(status, error):
    """Message data of the status topic."""


def _transcript_proto(transcript):
    """Message data of the transcript topic."""


def _level_proto(level):
    """Message data of the level topic."""


def _analysis_proto(analysis):
    """Message data of the analysis topic."""


class SessionPublisher:
    """Publishes observable session fields using pubsub.pub.

    Topics under ``root``:
        status     (status: ConnectionStatus, error: Optional[str])
        transcript (transcript: str)
        level      (level: float)
        analysis   (analysis: str)
    """

    def __init__(self, root: str = "meetscribe_session"):
        """Initialize session publisher.

        Args:
            root: Topic root shared by all session topics
        """
        self.root = root
        self.status_topic = f"{root}.status"
        self.transcript_topic = f"{root}.transcript"
        self.level_topic = f"{root}.level"
        self.analysis_topic = f"{root}.analysis"

        topic_mgr = pub.getDefaultTopicMgr()
        topic_mgr.getOrCreateTopic(self.status_topic, _status_proto)
        topic_mgr.getOrCreateTopic(self.transcript_topic, _transcript_proto)
        topic_mgr.getOrCreateTopic(self.level_topic, _level_proto)
        topic_mgr.getOrCreateTopic(self.analysis_topic, _analysis_proto)
        logger.info(f"SessionPublisher initialized with topic root: {root}")

    def publish_status(self, status: ConnectionStatus, error: Optional[str]) -> None:
        pub.sendMessage(self.status_topic, status=status, error=error)
        logger.debug(f"Published status: {status.value} (error={error!r})")

    def publish_transcript(self, transcript: str) -> None:
        pub.sendMessage(self.transcript_topic, transcript=transcript)

    def publish_level(self, level: float) -> None:
        pub.sendMessage(self.level_topic, level=level)

    def publish_analysis(self, analysis: str) -> None:
        pub.sendMessage(self.analysis_topic, analysis=analysis)
