"""Audio publisher module for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


def _audio_frame_proto(event):
    """Message data of the audio frame topic."""


def _audio_level_proto(level):
    """Message data of the audio level topic."""


class AudioPublisher:
    """Publishes audio frames and input levels using pubsub.pub."""

    def __init__(self, root: str = "meetscribe_audio"):
        """Initialize audio publisher.

        Args:
            root: Topic root; frames go to <root>.frame and levels to <root>.level
        """
        self.audio_topic = f"{root}.frame"
        self.level_topic = f"{root}.level"

        topic_mgr = pub.getDefaultTopicMgr()
        topic_mgr.getOrCreateTopic(self.audio_topic, _audio_frame_proto)
        topic_mgr.getOrCreateTopic(self.level_topic, _audio_level_proto)
        logger.info(f"AudioPublisher initialized with topics: {self.audio_topic}, {self.level_topic}")

    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        """Publish an audio event to the frame topic."""
        pub.sendMessage(self.audio_topic, event=audio_event)

    def publish_level(self, level: float) -> None:
        """Publish the latest normalized input level."""
        pub.sendMessage(self.level_topic, level=level)
