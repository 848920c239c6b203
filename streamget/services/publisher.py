"""Session event publisher for pub/sub reporting."""

import logging
from pubsub import pub
from ..models.events import StateChangeEvent, ProgressEvent

logger = logging.getLogger(__name__)

STATE_TOPIC = "stream_state"
PROGRESS_TOPIC = "stream_progress"


class SessionEventPublisher:
    """Publishes session events using pubsub.pub."""

    def __init__(self, state_topic: str = STATE_TOPIC, progress_topic: str = PROGRESS_TOPIC):
        """Initialize session publisher.

        Args:
            state_topic: Pub/sub topic for state transitions
            progress_topic: Pub/sub topic for per-chunk progress
        """
        self.state_topic = state_topic
        self.progress_topic = progress_topic
        logger.debug(f"SessionEventPublisher initialized with topics: {state_topic}, {progress_topic}")

    def publish_state(self, event: StateChangeEvent) -> None:
        pub.sendMessage(self.state_topic, event=event)

    def publish_progress(self, event: ProgressEvent) -> None:
        pub.sendMessage(self.progress_topic, event=event)
