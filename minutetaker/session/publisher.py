"""Session event publisher for pub/sub observers."""

import logging
from pubsub import pub

from ..models.events import SessionEvent, TickEvent, AlertEvent

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes session events using pubsub.pub.

    Topics are derived from a prefix so several sessions (or tests) can run
    side by side: <prefix>.state, <prefix>.tick, <prefix>.time_up and
    <prefix>.alert. Every topic carries a single `event` argument.
    """

    def __init__(self, prefix: str = "session"):
        self.prefix = prefix
        self.state_topic = f"{prefix}.state"
        self.tick_topic = f"{prefix}.tick"
        self.time_up_topic = f"{prefix}.time_up"
        self.alert_topic = f"{prefix}.alert"
        logger.info(f"SessionPublisher initialized with prefix: {prefix}")

    def publish_state(self, event: SessionEvent) -> None:
        pub.sendMessage(self.state_topic, event=event)
        logger.debug(f"Published state event: {event.event_type} -> {event.state}")

    def publish_tick(self, event: TickEvent) -> None:
        pub.sendMessage(self.tick_topic, event=event)

    def publish_time_up(self, event: SessionEvent) -> None:
        pub.sendMessage(self.time_up_topic, event=event)
        logger.info(f"Published time-up at {event.elapsed_seconds:.1f}s")

    def publish_alert(self, event: AlertEvent) -> None:
        pub.sendMessage(self.alert_topic, event=event)
