"""Incremental extraction of the minutes section from streamed model output."""

import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

MINUTES_START = "[MINUTES_START]"
MINUTES_END = "[MINUTES_END]"
DEFAULT_TOPIC = "会議"

_MINUTES_PATTERN = re.compile(re.escape(MINUTES_START) + r"([\s\S]*?)(?:" + re.escape(MINUTES_END) + r"|$)")
_HEADING_PATTERN = re.compile(r"^#\s*(.+)$", re.MULTILINE)


class MinutesExtractor:
    """Accumulates streamed text and exposes the minutes section seen so far.

    `started` flips to True the first time non-empty content follows the
    opening marker; that is the moment the UI switches from "processing" to
    an editable draft.
    """

    def __init__(self):
        self.full_text = ""
        self.minutes = ""
        self.started = False
        self.complete = False

    def feed(self, chunk: str) -> Optional[str]:
        """Add a chunk of model output.

        Returns:
            The current minutes text, or None while the opening marker has not appeared
        """
        self.full_text += chunk
        match = _MINUTES_PATTERN.search(self.full_text)
        if not match:
            return None

        self.minutes = match.group(1).strip()
        self.complete = MINUTES_END in self.full_text[match.start():]
        if self.minutes and not self.started:
            self.started = True
            logger.info("Minutes section started streaming")
        return self.minutes


def extract_topic(minutes: str) -> str:
    """Topic taken from the first Markdown heading, without the word 議事録."""
    match = _HEADING_PATTERN.search(minutes or "")
    if not match:
        return DEFAULT_TOPIC
    topic = match.group(1).replace("議事録", "").strip()
    return topic or DEFAULT_TOPIC
