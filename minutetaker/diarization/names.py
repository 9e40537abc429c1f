"""Speaker name extraction from self-introductions."""

import re
from typing import Optional, Pattern, Protocol, Sequence

MAX_NAME_LENGTH = 10
_PUNCTUATION = re.compile(r"[。、！？!?]")

# Prefixed forms come first so "私は山田です" yields "山田", not "私は山田".
INTRO_PATTERNS = [
    re.compile(r"^私[は、](.{1,10})です"),
    re.compile(r"^はじめまして[、。]?(.{1,10})です"),
    re.compile(r"^よろしくお願いします[、。]?(.{1,10})です"),
    re.compile(r"^おはようございます[、。]?(.{1,10})です"),
    re.compile(r"^お疲れ様です[、。]?(.{1,10})です"),
    # affiliation prefix, e.g. "営業部の田中です"
    re.compile(r"^.{1,15}の(.{1,10})です"),
    re.compile(r"^.{1,15}から来ました(.{1,10})です"),
    re.compile(r"^(.{1,10})です[。、]?$"),
    re.compile(r"^(.{1,10})と申します"),
    re.compile(r"^(.{1,10})といいます"),
    re.compile(r"^(.{1,10})と言います"),
    re.compile(r"^(.{1,10})っていいます"),
]


class NameExtractor(Protocol):
    def extract_name(self, utterance: str) -> Optional[str]:
        ...


class IntroductionNameExtractor:
    """Picks a name out of phrases like "田中です" or "営業部の佐藤です".

    Heuristic only: the first matching pattern wins and the candidate must be
    1-10 characters without sentence punctuation.
    """

    def __init__(self, patterns: Sequence[Pattern] = INTRO_PATTERNS):
        self.patterns = list(patterns)

    def extract_name(self, utterance: str) -> Optional[str]:
        text = utterance.strip()
        for pattern in self.patterns:
            match = pattern.search(text)
            if not match or not match.group(1):
                continue
            name = match.group(1).strip()
            if 1 <= len(name) <= MAX_NAME_LENGTH and not _PUNCTUATION.search(name):
                return name
        return None
