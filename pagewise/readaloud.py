"""Read-aloud collaborator interface."""

from __future__ import annotations

from typing import List, Protocol


class ReadAloud(Protocol):
    """Receives the finished page text once a session completes."""

    def setup(self, plain_text: str, words: List[str]) -> None:
        ...


def split_words(text: str) -> List[str]:
    """Split text into the word list used for highlighting while reading."""

    return [word for word in text.split() if word.strip()]


class TranscriptReadAloud:
    """Keeps the last text it was given; used by the CLI and in tests."""

    def __init__(self) -> None:
        self.text = ""
        self.words: List[str] = []
        self.calls = 0

    def setup(self, plain_text: str, words: List[str]) -> None:
        self.text = plain_text
        self.words = list(words)
        self.calls += 1
