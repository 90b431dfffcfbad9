"""Bounded translation cache."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

DEFAULT_CAPACITY = 100


class TranslationCache:
    """Maps source markup to translated markup, dropping the oldest entries.

    Instances are created by the host and handed to whatever needs them;
    there is no process-wide cache.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = max(0, capacity)
        self._entries: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, markup: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(markup)

    def set(self, markup: str, translation: str) -> None:
        if self.capacity == 0:
            return
        with self._lock:
            self._entries[markup] = translation
            self._entries.move_to_end(markup)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, markup: object) -> bool:
        return markup in self._entries
