"""Error definitions and policy helpers for the Pagewise translator."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises runtime errors to apply policy thresholds."""

    CONFIGURATION = auto()
    BACKEND = auto()
    STRUCTURE = auto()
    CONTENT = auto()
    OTHER = auto()


class PagewiseError(Exception):
    """Base exception for all custom errors."""


class NoContentError(PagewiseError):
    """Raised when a document holds nothing worth translating."""

    def __init__(
        self,
        message: str = "No translatable content found. Select an article or a text first.",
    ) -> None:
        super().__init__(message)


class BackendError(PagewiseError):
    """Raised when a translation backend fails for a single payload."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (status {self.status})"


class BackendConfigurationError(BackendError):
    """Raised when no usable backend is configured or reachable."""


class UnknownBackendError(BackendConfigurationError):
    """Raised when a backend key is not present in the registry."""


class SessionCancelled(PagewiseError):
    """Raised internally when a session was torn down mid-flight."""


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    region_index: Optional[int] = None
    details: Optional[str] = None


@dataclass(frozen=True)
class ErrorCounts:
    """Counters after registering one error."""

    consecutive: int
    total: int
    threshold_reached: bool


class ErrorTracker:
    """Counts failures in a row and per category across a session."""

    CONSECUTIVE_LIMIT = 3
    TOTAL_LIMIT = 10

    def __init__(self) -> None:
        self.by_category: Counter[ErrorCategory] = Counter()
        self.streak_category: Optional[ErrorCategory] = None
        self.consecutive = 0

    @property
    def total(self) -> int:
        return sum(self.by_category.values())

    def register(self, category: ErrorCategory) -> ErrorCounts:
        self.by_category[category] += 1
        if category is self.streak_category:
            self.consecutive += 1
        else:
            self.streak_category = category
            self.consecutive = 1
        total = self.total
        return ErrorCounts(
            consecutive=self.consecutive,
            total=total,
            threshold_reached=(
                self.consecutive >= self.CONSECUTIVE_LIMIT or total >= self.TOTAL_LIMIT
            ),
        )

    def reset_consecutive(self) -> None:
        """A section went through; the next failure starts a new streak."""

        self.streak_category = None
        self.consecutive = 0
