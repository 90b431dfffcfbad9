"""Core data structures for the Pagewise translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RegionStatus(Enum):
    """Lifecycle of a single content region."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    TRANSLATED = "translated"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def terminal(self) -> bool:
        return self in {
            RegionStatus.TRANSLATED,
            RegionStatus.FAILED,
            RegionStatus.SKIPPED,
        }


class SessionStatus(Enum):
    """Lifecycle of a whole-document translation session."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass
class ContentRegion:
    """A candidate translatable unit located in the document tree."""

    index: int
    handle: int
    raw_markup: str
    cleaned_markup: str
    text: str = ""
    status: RegionStatus = RegionStatus.PENDING
    original_markup: Optional[str] = None
    translated_markup: Optional[str] = None
    chunks: Optional[List["Chunk"]] = None
    wrapper_handle: Optional[int] = None
    error: Optional[str] = None

    @property
    def toggleable(self) -> bool:
        return self.original_markup is not None and self.translated_markup is not None


@dataclass(frozen=True)
class Chunk:
    """A size-bounded markup fragment dispatched as one translation unit."""

    region_index: int
    order: int
    markup: str
    partial: bool = False


@dataclass
class SessionSummary:
    """Report returned once a session reaches a terminal status."""

    status: SessionStatus
    total_regions: int
    processed_regions: int
    translated_regions: int
    failed_regions: int
    skipped_regions: int
    total_chunks: int
    elapsed_seconds: float
    error_messages: List[str] = field(default_factory=list)
