"""Error handling policy implementation."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord, ErrorTracker

logger = logging.getLogger(__name__)


class ErrorPolicy:
    """Records recoverable errors without ever stopping the session.

    Only configuration-level failures on the very first dispatch end a
    session; the session checks :meth:`is_terminal` for that. Everything
    else is recorded here and processing moves on to the next region.
    """

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []
        self.tracker = ErrorTracker()
        self._warned = False

    def record_success(self) -> None:
        """Reset consecutive counters after successful work."""

        self.tracker.reset_consecutive()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        *,
        region_index: Optional[int] = None,
        details: Optional[str] = None,
    ) -> ErrorRecord:
        """Record an error and log it; returns the stored record."""

        record = ErrorRecord(
            category=category,
            message=message,
            region_index=region_index,
            details=details,
        )
        self.records.append(record)
        counts = self.tracker.register(category)

        if category is ErrorCategory.STRUCTURE:
            logger.info(message)
        else:
            logger.warning(message)
        if details:
            logger.debug("Error details for region %s: %s", region_index, details)

        if counts.threshold_reached and not self._warned:
            self._warned = True
            if counts.consecutive >= self.tracker.CONSECUTIVE_LIMIT:
                logger.warning(
                    "Repeated errors detected (%d in a row). Continuing with the "
                    "remaining sections.",
                    counts.consecutive,
                )
            else:
                logger.warning(
                    "%d errors encountered so far. Continuing with the remaining "
                    "sections.",
                    counts.total,
                )
        return record

    @staticmethod
    def is_terminal(category: ErrorCategory, *, first_dispatch: bool) -> bool:
        """Whether an error of ``category`` must end the whole session."""

        return category is ErrorCategory.CONFIGURATION and first_dispatch

    @property
    def messages(self) -> List[str]:
        return [record.message for record in self.records]
