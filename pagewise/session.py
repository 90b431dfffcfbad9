"""Sequential translate-and-reinsert pipeline for one document."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .chunker import DEFAULT_MAX_CHARS, Chunker
from .document import HtmlDocument
from .errors import (
    BackendConfigurationError,
    BackendError,
    ErrorCategory,
    NoContentError,
    PagewiseError,
    SessionCancelled,
)
from .locator import ContentLocator, LocatorThresholds
from .policy import ErrorPolicy
from .providers import BackendConfig, TranslationBackend
from .readaloud import ReadAloud, split_words
from .sanitizer import SanitizationProfile, markup_text, normalize_whitespace, sanitize
from .structures import (
    Chunk,
    ContentRegion,
    RegionStatus,
    SessionStatus,
    SessionSummary,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SessionContext:
    """Everything a session needs, created per session by the host."""

    backend: TranslationBackend
    backend_config: BackendConfig = field(default_factory=BackendConfig)
    thresholds: LocatorThresholds = field(default_factory=LocatorThresholds)
    max_chunk_chars: int = DEFAULT_MAX_CHARS
    compare_view: bool = False
    read_aloud: Optional[ReadAloud] = None
    on_progress: Optional[ProgressCallback] = None
    busy_label: str = "Translating..."


class Session:
    """Drives every located region through the backend, one at a time.

    ``initialize()`` locates content; ``run()`` walks the regions with a
    monotonic cursor. The backend call is the only ``await`` in the loop,
    and every handle is re-validated after it before the tree is touched.
    """

    def __init__(self, document: HtmlDocument, context: SessionContext) -> None:
        self.document = document
        self.context = context
        self.status = SessionStatus.INITIALIZING
        self.regions: List[ContentRegion] = []
        self.cursor = 0
        self.policy = ErrorPolicy()
        self.locator = ContentLocator(context.thresholds)
        self.chunker = Chunker(context.max_chunk_chars)
        self.error: Optional[PagewiseError] = None
        self.showing_translation = True
        self.cancelled = False
        self._dispatches = 0
        self._busy_handle: Optional[int] = None
        self._current: Optional[ContentRegion] = None
        self._started: Optional[float] = None
        self._finished: Optional[float] = None

    @property
    def total(self) -> int:
        return len(self.regions)

    # --- Lifecycle ---------------------------------------------------------

    def initialize(self) -> List[ContentRegion]:
        """Locate content regions; raises :class:`NoContentError` if none."""

        self._started = time.monotonic()
        self.regions = self.locator.locate(self.document)
        logger.info("Found %d sections to translate", len(self.regions))
        if not self.regions:
            self._finish(SessionStatus.ERRORED)
            self.error = NoContentError()
            raise self.error
        self.status = SessionStatus.RUNNING
        self._report_progress()
        return self.regions

    async def run(self) -> SessionSummary:
        """Process every region and return the final summary.

        Only :class:`NoContentError` and a configuration error on the first
        dispatch escape; everything else is recorded per region.
        """

        if self.status is SessionStatus.INITIALIZING:
            self.initialize()
        if self.status is not SessionStatus.RUNNING:
            return self.summary()

        while self.cursor < len(self.regions):
            if self.cancelled:
                return self.summary()
            region = self.regions[self.cursor]
            try:
                await self._process(region)
            except SessionCancelled:
                logger.debug("Discarding result for section %d after cancel", region.index + 1)
                return self.summary()
            self.cursor += 1
            self._report_progress()

        self._complete()
        return self.summary()

    def cancel(self) -> None:
        """Tear the session down; late backend results are dropped."""

        if self.cancelled:
            return
        self.cancelled = True
        self._clear_busy()
        region = self._current
        if region is not None and region.status is RegionStatus.IN_FLIGHT:
            self._discard_wrapper(region)
            region.status = RegionStatus.SKIPPED
        for pending in self.regions:
            if pending.status is RegionStatus.PENDING:
                pending.status = RegionStatus.SKIPPED
        logger.info("Translation session cancelled")

    # --- Region processing -------------------------------------------------

    async def _process(self, region: ContentRegion) -> None:
        if not self.document.is_attached(region.handle):
            self._skip(region, "is no longer part of the page")
            return

        self._current = region
        region.original_markup = self.document.inner_markup(region.handle)
        self._busy_handle = self.document.attach_busy(region.handle, self.context.busy_label)
        region.status = RegionStatus.IN_FLIGHT
        if region.chunks is None:
            region.chunks = self.chunker.chunk(region)
        logger.info(
            "Translating section %d of %d (%d chunk(s))",
            region.index + 1,
            self.total,
            len(region.chunks),
        )

        translated: List[str] = []
        for chunk in region.chunks:
            try:
                result = await self._dispatch(chunk)
            except BackendConfigurationError as exc:
                if self.cancelled:
                    raise SessionCancelled() from exc
                if self.policy.is_terminal(
                    ErrorCategory.CONFIGURATION, first_dispatch=self._dispatches == 1
                ):
                    self._abort(region, exc)
                    raise
                self._fail(region, ErrorCategory.CONFIGURATION, exc, chunk)
                return
            except BackendError as exc:
                if self.cancelled:
                    raise SessionCancelled() from exc
                self._fail(region, ErrorCategory.BACKEND, exc, chunk)
                return

            if self.cancelled:
                raise SessionCancelled()
            if not self.document.is_attached(region.handle):
                self._clear_busy()
                self._discard_wrapper(region)
                self._skip(region, "disappeared while its translation was in flight")
                return
            translated.append(result)
            self._reinsert(region, result)

        self._clear_busy()
        region.translated_markup = "".join(translated)
        region.status = RegionStatus.TRANSLATED
        self._render(region)
        self.policy.record_success()
        self._current = None

    async def _dispatch(self, chunk: Chunk) -> str:
        payload = normalize_whitespace(chunk.markup)
        self._dispatches += 1
        try:
            result = await asyncio.to_thread(
                self.context.backend.translate,
                payload,
                self.context.backend_config,
            )
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(f"Unexpected backend failure: {exc}") from exc
        if not isinstance(result, str):
            raise BackendError("Backend returned a non-text translation.")
        return sanitize(result, SanitizationProfile.STANDARD)

    def _reinsert(self, region: ContentRegion, markup: str) -> None:
        if region.wrapper_handle is None:
            region.wrapper_handle = self.document.insert_after(
                region.handle, markup, region_index=region.index
            )
        elif not self.document.append_markup(region.wrapper_handle, markup):
            region.wrapper_handle = self.document.insert_after(
                region.handle, markup, region_index=region.index
            )

    def _skip(self, region: ContentRegion, reason: str) -> None:
        region.status = RegionStatus.SKIPPED
        region.error = f"Section {region.index + 1} {reason}; skipped."
        self.policy.handle_error(
            ErrorCategory.STRUCTURE,
            region.error,
            region_index=region.index,
        )
        self._current = None

    def _fail(
        self,
        region: ContentRegion,
        category: ErrorCategory,
        exc: BackendError,
        chunk: Chunk,
    ) -> None:
        self._clear_busy()
        self._discard_wrapper(region)
        region.status = RegionStatus.FAILED
        region.error = str(exc)
        self.policy.handle_error(
            category,
            f"Could not translate section {region.index + 1}: {exc}",
            region_index=region.index,
            details=f"chunk {chunk.order + 1}/{len(region.chunks or [])}, {len(chunk.markup)} chars",
        )
        self._current = None

    def _abort(self, region: ContentRegion, exc: BackendConfigurationError) -> None:
        self._clear_busy()
        self._discard_wrapper(region)
        region.status = RegionStatus.FAILED
        region.error = str(exc)
        for pending in self.regions[region.index + 1:]:
            pending.status = RegionStatus.SKIPPED
        self.error = exc
        self._current = None
        self._finish(SessionStatus.ERRORED)
        logger.error("Translation aborted: %s", exc)

    def _complete(self) -> None:
        self._finish(SessionStatus.COMPLETED)
        summary = self.summary()
        logger.info(
            "Translation complete: %d translated, %d failed, %d skipped",
            summary.translated_regions,
            summary.failed_regions,
            summary.skipped_regions,
        )
        if self.context.read_aloud is None:
            return
        texts = []
        for region in self.regions:
            if region.translated_markup is not None:
                texts.append(markup_text(region.translated_markup))
            else:
                texts.append(region.text)
        plain_text = " ".join(text for text in texts if text)
        self.context.read_aloud.setup(plain_text, split_words(plain_text))

    def _finish(self, status: SessionStatus) -> None:
        self.status = status
        self._finished = time.monotonic()

    # --- Rendering ---------------------------------------------------------

    def toggle(self) -> bool:
        """Swap every translated region between original and translation.

        Never contacts the backend. Returns ``True`` when translations are
        now showing.
        """

        self.showing_translation = not self.showing_translation
        for region in self.regions:
            if region.toggleable:
                self._render(region)
        return self.showing_translation

    def restore(self) -> None:
        """Remove inserted translations and show every original again."""

        self._clear_busy()
        for region in self.regions:
            self._discard_wrapper(region)
            self.document.set_hidden(region.handle, False)
        self.showing_translation = False

    def _render(self, region: ContentRegion) -> None:
        if region.wrapper_handle is None:
            return
        show = self.showing_translation
        self.document.set_hidden(region.wrapper_handle, not show)
        self.document.set_hidden(region.handle, show and not self.context.compare_view)

    def _discard_wrapper(self, region: ContentRegion) -> None:
        if region.wrapper_handle is not None:
            self.document.remove(region.wrapper_handle)
            region.wrapper_handle = None

    def _clear_busy(self) -> None:
        if self._busy_handle is not None:
            self.document.remove(self._busy_handle)
            self._busy_handle = None

    # --- Reporting ---------------------------------------------------------

    def _report_progress(self) -> None:
        if self.context.on_progress is not None:
            self.context.on_progress(self.cursor, self.total)

    def summary(self) -> SessionSummary:
        def count(status: RegionStatus) -> int:
            return sum(1 for region in self.regions if region.status is status)

        end = self._finished if self._finished is not None else time.monotonic()
        start = self._started if self._started is not None else end
        return SessionSummary(
            status=self.status,
            total_regions=self.total,
            processed_regions=self.cursor,
            translated_regions=count(RegionStatus.TRANSLATED),
            failed_regions=count(RegionStatus.FAILED),
            skipped_regions=count(RegionStatus.SKIPPED),
            total_chunks=sum(len(region.chunks or []) for region in self.regions),
            elapsed_seconds=end - start,
            error_messages=self.policy.messages,
        )
