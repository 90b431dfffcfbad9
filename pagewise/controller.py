"""Host-side controller that owns sessions for a page."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .cache import TranslationCache
from .configuration import PagewiseConfig
from .document import HtmlDocument
from .errors import BackendConfigurationError, NoContentError
from .providers import BackendRegistry, TranslationBackend, build_backend
from .readaloud import ReadAloud
from .session import ProgressCallback, Session, SessionContext
from .structures import SessionSummary

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str], None]


class PageTranslator:
    """Starts, toggles and tears down translation sessions for one host.

    At most one session is current. Starting a new one or exiting
    translation mode cancels the previous session and restores the page
    first, so its late results and old wrappers never reach the next run.
    """

    def __init__(
        self,
        settings: PagewiseConfig,
        *,
        backend: Optional[TranslationBackend] = None,
        registry: Optional[BackendRegistry] = None,
        cache: Optional[TranslationCache] = None,
        read_aloud: Optional[ReadAloud] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.settings = settings
        if backend is None:
            if cache is None:
                cache = TranslationCache(settings.PAGEWISE_CACHE_SIZE)
            backend = build_backend(
                settings.PAGEWISE_PROVIDER,
                registry=registry,
                cache=cache,
            )
        self.backend = backend
        self.read_aloud = read_aloud
        self.on_progress = on_progress
        self.on_error = on_error
        self.session: Optional[Session] = None

    def build_context(self) -> SessionContext:
        return SessionContext(
            backend=self.backend,
            backend_config=self.settings.backend_config(),
            thresholds=self.settings.locator_thresholds(),
            max_chunk_chars=self.settings.PAGEWISE_MAX_CHUNK_CHARS,
            compare_view=self.settings.PAGEWISE_COMPARE_VIEW,
            read_aloud=self.read_aloud,
            on_progress=self.on_progress,
        )

    async def start(self, document: HtmlDocument) -> SessionSummary:
        """Translate every content region of ``document``.

        Terminal errors are presented once through ``on_error`` and are
        reflected in the returned summary's status.
        """

        previous, self.session = self.session, None
        if previous is not None:
            previous.cancel()
            previous.restore()
        session = Session(document, self.build_context())
        self.session = session
        try:
            return await session.run()
        except (NoContentError, BackendConfigurationError) as exc:
            self._present_error(str(exc))
            return session.summary()

    def toggle(self) -> Optional[bool]:
        """Switch between original and translated rendering."""

        if self.session is None:
            return None
        return self.session.toggle()

    def exit(self) -> None:
        """Leave translation mode and restore the original page."""

        session, self.session = self.session, None
        if session is None:
            return
        session.cancel()
        session.restore()

    def _present_error(self, message: str) -> None:
        logger.error("Translation error: %s", message)
        if self.on_error is not None:
            self.on_error(message)
