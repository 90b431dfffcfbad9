"""Shared fixtures: sample pages and scripted translation backends."""

import threading
from typing import Callable, Dict, List, Optional

import pytest

from pagewise.document import HtmlDocument
from pagewise.providers import BackendConfig, TranslationBackend
from pagewise.readaloud import TranscriptReadAloud


ARTICLE_PAGE = """<html><head><title>Example News</title><script>var tracker = 1;</script></head>
<body>
<nav class="main-nav"><a href="/">Home</a> <a href="/news">News</a></nav>
<article class="article-body">
<h1>City council approves new park</h1>
<p>The city council voted on Tuesday to build a new park next to the river.</p>
<p>Construction is expected to start next spring and take about two years.</p>
<div class="share-buttons">Share this story on social media</div>
</article>
<footer>Copyright 2024 Example News</footer>
</body></html>"""


THREE_ARTICLES_PAGE = """<html><body>
<article class="article">
<p>The first story explains how the new bus lines will connect the suburbs.</p>
</article>
<article class="article">
<p>The second story describes the weather forecast for the coming long weekend.</p>
</article>
<article class="article">
<p>The third story reports on the football club winning the regional cup final.</p>
</article>
</body></html>"""


def upper_text(markup: str) -> str:
    return markup.upper()


class ScriptedBackend(TranslationBackend):
    """Backend double driven by per-call scripts.

    ``failures`` maps a 1-based call number to the exception raised on that
    call; ``hooks`` maps a call number to a callable run before answering.
    """

    def __init__(
        self,
        transform: Callable[[str], object] = upper_text,
        *,
        failures: Optional[Dict[int, Exception]] = None,
        hooks: Optional[Dict[int, Callable[[], None]]] = None,
    ) -> None:
        self.transform = transform
        self.failures = failures or {}
        self.hooks = hooks or {}
        self.calls: List[str] = []
        self.configs: List[BackendConfig] = []
        self._lock = threading.Lock()

    def translate(self, markup, config):
        with self._lock:
            self.calls.append(markup)
            self.configs.append(config)
            number = len(self.calls)
        hook = self.hooks.get(number)
        if hook is not None:
            hook()
        failure = self.failures.get(number)
        if failure is not None:
            raise failure
        return self.transform(markup)


@pytest.fixture
def article_document():
    return HtmlDocument(ARTICLE_PAGE)


@pytest.fixture
def three_articles_document():
    return HtmlDocument(THREE_ARTICLES_PAGE)


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def read_aloud():
    return TranscriptReadAloud()


@pytest.fixture
def article_page():
    return ARTICLE_PAGE


@pytest.fixture
def make_backend():
    """Factory for backends with scripted failures and hooks."""

    return ScriptedBackend
