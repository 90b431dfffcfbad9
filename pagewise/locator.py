"""Heuristic discovery of translatable content regions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from bs4 import Tag

from .document import BUSY_CLASS, TRANSLATION_CLASS, HtmlDocument
from .sanitizer import (
    SanitizationProfile,
    is_excluded,
    sanitize,
    visible_text,
    word_count,
)
from .structures import ContentRegion

logger = logging.getLogger(__name__)

MAIN_SELECTORS: Sequence[str] = (
    'article[class*="article"]',
    'article[class*="content"]',
    'div[class*="article"]',
    'div[class*="content"]',
    "main",
    '[role="main"]',
    '[role="article"]',
    "article",
    ".article",
    ".content",
    ".post",
    ".entry-content",
)

NESTED_PARAGRAPH_SELECTORS: Sequence[str] = (
    "article p",
    ".article p",
    ".content p",
    ".post-content p",
    ".entry-content p",
    "main p",
    ".post > p",
    ".story p",
)

PARAGRAPH_SELECTORS: Sequence[str] = ("p",)

DENSE_BLOCK_SELECTORS: Sequence[str] = ("div", "section", "td")

CONTENT_HINTS: Sequence[str] = (
    "text", "content", "article", "story", "post",
    "body", "entry", "main", "description",
)


@dataclass(frozen=True)
class LocatorThresholds:
    """Minimum text required at each stage of the cascade."""

    main_min_words: int = 10
    nested_min_words: int = 5
    paragraph_min_words: int = 3
    dense_min_chars: int = 50
    dense_min_words: int = 10
    dense_max_children: int = 5


def _hints(tag: Tag) -> List[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    hints = [cls.lower() for cls in classes]
    if tag.get("id"):
        hints.append(str(tag["id"]).lower())
    return hints


def has_content_hint(tag: Tag) -> bool:
    return any(
        pattern in hint for hint in _hints(tag) for pattern in CONTENT_HINTS
    )


def is_inserted(tag: Tag) -> bool:
    """Whether ``tag`` sits inside a translation or busy placeholder we added."""

    for node in (tag, *tag.parents):
        classes = node.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        if TRANSLATION_CLASS in classes or BUSY_CLASS in classes:
            return True
    return False


def _outermost(nodes: Sequence[Tag]) -> List[Tag]:
    """Drop candidates nested inside another candidate, keeping order."""

    chosen = {id(node) for node in nodes}
    result = []
    for node in nodes:
        if any(id(parent) in chosen for parent in node.parents):
            continue
        result.append(node)
    return result


class ContentLocator:
    """Runs an ordered cascade of structural heuristics over a document.

    The first stage that yields at least one qualifying node wins. Stages
    one to four filter out boilerplate; the last resort takes the whole
    body as a single region.
    """

    def __init__(self, thresholds: Optional[LocatorThresholds] = None) -> None:
        self.thresholds = thresholds or LocatorThresholds()

    def locate(self, document: HtmlDocument) -> List[ContentRegion]:
        stages: Sequence[tuple[str, Callable[[HtmlDocument], List[Tag]]]] = (
            ("main containers", self._main_containers),
            ("nested paragraphs", self._nested_paragraphs),
            ("paragraphs", self._paragraphs),
            ("dense blocks", self._dense_blocks),
        )
        for name, stage in stages:
            nodes = self._filter(stage(document))
            if nodes:
                logger.debug("Content located by stage '%s': %d nodes", name, len(nodes))
                regions = self._build_regions(document, nodes)
                if regions:
                    return regions

        logger.debug("Falling back to the whole document body")
        return self._build_regions(document, self._last_resort(document))

    # --- Stages ------------------------------------------------------------

    def _first_selector_match(
        self,
        document: HtmlDocument,
        selectors: Sequence[str],
        min_words: int,
    ) -> List[Tag]:
        for selector in selectors:
            matches = [
                node
                for node in document.select(selector)
                if word_count(visible_text(node)) >= min_words
            ]
            if matches:
                logger.debug("Selector '%s' matched %d nodes", selector, len(matches))
                return _outermost(matches)
        return []

    def _main_containers(self, document: HtmlDocument) -> List[Tag]:
        return self._first_selector_match(
            document, MAIN_SELECTORS, self.thresholds.main_min_words
        )

    def _nested_paragraphs(self, document: HtmlDocument) -> List[Tag]:
        return self._first_selector_match(
            document, NESTED_PARAGRAPH_SELECTORS, self.thresholds.nested_min_words
        )

    def _paragraphs(self, document: HtmlDocument) -> List[Tag]:
        return self._first_selector_match(
            document, PARAGRAPH_SELECTORS, self.thresholds.paragraph_min_words
        )

    def _dense_blocks(self, document: HtmlDocument) -> List[Tag]:
        limits = self.thresholds
        candidates = []
        for node in document.select(", ".join(DENSE_BLOCK_SELECTORS)):
            text = visible_text(node)
            if len(text) <= limits.dense_min_chars:
                continue
            if word_count(text) <= limits.dense_min_words:
                continue
            children = node.find_all(True, recursive=False)
            if len(children) >= limits.dense_max_children:
                continue
            candidates.append(node)
        return _outermost(candidates)

    def _last_resort(self, document: HtmlDocument) -> List[Tag]:
        body = document.body
        if not visible_text(body):
            return []
        return [body]

    # --- Filtering and output ----------------------------------------------

    def _filter(self, nodes: Sequence[Tag]) -> List[Tag]:
        kept = []
        for node in nodes:
            if is_inserted(node):
                continue
            if is_excluded(node):
                logger.debug(
                    "Excluding non-content node: %s", visible_text(node)[:50]
                )
                continue
            kept.append(node)

        if len(kept) <= 1:
            return kept

        # Several paragraph-shaped candidates: only trust the hinted ones.
        result = []
        for node in kept:
            if _hints(node) and not has_content_hint(node):
                logger.debug(
                    "Skipping node without content hint: %s", visible_text(node)[:50]
                )
                continue
            result.append(node)
        return result

    def _build_regions(
        self,
        document: HtmlDocument,
        nodes: Sequence[Tag],
    ) -> List[ContentRegion]:
        regions: List[ContentRegion] = []
        for node in nodes:
            raw = node.decode_contents()
            cleaned = sanitize(raw, SanitizationProfile.AGGRESSIVE)
            if not cleaned.strip():
                continue
            regions.append(
                ContentRegion(
                    index=len(regions),
                    handle=document.handle_for(node),
                    raw_markup=raw,
                    cleaned_markup=cleaned,
                    text=visible_text(node),
                )
            )
        return regions


def locate(
    document: HtmlDocument,
    thresholds: Optional[LocatorThresholds] = None,
) -> List[ContentRegion]:
    """Find candidate content regions in ``document`` in document order."""

    return ContentLocator(thresholds).locate(document)
