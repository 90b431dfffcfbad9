"""Markup sanitisation and whitespace normalisation.

Two profiles exist. ``standard`` drops everything that is obviously not
page content: scripts, frames, forms, comments, hidden elements and the
usual boilerplate furniture (navigation, footers, sharing widgets, ads and
so on). ``aggressive`` runs ``standard`` first and then reduces what is
left to a small allowlist of content tags with almost no attributes.

Both profiles finish with the whitespace normaliser and are repeated until
the output stops changing, so ``sanitize(sanitize(x)) == sanitize(x)``.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

PARSER = "html.parser"
MAX_PASSES = 5


class SanitizationProfile(Enum):
    """Named rule sets controlling which nodes and attributes survive."""

    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


REMOVED_TAGS = frozenset(
    {
        "script", "style", "noscript", "template", "link", "meta",
        "iframe", "frame", "frameset", "object", "embed", "applet",
        "form", "input", "button", "select", "option", "textarea",
        "label", "fieldset", "svg", "canvas",
        "nav", "footer", "aside", "audio", "video", "source", "track",
    }
)

DENYLISTED_ROLES = frozenset(
    {"navigation", "complementary", "contentinfo", "menu", "menubar", "search"}
)

HIDDEN_CLASSES = frozenset(
    {
        "hidden", "hide", "sr-only", "visually-hidden", "screen-reader-text",
        "d-none", "invisible",
    }
)

HIDDEN_STYLE_PATTERN = re.compile(
    r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE
)


def _token_pattern(*prefixes: str) -> re.Pattern[str]:
    """Match any of ``prefixes`` at the start of a class/id token."""

    return re.compile(
        r"(?:^|[\s_\-:])(?:" + "|".join(prefixes) + r")",
        re.IGNORECASE,
    )


# Matching starts at a token boundary: "comment-list" and "article-comments"
# hit the comments rule, "commentary" does not.
DENYLIST_PATTERNS = {
    "navigation": _token_pattern("nav", "menu", "breadcrumb", "toolbar", "skip-link"),
    "footer": _token_pattern("footer", "site-info", "colophon"),
    "sidebar": _token_pattern("sidebar", "side-bar", "complementary", "aside"),
    "comments": re.compile(
        r"(?:^|[\s_\-:])(?:comments?(?:$|[\s_\-:])|disqus|discussion)",
        re.IGNORECASE,
    ),
    "social": _token_pattern("share", "sharing", "social", "shariff"),
    "advertisement": re.compile(
        r"(?:^|[\s_\-:])(?:ads?(?:$|[\s_\-:])|advert|adsense|adsbygoogle|"
        r"gpt-ad|google_ads|dfp|banner|sponsor|promo|pub_\d)",
        re.IGNORECASE,
    ),
    "newsletter": _token_pattern("newsletter", "subscribe", "subscription", "signup", "sign-up"),
    "related": _token_pattern("related", "recommend", "more-stories", "read-more"),
    "media-player": _token_pattern("player", "video", "audio", "podcast"),
    "widget": _token_pattern("widget", "interactive", "tool"),
    "jobs": _token_pattern("job", "career", "stellenmarkt"),
}

ALLOWED_TAGS = frozenset(
    {
        "h1", "h2", "h3", "h4", "h5", "h6",
        "p", "ul", "ol", "li", "blockquote",
        "strong", "em", "b", "i", "a", "br",
        "div", "span",
    }
)

ALLOWED_ATTRIBUTES = frozenset({"href", "title"})

METADATA_PATTERN = _token_pattern(
    "author", "byline", "meta", "timestamp", "date", "dateline",
    "published", "pubdate", "posted", "credit",
)

METADATA_TAGS = frozenset({"time", "address"})

DONATION_PATTERN = re.compile(
    r"support (?:our|independent) journalism|support us\b|donate now|"
    r"make a donation|become a (?:member|supporter)|subscribe now|"
    r"subscribe to our newsletter|sign up for our newsletter|"
    r"jetzt spenden|unterstützen sie uns|jetzt abonnieren|newsletter abonnieren",
    re.IGNORECASE,
)

VERBATIM_TAGS = frozenset({"pre", "code", "textarea", "script", "style"})

BLOCK_TAGS = frozenset(
    {
        "html", "body", "main", "article", "section", "header", "div",
        "p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li",
        "dl", "dt", "dd", "blockquote", "figure", "figcaption", "table",
        "thead", "tbody", "tfoot", "tr", "td", "th", "pre", "hr", "br",
    }
)

WHITESPACE = re.compile(r"\s+")


# --- Element predicates ----------------------------------------------------


def _attribute_text(tag: Tag) -> str:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return " ".join([*classes, str(tag.get("id") or "")]).strip()


def is_hidden(tag: Tag) -> bool:
    """Whether an element is hidden through attributes, inline style or class."""

    if tag.has_attr("hidden"):
        return True
    if str(tag.get("aria-hidden", "")).lower() == "true":
        return True
    style = tag.get("style")
    if style and HIDDEN_STYLE_PATTERN.search(str(style)):
        return True
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(cls.lower() in HIDDEN_CLASSES for cls in classes)


def denylist_category(tag: Tag) -> Optional[str]:
    """Return the boilerplate category an element belongs to, if any."""

    if tag.name in {"nav"}:
        return "navigation"
    if tag.name == "footer":
        return "footer"
    if tag.name == "aside":
        return "sidebar"
    if tag.name in {"audio", "video"}:
        return "media-player"
    role = str(tag.get("role") or "").lower()
    if role in DENYLISTED_ROLES:
        return role
    if any(name.startswith("data-ad") for name in tag.attrs):
        return "advertisement"
    hints = _attribute_text(tag)
    if not hints:
        return None
    for category, pattern in DENYLIST_PATTERNS.items():
        if pattern.search(hints):
            return category
    return None


def is_denylisted(tag: Tag) -> bool:
    return denylist_category(tag) is not None


def is_excluded(tag: Tag) -> bool:
    """Whether ``tag`` or any ancestor below ``<body>`` is boilerplate."""

    node: Optional[Tag] = tag
    while node is not None and isinstance(node, Tag):
        if node.name in {"body", "html", "[document]"}:
            return False
        if node.name in REMOVED_TAGS or is_hidden(node) or is_denylisted(node):
            return True
        node = node.parent
    return False


def visible_text(tag: Tag) -> str:
    """Collapsed text of ``tag`` ignoring scripts, styles and hidden subtrees."""

    parts = []
    for text in tag.find_all(string=True):
        if isinstance(text, PreformattedString):
            continue
        if _inside_invisible(text, tag):
            continue
        parts.append(str(text))
    return WHITESPACE.sub(" ", " ".join(parts)).strip()


def _inside_invisible(text: NavigableString, root: Tag) -> bool:
    for parent in text.parents:
        if parent.name in {"script", "style", "noscript", "template"}:
            return True
        if is_hidden(parent):
            return True
        if parent is root:
            break
    return False


def word_count(text: str) -> int:
    return len(text.split())


# --- Passes ----------------------------------------------------------------


def _live_tags(soup: BeautifulSoup) -> Iterable[Tag]:
    for tag in soup.find_all(True):
        if tag.decomposed or tag.parent is None:
            continue
        yield tag


def _apply_standard(soup: BeautifulSoup) -> None:
    for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        node.extract()

    for tag in list(_live_tags(soup)):
        if tag.decomposed:
            continue
        if tag.name in REMOVED_TAGS or is_hidden(tag) or is_denylisted(tag):
            tag.decompose()
            continue
        for name in [name for name in tag.attrs if name.lower().startswith("on")]:
            del tag[name]


def _apply_aggressive(soup: BeautifulSoup) -> None:
    for tag in list(_live_tags(soup)):
        if tag.decomposed:
            continue
        if tag.name in METADATA_TAGS or METADATA_PATTERN.search(_attribute_text(tag)):
            tag.decompose()

    for text in list(soup.find_all(string=True)):
        if DONATION_PATTERN.search(str(text)):
            text.extract()

    for tag in list(_live_tags(soup)):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()

    for tag in _live_tags(soup):
        tag.attrs = {
            name: value
            for name, value in tag.attrs.items()
            if name in ALLOWED_ATTRIBUTES
        }

    _prune_empty(soup)
    _collapse_breaks(soup)


def _is_empty(tag: Tag) -> bool:
    if tag.name == "br":
        return False
    for child in tag.contents:
        if isinstance(child, Tag):
            return False
        if str(child).strip():
            return False
    return True


def _prune_empty(soup: BeautifulSoup) -> None:
    # Reverse document order visits children before their parents.
    for tag in reversed(list(_live_tags(soup))):
        if _is_empty(tag):
            tag.decompose()


def _collapse_breaks(soup: BeautifulSoup) -> None:
    for br in list(soup.find_all("br")):
        if br.decomposed or br.parent is None:
            continue
        sibling = br.next_sibling
        while sibling is not None:
            following = sibling.next_sibling
            if isinstance(sibling, Tag) and sibling.name == "br":
                sibling.decompose()
            elif isinstance(sibling, NavigableString) and not str(sibling).strip():
                pass
            else:
                break
            sibling = following


def _in_verbatim(text: NavigableString) -> bool:
    return any(parent.name in VERBATIM_TAGS for parent in text.parents)


def _normalize_soup(soup: BeautifulSoup) -> None:
    soup.smooth()
    for text in list(soup.find_all(string=True)):
        if type(text) is not NavigableString or _in_verbatim(text):
            continue
        parent = text.parent
        block_parent = parent is None or parent is soup or parent.name in BLOCK_TAGS
        collapsed = WHITESPACE.sub(" ", str(text))
        previous, following = text.previous_sibling, text.next_sibling
        if (block_parent and previous is None) or _is_block_boundary_tag(previous):
            collapsed = collapsed.lstrip()
        if (block_parent and following is None) or _is_block_boundary_tag(following):
            collapsed = collapsed.rstrip()
        if not collapsed:
            text.extract()
        elif collapsed != str(text):
            text.replace_with(collapsed)


def _is_block_boundary_tag(node) -> bool:
    return isinstance(node, Tag) and node.name in BLOCK_TAGS


def normalize_whitespace(markup: str) -> str:
    """Collapse whitespace in text nodes, leaving ``pre``/``code`` untouched."""

    if not markup:
        return ""
    try:
        current = markup
        for _ in range(MAX_PASSES):
            soup = BeautifulSoup(current, PARSER)
            _normalize_soup(soup)
            cleaned = soup.decode()
            if cleaned == current:
                break
            current = cleaned
        return current
    except Exception:  # pragma: no cover - fail open
        logger.warning(
            "Whitespace normalisation failed; passing markup through unchanged.",
            exc_info=True,
        )
        return markup


def _sanitize_once(markup: str, profile: SanitizationProfile) -> str:
    soup = BeautifulSoup(markup, PARSER)
    _apply_standard(soup)
    if profile is SanitizationProfile.AGGRESSIVE:
        _apply_aggressive(soup)
    _normalize_soup(soup)
    if profile is SanitizationProfile.AGGRESSIVE:
        _prune_empty(soup)
    return soup.decode()


def sanitize(
    markup: str,
    profile: SanitizationProfile | str = SanitizationProfile.STANDARD,
) -> str:
    """Strip non-content nodes from ``markup`` according to ``profile``.

    Never raises for malformed input: if anything goes wrong the original
    markup is returned unchanged.
    """

    if not markup:
        return ""
    try:
        profile = SanitizationProfile(profile)
        current = markup
        for _ in range(MAX_PASSES):
            cleaned = _sanitize_once(current, profile)
            if cleaned == current:
                break
            current = cleaned
        return current
    except Exception:
        logger.warning(
            "Sanitisation failed; passing markup through unchanged.",
            exc_info=True,
        )
        return markup


def markup_text(markup: str) -> str:
    """Visible text of a markup fragment."""

    if not markup:
        return ""
    return visible_text(BeautifulSoup(markup, PARSER))
