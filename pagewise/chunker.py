"""Size-bounded, element-preserving splitting of region markup."""

from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

from .sanitizer import PARSER
from .structures import Chunk, ContentRegion

DEFAULT_MAX_CHARS = 1000


def _serialise(node) -> str:
    if isinstance(node, Tag):
        return node.decode()
    return node.output_ready()


# Attribute-free layout containers left by the aggressive profile. When
# one is over budget its children become the units instead.
WRAPPER_TAGS = frozenset({"div", "span"})

UNIT_TAGS = frozenset(
    {"p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "blockquote", "div"}
)


def _is_wrapper(node) -> bool:
    if not isinstance(node, Tag) or node.name not in WRAPPER_TAGS:
        return False
    return any(
        isinstance(child, Tag) and child.name in UNIT_TAGS for child in node.children
    )


def _collect_units(nodes, budget: Optional[int], units: List[str]) -> None:
    for node in nodes:
        if isinstance(node, NavigableString) and not str(node).strip():
            continue
        serialised = _serialise(node)
        if budget is not None and len(serialised) > budget and _is_wrapper(node):
            _collect_units(node.contents, budget, units)
        else:
            units.append(serialised)


def split_units(markup: str, budget: Optional[int] = None) -> List[str]:
    """Return the top-level nodes of ``markup`` as serialised strings.

    Whitespace-only text between elements is dropped; every element is
    kept whole. With a ``budget``, a ``div`` or ``span`` wrapper larger
    than the budget is replaced by its own children, recursively.
    """

    units: List[str] = []
    _collect_units(BeautifulSoup(markup, PARSER).contents, budget, units)
    return units


def pack_units(units: List[str], budget: int) -> List[str]:
    """Greedily pack units into budget-sized payloads.

    A unit larger than the budget is never split and ends up alone.
    """

    packed: List[str] = []
    current: List[str] = []
    size = 0
    for unit in units:
        if current and size + len(unit) > budget:
            packed.append("".join(current))
            current = []
            size = 0
        current.append(unit)
        size += len(unit)
    if current:
        packed.append("".join(current))
    return packed


class Chunker:
    """Turns a content region into ordered translation chunks."""

    def __init__(self, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        self.max_chars = max(1, max_chars)

    def chunk(self, region: ContentRegion) -> List[Chunk]:
        markup = region.cleaned_markup
        if len(markup) <= self.max_chars:
            payloads = [markup]
        else:
            units = split_units(markup, self.max_chars)
            payloads = pack_units(units, self.max_chars) or [markup]

        partial = len(payloads) > 1
        return [
            Chunk(
                region_index=region.index,
                order=order,
                markup=payload,
                partial=partial,
            )
            for order, payload in enumerate(payloads)
        ]


def chunk(region: ContentRegion, max_chars: int = DEFAULT_MAX_CHARS) -> List[Chunk]:
    """Split ``region`` into chunks of at most ``max_chars`` characters."""

    return Chunker(max_chars).chunk(region)
