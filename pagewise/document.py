"""Handle-based access to an externally owned HTML tree."""

from __future__ import annotations

import itertools
from typing import Dict, Iterator, Optional

from bs4 import BeautifulSoup, Tag

from .sanitizer import PARSER

BUSY_CLASS = "pagewise-busy"
TRANSLATION_CLASS = "pagewise-translation"
REGION_ATTRIBUTE = "data-pagewise-region"


class HtmlDocument:
    """An arena of opaque integer handles over a BeautifulSoup tree.

    The pipeline never keeps ``Tag`` objects itself. It asks for a handle
    and has to come back through the document for every read or write, so
    a node that the host removed in the meantime is reported as detached
    instead of being mutated while floating outside the tree.
    """

    def __init__(self, markup: str | BeautifulSoup) -> None:
        if isinstance(markup, BeautifulSoup):
            self.soup = markup
        else:
            self.soup = BeautifulSoup(markup or "", PARSER)
        self._nodes: Dict[int, Tag] = {}
        self._handles: Dict[int, int] = {}
        self._counter = itertools.count(1)

    # --- Handles -----------------------------------------------------------

    def handle_for(self, node: Tag) -> int:
        """Return the stable handle for ``node``, registering it if needed."""

        key = id(node)
        handle = self._handles.get(key)
        if handle is not None and self._nodes.get(handle) is node:
            return handle
        handle = next(self._counter)
        self._nodes[handle] = node
        self._handles[key] = handle
        return handle

    def is_attached(self, handle: int) -> bool:
        """Whether the node behind ``handle`` is still part of the live tree."""

        node = self._nodes.get(handle)
        if node is None or node.decomposed:
            return False
        if node is self.soup:
            return True
        for parent in node.parents:
            if parent is self.soup:
                return True
        return False

    def node(self, handle: int) -> Optional[Tag]:
        """Resolve ``handle`` to its node, or ``None`` when detached."""

        if not self.is_attached(handle):
            return None
        return self._nodes[handle]

    # --- Tree access -------------------------------------------------------

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    def select(self, selector: str) -> Iterator[Tag]:
        yield from self.soup.select(selector)

    def inner_markup(self, handle: int) -> Optional[str]:
        node = self.node(handle)
        if node is None:
            return None
        return node.decode_contents()

    def outer_markup(self, handle: int) -> Optional[str]:
        node = self.node(handle)
        if node is None:
            return None
        return node.decode()

    def render(self) -> str:
        """Serialise the whole tree, including any inserted translations."""

        return self.soup.decode()

    # --- Mutations ---------------------------------------------------------

    def attach_busy(self, handle: int, label: str = "Translating...") -> Optional[int]:
        """Insert a loading placeholder right after the node."""

        node = self.node(handle)
        if node is None:
            return None
        busy = self.soup.new_tag("div", attrs={"class": BUSY_CLASS})
        text = self.soup.new_tag("p", attrs={"class": f"{BUSY_CLASS}-text"})
        text.string = label
        busy.append(text)
        self._place_after(node, busy)
        return self.handle_for(busy)

    def insert_after(
        self,
        handle: int,
        markup: str,
        *,
        region_index: Optional[int] = None,
    ) -> Optional[int]:
        """Wrap ``markup`` in a translation container placed after the node."""

        node = self.node(handle)
        if node is None:
            return None
        attrs = {"class": TRANSLATION_CLASS}
        if region_index is not None:
            attrs[REGION_ATTRIBUTE] = str(region_index)
        wrapper = self.soup.new_tag("div", attrs=attrs)
        self._place_after(node, wrapper)
        if markup:
            self._append_fragment(wrapper, markup)
        return self.handle_for(wrapper)

    def append_markup(self, handle: int, markup: str) -> bool:
        node = self.node(handle)
        if node is None:
            return False
        self._append_fragment(node, markup)
        return True

    def set_hidden(self, handle: int, hidden: bool) -> bool:
        node = self.node(handle)
        if node is None:
            return False
        if node is self.soup:
            return False
        if hidden:
            node["hidden"] = ""
        elif node.has_attr("hidden"):
            del node["hidden"]
        return True

    def remove(self, handle: int) -> bool:
        node = self.node(handle)
        if node is None:
            return False
        node.decompose()
        return True

    def detach(self, handle: int) -> bool:
        """Take a node out of the tree without destroying it."""

        node = self.node(handle)
        if node is None:
            return False
        node.extract()
        return True

    def _place_after(self, node: Tag, new: Tag) -> None:
        # The document root has no parent; its "after" is its own end.
        if node.parent is None:
            node.append(new)
        else:
            node.insert_after(new)

    def _append_fragment(self, node: Tag, markup: str) -> None:
        fragment = BeautifulSoup(markup, PARSER)
        for child in list(fragment.contents):
            node.append(child.extract())
