"""Tests for the handle-based document wrapper."""

from pagewise.document import BUSY_CLASS, REGION_ATTRIBUTE, TRANSLATION_CLASS, HtmlDocument


PAGE = "<html><body><div id=\"a\"><p>First</p></div><div id=\"b\"><p>Second</p></div></body></html>"


def _handle(document, element_id):
    return document.handle_for(document.soup.find(id=element_id))


class TestHandles:
    """Handles are stable and track liveness."""

    def test_same_node_same_handle(self):
        document = HtmlDocument(PAGE)

        assert _handle(document, "a") == _handle(document, "a")
        assert _handle(document, "a") != _handle(document, "b")

    def test_detached_node_is_reported(self):
        document = HtmlDocument(PAGE)
        handle = _handle(document, "a")

        assert document.detach(handle)

        assert not document.is_attached(handle)
        assert document.node(handle) is None
        assert document.inner_markup(handle) is None
        assert not document.set_hidden(handle, True)

    def test_removed_node_is_reported(self):
        document = HtmlDocument(PAGE)
        handle = _handle(document, "b")

        document.remove(handle)

        assert not document.is_attached(handle)
        assert "Second" not in document.render()

    def test_unknown_handle(self):
        assert not HtmlDocument(PAGE).is_attached(999)


class TestMutations:
    """Insertions land next to the source element."""

    def test_insert_after_wraps_translation(self):
        document = HtmlDocument(PAGE)
        handle = _handle(document, "a")

        wrapper = document.insert_after(handle, "<p>Erste</p>", region_index=0)

        node = document.node(wrapper)
        assert TRANSLATION_CLASS in node.get("class")
        assert node[REGION_ATTRIBUTE] == "0"
        assert document.node(handle).next_sibling is node
        assert document.inner_markup(wrapper) == "<p>Erste</p>"

    def test_append_markup_keeps_order(self):
        document = HtmlDocument(PAGE)
        wrapper = document.insert_after(_handle(document, "a"), "<p>one</p>")

        document.append_markup(wrapper, "<p>two</p>")

        assert document.inner_markup(wrapper) == "<p>one</p><p>two</p>"

    def test_busy_placeholder(self):
        document = HtmlDocument(PAGE)
        busy = document.attach_busy(_handle(document, "a"), "Working...")

        assert BUSY_CLASS in document.render()
        assert "Working..." in document.render()

        document.remove(busy)

        assert BUSY_CLASS not in document.render()

    def test_set_hidden_round_trip(self):
        document = HtmlDocument(PAGE)
        handle = _handle(document, "a")
        before = document.render()

        document.set_hidden(handle, True)
        assert document.node(handle).has_attr("hidden")

        document.set_hidden(handle, False)
        assert document.render() == before

    def test_root_can_host_a_translation(self):
        document = HtmlDocument("Just text")
        root = document.handle_for(document.soup)

        wrapper = document.insert_after(root, "<p>Nur Text</p>")

        assert document.is_attached(wrapper)
        assert not document.set_hidden(root, True)
