"""Tests for the content locator cascade."""

from pagewise.document import HtmlDocument
from pagewise.locator import ContentLocator, LocatorThresholds, locate


def _names(document, regions):
    return [document.node(region.handle).name for region in regions]


class TestMainContainers:
    """The first stage picks semantic article containers."""

    def test_article_page_yields_single_clean_region(self, article_document):
        regions = locate(article_document)

        assert len(regions) == 1
        region = regions[0]
        assert _names(article_document, regions) == ["article"]
        assert region.index == 0
        assert region.cleaned_markup == (
            "<h1>City council approves new park</h1>"
            "<p>The city council voted on Tuesday to build a new park next to the river.</p>"
            "<p>Construction is expected to start next spring and take about two years.</p>"
        )
        assert "Share" in region.raw_markup
        assert "Share" not in region.cleaned_markup

    def test_several_containers_in_document_order(self, three_articles_document):
        regions = locate(three_articles_document)

        assert [region.index for region in regions] == [0, 1, 2]
        assert "first story" in regions[0].cleaned_markup
        assert "third story" in regions[2].cleaned_markup


class TestFallbackStages:
    """Later stages only run when earlier ones find nothing."""

    def test_nested_paragraphs(self):
        document = HtmlDocument(
            "<html><body><article><p>Short piece with only seven words here.</p>"
            "</article></body></html>"
        )

        regions = locate(document)

        assert _names(document, regions) == ["p"]
        assert regions[0].cleaned_markup == "Short piece with only seven words here."

    def test_plain_paragraphs_skip_boilerplate_and_unhinted(self):
        document = HtmlDocument(
            "<html><body><div>"
            "<p>First paragraph with enough words.</p>"
            "<p>Second one also long enough.</p>"
            "<p>Hi</p>"
            '<p class="teaser-box">Something with four words.</p>'
            "</div>"
            "<footer><p>Copyright notice for this site.</p></footer>"
            "</body></html>"
        )

        regions = locate(document)

        assert [region.cleaned_markup for region in regions] == [
            "First paragraph with enough words.",
            "Second one also long enough.",
        ]

    def test_dense_text_block(self):
        document = HtmlDocument(
            "<html><body><div>This block has plenty of words but no paragraph "
            "markup at all inside it.</div></body></html>"
        )

        regions = locate(document)

        assert _names(document, regions) == ["div"]

    def test_whole_body_as_last_resort(self):
        document = HtmlDocument("<html><body>Just a few loose words.</body></html>")

        regions = locate(document)

        assert _names(document, regions) == ["body"]
        assert regions[0].cleaned_markup == "Just a few loose words."

    def test_boilerplate_only_page_has_no_regions(self):
        document = HtmlDocument(
            '<html><body><nav><a href="/">Home</a></nav></body></html>'
        )

        assert locate(document) == []

    def test_empty_page_has_no_regions(self):
        assert locate(HtmlDocument("<html><body></body></html>")) == []


class TestThresholds:
    """Thresholds are configuration, not constants."""

    def test_stricter_main_threshold_falls_through(self, article_document):
        locator = ContentLocator(LocatorThresholds(main_min_words=50))

        regions = locator.locate(article_document)

        assert _names(article_document, regions) == ["p", "p"]


class TestInsertedMarkup:
    """Translations and placeholders added earlier are never located again."""

    def test_skips_translation_wrappers_and_busy_placeholders(self):
        document = HtmlDocument(
            "<html><body>"
            "<div><p>Real paragraph with enough words.</p></div>"
            '<div class="pagewise-translation"><p>Translated paragraph with enough words.</p></div>'
            '<div class="pagewise-busy"><p class="pagewise-busy-text">Translating the section now...</p></div>'
            "</body></html>"
        )

        regions = locate(document)

        assert [region.cleaned_markup for region in regions] == ["Real paragraph with enough words."]
