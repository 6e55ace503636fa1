"""Tests for canonical text addressing and selection capture."""

from bs4 import BeautifulSoup

from marginalia.annotate import (
    SelectionRange,
    capture_selection,
    capture_text,
    content_text,
    find_region,
    parse_fragment,
)


class TestContentText:
    def test_concatenates_text_nodes(self):
        assert content_text("<p>Hello <b>brave</b> new world</p>") == "Hello brave new world"

    def test_whitespace_between_elements_counts(self):
        assert content_text("<p>One</p>\n<p>Two</p>") == "One\nTwo"

    def test_entities_are_decoded(self):
        assert content_text("<p>Fish &amp; chips</p>") == "Fish & chips"

    def test_skips_comments_scripts_and_styles(self):
        html = "<p>A<!-- hidden -->B</p><script>var x;</script><style>p{}</style><p>C</p>"
        assert content_text(html) == "ABC"

    def test_empty(self):
        assert content_text("") == ""
        assert content_text(None) == ""


class TestCaptureSelection:
    def _soup(self):
        return parse_fragment("<p>Hello <b>brave</b> new world</p>")

    def test_within_one_node(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        result = capture_selection(soup, SelectionRange(hello, 0, hello, 5))
        assert (result.start_offset, result.end_offset, result.text) == (0, 5, "Hello")

    def test_across_elements(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        tail = soup.find(string=" new world")
        result = capture_selection(soup, SelectionRange(hello, 2, tail, 4))

        assert result.start_offset == 2
        assert result.end_offset == 15
        assert result.text == "llo brave new"
        assert content_text(str(soup))[2:15] == result.text

    def test_trims_whitespace(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        brave = soup.find(string="brave")
        result = capture_selection(soup, SelectionRange(hello, 5, brave, 5))

        assert result.text == "brave"
        assert (result.start_offset, result.end_offset) == (6, 11)

    def test_whitespace_only_selection(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        assert capture_selection(soup, SelectionRange(hello, 5, hello, 6)) is None

    def test_collapsed_selection(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        assert capture_selection(soup, SelectionRange(hello, 3, hello, 3)) is None

    def test_backwards_selection(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        tail = soup.find(string=" new world")
        assert capture_selection(soup, SelectionRange(tail, 2, hello, 1)) is None

    def test_offsets_relative_to_region(self):
        soup = BeautifulSoup(
            '<nav>Menu</nav><div class="article-content"><p>Body text</p></div>',
            "html.parser",
        )
        region = find_region(soup)
        body = soup.find(string="Body text")
        result = capture_selection(region, SelectionRange(body, 5, body, 9))

        assert (result.start_offset, result.end_offset, result.text) == (5, 9, "text")

    def test_selection_outside_region(self):
        soup = BeautifulSoup(
            '<nav>Menu</nav><div class="article-content"><p>Body text</p></div>',
            "html.parser",
        )
        region = find_region(soup)
        menu = soup.find(string="Menu")
        body = soup.find(string="Body text")

        assert capture_selection(region, SelectionRange(menu, 0, body, 4)) is None

    def test_boundary_in_skipped_node(self):
        soup = parse_fragment("<p>Text</p><script>var x = 1;</script>")
        text = soup.find(string="Text")
        script = soup.script.string
        assert capture_selection(soup, SelectionRange(text, 0, script, 3)) is None

    def test_payload_uses_string_offsets(self):
        soup = self._soup()
        hello = soup.find(string="Hello ")
        payload = capture_selection(soup, SelectionRange(hello, 0, hello, 5)).to_payload()
        assert payload == {"text": "Hello", "startOffset": "0", "endOffset": "5"}


class TestFindRegion:
    def test_unmarked_content_is_whole_tree(self):
        soup = parse_fragment("<p>x</p>")
        assert find_region(soup) is soup


class TestCaptureText:
    def test_first_occurrence(self):
        result = capture_text("<p>the cat and the hat</p>", "the")
        assert (result.start_offset, result.end_offset) == (0, 3)

    def test_nth_occurrence(self):
        result = capture_text("<p>the cat and the hat</p>", "the", occurrence=1)
        assert (result.start_offset, result.end_offset) == (12, 15)

    def test_spans_elements(self):
        result = capture_text("<p>Hello <b>brave</b> new world</p>", "brave new")
        assert (result.start_offset, result.end_offset, result.text) == (6, 15, "brave new")

    def test_not_found(self):
        assert capture_text("<p>abc</p>", "xyz") is None
        assert capture_text("<p>the cat</p>", "the", occurrence=1) is None

    def test_blank_quote(self):
        assert capture_text("<p>abc</p>", "   ") is None
