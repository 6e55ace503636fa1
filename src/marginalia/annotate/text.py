"""Canonical text addressing for article content.

Highlight offsets index the canonical text of an article: every text node of
the stored content HTML concatenated in document order. This is the same
quantity a browser measures when it walks the text nodes of the rendered
content region, so offsets captured client-side and offsets used for
rendering agree.
"""

from collections.abc import Iterator

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString, Script, Stylesheet, TemplateString

# Comments, doctypes, CDATA and processing instructions are PreformattedString
SKIPPED_STRINGS = (PreformattedString, Script, Stylesheet, TemplateString)
SKIPPED_PARENTS = {"script", "style", "template"}

# Browsers drop a newline directly after these start tags
NEWLINE_EATING_TAGS = ["pre", "textarea", "listing"]


def drop_leading_newlines(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove the newline an HTML5 parser ignores right after ``<pre>`` and friends.

    html.parser keeps it as text, so without this the canonical text would be
    one character longer per block than a browser's text-node walk.
    """
    for tag in soup.find_all(NEWLINE_EATING_TAGS):
        first = tag.contents[0] if tag.contents else None
        if not isinstance(first, NavigableString) or isinstance(first, SKIPPED_STRINGS):
            continue
        if first.startswith("\r\n"):
            rest = first[2:]
        elif first.startswith("\n"):
            rest = first[1:]
        else:
            continue
        if rest:
            first.replace_with(rest)
        else:
            first.extract()
    return soup


def parse_fragment(html: str | None) -> BeautifulSoup:
    """Parse a content fragment without adding html/body wrappers."""
    return drop_leading_newlines(BeautifulSoup(html or "", "html.parser"))


def iter_text_nodes(root: Tag) -> Iterator[NavigableString]:
    """Yield the text-bearing leaf nodes under ``root`` in document order."""
    for node in root.descendants:
        if not isinstance(node, NavigableString) or isinstance(node, SKIPPED_STRINGS):
            continue
        if node.parent is not None and node.parent.name in SKIPPED_PARENTS:
            continue
        yield node


def content_text(html: str | None) -> str:
    """Return the canonical text that highlight offsets address."""
    return "".join(str(node) for node in iter_text_nodes(parse_fragment(html)))
