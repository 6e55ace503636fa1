"""Markdown export of an article with its annotations."""

import logging
from datetime import datetime, timezone

import yaml
from bs4 import BeautifulSoup
from markdownify import markdownify

logger = logging.getLogger(__name__)


def _created_iso(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return datetime.fromtimestamp(float(value), tz=timezone.utc).isoformat()


def _quote(text: str) -> str:
    lines = text.split("\n")
    return "\n".join(f"> {line}" for line in lines)


def content_to_markdown(content: str) -> str:
    """Convert stored content HTML to Markdown."""
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    return markdownify(str(soup), heading_style="ATX").strip()


def export_filename(article: dict) -> str:
    """Filename slug for a downloaded export, e.g. ``12_my_article_title.md``."""
    slug = (article.get("title") or "article").lower()
    slug = "".join(c if c.isalnum() or c == " " else "" for c in slug)
    slug = "_".join(slug.split()[:6]) or "article"
    return f"{article['id']}_{slug}.md"


def article_to_markdown(article: dict, highlights: list[dict]) -> str:
    """Render an article, its highlights and notes as one Markdown document.

    Highlight text is taken from the stored copy, verbatim; nothing is
    re-extracted.
    """
    frontmatter = yaml.dump(
        {
            "title": article["title"],
            "url": article["url"],
            "tags": list(article.get("tags") or []),
            "created": _created_iso(article.get("created")),
            "archived": bool(article.get("archived")),
            "read": bool(article.get("read")),
        },
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )

    parts = [
        f"---\n{frontmatter.strip()}\n---",
        f"# {article['title']}",
        f"Source: [{article['url']}]({article['url']})",
    ]

    tags = article.get("tags") or []
    if tags:
        parts.append("Tags: " + ", ".join(f"#{tag}" for tag in tags))

    body = content_to_markdown(article.get("content") or "")
    if body:
        parts.append(body)

    if highlights:
        lines = ["## Highlights"]
        for highlight in highlights:
            entry = _quote(highlight["text"])
            if highlight.get("note"):
                entry += f"\n\nNote: {highlight['note'].strip()}"
            lines.append(entry)
        parts.append("\n\n".join(lines))

    notes = (article.get("notes") or "").strip()
    if notes:
        parts.append(f"## Notes\n\n{notes}")

    logger.debug(f"[EXPORT] Article {article.get('id')} with {len(highlights)} highlight(s)")
    return "\n\n".join(parts) + "\n"
