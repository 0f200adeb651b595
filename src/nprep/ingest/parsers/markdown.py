"""Markdown file parser."""

import re
from pathlib import PurePosixPath
from typing import Any

from ...models import Heading, Image, Link, Note
from ..normalize import normalize_for_vectorization

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
HEADING_RE = re.compile(r"^(#+)[ \t]+(.*?)[ \t]*\r?$", re.MULTILINE)
INLINE_LINK_RE = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")
WIKI_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
NOTE_ID_RE = re.compile(r"([a-f0-9]{6,})\.md$", re.IGNORECASE)


def is_external(href: str) -> bool:
    return href.startswith("http") or href.startswith("mailto:")


def line_of(text: str, index: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, index) + 1


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a leading ``---`` block off ``text``.

    Only flat ``key: value`` lines are understood; ``[a, b]`` values become
    lists. Anything that is not a well-formed block leaves the text untouched.
    """
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text

    front_matter: dict[str, Any] = {}
    for line in match.group(1).splitlines():
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip()
        if not key:
            continue
        value = _unquote(value.strip())
        if value.startswith("[") and value.endswith("]"):
            items = [item.strip().replace('"', "").replace("'", "") for item in value[1:-1].split(",")]
            front_matter[key] = [item for item in items if item]
        else:
            front_matter[key] = value

    return front_matter, text[match.end():]


def extract_headings(content: str) -> list[Heading]:
    return [
        Heading(level=len(m.group(1)), text=m.group(2).strip(), line=line_of(content, m.start()))
        for m in HEADING_RE.finditer(content)
    ]


def extract_links(content: str) -> list[Link]:
    """Inline links first, then wiki links."""
    links = []
    for m in INLINE_LINK_RE.finditer(content):
        href = m.group(2)
        links.append(Link(
            text=m.group(1),
            href=href,
            is_internal=not is_external(href),
            is_wiki_link=False,
            line=line_of(content, m.start()),
        ))
    for m in WIKI_LINK_RE.finditer(content):
        target = m.group(1)
        links.append(Link(
            text=target,
            href=target,
            is_internal=not is_external(target),
            is_wiki_link=True,
            line=line_of(content, m.start()),
        ))
    return links


def extract_images(content: str) -> list[Image]:
    return [
        Image(alt=m.group(1), src=m.group(2), line=line_of(content, m.start()))
        for m in IMAGE_RE.finditer(content)
    ]


def extract_note_id(filename: str) -> str | None:
    """Trailing hex id of an exported note, e.g. ``Plan 3f2a9c01.md``."""
    match = NOTE_ID_RE.search(filename)
    return match.group(1) if match else None


def title_from_filename(filename: str) -> str:
    stem = re.sub(r"\.md$", "", PurePosixPath(filename).name, flags=re.IGNORECASE)
    return re.sub(r"[-_]", " ", stem)


class MarkdownParser:
    """Parse markdown text into a Note."""

    def parse(self, relative_path: str, text: str) -> Note:
        front_matter, content = parse_front_matter(text)

        title = front_matter.get("title") or front_matter.get("Title")
        if isinstance(title, list):
            title = ", ".join(title)
        if not title:
            title = title_from_filename(relative_path)

        tags = front_matter.get("tags") or front_matter.get("Tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        return Note(
            filename=relative_path,
            title=title,
            content=content,
            normalized_content=normalize_for_vectorization(content),
            tags=list(tags),
            headings=extract_headings(content),
            links=extract_links(content),
            images=extract_images(content),
            note_id=extract_note_id(relative_path),
            front_matter=front_matter,
        )
