"""Rewrite note links and image references for the new section layout."""

import logging
import re

from ..ingest.assets import asset_output_path, find_asset
from ..ingest.parsers.markdown import IMAGE_RE, INLINE_LINK_RE, WIKI_LINK_RE, is_external
from ..models import AssetIndex, RewrittenNote, Section

logger = logging.getLogger(__name__)


def note_path(section: Section, filename: str) -> str:
    return f"{section.label}/{filename}"


def build_link_mapping(sections: list[Section]) -> dict[str, str]:
    """Filename and title of every note -> its new path.

    Later sections and notes overwrite earlier entries on collision.
    """
    mapping: dict[str, str] = {}
    for section in sections:
        for note in section.notes:
            new_path = note_path(section, note.filename)
            mapping[note.filename] = new_path
            mapping[note.title] = new_path
    return mapping


def build_image_mapping(sections: list[Section], asset_index: AssetIndex) -> dict[str, str]:
    """Image source -> output asset path, for every source that resolves."""
    mapping: dict[str, str] = {}
    for section in sections:
        for note in section.notes:
            for image in note.images:
                asset = find_asset(image.src, note.note_id, asset_index)
                if asset:
                    mapping[image.src] = asset_output_path(asset)
    return mapping


def rewrite_links(content: str, link_mapping: dict[str, str]) -> tuple[str, int, list[str]]:
    """Returns (new content, rewritten count, unresolved internal targets)."""
    rewritten = 0
    unresolved: list[str] = []

    def inline(match: re.Match) -> str:
        nonlocal rewritten
        text, href = match.group(1), match.group(2)
        if is_external(href):
            return match.group(0)
        new_href = link_mapping.get(href)
        if new_href is None:
            unresolved.append(href)
            return match.group(0)
        rewritten += 1
        return f"[{text}]({new_href})"

    def wiki(match: re.Match) -> str:
        nonlocal rewritten
        text = match.group(1)
        new_href = link_mapping.get(text)
        if new_href is None:
            if not is_external(text):
                unresolved.append(text)
            return match.group(0)
        rewritten += 1
        return f"[{text}]({new_href})"

    content = INLINE_LINK_RE.sub(inline, content)
    content = WIKI_LINK_RE.sub(wiki, content)
    return content, rewritten, unresolved


def rewrite_images(content: str, image_mapping: dict[str, str]) -> tuple[str, int, list[str]]:
    rewritten = 0
    unresolved: list[str] = []

    def image(match: re.Match) -> str:
        nonlocal rewritten
        alt, src = match.group(1), match.group(2)
        new_src = image_mapping.get(src)
        if new_src is None:
            unresolved.append(src)
            return match.group(0)
        rewritten += 1
        return f"![{alt}]({new_src})"

    return IMAGE_RE.sub(image, content), rewritten, unresolved


def rewrite_notes(sections: list[Section], asset_index: AssetIndex) -> list[RewrittenNote]:
    """Rewrite every note in ``sections``, in section order then note order."""
    link_mapping = build_link_mapping(sections)
    image_mapping = build_image_mapping(sections, asset_index)

    results = []
    for section in sections:
        for note in section.notes:
            content, n_links, missing_links = rewrite_links(note.content, link_mapping)
            content, n_images, missing_images = rewrite_images(content, image_mapping)
            if missing_links or missing_images:
                logger.warning(
                    "%s: %d unresolved link(s), %d unresolved image(s)",
                    note.filename, len(missing_links), len(missing_images),
                )
            results.append(RewrittenNote(
                original=note,
                new_path=note_path(section, note.filename),
                new_content=content,
                rewritten_links=n_links,
                rewritten_images=n_images,
                unresolved_links=missing_links,
                unresolved_images=missing_images,
            ))

    logger.info(
        "Rewrote %d link(s) and %d image(s) across %d note(s)",
        sum(r.rewritten_links for r in results),
        sum(r.rewritten_images for r in results),
        len(results),
    )
    return results
