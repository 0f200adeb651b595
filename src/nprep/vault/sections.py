"""Group notes into sections by clustering, first heading or first tag."""

import logging
import re
from typing import Any, Callable

from ..clustering.cluster import calculate_optimal_k, run_clustering
from ..ingest.assets import ASSETS_DIRNAME
from ..models import Note, ProcessingOptions, Section, SectionLayout
from .templates import render_section_index

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 50
# top-level names of the output tree that sections must not take over
RESERVED_LABELS = frozenset({ASSETS_DIRNAME})


def sanitize_label(label: str) -> str:
    """Filesystem-safe section name: ``[A-Za-z0-9_-]``, at most 50 chars."""
    label = re.sub(r"[^A-Za-z0-9\s_-]", "", label)
    label = re.sub(r"\s+", "_", label)
    return label[:MAX_LABEL_LENGTH].strip() or "Untitled"


def _unique(label: str, used: set[str]) -> str:
    """First free variant of ``label``: ``label``, ``label_2``, ...

    ``used`` holds lowercased names so folders stay distinct on
    case-insensitive filesystems. Suffixed names are cut to fit the
    length limit.
    """
    candidate, n = label, 1
    while candidate.lower() in used:
        n += 1
        suffix = f"_{n}"
        candidate = f"{label[:MAX_LABEL_LENGTH - len(suffix)]}{suffix}"
    used.add(candidate.lower())
    return candidate


def _group(notes: list[Note], key: Callable[[Note], str]) -> dict[str, list[Note]]:
    groups: dict[str, list[Note]] = {}
    for note in notes:
        groups.setdefault(key(note), []).append(note)
    return groups


def _sections_from_groups(groups: dict[str, list[Note]], label_fn: Callable[[str], str]) -> list[Section]:
    used = set(RESERVED_LABELS)
    return [
        Section(
            id=f"section_{i}",
            label=_unique(label_fn(key), used),
            notes=members,
            index_content=render_section_index(members),
        )
        for i, (key, members) in enumerate(groups.items())
    ]


def group_by_headings(notes: list[Note]) -> list[Section]:
    def first_h1(note: Note) -> str:
        heading = note.first_heading(level=1)
        return heading.text if heading else "Untitled"

    return _sections_from_groups(_group(notes, first_h1), sanitize_label)


def group_by_tags(notes: list[Note]) -> list[Section]:
    def tag_label(tag: str) -> str:
        label = sanitize_label(tag)
        return label[:1].upper() + label[1:]

    return _sections_from_groups(_group(notes, lambda n: n.tags[0] if n.tags else "Untagged"), tag_label)


def group_by_clustering(
    notes: list[Note],
    k: int | str = "auto",
    kmeans_cfg: dict[str, Any] | None = None,
    random_state=None,
) -> SectionLayout:
    """Cluster notes and wrap each non-empty cluster in a numbered section."""
    if not notes:
        return SectionLayout(sections=[], strategy="cluster", k=0)

    cfg = kmeans_cfg or {}
    effective_k = min(calculate_optimal_k(len(notes)), len(notes)) if k == "auto" else k
    clusters = run_clustering(
        notes,
        effective_k,
        n_init=cfg.get("n_init", 5),
        max_iter=cfg.get("max_iter", 50),
        tolerance=cfg.get("tolerance", 1e-4),
        max_features=cfg.get("max_features", 50000),
        random_state=random_state,
    )

    sections = [
        Section(
            id=cluster.id,
            label=f"Section_{i:02d}_{cluster.label}",
            notes=cluster.notes,
            index_content=render_section_index(cluster.notes),
        )
        for i, cluster in enumerate(clusters, 1)
    ]
    return SectionLayout(sections=sections, strategy="cluster", k=effective_k, clusters=clusters)


def build_sections(
    notes: list[Note],
    options: ProcessingOptions,
    kmeans_cfg: dict[str, Any] | None = None,
    random_state=None,
) -> SectionLayout:
    """Partition ``notes`` into sections using the configured strategy."""
    if options.grouping_strategy == "headings":
        layout = SectionLayout(sections=group_by_headings(notes), strategy="headings")
    elif options.grouping_strategy == "tags":
        layout = SectionLayout(sections=group_by_tags(notes), strategy="tags")
    else:
        seed = random_state if random_state is not None else options.seed
        layout = group_by_clustering(notes, options.clustering_k, kmeans_cfg, random_state=seed)

    logger.info("Built %d section(s) with strategy %r", len(layout.sections), layout.strategy)
    return layout
