"""Data models used throughout notion-prep."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from .errors import InvalidArgument

GROUPING_STRATEGIES = ("cluster", "headings", "tags")


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line: int


@dataclass(frozen=True)
class Link:
    text: str
    href: str
    is_internal: bool
    is_wiki_link: bool
    line: int


@dataclass(frozen=True)
class Image:
    alt: str
    src: str
    line: int


@dataclass(frozen=True)
class Note:
    """A parsed markdown note. Identity is the relative path inside the archive."""
    filename: str
    title: str
    content: str
    normalized_content: str
    tags: list[str] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    images: list[Image] = field(default_factory=list)
    note_id: str | None = None
    front_matter: dict[str, Any] = field(default_factory=dict)

    def first_heading(self, level: int = 1) -> Heading | None:
        return next((h for h in self.headings if h.level == level), None)


@dataclass(frozen=True)
class AssetFile:
    filename: str  # lowercased basename
    path: Path
    size: int
    note_id: str | None = None


@dataclass(frozen=True)
class AssetIndex:
    """Lookup views over an extracted assets directory."""
    by_filename: dict[str, AssetFile] = field(default_factory=dict)
    by_note_id: dict[str, list[AssetFile]] = field(default_factory=dict)
    unassigned: list[AssetFile] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(len(a) for a in self.by_note_id.values()) + len(self.unassigned)


@dataclass(frozen=True)
class KMeansResult:
    labels: list[int]
    centroids: np.ndarray
    inertia: float
    vocabulary: list[str]


@dataclass(frozen=True)
class Cluster:
    id: str
    label: str
    notes: list[Note]
    top_terms: list[str]
    centroid: np.ndarray


@dataclass(frozen=True)
class Section:
    id: str
    label: str
    notes: list[Note]
    index_content: str


@dataclass(frozen=True)
class SectionLayout:
    """Output of the section builder."""
    sections: list[Section]
    strategy: str
    k: int | None = None
    clusters: list[Cluster] = field(default_factory=list)


@dataclass(frozen=True)
class RewrittenNote:
    original: Note
    new_path: str
    new_content: str
    rewritten_links: int = 0
    rewritten_images: int = 0
    unresolved_links: list[str] = field(default_factory=list)
    unresolved_images: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProcessingOptions:
    """Grouping configuration for one job."""
    clustering_k: int | str = "auto"
    grouping_strategy: str = "cluster"
    seed: int | None = None

    def __post_init__(self):
        if self.grouping_strategy not in GROUPING_STRATEGIES:
            raise InvalidArgument(
                f"Unknown grouping strategy: {self.grouping_strategy!r} "
                f"(expected one of {', '.join(GROUPING_STRATEGIES)})"
            )
        k = self.clustering_k
        if k != "auto" and (isinstance(k, bool) or not isinstance(k, int) or k < 1):
            raise InvalidArgument(f"clustering_k must be 'auto' or an integer >= 1, got {k!r}")

    @classmethod
    def from_values(
        cls,
        clustering_k: int | str | None = "auto",
        grouping_strategy: str | None = "cluster",
        seed: int | None = None,
    ) -> "ProcessingOptions":
        """Build options from loosely typed input such as CLI flags or YAML."""
        if clustering_k is None or str(clustering_k).strip().lower() == "auto":
            k: int | str = "auto"
        else:
            try:
                k = int(str(clustering_k).strip())
            except ValueError:
                raise InvalidArgument(f"clustering_k must be 'auto' or an integer, got {clustering_k!r}") from None
        return cls(clustering_k=k, grouping_strategy=(grouping_strategy or "cluster").strip().lower(), seed=seed)

    def to_dict(self) -> dict[str, Any]:
        return {"clustering_k": self.clustering_k, "grouping_strategy": self.grouping_strategy, "seed": self.seed}
