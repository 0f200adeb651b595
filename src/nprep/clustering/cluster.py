"""Cosine K-means clustering of notes into labelled clusters."""

import logging
import math
import re

import numpy as np

from ..models import Cluster, KMeansResult, Note
from .kmeans import KMeans
from .vectorizer import TfidfVectorizer

logger = logging.getLogger(__name__)


def calculate_optimal_k(note_count: int) -> int:
    """Heuristic cluster count: ``sqrt(n / 2)`` bounded to [6, 40]."""
    return max(6, min(40, math.floor(math.sqrt(note_count / 2))))


def extract_top_terms(centroid: np.ndarray, vocabulary: list[str], top_n: int = 10) -> list[str]:
    """Highest-weighted vocabulary terms of a centroid, ties in vocabulary order."""
    scores = sorted(
        ((term, float(centroid[i]) if i < len(centroid) else 0.0) for i, term in enumerate(vocabulary)),
        key=lambda item: -item[1],
    )
    return [term for term, _ in scores[:top_n]]


def generate_section_label(top_terms: list[str]) -> str:
    """Readable label from the leading term, e.g. ``budget_review`` -> ``Budget``."""
    if not top_terms:
        return "General"

    first = re.sub(r"[^a-zA-Z0-9\s-]", "", top_terms[0].split("_")[0]).strip()
    if not first:
        return "General"

    title = " ".join(word[:1].upper() + word[1:].lower() for word in first.split(" "))
    return re.sub(r"[^A-Za-z0-9\s_-]", "", title[:45]).strip() or "General"


def create_clusters(notes: list[Note], result: KMeansResult) -> list[Cluster]:
    """One Cluster per non-empty K-means group, in cluster index order."""
    clusters = []
    for i, centroid in enumerate(result.centroids):
        members = [note for note, label in zip(notes, result.labels) if label == i]
        if not members:
            logger.debug("Dropping empty cluster %d", i)
            continue
        top_terms = extract_top_terms(centroid, result.vocabulary)
        clusters.append(Cluster(
            id=f"cluster_{i}",
            label=generate_section_label(top_terms),
            notes=members,
            top_terms=top_terms,
            centroid=centroid,
        ))
    return clusters


def run_clustering(
    notes: list[Note],
    k: int,
    n_init: int = 5,
    max_iter: int = 50,
    tolerance: float = 1e-4,
    max_features: int = 50000,
    random_state: int | np.random.Generator | None = None,
) -> list[Cluster]:
    """Vectorize ``notes`` and cluster them into at most ``k`` clusters."""
    vectors = TfidfVectorizer(max_features=max_features).fit_transform(notes)
    kmeans = KMeans(n_init=n_init, max_iter=max_iter, tolerance=tolerance, random_state=random_state)
    result = kmeans.fit(vectors, k)
    clusters = create_clusters(notes, result)
    logger.info("Clustered %d note(s) into %d non-empty cluster(s) (k=%d)", len(notes), len(clusters), k)
    return clusters
