"""K-means over cosine distance for sparse TF-IDF vectors."""

import logging

import numpy as np

from ..errors import InvalidArgument
from ..models import KMeansResult

logger = logging.getLogger(__name__)


def cosine_distance(a, b) -> float:
    """``1 - cos(a, b)``; 1.0 when either vector has zero norm."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise InvalidArgument(f"Vectors must have the same length ({a.shape} vs {b.shape})")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 1.0
    return float(np.clip(1.0 - np.dot(a, b) / (norm_a * norm_b), 0.0, 2.0))


def cosine_distance_matrix(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Pairwise cosine distances, shape (n_points, n_centroids)."""
    point_norms = np.linalg.norm(points, axis=1)
    centroid_norms = np.linalg.norm(centroids, axis=1)
    denom = np.outer(point_norms, centroid_norms)
    dots = points @ centroids.T
    with np.errstate(divide="ignore", invalid="ignore"):
        distances = 1.0 - dots / denom
    distances[denom == 0] = 1.0
    return np.clip(distances, 0.0, 2.0)


def shared_vocabulary(vectors: list[dict[str, float]]) -> list[str]:
    """Union of all vector keys in first-seen order."""
    seen: dict[str, None] = {}
    for vector in vectors:
        seen.update(dict.fromkeys(vector))
    return list(seen)


def densify(vectors: list[dict[str, float]], vocabulary: list[str]) -> np.ndarray:
    position = {term: i for i, term in enumerate(vocabulary)}
    dense = np.zeros((len(vectors), len(vocabulary)))
    for row, vector in enumerate(vectors):
        for term, weight in vector.items():
            dense[row, position[term]] = weight
    return dense


class KMeans:
    """Lloyd's algorithm with cosine distance and random restarts.

    Empty clusters keep an all-zero centroid instead of being reseeded. Of
    the ``n_init`` restarts, the one with the lowest converged inertia wins.
    """

    def __init__(
        self,
        n_init: int = 5,
        max_iter: int = 50,
        tolerance: float = 1e-4,
        random_state: int | np.random.Generator | None = None,
    ):
        if n_init < 1 or max_iter < 1:
            raise InvalidArgument("n_init and max_iter must be >= 1")
        self.n_init = n_init
        self.max_iter = max_iter
        self.tolerance = tolerance
        self.rng = np.random.default_rng(random_state)

    def _initial_centroids(self, points: np.ndarray, k: int) -> np.ndarray:
        indices = self.rng.choice(len(points), size=k, replace=False)
        return points[indices].copy()

    @staticmethod
    def _assign(points: np.ndarray, centroids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        distances = cosine_distance_matrix(points, centroids)
        labels = np.argmin(distances, axis=1)
        return labels, distances[np.arange(len(points)), labels]

    @staticmethod
    def _update(points: np.ndarray, labels: np.ndarray, k: int) -> np.ndarray:
        centroids = np.zeros((k, points.shape[1]))
        for cluster in range(k):
            members = points[labels == cluster]
            if len(members):
                centroids[cluster] = members.mean(axis=0)
        return centroids

    def _run_once(self, points: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray, float]:
        centroids = self._initial_centroids(points, k)
        labels, nearest = self._assign(points, centroids)
        inertia = float(np.sum(nearest ** 2))
        previous = np.inf

        for iteration in range(self.max_iter):
            centroids = self._update(points, labels, k)
            labels, nearest = self._assign(points, centroids)
            inertia = float(np.sum(nearest ** 2))
            if abs(previous - inertia) < self.tolerance:
                logger.debug("Converged after %d iteration(s), inertia %.6f", iteration + 1, inertia)
                break
            previous = inertia

        return labels, centroids, inertia

    def fit(self, vectors: list[dict[str, float]], k: int) -> KMeansResult:
        if not vectors:
            raise InvalidArgument("Cannot cluster empty dataset")
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1 or k > len(vectors):
            raise InvalidArgument(f"Invalid k: {k}. Must be between 1 and {len(vectors)}")

        vocabulary = shared_vocabulary(vectors)
        points = densify(vectors, vocabulary)

        best: tuple[np.ndarray, np.ndarray, float] | None = None
        for _ in range(self.n_init):
            labels, centroids, inertia = self._run_once(points, int(k))
            if best is None or inertia < best[2]:
                best = (labels, centroids, inertia)

        labels, centroids, inertia = best
        logger.info("K-means k=%d over %d vectors, %d terms: inertia %.4f", k, len(vectors), len(vocabulary), inertia)
        return KMeansResult(
            labels=[int(label) for label in labels],
            centroids=centroids,
            inertia=inertia,
            vocabulary=vocabulary,
        )
