"""Tests for TF-IDF vectorization, K-means and cluster labelling."""

import math

import numpy as np
import pytest

from nprep.clustering.cluster import (
    calculate_optimal_k,
    create_clusters,
    extract_top_terms,
    generate_section_label,
    run_clustering,
)
from nprep.clustering.kmeans import KMeans, cosine_distance, shared_vocabulary
from nprep.clustering.vectorizer import TfidfVectorizer, tokenize
from nprep.errors import InvalidArgument

from helpers import make_note


def test_tokenize_unigrams_then_bigrams():
    assert tokenize("The cat sat on a mat") == [
        "the", "cat", "sat", "mat", "the_cat", "cat_sat", "sat_mat",
    ]
    assert tokenize("see `code` https://x.io done") == ["see", "done", "see_done"]


def test_vocabulary_ranked_by_document_frequency():
    notes = [
        make_note("1.md", "apple banana"),
        make_note("2.md", "apple cherry"),
        make_note("3.md", "durian"),
    ]
    vec = TfidfVectorizer().fit(notes)
    assert vec.vocabulary == ("apple", "banana", "apple_banana", "cherry", "apple_cherry", "durian")
    assert vec.idf["apple"] == pytest.approx(math.log(3 / 3))
    assert vec.idf["banana"] == pytest.approx(math.log(3 / 2))

    small = TfidfVectorizer(max_features=2).fit(notes)
    assert small.vocabulary == ("apple", "banana")


def test_term_frequency_normalized_by_top_term():
    notes = [
        make_note("1.md", "apple apple banana"),
        make_note("2.md", "zebra"),
        make_note("3.md", "yak"),
    ]
    vec = TfidfVectorizer().fit(notes)
    vector = vec.transform(notes[0])
    assert vector["apple"] == pytest.approx(math.log(1.5))
    assert vector["banana"] == pytest.approx(0.5 * math.log(1.5))


def test_transform_rules():
    notes = [make_note("1.md", "apple banana"), make_note("2.md", "cherry")]
    vec = TfidfVectorizer()
    with pytest.raises(InvalidArgument):
        vec.transform(notes[0])

    vec.fit(notes)
    before = vec.vocabulary
    assert vec.transform(make_note("x.md", "unknown words entirely")) == {}
    assert vec.transform(make_note("y.md", "")) == {}
    assert vec.vocabulary == before


def test_cosine_distance_bounds():
    assert cosine_distance([1, 0], [0, 1]) == pytest.approx(1.0)
    assert cosine_distance([1, 0], [-1, 0]) == pytest.approx(2.0)
    assert cosine_distance([1, 2], [2, 4]) == pytest.approx(0.0)
    assert cosine_distance([0, 0], [1, 1]) == 1.0
    assert cosine_distance([0, 0], [0, 0]) == 1.0
    rng = np.random.default_rng(3)
    for _ in range(50):
        a, b = rng.normal(size=4), rng.normal(size=4)
        assert 0.0 <= cosine_distance(a, b) <= 2.0


def test_kmeans_rejects_bad_arguments():
    vectors = [{"a": 1.0}, {"b": 1.0}]
    with pytest.raises(InvalidArgument):
        KMeans().fit([], 1)
    with pytest.raises(InvalidArgument):
        KMeans().fit(vectors, 0)
    with pytest.raises(InvalidArgument):
        KMeans().fit(vectors, 3)


def test_kmeans_separates_groups():
    vectors = [{"a": 1.0, "b": 0.1}, {"a": 0.9}, {"c": 1.0}, {"c": 1.0, "d": 0.2}]
    result = KMeans(random_state=0).fit(vectors, 2)
    assert result.labels[0] == result.labels[1]
    assert result.labels[2] == result.labels[3]
    assert result.labels[0] != result.labels[2]
    assert result.vocabulary == ["a", "b", "c", "d"]
    assert result.centroids.shape == (2, 4)


def test_kmeans_deterministic_with_seed():
    rng = np.random.default_rng(11)
    vectors = [{f"t{j}": float(rng.random()) for j in rng.choice(12, size=4, replace=False)} for _ in range(20)]
    first = KMeans(random_state=42).fit(vectors, 4)
    second = KMeans(random_state=42).fit(vectors, 4)
    assert first.labels == second.labels
    assert np.array_equal(first.centroids, second.centroids)
    assert first.inertia == second.inertia


def _random_vectors(seed=11, n=20):
    rng = np.random.default_rng(seed)
    return [{f"t{j}": float(rng.random()) for j in rng.choice(12, size=4, replace=False)} for _ in range(n)]


def test_kmeans_keeps_lowest_inertia_restart():
    vectors = _random_vectors()
    best = KMeans(n_init=5, random_state=7).fit(vectors, 4)

    # single restarts drawing from one generator replay the same initializations
    single = KMeans(n_init=1, random_state=7)
    runs = [single.fit(vectors, 4) for _ in range(5)]
    winner = min(runs, key=lambda r: r.inertia)

    assert best.inertia == winner.inertia
    assert best.labels == winner.labels
    assert np.array_equal(best.centroids, winner.centroids)


def _count_updates(monkeypatch) -> list[int]:
    calls = []
    update = KMeans._update

    def counting(points, labels, k):
        calls.append(k)
        return update(points, labels, k)

    monkeypatch.setattr(KMeans, "_update", staticmethod(counting))
    return calls


def test_kmeans_stops_at_max_iter(monkeypatch):
    calls = _count_updates(monkeypatch)
    KMeans(n_init=1, max_iter=1, random_state=3).fit(_random_vectors(), 4)
    assert len(calls) == 1

    calls.clear()
    KMeans(n_init=1, max_iter=7, tolerance=0.0, random_state=3).fit(_random_vectors(), 4)
    assert len(calls) == 7


def test_kmeans_stops_when_inertia_settles(monkeypatch):
    calls = _count_updates(monkeypatch)
    KMeans(n_init=2, max_iter=50, tolerance=1e9, random_state=3).fit(_random_vectors(), 4)
    # the first update has nothing to compare against, the second is within tolerance
    assert len(calls) == 4


def test_kmeans_empty_cluster_keeps_zero_centroid():
    vectors = [{"a": 1.0}, {"a": 1.0}, {"a": 1.0}]
    result = KMeans(random_state=1).fit(vectors, 3)
    assert result.labels == [0, 0, 0]
    assert np.all(result.centroids[1] == 0)
    assert np.all(result.centroids[2] == 0)


def test_kmeans_all_empty_vectors():
    result = KMeans(random_state=0).fit([{}, {}], 1)
    assert result.labels == [0, 0]
    assert result.inertia == pytest.approx(2.0)


def test_shared_vocabulary_first_seen_order():
    assert shared_vocabulary([{"b": 1, "a": 1}, {"c": 1, "a": 2}]) == ["b", "a", "c"]


def test_optimal_k():
    assert calculate_optimal_k(50) == 6
    assert calculate_optimal_k(3) == 6
    assert calculate_optimal_k(2888) == 38
    assert calculate_optimal_k(5000) == 40


def test_top_terms_and_labels():
    assert extract_top_terms(np.array([0.1, 0.5, 0.5, 0.0]), ["a", "b", "c", "d"], top_n=2) == ["b", "c"]
    assert generate_section_label(["budget_review", "other"]) == "Budget"
    assert generate_section_label(["QUARTERLY"]) == "Quarterly"
    assert generate_section_label([]) == "General"
    assert generate_section_label(["__"]) == "General"
    assert generate_section_label(["café"]) == "Caf"
    assert len(generate_section_label(["x" * 80])) == 45


def test_create_clusters_drops_empty_groups():
    notes = [make_note(f"{i}.md", "apple") for i in range(3)]
    result = KMeans(random_state=1).fit([{"apple": 1.0}] * 3, 3)
    clusters = create_clusters(notes, result)
    assert len(clusters) == 1
    assert clusters[0].id == "cluster_0"
    assert clusters[0].label == "Apple"
    assert len(clusters[0].notes) == 3


def test_run_clustering_partitions_notes():
    topics = ["budget finance revenue", "garden tomato soil", "python code testing"]
    notes = [make_note(f"n{i}.md", f"{topics[i % 3]} note number {i}") for i in range(12)]
    clusters = run_clustering(notes, 3, random_state=5)
    members = [n.filename for c in clusters for n in c.notes]
    assert sorted(members) == sorted(n.filename for n in notes)
    assert all(c.top_terms for c in clusters)
