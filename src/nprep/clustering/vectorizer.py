"""TF-IDF vectorization of notes over unigrams and bigrams."""

import math
import re
from collections import Counter
from typing import Iterable

from ..errors import InvalidArgument
from ..ingest.normalize import strip_code_and_urls
from ..models import Note

PUNCTUATION_RE = re.compile(r"[^\w\s]")

TfidfVector = dict[str, float]


def tokenize(text: str) -> list[str]:
    """Lowercased words longer than two characters, followed by their bigrams."""
    text = strip_code_and_urls(text.lower())
    words = [w for w in PUNCTUATION_RE.sub(" ", text).split() if len(w) > 2]
    bigrams = [f"{a}_{b}" for a, b in zip(words, words[1:])]
    return words + bigrams


class TfidfVectorizer:
    """Corpus-fitted TF-IDF model.

    ``fit`` must be called before ``transform``. Term frequency is normalized
    by the document's most frequent vocabulary term, and
    ``idf = ln(n_docs / (df + 1))``.
    """

    def __init__(self, max_features: int = 50000):
        if max_features < 1:
            raise InvalidArgument(f"max_features must be >= 1, got {max_features}")
        self.max_features = max_features
        self._vocabulary: tuple[str, ...] = ()
        self._idf: dict[str, float] = {}
        self._fitted = False

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return self._vocabulary

    @property
    def idf(self) -> dict[str, float]:
        return dict(self._idf)

    def fit(self, notes: Iterable[Note]) -> "TfidfVectorizer":
        doc_freq: Counter[str] = Counter()
        n_docs = 0
        for note in notes:
            n_docs += 1
            # dict.fromkeys keeps discovery order, which breaks ranking ties
            doc_freq.update(dict.fromkeys(tokenize(note.normalized_content), 1))

        if n_docs == 0:
            raise InvalidArgument("Cannot fit a vectorizer on an empty corpus")

        ranked = sorted(doc_freq.items(), key=lambda item: -item[1])[: self.max_features]
        self._vocabulary = tuple(term for term, _ in ranked)
        self._idf = {term: math.log(n_docs / (df + 1)) for term, df in ranked}
        self._fitted = True
        return self

    def transform(self, note: Note) -> TfidfVector:
        if not self._fitted:
            raise InvalidArgument("TfidfVectorizer.transform called before fit")

        counts = Counter(t for t in tokenize(note.normalized_content) if t in self._idf)
        if not counts:
            return {}
        max_count = max(counts.values())
        return {term: (count / max_count) * self._idf[term] for term, count in counts.items()}

    def transform_all(self, notes: Iterable[Note]) -> list[TfidfVector]:
        return [self.transform(note) for note in notes]

    def fit_transform(self, notes: list[Note]) -> list[TfidfVector]:
        return self.fit(notes).transform_all(notes)
