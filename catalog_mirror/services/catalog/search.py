from __future__ import annotations

import math
from dataclasses import dataclass
from threading import Lock

from rapidfuzz import fuzz
from rapidfuzz.utils import default_process

from catalog_mirror.core.errors import InputValidationError
from catalog_mirror.models.dataset import Dataset
from catalog_mirror.models.search import SearchWeights
from catalog_mirror.services.catalog.store import Corpus

# Keeps an exact match from collapsing the whole product to zero.
_EPSILON = 1e-6


@dataclass(frozen=True)
class IndexedField:
    text: str
    norm: float


@dataclass(frozen=True)
class IndexedDataset:
    position: int
    dataset: Dataset
    name: IndexedField
    description: IndexedField
    tags: tuple[IndexedField, ...]


@dataclass(frozen=True)
class ScoredDataset:
    dataset: Dataset
    position: int
    # Product of weighted field distances; 0 is a perfect match.
    score: float
    # Smallest distance among the matching fields.
    distance: float

    @property
    def relevance(self) -> float:
        return 1.0 - self.score


def _index_field(value: str) -> IndexedField:
    text = default_process(value)
    tokens = len(text.split()) or 1
    return IndexedField(text=text, norm=1.0 / math.sqrt(tokens))


def build_index(corpus: Corpus) -> tuple[IndexedDataset, ...]:
    return tuple(
        IndexedDataset(
            position=position,
            dataset=dataset,
            name=_index_field(dataset.Name),
            description=_index_field(dataset.Description),
            tags=tuple(_index_field(tag) for tag in dataset.Tags or ()),
        )
        for position, dataset in enumerate(corpus.datasets)
    )


class SearchEngine:
    """Weighted fuzzy ranking over Name, Description and Tags.

    Each field is compared with the query by aligning the query against its
    best-matching window in the field, so where the match sits in the text does
    not matter. Fields shorter than the query are compared whole. A field
    counts as a match when its distance is within ``weights.threshold``; a
    dataset with no matching field is dropped.
    """

    def __init__(self, weights: SearchWeights | None = None) -> None:
        self._weights = weights or SearchWeights()
        self._lock = Lock()
        self._indexed: tuple[Corpus, tuple[IndexedDataset, ...]] | None = None

    @property
    def weights(self) -> SearchWeights:
        return self._weights.model_copy()

    def search(self, corpus: Corpus, query: str, limit: int) -> list[Dataset]:
        if limit < 0:
            raise InputValidationError("limit must be a non-negative integer.", payload={"limit": limit})
        if not query.strip():
            return list(corpus.datasets[:limit])
        return [scored.dataset for scored in self.rank(corpus, query)[:limit]]

    def rank(self, corpus: Corpus, query: str) -> list[ScoredDataset]:
        pattern = default_process(query)
        if not pattern:
            return []

        scored = [
            result
            for entry in self._index_for(corpus)
            if (result := self._score(entry, pattern)) is not None
        ]
        scored.sort(key=lambda item: (item.score, item.position))
        return scored

    def _index_for(self, corpus: Corpus) -> tuple[IndexedDataset, ...]:
        with self._lock:
            if self._indexed is None or self._indexed[0] is not corpus:
                self._indexed = (corpus, build_index(corpus))
            return self._indexed[1]

    def _score(self, entry: IndexedDataset, pattern: str) -> ScoredDataset | None:
        weights = self._weights
        candidates: list[tuple[float, float, float]] = []

        name_distance = self._distance(pattern, entry.name.text)
        candidates.append((name_distance, weights.name, entry.name.norm))

        description_distance = self._distance(pattern, entry.description.text)
        candidates.append((description_distance, weights.description, entry.description.norm))

        for tag in entry.tags:
            candidates.append((self._distance(pattern, tag.text), weights.tags, tag.norm))

        matched = [item for item in candidates if item[0] <= weights.threshold]
        if not matched:
            return None

        score = 1.0
        for distance, weight, norm in matched:
            score *= max(distance, _EPSILON) ** ((weight / weights.total) * norm)

        return ScoredDataset(
            dataset=entry.dataset,
            position=entry.position,
            score=score,
            distance=min(distance for distance, _, _ in matched),
        )

    @staticmethod
    def _distance(pattern: str, text: str) -> float:
        if not text:
            return 1.0
        if len(text) < len(pattern):
            similarity = fuzz.ratio(pattern, text)
        else:
            similarity = fuzz.partial_ratio(pattern, text)
        return 1.0 - similarity / 100.0
