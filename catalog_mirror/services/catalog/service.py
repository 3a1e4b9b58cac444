from __future__ import annotations

from threading import Lock

from catalog_mirror.core.errors import InputValidationError
from catalog_mirror.models.dataset import CacheStatus, Dataset, ProjectedResults
from catalog_mirror.services.catalog.cache import CachePopulator
from catalog_mirror.services.catalog.projector import project, validate_detail
from catalog_mirror.services.catalog.search import SearchEngine
from catalog_mirror.services.catalog.store import Corpus, CorpusStore


class CatalogService:
    """Query interface over the mirrored catalog: search and lookup by id."""

    def __init__(
        self,
        *,
        cache: CachePopulator,
        store: CorpusStore,
        engine: SearchEngine | None = None,
        default_limit: int = 25,
    ) -> None:
        self._cache = cache
        self._store = store
        self._engine = engine or SearchEngine()
        self._default_limit = default_limit
        self._lock = Lock()
        self._corpus: Corpus | None = None

    @property
    def default_limit(self) -> int:
        return self._default_limit

    def corpus(self) -> Corpus:
        """Return the in-memory corpus, loading it once per cache generation."""
        generation = self._cache.ensure()
        with self._lock:
            if self._corpus is None or self._corpus.generation != generation:
                self._corpus = self._store.load_all(generation=generation)
            return self._corpus

    def search_datasets(
        self,
        query: str = "",
        limit: int | None = None,
        detail: str = "minimal",
    ) -> ProjectedResults:
        level = validate_detail(detail)
        resolved_limit = self._default_limit if limit is None else limit
        if isinstance(resolved_limit, bool) or not isinstance(resolved_limit, int) or resolved_limit < 0:
            raise InputValidationError("limit must be a non-negative integer.", payload={"limit": resolved_limit})

        datasets = self._engine.search(self.corpus(), query or "", resolved_limit)
        return project(datasets, level)

    def get_dataset(self, dataset_id: str) -> Dataset:
        loader = self._store.loader
        # Malformed ids are rejected before the cache is touched.
        loader.path_for(dataset_id)
        self._cache.ensure()
        return loader.load(dataset_id)

    def cache_status(self) -> CacheStatus:
        return self._cache.status()

    def populate(self) -> CacheStatus:
        self._cache.ensure()
        return self._cache.status()
