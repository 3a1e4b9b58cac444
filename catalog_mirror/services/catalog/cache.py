from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Protocol

from catalog_mirror.core.errors import CatalogIOError
from catalog_mirror.core.logging import logger
from catalog_mirror.models.dataset import CacheState, CacheStatus


class Fetcher(Protocol):
    def fetch(self, url: str, target_dir: str | Path) -> Path: ...


class CachePopulator:
    """Makes sure the local catalog mirror exists, fetching it at most once per miss.

    Concurrent callers that find the mirror missing share a single fetch: the
    first one downloads while the others wait on the lock and then see the
    populated directory.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        archive_url: str,
        cache_dir: str | Path,
        datasets_dir: str | Path,
    ) -> None:
        self._fetcher = fetcher
        self._archive_url = archive_url
        self._cache_dir = Path(cache_dir)
        self._datasets_dir = Path(datasets_dir)
        self._lock = Lock()
        self._state: CacheState = "UNPOPULATED"
        self._generation = 0
        self._populated_at: datetime | None = None
        self._last_error: str | None = None

    @property
    def datasets_dir(self) -> Path:
        return self._datasets_dir

    @property
    def generation(self) -> int:
        return self._generation

    def ensure(self) -> int:
        """Populate the mirror if it is missing and return the cache generation."""
        if self._state == "POPULATED" and self._datasets_dir.is_dir():
            return self._generation

        with self._lock:
            if self._datasets_dir.is_dir():
                if self._state != "POPULATED":
                    # Mirror left behind by an earlier process.
                    self._mark_populated()
                return self._generation
            self._populate()
            return self._generation

    def status(self) -> CacheStatus:
        return CacheStatus(
            state=self._state,
            archive_url=self._archive_url,
            datasets_dir=str(self._datasets_dir),
            generation=self._generation,
            populated_at=self._populated_at,
            last_error=self._last_error,
        )

    def _populate(self) -> None:
        self._state = "POPULATING"
        logger.info(
            "catalog_cache_population_started",
            archive_url=self._archive_url,
            cache_dir=str(self._cache_dir),
        )
        try:
            self._fetcher.fetch(self._archive_url, self._cache_dir)
            if not self._datasets_dir.is_dir():
                raise CatalogIOError(
                    "Catalog archive did not contain the expected datasets directory.",
                    payload={"datasets_dir": str(self._datasets_dir)},
                )
        except CatalogIOError as exc:
            self._mark_failed(exc)
            raise
        except Exception as exc:
            error = CatalogIOError(
                f"Catalog cache population failed: {exc}",
                payload={"error_type": type(exc).__name__},
            )
            self._mark_failed(error)
            raise error from exc

        self._mark_populated()
        logger.info(
            "catalog_cache_population_finished",
            datasets_dir=str(self._datasets_dir),
            generation=self._generation,
        )

    def _mark_failed(self, error: CatalogIOError) -> None:
        self._state = "FAILED"
        self._last_error = error.message
        logger.error("catalog_cache_population_failed", error=error.message, **error.payload)

    def _mark_populated(self) -> None:
        self._state = "POPULATED"
        self._generation += 1
        self._populated_at = datetime.now(UTC)
        self._last_error = None
