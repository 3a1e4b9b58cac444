from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from catalog_mirror.core.errors import CatalogIOError, RecordParseError
from catalog_mirror.core.logging import logger
from catalog_mirror.models.dataset import Dataset
from catalog_mirror.services.catalog.loader import RecordLoader


@dataclass(frozen=True)
class Corpus:
    datasets: tuple[Dataset, ...]
    skipped: tuple[str, ...] = ()
    generation: int = 0

    def __len__(self) -> int:
        return len(self.datasets)

    def __iter__(self) -> Iterator[Dataset]:
        return iter(self.datasets)


class CorpusStore:
    """Enumerates the mirror's record files and loads them into a Corpus."""

    def __init__(self, datasets_dir: str | Path, *, loader: RecordLoader | None = None) -> None:
        self._datasets_dir = Path(datasets_dir)
        self._loader = loader or RecordLoader(self._datasets_dir)

    @property
    def loader(self) -> RecordLoader:
        return self._loader

    def list_ids(self) -> list[str]:
        suffix = self._loader.suffix
        try:
            names = sorted(
                entry.name
                for entry in self._datasets_dir.iterdir()
                if entry.name.endswith(suffix) and entry.is_file()
            )
        except OSError as exc:
            raise CatalogIOError(
                f"Failed to list catalog records: {exc}",
                payload={"datasets_dir": str(self._datasets_dir)},
            ) from exc
        return [name[: -len(suffix)] for name in names if len(name) > len(suffix)]

    def load_all(self, *, generation: int = 0) -> Corpus:
        datasets: list[Dataset] = []
        skipped: list[str] = []
        for dataset_id in self.list_ids():
            try:
                datasets.append(self._loader.load(dataset_id))
            except RecordParseError as exc:
                skipped.append(dataset_id)
                logger.warning("dataset_record_skipped", dataset_id=dataset_id, error=exc.message, **exc.payload)

        logger.info(
            "catalog_corpus_loaded",
            datasets=len(datasets),
            skipped=len(skipped),
            generation=generation,
        )
        return Corpus(datasets=tuple(datasets), skipped=tuple(skipped), generation=generation)
