from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from catalog_mirror.core.errors import (
    CatalogIOError,
    DatasetNotFoundError,
    InputValidationError,
    RecordParseError,
)
from catalog_mirror.models.dataset import Dataset


class RecordLoader:
    """Reads one YAML record from the mirror and validates it into a Dataset."""

    def __init__(self, datasets_dir: str | Path, *, suffix: str = ".yaml") -> None:
        self._datasets_dir = Path(datasets_dir)
        self._suffix = suffix

    @property
    def suffix(self) -> str:
        return self._suffix

    def path_for(self, dataset_id: str) -> Path:
        if not dataset_id or dataset_id.strip() != dataset_id:
            raise InputValidationError("Dataset id must be a non-empty string.", payload={"id": dataset_id})
        if "/" in dataset_id or "\\" in dataset_id or dataset_id in {".", ".."}:
            raise InputValidationError("Dataset id must not contain path separators.", payload={"id": dataset_id})
        return self._datasets_dir / f"{dataset_id}{self._suffix}"

    def load(self, dataset_id: str) -> Dataset:
        path = self.path_for(dataset_id)
        if not path.is_file():
            raise DatasetNotFoundError(f"Dataset not found: {dataset_id}", payload={"id": dataset_id})

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise RecordParseError(
                f"Dataset record is not valid UTF-8: {dataset_id}",
                payload={"id": dataset_id},
            ) from exc
        except OSError as exc:
            raise CatalogIOError(
                f"Failed to read dataset record: {dataset_id}",
                payload={"id": dataset_id, "path": str(path)},
            ) from exc

        return self.parse(dataset_id, text)

    @staticmethod
    def parse(dataset_id: str, text: str) -> Dataset:
        try:
            body = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise RecordParseError(
                f"Dataset record is not well-formed YAML: {dataset_id}",
                payload={"id": dataset_id, "reason": str(exc)},
            ) from exc

        if not isinstance(body, dict):
            raise RecordParseError(
                f"Dataset record must be a mapping: {dataset_id}",
                payload={"id": dataset_id, "reason": f"got {type(body).__name__}"},
            )

        # The id comes from the record's location and overrides any id in the body.
        merged = {**body, "id": dataset_id}
        try:
            return Dataset.model_validate(merged)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()[:3]
            )
            raise RecordParseError(
                f"Dataset record failed validation: {dataset_id}",
                payload={"id": dataset_id, "reason": details},
            ) from exc
