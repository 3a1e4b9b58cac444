from __future__ import annotations

from typing import Any, Callable, Sequence

from catalog_mirror.core.errors import InputValidationError
from catalog_mirror.models.dataset import DETAIL_LEVELS, Dataset, DatasetSummary, DetailLevel, ProjectedResults


def _name_only(datasets: Sequence[Dataset]) -> list[str]:
    return [dataset.Name for dataset in datasets]


def _minimal(datasets: Sequence[Dataset]) -> list[DatasetSummary]:
    return [DatasetSummary(id=dataset.id, Name=dataset.Name, Description=dataset.Description) for dataset in datasets]


def _full(datasets: Sequence[Dataset]) -> list[Dataset]:
    return list(datasets)


_PROJECTORS: dict[str, Callable[[Sequence[Dataset]], ProjectedResults]] = {
    "nameOnly": _name_only,
    "minimal": _minimal,
    "full": _full,
}


def validate_detail(detail: str) -> DetailLevel:
    if detail not in _PROJECTORS:
        raise InputValidationError(
            f"detail must be one of: {', '.join(DETAIL_LEVELS)}",
            payload={"detail": detail, "allowed": list(DETAIL_LEVELS)},
        )
    return detail  # type: ignore[return-value]


def project(datasets: Sequence[Dataset], detail: DetailLevel) -> ProjectedResults:
    return _PROJECTORS[validate_detail(detail)](datasets)


def to_payload(results: ProjectedResults) -> list[Any]:
    return [item if isinstance(item, str) else item.to_payload() for item in results]
