from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

DetailLevel = Literal["nameOnly", "minimal", "full"]
DETAIL_LEVELS: tuple[str, ...] = get_args(DetailLevel)

CacheState = Literal["UNPOPULATED", "POPULATING", "POPULATED", "FAILED"]

_SCALARS = (int, float, bool, date, datetime)


def _scalar_to_str(value: Any) -> Any:
    # YAML turns unquoted values like `2019` or `2020-01-01` into numbers/dates.
    if isinstance(value, _SCALARS):
        return str(value)
    return value


class DatasetResource(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    Description: str | None = None
    ARN: str | None = None
    Region: str | None = None
    Type: str | None = None

    @field_validator("Description", "ARN", "Region", "Type", mode="before")
    @classmethod
    def _normalize_scalars(cls, value: Any) -> Any:
        return _scalar_to_str(value)


class Dataset(BaseModel):
    """One catalog entry.

    Keys beyond the declared fields are kept as-is so that full views return
    the whole record.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(min_length=1)
    Name: str = Field(min_length=1)
    Description: str
    Documentation: str | None = None
    Contact: str | None = None
    ManagedBy: str | None = None
    UpdateFrequency: str | None = None
    License: str | None = None
    Tags: list[str] | None = None
    Resources: list[DatasetResource] | None = None

    @field_validator(
        "Name",
        "Description",
        "Documentation",
        "Contact",
        "ManagedBy",
        "UpdateFrequency",
        "License",
        mode="before",
    )
    @classmethod
    def _normalize_scalars(cls, value: Any) -> Any:
        return _scalar_to_str(value)

    @field_validator("Tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [_scalar_to_str(item) for item in value]
        return value

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class DatasetSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    Name: str
    Description: str

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


ProjectedResults = list[str] | list[DatasetSummary] | list[Dataset]


class CacheStatus(BaseModel):
    model_config = ConfigDict(extra="forbid")

    state: CacheState
    archive_url: str
    datasets_dir: str
    generation: int = Field(default=0, ge=0)
    populated_at: datetime | None = None
    last_error: str | None = None
