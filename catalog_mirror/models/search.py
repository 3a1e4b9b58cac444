from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SearchWeights(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: float = Field(default=2.5, gt=0.0)
    description: float = Field(default=2.0, gt=0.0)
    tags: float = Field(default=2.0, gt=0.0)
    # Largest field distance (0 = exact, 1 = unrelated) still counted as a match.
    threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    @property
    def total(self) -> float:
        return self.name + self.description + self.tags
