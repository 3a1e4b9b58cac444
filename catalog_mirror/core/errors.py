from __future__ import annotations


class CatalogError(RuntimeError):
    """Base error for catalog operations; carries a stable code and a payload."""

    code = "CATALOG_ERROR"

    def __init__(self, message: str, *, payload: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.payload}


class InputValidationError(CatalogError):
    code = "INVALID_INPUT"


class DatasetNotFoundError(CatalogError):
    code = "DATASET_NOT_FOUND"


class RecordParseError(CatalogError):
    code = "RECORD_PARSE_ERROR"


class CatalogIOError(CatalogError):
    code = "CATALOG_IO_ERROR"
