from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query, Request, status

from catalog_mirror.core.errors import CatalogError
from catalog_mirror.services.catalog.projector import to_payload
from catalog_mirror.services.catalog.service import CatalogService

router = APIRouter(prefix="/datasets", tags=["datasets"])


def _service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def _raise_catalog_error(error: CatalogError) -> NoReturn:
    code_to_status = {
        "INVALID_INPUT": status.HTTP_422_UNPROCESSABLE_CONTENT,
        "DATASET_NOT_FOUND": status.HTTP_404_NOT_FOUND,
        "RECORD_PARSE_ERROR": status.HTTP_422_UNPROCESSABLE_CONTENT,
        "CATALOG_IO_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    }
    raise HTTPException(
        status_code=code_to_status.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.to_dict(),
    ) from error


@router.get("/search")
def search_datasets(
    request: Request,
    query: str = Query(default=""),
    limit: int | None = Query(default=None, ge=0),
    detail: str = Query(default="minimal"),
) -> dict:
    try:
        results = _service(request).search_datasets(query=query, limit=limit, detail=detail)
    except CatalogError as error:
        _raise_catalog_error(error)
    return {"results": to_payload(results)}


@router.get("/{dataset_id}")
def get_dataset(dataset_id: str, request: Request) -> dict:
    try:
        dataset = _service(request).get_dataset(dataset_id)
    except CatalogError as error:
        _raise_catalog_error(error)
    return {"dataset": dataset.to_payload()}
