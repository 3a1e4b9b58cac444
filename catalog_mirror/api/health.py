from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request) -> dict:
    cache_status = request.app.state.catalog_service.cache_status()
    return {"status": "ok", "cache": cache_status.model_dump(mode="json")}
