from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_mirror.api.datasets import router as datasets_router
from catalog_mirror.api.health import router as health_router
from catalog_mirror.core.config import settings
from catalog_mirror.core.errors import InputValidationError
from catalog_mirror.core.logging import configure_logging, logger
from catalog_mirror.models.search import SearchWeights
from catalog_mirror.services.catalog.cache import CachePopulator, Fetcher
from catalog_mirror.services.catalog.fetcher import ArchiveFetcher
from catalog_mirror.services.catalog.loader import RecordLoader
from catalog_mirror.services.catalog.search import SearchEngine
from catalog_mirror.services.catalog.service import CatalogService
from catalog_mirror.services.catalog.store import CorpusStore

configure_logging()


def create_application(
    *,
    cache_dir: str | None = None,
    archive_url: str | None = None,
    fetcher: Fetcher | None = None,
    search_weights: SearchWeights | None = None,
) -> FastAPI:
    app = FastAPI(title=settings.app_name)

    resolved_cache_dir = cache_dir or settings.cache_dir
    resolved_archive_url = archive_url or settings.archive_url
    datasets_dir = settings.datasets_dir(resolved_cache_dir)

    cache = CachePopulator(
        fetcher=fetcher or ArchiveFetcher(timeout_seconds=settings.download_timeout_seconds),
        archive_url=resolved_archive_url,
        cache_dir=resolved_cache_dir,
        datasets_dir=datasets_dir,
    )
    loader = RecordLoader(datasets_dir, suffix=settings.record_suffix)
    catalog_service = CatalogService(
        cache=cache,
        store=CorpusStore(datasets_dir, loader=loader),
        engine=SearchEngine(search_weights),
        default_limit=settings.default_search_limit,
    )

    app.state.catalog_cache = cache
    app.state.catalog_service = catalog_service

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        logger.warning("request_validation_failed", path=request.url.path, errors=errors)
        error = InputValidationError("Invalid request parameters.", payload={"errors": errors})
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, content={"detail": error.to_dict()})

    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(datasets_router, prefix=settings.api_prefix)

    return app


app = create_application()
