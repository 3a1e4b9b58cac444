from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import orjson

from catalog_mirror.core.errors import CatalogError
from catalog_mirror.models.dataset import DETAIL_LEVELS


@dataclass
class Runtime:
    app: Any
    catalog_service: Any


def _create_runtime(args: argparse.Namespace) -> Runtime:
    from catalog_mirror.main import create_application

    app = create_application(cache_dir=args.cache_dir, archive_url=args.archive_url)
    return Runtime(app=app, catalog_service=app.state.catalog_service)


def _emit(payload: dict[str, Any], *, as_json: bool) -> None:
    if as_json:
        print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8"))
        return
    for key, value in payload.items():
        print(f"{key}: {value}")


def _error_payload(error: CatalogError) -> dict[str, Any]:
    return {
        "status": "error",
        "error_code": error.code,
        "message": error.message,
        **error.payload,
    }


def _run_health(args: argparse.Namespace, runtime: Runtime | None) -> int:
    del runtime
    _emit(
        {
            "status": "ok",
            "component": "catalog-mirror-cli",
            "timestamp_utc": datetime.now(UTC).isoformat(),
        },
        as_json=args.output_json,
    )
    return 0


def _run_search(args: argparse.Namespace, runtime: Runtime) -> int:
    from catalog_mirror.services.catalog.projector import to_payload

    results = runtime.catalog_service.search_datasets(
        query=args.query,
        limit=args.limit,
        detail=args.detail,
    )
    payload = to_payload(results)
    if args.output_json:
        _emit({"results": payload}, as_json=True)
        return 0
    for item in payload:
        if isinstance(item, str):
            print(item)
        else:
            print(f"{item['id']}: {item['Name']}")
    return 0


def _run_get(args: argparse.Namespace, runtime: Runtime) -> int:
    dataset = runtime.catalog_service.get_dataset(args.id)
    _emit({"dataset": dataset.to_payload()} if args.output_json else dataset.to_payload(), as_json=args.output_json)
    return 0


def _run_cache_status(args: argparse.Namespace, runtime: Runtime) -> int:
    _emit(runtime.catalog_service.cache_status().model_dump(mode="json"), as_json=args.output_json)
    return 0


def _run_cache_populate(args: argparse.Namespace, runtime: Runtime) -> int:
    _emit(runtime.catalog_service.populate().model_dump(mode="json"), as_json=args.output_json)
    return 0


def _run_serve(args: argparse.Namespace, runtime: Runtime) -> int:
    import uvicorn

    from catalog_mirror.core.config import settings

    uvicorn.run(
        runtime.app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalog-mirror")
    parser.add_argument("--cache-dir", default=None)
    parser.add_argument("--archive-url", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    health = subparsers.add_parser("health")
    health.add_argument("--output-json", action="store_true")
    health.set_defaults(handler=_run_health, requires_runtime=False)

    search = subparsers.add_parser("search")
    search.add_argument("--query", default="")
    search.add_argument("--limit", type=int, default=None)
    search.add_argument("--detail", choices=DETAIL_LEVELS, default="minimal")
    search.add_argument("--output-json", action="store_true")
    search.set_defaults(handler=_run_search, requires_runtime=True)

    get = subparsers.add_parser("get")
    get.add_argument("--id", required=True)
    get.add_argument("--output-json", action="store_true")
    get.set_defaults(handler=_run_get, requires_runtime=True)

    cache = subparsers.add_parser("cache")
    cache_sub = cache.add_subparsers(dest="cache_command", required=True)

    cache_status = cache_sub.add_parser("status")
    cache_status.add_argument("--output-json", action="store_true")
    cache_status.set_defaults(handler=_run_cache_status, requires_runtime=True)

    cache_populate = cache_sub.add_parser("populate")
    cache_populate.add_argument("--output-json", action="store_true")
    cache_populate.set_defaults(handler=_run_cache_populate, requires_runtime=True)

    serve = subparsers.add_parser("serve")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=_run_serve, requires_runtime=True)

    return parser


def _execute_handler(args: argparse.Namespace, runtime: Runtime | None) -> int:
    as_json = bool(getattr(args, "output_json", False))
    try:
        return int(args.handler(args, runtime))
    except CatalogError as error:
        _emit(_error_payload(error), as_json=as_json)
        return 2


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    runtime: Runtime | None = None
    if bool(getattr(args, "requires_runtime", True)):
        runtime = _create_runtime(args)
    return _execute_handler(args, runtime)


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    raise SystemExit(main())
