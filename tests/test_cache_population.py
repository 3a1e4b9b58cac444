from __future__ import annotations

import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx
import pytest

from catalog_mirror.core.config import settings
from catalog_mirror.core.errors import CatalogIOError
from catalog_mirror.services.catalog.cache import CachePopulator, Fetcher
from catalog_mirror.services.catalog.fetcher import ArchiveFetcher
from catalog_mirror.services.catalog.search import SearchEngine
from catalog_mirror.services.catalog.service import CatalogService
from catalog_mirror.services.catalog.store import CorpusStore
from tests.helpers.catalog_factory import SAMPLE_RECORDS, FakeFetcher, make_tarball, write_records

ARCHIVE_URL = "https://example.test/registry.tar.gz"


def _populator(fetcher: Fetcher, cache_dir: Path) -> CachePopulator:
    return CachePopulator(
        fetcher=fetcher,
        archive_url=ARCHIVE_URL,
        cache_dir=cache_dir,
        datasets_dir=settings.datasets_dir(cache_dir),
    )


def test_ensure_fetches_once_then_is_a_no_op(cache_dir: Path) -> None:
    fetcher = FakeFetcher()
    cache = _populator(fetcher, cache_dir)
    assert cache.status().state == "UNPOPULATED"

    assert cache.ensure() == 1
    assert cache.ensure() == 1

    assert fetcher.calls == [(ARCHIVE_URL, cache_dir)]
    status = cache.status()
    assert status.state == "POPULATED"
    assert status.generation == 1
    assert status.last_error is None


def test_existing_mirror_is_used_without_fetching(cache_dir: Path, datasets_dir: Path) -> None:
    write_records(datasets_dir, SAMPLE_RECORDS)
    fetcher = FakeFetcher()
    cache = _populator(fetcher, cache_dir)

    assert cache.ensure() == 1
    assert fetcher.calls == []
    assert cache.status().state == "POPULATED"


def test_fetch_failure_propagates_and_a_later_call_can_retry(cache_dir: Path) -> None:
    fetcher = FakeFetcher(fail_with="Failed to download catalog archive: HTTP 500")
    cache = _populator(fetcher, cache_dir)

    with pytest.raises(CatalogIOError):
        cache.ensure()
    status = cache.status()
    assert status.state == "FAILED"
    assert status.last_error == "Failed to download catalog archive: HTTP 500"
    assert len(fetcher.calls) == 1

    fetcher.fail_with = None
    assert cache.ensure() == 1
    assert cache.status().state == "POPULATED"
    assert len(fetcher.calls) == 2


def test_archive_without_datasets_directory_is_a_failure(cache_dir: Path) -> None:
    cache = _populator(FakeFetcher(create_datasets_dir=False), cache_dir)

    with pytest.raises(CatalogIOError) as exc_info:
        cache.ensure()
    assert "datasets directory" in exc_info.value.message
    assert cache.status().state == "FAILED"


def test_concurrent_first_callers_share_one_fetch(cache_dir: Path) -> None:
    fetcher = FakeFetcher(delay_seconds=0.2)
    cache = _populator(fetcher, cache_dir)

    with ThreadPoolExecutor(max_workers=8) as pool:
        generations = list(pool.map(lambda _: cache.ensure(), range(8)))

    assert generations == [1] * 8
    assert len(fetcher.calls) == 1


def test_service_reloads_corpus_once_per_generation(cache_dir: Path, datasets_dir: Path) -> None:
    fetcher = FakeFetcher()
    cache = _populator(fetcher, cache_dir)
    service = CatalogService(cache=cache, store=CorpusStore(datasets_dir), engine=SearchEngine())

    first = service.corpus()
    assert service.corpus() is first
    assert len(first) == 9

    # Mirror removed out-of-band: next access re-fetches and rebuilds the corpus.
    shutil.rmtree(cache_dir)
    second = service.corpus()

    assert second is not first
    assert second.generation == 2
    assert len(fetcher.calls) == 2


def test_concurrent_service_callers_share_one_corpus(cache_dir: Path, datasets_dir: Path) -> None:
    fetcher = FakeFetcher(delay_seconds=0.1)
    service = CatalogService(cache=_populator(fetcher, cache_dir), store=CorpusStore(datasets_dir))

    with ThreadPoolExecutor(max_workers=6) as pool:
        corpora = list(pool.map(lambda _: service.corpus(), range(6)))

    assert len(fetcher.calls) == 1
    assert all(corpus is corpora[0] for corpus in corpora)


class _ExplodingFetcher:
    def fetch(self, url: str, target_dir: str | Path) -> Path:
        raise RuntimeError("disk controller on fire")


def test_unexpected_fetch_error_marks_cache_failed(cache_dir: Path) -> None:
    cache = _populator(_ExplodingFetcher(), cache_dir)

    with pytest.raises(CatalogIOError) as exc_info:
        cache.ensure()

    assert exc_info.value.payload["error_type"] == "RuntimeError"
    status = cache.status()
    assert status.state == "FAILED"
    assert "disk controller on fire" in status.last_error


def test_interrupted_extraction_is_refetched_on_next_call(cache_dir: Path, datasets_dir: Path) -> None:
    prefix = "open-data-registry-main/datasets"
    payloads = [
        make_tarball(
            {
                f"{prefix}/a.yaml": "Name: A\nDescription: first\n",
                "../evil.yaml": "Name: Evil\nDescription: escapes the cache\n",
                f"{prefix}/b.yaml": "Name: B\nDescription: second\n",
            }
        ),
        make_tarball(
            {
                f"{prefix}/a.yaml": "Name: A\nDescription: first\n",
                f"{prefix}/b.yaml": "Name: B\nDescription: second\n",
            }
        ),
    ]
    requests: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(str(request.url))
        return httpx.Response(200, content=payloads[min(len(requests), len(payloads)) - 1])

    fetcher = ArchiveFetcher(transport=httpx.MockTransport(handler), timeout_seconds=5.0)
    cache = _populator(fetcher, cache_dir)

    with pytest.raises(CatalogIOError):
        cache.ensure()
    assert cache.status().state == "FAILED"
    assert not datasets_dir.exists()

    assert cache.ensure() == 1
    assert len(requests) == 2
    assert CorpusStore(datasets_dir).list_ids() == ["a", "b"]


def test_truncated_archive_marks_cache_failed(cache_dir: Path, datasets_dir: Path) -> None:
    payload = make_tarball(
        {f"open-data-registry-main/datasets/record-{index}.yaml": "Name: R\nDescription: r\n" * 40 for index in range(20)}
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=payload[: len(payload) // 2])

    cache = _populator(ArchiveFetcher(transport=httpx.MockTransport(handler), timeout_seconds=5.0), cache_dir)

    with pytest.raises(CatalogIOError):
        cache.ensure()
    assert cache.status().state == "FAILED"
    assert not datasets_dir.exists()
