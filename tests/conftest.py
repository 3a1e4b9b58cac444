from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from catalog_mirror.core.config import settings
from catalog_mirror.main import create_application
from tests.helpers.catalog_factory import FakeFetcher


@pytest.fixture()
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture()
def datasets_dir(cache_dir: Path) -> Path:
    return settings.datasets_dir(cache_dir)


@pytest.fixture()
def client(cache_dir: Path, fake_fetcher: FakeFetcher) -> TestClient:
    app = create_application(cache_dir=str(cache_dir), fetcher=fake_fetcher)
    with TestClient(app) as test_client:
        yield test_client
