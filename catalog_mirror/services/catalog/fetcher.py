from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path

import httpx

from catalog_mirror.core.errors import CatalogIOError
from catalog_mirror.core.logging import logger


class ArchiveFetcher:
    """Downloads a remote ``.tar.gz`` archive and unpacks it into a directory."""

    _ARCHIVE_NAME = "archive.tar.gz"

    def __init__(
        self,
        *,
        timeout_seconds: float = 120.0,
        transport: httpx.BaseTransport | None = None,
        chunk_size: int = 1 << 16,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._chunk_size = chunk_size

    def fetch(self, url: str, target_dir: str | Path) -> Path:
        target = Path(target_dir)
        archive_path = target / self._ARCHIVE_NAME
        try:
            target.mkdir(parents=True, exist_ok=True)
            self._download(url, archive_path)
            self._extract(archive_path, target)
        except OSError as exc:
            raise CatalogIOError(
                f"Failed to store catalog archive: {exc}",
                payload={"url": url, "target_dir": str(target)},
            ) from exc
        finally:
            archive_path.unlink(missing_ok=True)
        return target

    def _download(self, url: str, archive_path: Path) -> None:
        logger.info("catalog_archive_download_started", url=url)
        try:
            with httpx.Client(
                transport=self._transport,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            ) as client:
                with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise CatalogIOError(
                            f"Failed to download catalog archive: HTTP {response.status_code} {response.reason_phrase}",
                            payload={"url": url, "status_code": response.status_code},
                        )
                    with archive_path.open("wb") as f:
                        for chunk in response.iter_bytes(self._chunk_size):
                            f.write(chunk)
        except httpx.HTTPError as exc:
            raise CatalogIOError(
                f"Failed to download catalog archive: {exc}",
                payload={"url": url},
            ) from exc
        logger.info("catalog_archive_downloaded", url=url, bytes=archive_path.stat().st_size)

    @staticmethod
    def _extract(archive_path: Path, target: Path) -> None:
        # Unpack into a staging directory so a failed extraction never leaves
        # a partial mirror in the target.
        staging = Path(tempfile.mkdtemp(prefix=".extract-", dir=target))
        try:
            try:
                with tarfile.open(archive_path, "r:gz") as archive:
                    archive.extractall(staging, filter="data")
            except (tarfile.TarError, EOFError, zlib.error) as exc:
                raise CatalogIOError(
                    f"Failed to unpack catalog archive: {exc}",
                    payload={"archive": str(archive_path)},
                ) from exc

            for entry in staging.iterdir():
                destination = target / entry.name
                if destination.is_dir() and not destination.is_symlink():
                    shutil.rmtree(destination)
                elif destination.exists() or destination.is_symlink():
                    destination.unlink()
                os.replace(entry, destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        logger.info("catalog_archive_extracted", target_dir=str(target))
