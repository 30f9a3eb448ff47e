"""Download and unpack the published hashlist archive."""

from __future__ import annotations

import shutil
import tempfile
import threading
import zipfile
from pathlib import Path

import httpx
import structlog

from ..config import ArchiveConfig
from ..errors import DownloadError, SyncCancelled


class ArchiveDownloader:
    """Fetch the hashlist zipball and extract it into a scratch directory."""

    def __init__(
        self,
        config: ArchiveConfig,
        downloads_dir: Path,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.downloads_dir = downloads_dir
        self.logger = logger or structlog.get_logger("hashlist_sync.downloader")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=config.timeout,
            headers={"Accept-Encoding": "gzip", "User-Agent": config.user_agent},
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, cancel_event: threading.Event | None = None) -> Path:
        """Return a fresh directory holding the extracted page files."""

        cancel_event = cancel_event or threading.Event()
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        workdir = Path(tempfile.mkdtemp(prefix="hashlists-", dir=self.downloads_dir))
        archive_path = workdir / "hashlists.zip"
        extract_root = workdir / "pages"
        try:
            self._download(archive_path, cancel_event)
            if cancel_event.is_set():
                raise SyncCancelled("Cancelled before archive extraction")
            self._extract(archive_path, extract_root)
        except BaseException:
            shutil.rmtree(workdir, ignore_errors=True)
            raise
        archive_path.unlink(missing_ok=True)
        self.logger.info("archive_extracted", path=str(extract_root))
        return extract_root

    def cleanup(self, directory: Path) -> None:
        """Remove a directory previously returned by :meth:`fetch`."""

        target = directory.parent if directory.name == "pages" else directory
        try:
            target.resolve().relative_to(self.downloads_dir.resolve())
        except ValueError:
            self.logger.warning("cleanup_outside_downloads", path=str(target))
            return
        shutil.rmtree(target, ignore_errors=True)
        self.logger.debug("download_removed", path=str(target))

    # ------------------------------------------------------------------
    def _download(self, destination: Path, cancel_event: threading.Event) -> None:
        self.logger.info("archive_download_started", url=self.config.url)
        received = 0
        try:
            with self._client.stream("GET", self.config.url) as response:
                response.raise_for_status()
                with destination.open("wb") as stream:
                    for chunk in response.iter_bytes(self.config.chunk_size):
                        if cancel_event.is_set():
                            raise SyncCancelled("Cancelled during archive download")
                        stream.write(chunk)
                        received += len(chunk)
        except httpx.HTTPStatusError as exc:
            raise DownloadError(
                f"Archive request failed with status {exc.response.status_code}: {self.config.url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DownloadError(f"Archive request failed: {self.config.url}: {exc}") from exc
        except OSError as exc:
            raise DownloadError(f"Unable to write archive to {destination}: {exc}") from exc
        self.logger.info("archive_downloaded", bytes=received)

    def _extract(self, archive_path: Path, extract_root: Path) -> None:
        extract_root.mkdir(parents=True, exist_ok=True)
        root = extract_root.resolve()
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for member in archive.infolist():
                    target = (extract_root / member.filename).resolve()
                    try:
                        target.relative_to(root)
                    except ValueError as exc:
                        raise DownloadError(
                            f"Archive entry escapes extraction root: {member.filename}"
                        ) from exc
                    archive.extract(member, extract_root)
        except zipfile.BadZipFile as exc:
            raise DownloadError(f"Downloaded archive is not a valid zip file: {exc}") from exc
        except OSError as exc:
            raise DownloadError(f"Unable to extract archive: {exc}") from exc


__all__ = ["ArchiveDownloader"]
