"""GTFS static feed acquisition: download or locate the archive and extract it."""

from __future__ import annotations

import hashlib
import io
import zipfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from transit_graph.logging import get_logger
from transit_graph.services.gtfs_static.reader import extract_archive, remove_feed_files

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 300

ARCHIVE_NAME = "gtfs.zip"
FEED_DIR_NAME = "gtfs"

# ZIP magic bytes
ZIP_MAGIC = b"PK\x03\x04"


class FetchError(Exception):
    """Raised when the GTFS archive cannot be downloaded."""


class InvalidZipError(Exception):
    """Raised when downloaded content is not a valid ZIP."""


@dataclass
class FeedWorkspace:
    """Where an acquired feed lives on disk and what to delete afterwards."""

    feed_dir: Path
    feed_hash: str = ""
    owns_feed_dir: bool = True

    def cleanup(self) -> None:
        """Remove the extracted directory if this run created it."""
        if self.owns_feed_dir:
            remove_feed_files(self.feed_dir)


class GtfsStaticFetcher:
    """Fetches a static GTFS archive from a remote URL or a local path.

    There is no retry: a failed download fails the run.
    """

    def __init__(self, timeout_sec: int = DEFAULT_TIMEOUT_SEC) -> None:
        self.timeout_sec = timeout_sec

    async def fetch_remote(self, url: str) -> tuple[bytes, str]:
        """Download a GTFS ZIP.

        Returns:
            Tuple of (zip_bytes, sha256_hex_digest).

        Raises:
            FetchError: On a transport error or any non-200 response.
            InvalidZipError: If the response is not a valid ZIP.
        """
        logger.info("Downloading GTFS static feed", url=url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            msg = f"Couldn't download GTFS feed from {url}: {exc}"
            raise FetchError(msg) from exc

        if response.status_code != 200:
            msg = f"Couldn't download GTFS feed from {url}: HTTP {response.status_code}"
            raise FetchError(msg)

        data = response.content
        self._validate_zip(data)
        feed_hash = hashlib.sha256(data).hexdigest()
        logger.info("GTFS feed downloaded", size_bytes=len(data), feed_hash=feed_hash)
        return data, feed_hash

    def fetch_local(self, path: str | Path) -> tuple[bytes, str]:
        """Read a GTFS ZIP from the local filesystem.

        Raises:
            FileNotFoundError: If path does not exist.
            InvalidZipError: If file is not a valid ZIP.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Local GTFS file not found: {path}"
            raise FileNotFoundError(msg)

        data = path.read_bytes()
        self._validate_zip(data)
        feed_hash = hashlib.sha256(data).hexdigest()
        logger.info(
            "GTFS feed loaded from local file",
            path=str(path),
            size_bytes=len(data),
            feed_hash=feed_hash,
        )
        return data, feed_hash

    async def prepare(self, source_type: str, source: str, work_dir: str | Path) -> FeedWorkspace:
        """Make the feed available as a directory of table files.

        - ``directory``: use ``source`` as is; it is never deleted.
        - ``local``: extract the zip at ``source`` into ``work_dir/gtfs``.
        - ``remote``: download ``source`` to ``work_dir/gtfs.zip``, extract it
          into ``work_dir/gtfs`` and delete the zip.

        An already extracted ``work_dir/gtfs`` (left by an interrupted run) is
        reused instead of downloading again.

        Raises:
            ValueError: If ``source_type`` is unknown.
        """
        if source_type == "directory":
            return FeedWorkspace(feed_dir=Path(source), owns_feed_dir=False)
        if source_type not in ("remote", "local"):
            msg = f"Invalid source_type: {source_type}"
            raise ValueError(msg)

        work_dir = Path(work_dir)
        feed_dir = work_dir / FEED_DIR_NAME
        if feed_dir.is_dir():
            logger.info("Reusing extracted GTFS feed", path=str(feed_dir))
            return FeedWorkspace(feed_dir=feed_dir)

        work_dir.mkdir(parents=True, exist_ok=True)
        if source_type == "local":
            _, feed_hash = self.fetch_local(source)
            extract_archive(source, feed_dir)
            return FeedWorkspace(feed_dir=feed_dir, feed_hash=feed_hash)

        zip_path = work_dir / ARCHIVE_NAME
        if zip_path.exists():
            data, feed_hash = self.fetch_local(zip_path)
        else:
            data, feed_hash = await self.fetch_remote(source)
            zip_path.write_bytes(data)
        extract_archive(zip_path, feed_dir)
        remove_feed_files(zip_path)
        return FeedWorkspace(feed_dir=feed_dir, feed_hash=feed_hash)

    @staticmethod
    def _validate_zip(data: bytes) -> None:
        """Validate that data starts with ZIP magic bytes."""
        if len(data) < 4 or data[:4] != ZIP_MAGIC:
            msg = "Downloaded content is not a valid ZIP file"
            raise InvalidZipError(msg)
        if not zipfile.is_zipfile(io.BytesIO(data)):
            msg = "Downloaded content is not a valid ZIP file"
            raise InvalidZipError(msg)
