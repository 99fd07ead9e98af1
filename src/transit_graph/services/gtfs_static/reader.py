"""GTFS feed directory - archive extraction, table discovery and cleanup."""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path

from transit_graph.logging import get_logger
from transit_graph.models.gtfs import TableKind

logger = get_logger(__name__)


class GtfsFeedDirectory:
    """A directory of extracted GTFS ``*.txt`` table files."""

    def __init__(self, path: str | Path) -> None:
        """Initialize with the directory holding the table files.

        Raises:
            FileNotFoundError: If the directory does not exist.
        """
        self.path = Path(path)
        if not self.path.is_dir():
            msg = f"GTFS feed directory not found: {self.path}"
            raise FileNotFoundError(msg)

    def list_files(self) -> list[str]:
        """List every ``.txt`` file in the directory."""
        return sorted(entry.name for entry in self.path.iterdir() if entry.suffix == ".txt")

    def tables(self) -> dict[TableKind, Path]:
        """Return the known table files, keyed by table kind.

        Unrecognized text files (shapes.txt, transfers.txt, ...) are ignored.
        """
        tables: dict[TableKind, Path] = {}
        ignored: list[str] = []
        for filename in self.list_files():
            kind = TableKind.from_filename(filename)
            if kind is None:
                ignored.append(filename)
                continue
            tables[kind] = self.path / filename

        logger.info(
            "GTFS feed directory scanned",
            path=str(self.path),
            tables=sorted(kind.value for kind in tables),
            ignored=ignored or None,
        )
        return tables


def extract_archive(zip_path: str | Path, destination: str | Path) -> Path:
    """Extract every entry of a GTFS zip into ``destination``.

    An entry that cannot be written is logged and skipped; the rest of the
    archive is still extracted.

    Raises:
        zipfile.BadZipFile: If the archive itself is unreadable.
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)

    extracted = 0
    with zipfile.ZipFile(zip_path) as archive:
        for member in archive.infolist():
            try:
                archive.extract(member, destination)
                extracted += 1
            except (OSError, zipfile.BadZipFile) as exc:
                logger.warning(
                    "Skipping archive entry",
                    entry=member.filename,
                    error=str(exc),
                )

    logger.info("GTFS archive extracted", destination=str(destination), entries=extracted)
    return destination


def remove_feed_files(*paths: str | Path) -> None:
    """Delete downloaded archives and extracted directories.

    Failures are logged and otherwise ignored.
    """
    for raw_path in paths:
        path = Path(raw_path)
        try:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
            else:
                continue
            logger.info("Removed feed files", path=str(path))
        except OSError as exc:
            logger.error("Could not remove feed files", path=str(path), error=str(exc))
