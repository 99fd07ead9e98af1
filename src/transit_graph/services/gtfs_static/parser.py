"""GTFS CSV parser with column validation, row skipping and streaming."""

from __future__ import annotations

import csv
import sys
from typing import TYPE_CHECKING

from transit_graph.logging import get_logger
from transit_graph.models.gtfs import TableKind

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator
    from pathlib import Path

logger = get_logger(__name__)

# Columns without which a table cannot be mapped at all
REQUIRED_COLUMNS: dict[TableKind, set[str]] = {
    TableKind.STOPS: {"stop_id"},
    TableKind.ROUTES: {"route_id"},
    TableKind.TRIPS: {"route_id", "trip_id"},
    TableKind.STOP_TIMES: {"trip_id", "stop_id", "stop_sequence"},
    TableKind.CALENDAR: {"service_id", "start_date", "end_date"},
    TableKind.CALENDAR_DATES: {"service_id", "date", "exception_type"},
    TableKind.PATHWAYS: {"pathway_id", "from_stop_id", "to_stop_id"},
}

# Large shapes / stop_times fields can exceed the csv module default
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


class FeedReadError(Exception):
    """Raised when a table file cannot be read or decoded."""


class MissingColumnError(FeedReadError):
    """Raised when a table file has no header or lacks a required column."""


class GtfsParser:
    """Streams the rows of one GTFS table file as dicts.

    Values and headers are trimmed, blank lines are skipped, and rows that
    cannot be tokenized or whose field count does not match the header are
    dropped and counted in ``skipped``.
    """

    def __init__(
        self,
        path: Path,
        table: TableKind,
        required_columns: Collection[str] | None = None,
    ) -> None:
        self.path = path
        self.table = table
        self.required_columns = frozenset(
            required_columns if required_columns is not None else REQUIRED_COLUMNS.get(table, ())
        )
        self.skipped = 0

    def records(self) -> Iterator[dict[str, str]]:
        """Yield one dict per valid row.

        Raises:
            MissingColumnError: If the header is missing or incomplete.
            FeedReadError: If the file cannot be read or is not valid UTF-8.
        """
        try:
            with self.path.open("r", encoding="utf-8-sig", newline="") as text_io:
                reader = csv.reader(text_io, strict=True)
                header = self._read_header(reader)
                width = len(header)

                while True:
                    try:
                        row = next(reader)
                    except StopIteration:
                        break
                    except csv.Error as exc:
                        self._skip(reader.line_num, str(exc))
                        continue

                    if not row or all(not value.strip() for value in row):
                        continue
                    if len(row) != width:
                        self._skip(
                            reader.line_num,
                            f"expected {width} fields, got {len(row)}",
                        )
                        continue

                    yield {name: value.strip() for name, value in zip(header, row)}
        except (UnicodeDecodeError, OSError) as exc:
            raise FeedReadError(f"Cannot read {self.path.name}: {exc}") from exc

    def _read_header(self, reader: Iterator[list[str]]) -> list[str]:
        try:
            header = next(reader)
        except StopIteration:
            header = []
        except csv.Error as exc:
            raise MissingColumnError(f"Unreadable header in {self.path.name}: {exc}") from exc

        header = [name.strip() for name in header]
        if not any(header):
            msg = f"Empty CSV file: {self.path.name}"
            raise MissingColumnError(msg)

        missing = self.required_columns - set(header)
        if missing:
            msg = f"Missing required columns in {self.path.name}: {sorted(missing)}"
            raise MissingColumnError(msg)

        logger.info(
            "Parsing GTFS file",
            filename=self.path.name,
            required_columns=sorted(self.required_columns),
            columns=len(header),
        )
        return header

    def _skip(self, line: int, reason: str) -> None:
        self.skipped += 1
        logger.warning(
            "Skipping malformed row",
            filename=self.path.name,
            line=line,
            reason=reason,
        )
