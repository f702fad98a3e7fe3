"""
Data ingestion: parse streaming access logs and playlist exports.

All file reading lives here so the reconciliation logic stays pure.
"""

import csv
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, TextIO

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Raised when a log or playlist file does not have the expected shape."""


# ── Streaming access logs ─────────────────────────────────

FIELDS_MARKER = "#Fields"

# StreamRecord attribute → column name declared in the log header
STREAM_COLUMNS: Dict[str, str] = {
    "ip": "c-ip",
    "date": "date",
    "time": "time",
    "stream_name": "cs-uri-stem",
    "duration": "x-duration",
    "status_code": "c-status",
    "referrer": "cs(Referer)",
}


@dataclass(frozen=True)
class StreamRecord:
    ip: str
    date: str
    time: str
    stream_name: str
    duration: str
    status_code: str
    referrer: str

    @property
    def sort_key(self):
        return (self.date, self.time)


def _read_column_names(fh: TextIO, delimiter: str, marker: str, source: str) -> List[str]:
    """
    Advance ``fh`` past the header region and return the declared columns.

    The first token of the marker line is the marker itself and is dropped.
    """
    for line in fh:
        if line.startswith(marker):
            tokens = next(csv.reader([line.rstrip("\r\n")], delimiter=delimiter))
            columns = tokens[1:]
            while columns and not columns[-1]:
                columns.pop()
            if not columns:
                raise ParseError(f"{source}: '{marker}' line declares no columns")
            return columns
    raise ParseError(f"{source}: failed to find column headings")


def _stream_record(row: Dict[str, str]) -> StreamRecord:
    values = {attr: (row.get(column) or "") for attr, column in STREAM_COLUMNS.items()}
    stem = values["stream_name"].lower()
    if stem.startswith("/"):
        stem = stem[1:]
    values["stream_name"] = stem
    return StreamRecord(**values)


def iter_stream_records(
    path: str,
    delimiter: str = " ",
    marker: str = FIELDS_MARKER,
) -> Iterator[StreamRecord]:
    """
    Lazily parse one self-describing streaming access log.

    Each call opens the file afresh, so the sequence can be restarted
    by calling again.  Directive lines after the header (``#Date``,
    ``#Software`` and friends, repeated when the server rolls the log)
    are skipped.

    Raises:
        ParseError: If the file has no field declaration line.
    """
    with open(path, "r", encoding="utf-8", newline="") as fh:
        columns = _read_column_names(fh, delimiter, marker, path)
        data_lines = (line for line in fh if line.strip() and not line.startswith("#"))
        reader = csv.DictReader(data_lines, fieldnames=columns, delimiter=delimiter, restval="")
        for row in reader:
            yield _stream_record(row)


# ── Playlist exports ──────────────────────────────────────

PLAYLIST_FIELD_NAMES = (
    "played", "actual", "ignore1", "index", "ignore2", "scheduled",
    "cut_id", "track_type", "track_name", "ignore3", "file_name",
)
PLAYLIST_DELIMITER = "|"
PLAYLIST_ENCODING = "iso-8859-1"

_CUT_ID = re.compile(r"\w{7}")


@dataclass(frozen=True)
class SongEntry:
    cut_id: str
    actual: str
    file_name: str
    track_name: str = ""
    scheduled: str = ""
    index: str = ""


def is_song(row: Dict[str, str]) -> bool:
    """Songs have a blank track type and a 7 character alphanumeric cut ID."""
    return row["track_type"] == "" and _CUT_ID.fullmatch(row["cut_id"]) is not None


def parse_playlist(path: str) -> List[SongEntry]:
    """
    Parse one playlist export and return the songs it lists, in play order.

    Breaks, station IDs, spots and liners are dropped silently.

    Raises:
        ParseError: If a line does not split into the 11 playlist fields.
    """
    songs: List[SongEntry] = []
    with open(path, "r", encoding=PLAYLIST_ENCODING, newline="") as fh:
        reader = csv.reader(fh, delimiter=PLAYLIST_DELIMITER, quotechar='"')
        try:
            for fields in reader:
                if not fields or fields == [""]:
                    continue
                if len(fields) != len(PLAYLIST_FIELD_NAMES):
                    raise ParseError(
                        f"{path}:{reader.line_num}: expected {len(PLAYLIST_FIELD_NAMES)} "
                        f"fields, found {len(fields)}"
                    )
                row = dict(zip(PLAYLIST_FIELD_NAMES, fields))
                if not is_song(row):
                    continue
                songs.append(SongEntry(
                    cut_id=row["cut_id"],
                    actual=row["actual"],
                    file_name=row["file_name"],
                    track_name=row["track_name"],
                    scheduled=row["scheduled"],
                    index=row["index"],
                ))
        except csv.Error as exc:
            raise ParseError(f"{path}:{reader.line_num}: unable to parse line: {exc}") from exc

    logger.info("Parsed %s: %d songs", path, len(songs))
    return songs
