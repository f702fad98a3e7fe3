"""
Output module — writes SoundExchange playlist and stream reports.
"""

import csv
import logging
import os
from typing import Dict, Iterable, List, Sequence

from config import ConfigurationError, ReportConfig
from ingestion import StreamRecord
from matching import SongRecord
from quarter import CalendarQuarter

logger = logging.getLogger(__name__)

REPORT_ENCODING = "utf-8"

# Report header label → record attribute
PLAYLIST_COLUMNS: Dict[str, str] = {
    "Start Time": "start_time",
    "Duration": "duration",
    "Artist": "artist",
    "Title": "title",
    "Album": "album",
    "Label": "label",
}

STREAM_COLUMNS: Dict[str, str] = {
    "IP Address": "ip",
    "Date": "date",
    "Time": "time",
    "Stream name": "stream_name",
    "Duration": "duration",
    "Status Code": "status_code",
    "Referrer": "referrer",
}

KNOWN_COLUMNS = {"playlist": set(PLAYLIST_COLUMNS), "stream": set(STREAM_COLUMNS)}


def report_prefix(config: ReportConfig, quarter: CalendarQuarter) -> str:
    return f"{config.call_letters} {quarter.label} {quarter.year}"


def playlist_report_name(config: ReportConfig, quarter: CalendarQuarter) -> str:
    return f"{report_prefix(config, quarter)} Playlist Log.txt"


def stream_report_name(config: ReportConfig, quarter: CalendarQuarter, stream: str) -> str:
    return f"{report_prefix(config, quarter)} Stream Log - {stream}.txt"


def _attributes(fields: Sequence[str], columns: Dict[str, str]) -> List[str]:
    unknown = [f for f in fields if f not in columns]
    if unknown:
        raise ConfigurationError(f"Unknown report fields: {unknown}")
    return [columns[f] for f in fields]


def _write_report(
    output_path: str,
    fields: Sequence[str],
    columns: Dict[str, str],
    records: Iterable,
    config: ReportConfig,
) -> int:
    attributes = _attributes(fields, columns)
    count = 0
    with open(output_path, "w", encoding=REPORT_ENCODING, newline="") as f:
        writer = csv.writer(
            f,
            delimiter=config.output_delimiter,
            lineterminator=config.record_separator,
        )
        writer.writerow(fields)
        for record in records:
            writer.writerow([getattr(record, attr) for attr in attributes])
            count += 1
    return count


def write_playlist_report(
    songs: Iterable[SongRecord],
    output_dir: str,
    config: ReportConfig,
    quarter: CalendarQuarter,
) -> str:
    """
    Write the playlist report, one row per song in the order given.

    Returns the path to the output file.
    """
    output_path = os.path.join(output_dir, playlist_report_name(config, quarter))
    count = _write_report(output_path, config.playlist_fields, PLAYLIST_COLUMNS, songs, config)
    logger.info("Playlist report saved to: %s (%d rows)", output_path, count)
    return output_path


def sort_stream_records(records: Iterable[StreamRecord]) -> List[StreamRecord]:
    """Most recent first by (date, time); equal keys keep their input order."""
    return sorted(records, key=lambda r: r.sort_key, reverse=True)


def write_stream_report(
    stream: str,
    records: Iterable[StreamRecord],
    output_dir: str,
    config: ReportConfig,
    quarter: CalendarQuarter,
) -> str:
    """
    Write the report for one stream, sorted most recent first.

    Returns the path to the output file.
    """
    output_path = os.path.join(output_dir, stream_report_name(config, quarter, stream))
    ordered = sort_stream_records(records)
    count = _write_report(output_path, config.stream_fields, STREAM_COLUMNS, ordered, config)
    logger.info("Stream report saved to: %s (%d rows)", output_path, count)
    return output_path
