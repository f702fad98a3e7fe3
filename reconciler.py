"""
Pipeline orchestration — wires window selection, parsing, catalog
reconciliation, report writing and delivery together.
"""

import logging
import os
import tempfile
from contextlib import closing
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from catalog import open_catalog
from config import ReportConfig
from delivery import archive_reports, attachment_name, send_archive
from ingestion import StreamRecord, iter_stream_records, parse_playlist
from matching import AudioFileError, AudioFormat, SongRecord, reconcile_song
from output import write_playlist_report, write_stream_report
from quarter import CalendarQuarter, last_completed_quarter
from window import LogFileRef, list_log_files, select_consecutive_days

logger = logging.getLogger(__name__)

# Holds records for every stream; it is not a stream of its own.
GLOBAL_STREAM_DIR = "[Global]"


@dataclass
class StreamReport:
    stream: str
    files: List[LogFileRef]
    path: str


@dataclass
class RunResult:
    quarter: CalendarQuarter
    output_dir: str
    reports: List[str] = field(default_factory=list)
    play_dates: List[date] = field(default_factory=list)
    archive_path: Optional[str] = None


def list_streams(stream_logs_dir: str) -> List[str]:
    """Every subdirectory of the stream log root is one stream."""
    return sorted(
        entry.name
        for entry in os.scandir(stream_logs_dir)
        if entry.is_dir() and entry.name != GLOBAL_STREAM_DIR
    )


def generate_stream_reports(
    config: ReportConfig,
    quarter: CalendarQuarter,
    output_dir: str,
) -> List[StreamReport]:
    """
    Write one stream report per stream for the selected run of days.

    Raises IntervalError if any stream lacks enough consecutive days.
    """
    reports: List[StreamReport] = []
    for stream in list_streams(config.stream_logs_dir):
        stream_dir = os.path.join(config.stream_logs_dir, stream)
        selected = select_consecutive_days(list_log_files(stream_dir), config.days_needed, quarter)
        logger.info("[STREAM] %s → %d daily logs", stream, len(selected))

        records: List[StreamRecord] = []
        for ref in selected:
            records.extend(iter_stream_records(
                os.path.join(stream_dir, ref.filename),
                delimiter=config.input_delimiter,
            ))

        path = write_stream_report(stream, records, output_dir, config, quarter)
        reports.append(StreamReport(stream, selected, path))
    return reports


def play_dates(reports: Iterable[StreamReport]) -> List[date]:
    """Distinct dates covered by the selected stream logs, oldest first."""
    return sorted({ref.extracted_date for report in reports for ref in report.files})


def playlist_path(config: ReportConfig, play_date: date) -> str:
    return os.path.join(config.playlist_logs_dir, f"{play_date:%y%m%d}.{config.playlist_extension}")


def build_song_records(
    dates: List[date],
    catalog,
    config: ReportConfig,
) -> List[SongRecord]:
    """Reconcile every song played on ``dates``, date by date, in play order."""
    audio = AudioFormat(config.sample_rate, config.channels, config.bits_per_sample)
    records: List[SongRecord] = []
    for play_date in dates:
        playlist = playlist_path(config, play_date)
        songs = parse_playlist(playlist)
        try:
            for entry in songs:
                records.append(reconcile_song(entry, catalog, config.music_dir, audio, play_date))
        except AudioFileError as exc:
            raise AudioFileError(f"{playlist}: {exc}") from exc
    return records


def generate_playlist_report(
    config: ReportConfig,
    quarter: CalendarQuarter,
    dates: List[date],
    catalog,
    output_dir: str,
) -> str:
    """
    Write the playlist report for ``dates``.

    Raises:
        ValueError: If no dates are supplied.
    """
    if not dates:
        raise ValueError("No log dates supplied")
    songs = build_song_records(dates, catalog, config)
    return write_playlist_report(songs, output_dir, config, quarter)


def run(config: ReportConfig, today: date) -> RunResult:
    """
    Produce the quarter's reports and, when configured, mail them.

    Any failure aborts the whole run.
    """
    quarter = last_completed_quarter(today)
    output_dir = config.output_dir or tempfile.mkdtemp(prefix="sxlogs-")
    os.makedirs(output_dir, exist_ok=True)
    logger.info("Reporting %s %d (%s to %s) into %s",
                quarter.label, quarter.year, quarter.begin_date, quarter.end_date, output_dir)

    result = RunResult(quarter=quarter, output_dir=output_dir)

    stream_reports = generate_stream_reports(config, quarter, output_dir)
    result.reports.extend(r.path for r in stream_reports)
    result.play_dates = play_dates(stream_reports)

    with closing(open_catalog(config)) as catalog:
        result.reports.append(
            generate_playlist_report(config, quarter, result.play_dates, catalog, output_dir)
        )

    if config.delivery_enabled:
        archive = os.path.join(output_dir, attachment_name(config, quarter))
        result.archive_path = archive_reports(result.reports, archive)
        send_archive(result.archive_path, config, quarter)

    logger.info("Run summary: streams=%d, play_dates=%d, reports=%d",
                len(stream_reports), len(result.play_dates), len(result.reports))
    return result
