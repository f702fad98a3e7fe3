"""
Song metadata reconciliation: join playlist songs to the catalog.

Fills artist, title, album and label from the catalog and estimates the
song's duration from the size of its uncompressed audio file.
"""

import logging
import os
import stat
from dataclasses import dataclass
from datetime import date
from pathlib import PureWindowsPath

from ingestion import SongEntry

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
SECONDS_PER_MINUTE = 60
BITS_PER_BYTE = 8


class AudioFileError(LookupError):
    """Raised when a song's audio file cannot be found or stat'd."""


@dataclass(frozen=True)
class AudioFormat:
    sample_rate: int = 44_100
    channels: int = 2
    bits_per_sample: int = 16

    @property
    def bytes_per_second(self) -> float:
        return self.sample_rate * self.channels * self.bits_per_sample / BITS_PER_BYTE


@dataclass(frozen=True)
class SongRecord:
    start_time: str
    duration: str
    artist: str
    title: str
    album: str
    label: str


def audio_basename(file_name: str) -> str:
    """
    Return the bare file name of a path recorded by the automation system.

    Paths in playlist data may use Windows or POSIX separators; only the
    last component is trusted.
    """
    return PureWindowsPath(file_name).name


def format_duration(length_seconds: float) -> str:
    minutes = int(length_seconds // SECONDS_PER_MINUTE)
    seconds = int(length_seconds) % SECONDS_PER_MINUTE
    return f"{minutes:02d}:{seconds:02d}"


def estimate_duration(file_name: str, music_dir: str, audio: AudioFormat) -> str:
    """
    Approximate a track's length as MM:SS from its file size.

    Raises:
        AudioFileError: If the name is blank, or the file is missing from
            ``music_dir`` or is not a regular file.
    """
    basename = audio_basename(file_name)
    if not basename:
        raise AudioFileError(f"No audio file name in {file_name!r}")
    path = os.path.join(music_dir, basename)
    try:
        st = os.stat(path)
    except OSError as exc:
        raise AudioFileError(f"Cannot stat audio file {path}: {exc}") from exc
    if not stat.S_ISREG(st.st_mode):
        raise AudioFileError(f"Audio path {path} is not a regular file")
    return format_duration(st.st_size / audio.bytes_per_second)


def reconcile_song(
    entry: SongEntry,
    catalog,
    music_dir: str,
    audio: AudioFormat,
    play_date: date,
) -> SongRecord:
    """
    Build the report row for one played song.

    Catalog misses and blank catalog fields become "N/A"; they never
    abort the run.  A missing audio file does (see estimate_duration).
    """
    record = catalog.lookup(entry.cut_id)
    if record is None:
        logger.debug("Cut %s not in catalog", entry.cut_id)
        artist = title = album = label = ""
    else:
        artist, title, album, label = record.artist, record.title, record.album, record.label

    return SongRecord(
        start_time=f"{play_date:%m/%d/%Y} {entry.actual}",
        duration=estimate_duration(entry.file_name, music_dir, audio),
        artist=artist or NOT_AVAILABLE,
        title=title or NOT_AVAILABLE,
        album=album or NOT_AVAILABLE,
        label=label or NOT_AVAILABLE,
    )
