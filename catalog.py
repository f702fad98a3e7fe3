"""
Song catalog access.

The catalog maps a cut ID to its artist, title, album and label.  It can
come from a CSV export of the compilations table or from the table itself;
both backends expose the same ``lookup(song_id)`` contract.
"""

import csv
import logging
import sqlite3
from dataclasses import dataclass
from typing import Dict, Optional, Set

from config import ConfigurationError, ReportConfig

logger = logging.getLogger(__name__)

# CatalogRecord attribute → compilations column
CATALOG_COLUMNS: Dict[str, str] = {
    "song_id": "Song_ID",
    "artist": "Artist_Name",
    "title": "Song_Name",
    "album": "Album_Name",
    "label": "Record_Company",
}
REQUIRED_CATALOG_COLUMNS: Set[str] = set(CATALOG_COLUMNS.values())


@dataclass(frozen=True)
class CatalogRecord:
    song_id: str
    artist: str = ""
    title: str = ""
    album: str = ""
    label: str = ""


def _record_from_row(row) -> CatalogRecord:
    return CatalogRecord(**{
        attr: str(row[column] or "").strip()
        for attr, column in CATALOG_COLUMNS.items()
    })


class CsvCatalog:
    """Catalog backed by a CSV export, loaded into memory once."""

    def __init__(self, records: Dict[str, CatalogRecord]):
        self._records = records

    @classmethod
    def load(cls, path: str) -> "CsvCatalog":
        """
        Load the compilations CSV export.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If required columns are missing.
        """
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            headers = reader.fieldnames or []
            missing = REQUIRED_CATALOG_COLUMNS - set(headers)
            if missing:
                raise ValueError(f"Catalog CSV missing required columns: {sorted(missing)}")
            records: Dict[str, CatalogRecord] = {}
            for row in reader:
                record = _record_from_row(row)
                records[record.song_id] = record

        logger.info("Loaded catalog: %d songs from %s", len(records), path)
        return cls(records)

    def lookup(self, song_id: str) -> Optional[CatalogRecord]:
        return self._records.get(song_id)

    def __len__(self) -> int:
        return len(self._records)

    def close(self) -> None:
        """Nothing to release; the export is held in memory."""


class SqlCatalog:
    """
    Catalog backed by the compilations table of a SQLite database.

    Some automation systems store cut IDs with a fixed prefix; pass it as
    ``key_prefix`` and lookups prepend it.  Lookups are read-only.
    """

    # Column order matches CATALOG_COLUMNS.
    QUERY = (
        "SELECT Song_ID, Artist_Name, Song_Name, Album_Name, Record_Company "
        "FROM compilations WHERE Song_ID = ?"
    )
    CHECK_QUERY = (
        "SELECT Song_ID, Artist_Name, Song_Name, Album_Name, Record_Company "
        "FROM compilations LIMIT 1"
    )

    def __init__(self, connection: sqlite3.Connection, key_prefix: str = ""):
        self._conn = connection
        self._key_prefix = key_prefix

    @classmethod
    def connect(cls, db_path: str, key_prefix: str = "") -> "SqlCatalog":
        """
        Open the catalog database read-only and check the compilations table.

        Raises:
            ConfigurationError: If the file is not a usable catalog database.
        """
        uri = f"file:{db_path}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as exc:
            raise ConfigurationError(f"Catalog database {db_path} is not usable: {exc}") from exc
        try:
            conn.execute(cls.CHECK_QUERY).fetchall()
        except sqlite3.Error as exc:
            conn.close()
            raise ConfigurationError(f"Catalog database {db_path} is not usable: {exc}") from exc
        logger.info("Connected to catalog database %s", db_path)
        return cls(conn, key_prefix)

    def lookup(self, song_id: str) -> Optional[CatalogRecord]:
        try:
            row = self._conn.execute(self.QUERY, (f"{self._key_prefix}{song_id}",)).fetchone()
        except sqlite3.Error as exc:
            raise ConfigurationError(f"Catalog lookup for {song_id} failed: {exc}") from exc
        if row is None:
            return None
        record = _record_from_row(dict(zip(CATALOG_COLUMNS.values(), row)))
        # Report under the playlist's cut ID, not the prefixed key.
        return CatalogRecord(song_id, record.artist, record.title, record.album, record.label)

    def close(self) -> None:
        self._conn.close()


def open_catalog(config: ReportConfig):
    """Open the catalog backend selected by ``config.catalog_mode``."""
    if config.catalog_mode == "csv":
        return CsvCatalog.load(config.catalog_file)
    if config.catalog_mode == "db":
        return SqlCatalog.connect(config.catalog_db, config.catalog_key_prefix)
    raise ConfigurationError(f"Unknown catalog mode '{config.catalog_mode}'")
