"""
Selection of a contiguous run of daily log files inside a reporting quarter.

Log files are named by date (``WMS_20230915.log``, ``WMS_20230915_001.log``,
``230915.lst``).  The selector walks them newest first and keeps the most
recent run of ``days_needed`` consecutive calendar days.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from config import ConfigurationError
from quarter import CalendarQuarter

logger = logging.getLogger(__name__)

_DATE_RUN = re.compile(r"^\D*(\d+)")
_DATE_FORMATS = {8: "%Y%m%d", 6: "%y%m%d"}


class IntervalError(Exception):
    """Raised when the quarter does not hold enough consecutive days of logs."""


@dataclass(frozen=True)
class LogFileRef:
    filename: str
    extracted_date: date


def extract_file_date(filename: str) -> Optional[date]:
    """
    Pull the calendar date out of a log file name.

    Leading non-digits are stripped, the first digit run is read as
    YYYYMMDD (8 digits) or YYMMDD (6 digits), and anything after it
    is ignored.  Returns None when the name carries no valid date.
    """
    match = _DATE_RUN.match(filename)
    if not match:
        return None
    digits = match.group(1)
    fmt = _DATE_FORMATS.get(len(digits))
    if fmt is None:
        return None
    try:
        return datetime.strptime(digits, fmt).date()
    except ValueError:
        return None


def list_log_files(directory: str) -> List[LogFileRef]:
    """
    List the dated log files in ``directory``.

    Raises:
        ConfigurationError: If the directory is missing or not a directory.
    """
    if not os.path.exists(directory):
        raise ConfigurationError(f'directory "{directory}" could not be found')
    if not os.path.isdir(directory):
        raise ConfigurationError(f'"{directory}" is not a directory')

    refs: List[LogFileRef] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            file_date = extract_file_date(entry.name)
            if file_date is None:
                logger.debug("Skipping %s: no date in file name", entry.name)
                continue
            refs.append(LogFileRef(entry.name, file_date))
    return refs


def select_consecutive_days(
    refs: Iterable[LogFileRef],
    days_needed: int,
    quarter: CalendarQuarter,
) -> List[LogFileRef]:
    """
    Find the most recent run of ``days_needed`` consecutive days in ``quarter``.

    Files are scanned newest first.  Files dated after the quarter are
    ignored and scanning stops at the first file dated before it.  A gap
    of more than one calendar day ends a run that is already long enough;
    otherwise it discards everything accepted so far and the file after
    the gap opens a new run.  Several files on one date
    are all returned but count as a single day.

    Returns the accepted files, newest first.

    Raises:
        ValueError: If days_needed is less than 1.
        IntervalError: If fewer than days_needed consecutive days exist.
    """
    if days_needed < 1:
        raise ValueError(f"days_needed must be at least 1, got {days_needed}")

    ordered = sorted(refs, key=lambda r: (r.extracted_date, r.filename), reverse=True)

    accepted: List[LogFileRef] = []
    day_count = 0
    cursor = quarter.end_date

    for ref in ordered:
        file_date = ref.extracted_date
        if file_date > quarter.end_date:
            continue
        if file_date < quarter.begin_date:
            break

        if (cursor - file_date).days > 1:
            if day_count >= days_needed:
                break
            logger.debug("Gap between %s and %s, restarting run", cursor, file_date)
            accepted = []
            day_count = 0

        if file_date != cursor or day_count == 0:
            day_count += 1
        if day_count <= days_needed:
            accepted.append(ref)

        cursor = file_date
        # Several files may share the boundary day, so stop only once past it.
        if day_count > days_needed:
            break

    if day_count < days_needed:
        raise IntervalError(f"could not find {days_needed} consecutive days")

    logger.info(
        "Selected %d files covering %s to %s",
        len(accepted), accepted[-1].extracted_date, accepted[0].extracted_date,
    )
    return accepted
