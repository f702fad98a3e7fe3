"""
Reporting quarter arithmetic. Pure functions with no I/O.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CalendarQuarter:
    """One fixed three-month reporting period, both ends inclusive."""

    label: str
    year: int
    begin_date: date
    end_date: date

    def __contains__(self, day: date) -> bool:
        return self.begin_date <= day <= self.end_date


def last_completed_quarter(today: date) -> CalendarQuarter:
    """
    Return the most recently completed calendar quarter as of ``today``.

    Q4 is reported against the previous year when the run happens in
    January through March.
    """
    year = today.year
    if today >= date(year, 10, 1):
        return CalendarQuarter("Q3", year, date(year, 7, 1), date(year, 9, 30))
    if today >= date(year, 7, 1):
        return CalendarQuarter("Q2", year, date(year, 4, 1), date(year, 6, 30))
    if today >= date(year, 4, 1):
        return CalendarQuarter("Q1", year, date(year, 1, 1), date(year, 3, 31))
    return CalendarQuarter("Q4", year - 1, date(year - 1, 10, 1), date(year - 1, 12, 31))
