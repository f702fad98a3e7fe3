"""
Unit tests for quarter arithmetic and consecutive-day window selection.

Covers last_completed_quarter(), extract_file_date(), list_log_files()
and select_consecutive_days().
"""

import os
import sys
import tempfile
import unittest
from datetime import date, timedelta

# Ensure project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config import ConfigurationError
from quarter import CalendarQuarter, last_completed_quarter
from window import (
    IntervalError,
    LogFileRef,
    extract_file_date,
    list_log_files,
    select_consecutive_days,
)


Q3_2023 = CalendarQuarter("Q3", 2023, date(2023, 7, 1), date(2023, 9, 30))


def _ref(day: date, suffix: str = "") -> LogFileRef:
    return LogFileRef(f"WMS_{day:%Y%m%d}{suffix}.log", day)


def _days(end: date, count: int):
    return [end - timedelta(days=i) for i in range(count)]


def _distinct_dates(refs):
    return sorted({r.extracted_date for r in refs})


def _is_contiguous(dates) -> bool:
    return all((b - a).days == 1 for a, b in zip(dates, dates[1:]))


# ── last_completed_quarter() tests ───────────────────────

class TestLastCompletedQuarter(unittest.TestCase):

    def test_october_reports_q3(self):
        q = last_completed_quarter(date(2023, 10, 15))
        self.assertEqual((q.begin_date, q.end_date), (date(2023, 7, 1), date(2023, 9, 30)))
        self.assertEqual((q.label, q.year), ("Q3", 2023))

    def test_january_reports_previous_q4(self):
        q = last_completed_quarter(date(2023, 1, 5))
        self.assertEqual((q.begin_date, q.end_date), (date(2022, 10, 1), date(2022, 12, 31)))
        self.assertEqual((q.label, q.year), ("Q4", 2022))

    def test_boundaries(self):
        self.assertEqual(last_completed_quarter(date(2024, 4, 1)).label, "Q1")
        self.assertEqual(last_completed_quarter(date(2024, 3, 31)).label, "Q4")
        self.assertEqual(last_completed_quarter(date(2024, 7, 1)).label, "Q2")
        self.assertEqual(last_completed_quarter(date(2024, 6, 30)).label, "Q1")
        self.assertEqual(last_completed_quarter(date(2024, 10, 1)).label, "Q3")
        self.assertEqual(last_completed_quarter(date(2024, 12, 31)).label, "Q3")

    def test_contains(self):
        self.assertIn(date(2023, 8, 1), Q3_2023)
        self.assertNotIn(date(2023, 10, 1), Q3_2023)


# ── extract_file_date() tests ────────────────────────────

class TestExtractFileDate(unittest.TestCase):

    def test_eight_digit_stream_log(self):
        self.assertEqual(extract_file_date("WMS_20230915.log"), date(2023, 9, 15))

    def test_sequence_suffix_ignored(self):
        self.assertEqual(extract_file_date("WMS_20230915_001.log"), date(2023, 9, 15))

    def test_six_digit_playlist(self):
        self.assertEqual(extract_file_date("230915.lst"), date(2023, 9, 15))

    def test_no_digits(self):
        self.assertIsNone(extract_file_date("README.txt"))

    def test_invalid_date(self):
        self.assertIsNone(extract_file_date("WMS_20231340.log"))

    def test_wrong_length(self):
        self.assertIsNone(extract_file_date("WMS_2023.log"))


# ── list_log_files() tests ───────────────────────────────

class TestListLogFiles(unittest.TestCase):

    def test_lists_dated_files_only(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            for name in ("WMS_20230901.log", "WMS_20230902.log", "notes.txt"):
                open(os.path.join(tmpdir, name), "w").close()
            os.mkdir(os.path.join(tmpdir, "WMS_20230903"))
            refs = list_log_files(tmpdir)
        self.assertEqual(
            sorted(r.filename for r in refs),
            ["WMS_20230901.log", "WMS_20230902.log"],
        )

    def test_missing_directory(self):
        with self.assertRaises(ConfigurationError):
            list_log_files("/nonexistent/stream/dir")

    def test_not_a_directory(self):
        with tempfile.NamedTemporaryFile() as f:
            with self.assertRaises(ConfigurationError):
                list_log_files(f.name)


# ── select_consecutive_days() tests ──────────────────────

class TestSelectConsecutiveDays(unittest.TestCase):

    def test_full_run_ending_at_quarter_end(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 30), 14)]
        selected = select_consecutive_days(refs, 14, Q3_2023)
        self.assertEqual(len(selected), 14)
        self.assertEqual(selected[0].extracted_date, date(2023, 9, 30))
        self.assertEqual(selected[-1].extracted_date, date(2023, 9, 17))

    def test_unsorted_input(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 30), 5)]
        refs.reverse()
        selected = select_consecutive_days(refs, 5, Q3_2023)
        self.assertEqual([r.extracted_date for r in selected], _days(date(2023, 9, 30), 5))

    def test_only_most_recent_days_taken(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 30), 10)]
        selected = select_consecutive_days(refs, 3, Q3_2023)
        self.assertEqual(_distinct_dates(selected),
                         [date(2023, 9, 28), date(2023, 9, 29), date(2023, 9, 30)])

    def test_multiple_files_per_day_count_once(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 30), 3)]
        refs.append(_ref(date(2023, 9, 30), "_001"))
        selected = select_consecutive_days(refs, 3, Q3_2023)
        self.assertEqual(len(selected), 4)
        self.assertEqual(len(_distinct_dates(selected)), 3)

    def test_multiple_files_on_boundary_day_all_kept(self):
        refs = [
            _ref(date(2023, 9, 30)),
            _ref(date(2023, 9, 29)),
            _ref(date(2023, 9, 29), "_001"),
            _ref(date(2023, 9, 28)),
        ]
        selected = select_consecutive_days(refs, 2, Q3_2023)
        self.assertEqual(len(selected), 3)
        self.assertEqual(_distinct_dates(selected), [date(2023, 9, 29), date(2023, 9, 30)])

    def test_files_after_quarter_ignored(self):
        refs = [_ref(d) for d in _days(date(2023, 10, 3), 6)]
        selected = select_consecutive_days(refs, 3, Q3_2023)
        self.assertEqual(_distinct_dates(selected),
                         [date(2023, 9, 28), date(2023, 9, 29), date(2023, 9, 30)])

    def test_run_may_end_before_quarter_end(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 22), 4)]
        selected = select_consecutive_days(refs, 4, Q3_2023)
        self.assertEqual(selected[0].extracted_date, date(2023, 9, 22))

    def test_gap_discards_newer_days(self):
        dates = [date(2023, 9, 30), date(2023, 9, 29),
                 date(2023, 9, 26), date(2023, 9, 25), date(2023, 9, 24)]
        selected = select_consecutive_days([_ref(d) for d in dates], 3, Q3_2023)
        self.assertEqual(_distinct_dates(selected),
                         [date(2023, 9, 24), date(2023, 9, 25), date(2023, 9, 26)])

    def test_gap_right_after_complete_run_keeps_it(self):
        dates = [date(2023, 9, 30), date(2023, 9, 29), date(2023, 9, 28),
                 date(2023, 9, 20), date(2023, 9, 19), date(2023, 9, 18)]
        selected = select_consecutive_days([_ref(d) for d in dates], 3, Q3_2023)
        self.assertEqual(_distinct_dates(selected),
                         [date(2023, 9, 28), date(2023, 9, 29), date(2023, 9, 30)])

    def test_run_across_month_boundary(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 2), 4)]
        selected = select_consecutive_days(refs, 4, Q3_2023)
        self.assertEqual(_distinct_dates(selected)[0], date(2023, 8, 30))
        self.assertTrue(_is_contiguous(_distinct_dates(selected)))

    def test_not_enough_days(self):
        refs = [_ref(d) for d in _days(date(2023, 9, 30), 13)]
        with self.assertRaises(IntervalError):
            select_consecutive_days(refs, 14, Q3_2023)

    def test_gap_leaves_too_few_days(self):
        dates = [date(2023, 9, 30), date(2023, 9, 29), date(2023, 9, 28), date(2023, 9, 20)]
        with self.assertRaises(IntervalError):
            select_consecutive_days([_ref(d) for d in dates], 4, Q3_2023)

    def test_days_before_quarter_not_used(self):
        refs = [_ref(date(2023, 7, 1)), _ref(date(2023, 6, 30))]
        with self.assertRaises(IntervalError):
            select_consecutive_days(refs, 2, Q3_2023)

    def test_empty_listing(self):
        with self.assertRaises(IntervalError):
            select_consecutive_days([], 1, Q3_2023)

    def test_days_needed_must_be_positive(self):
        with self.assertRaises(ValueError):
            select_consecutive_days([_ref(date(2023, 9, 30))], 0, Q3_2023)

    def test_result_always_contiguous(self):
        present = [d for d in _days(date(2023, 9, 30), 60) if d.day % 7 != 0]
        refs = [_ref(d) for d in present]
        for needed in range(1, 7):
            with self.subTest(needed=needed):
                selected = select_consecutive_days(refs, needed, Q3_2023)
                dates = _distinct_dates(selected)
                self.assertGreaterEqual(len(dates), needed)
                self.assertTrue(_is_contiguous(dates))
                self.assertLessEqual(dates[-1], Q3_2023.end_date)


if __name__ == "__main__":
    unittest.main()
