import unittest
from datetime import date, datetime, timedelta, timezone

from archive_search.core.errors import InvalidInput
from archive_search.core.window import normalize_window, parse_created_at, parse_time
from archive_search.utils.time import to_wire


UTC = timezone.utc


class TestNormalizeWindow(unittest.TestCase):
    """Window normalization from user inputs."""

    def test_date_only_inputs_cover_whole_days(self):
        window = normalize_window("2020-01-01", "2020-01-02")
        self.assertEqual(window.start, datetime(2020, 1, 1, 0, 0, 0, tzinfo=UTC))
        self.assertEqual(window.end, datetime(2020, 1, 2, 23, 59, 59, tzinfo=UTC))
        self.assertFalse(window.is_open)

    def test_date_objects_cover_whole_days(self):
        window = normalize_window(date(2021, 3, 4), date(2021, 3, 4))
        self.assertEqual(to_wire(window.start), "2021-03-04T00:00:00Z")
        self.assertEqual(to_wire(window.end), "2021-03-04T23:59:59Z")

    def test_explicit_time_is_kept(self):
        window = normalize_window("2020-01-01 10:15:00", "2020-01-01 12:00:00")
        self.assertEqual(to_wire(window.start), "2020-01-01T10:15:00Z")
        self.assertEqual(to_wire(window.end), "2020-01-01T12:00:00Z")

    def test_time_without_seconds_is_not_a_date(self):
        window = normalize_window("2020-01-01 10:00", "2020-01-01 11:30")
        self.assertEqual(to_wire(window.start), "2020-01-01T10:00:00Z")
        self.assertEqual(to_wire(window.end), "2020-01-01T11:30:00Z")

    def test_explicit_midnight_end_is_not_expanded(self):
        window = normalize_window("2020-01-01", "2020-01-02T00:00:00")
        self.assertEqual(to_wire(window.end), "2020-01-02T00:00:00Z")

    def test_open_window_ends_before_now(self):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
        window = normalize_window("2024-04-01", None, now=now)
        self.assertTrue(window.is_open)
        self.assertEqual(window.end, now - timedelta(seconds=10))

    def test_aware_inputs_are_converted_to_utc(self):
        ts = datetime(2020, 6, 1, 12, 0, 0, 123456, tzinfo=timezone(timedelta(hours=2)))
        self.assertEqual(parse_time(ts), datetime(2020, 6, 1, 10, 0, 0, tzinfo=UTC))

    def test_missing_start_fails(self):
        with self.assertRaises(InvalidInput):
            normalize_window(None, "2020-01-01")
        with self.assertRaises(InvalidInput):
            normalize_window("  ", "2020-01-01")

    def test_unparseable_input_fails(self):
        with self.assertRaises(InvalidInput):
            normalize_window("not a date", "2020-01-01")
        with self.assertRaises(InvalidInput):
            normalize_window("2020-01-01", 12.5)

    def test_end_before_start_fails(self):
        with self.assertRaises(InvalidInput):
            normalize_window("2020-02-01", "2020-01-01")


class TestParseCreatedAt(unittest.TestCase):
    def test_api_timestamp(self):
        self.assertEqual(
            parse_created_at("2020-01-01T07:30:15.000Z"),
            datetime(2020, 1, 1, 7, 30, 15, tzinfo=UTC),
        )

    def test_missing_or_garbage(self):
        self.assertIsNone(parse_created_at(None))
        self.assertIsNone(parse_created_at(""))
        self.assertIsNone(parse_created_at("NA"))


if __name__ == "__main__":
    unittest.main()
