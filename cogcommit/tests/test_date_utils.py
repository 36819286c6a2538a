import unittest
from datetime import date, datetime, timezone

from cogcommit.date_utils import iso_to_epoch, normalize_iso_date, parse_before_date, parse_iso


class NormalizeIsoDateTests(unittest.TestCase):
    def test_strings(self) -> None:
        self.assertEqual(normalize_iso_date("2025-01-15T14:30:05.123Z"), "2025-01-15T14:30:05Z")
        self.assertEqual(normalize_iso_date("2025-01-15T16:30:05+02:00"), "2025-01-15T14:30:05Z")
        self.assertEqual(normalize_iso_date("2025-01-15"), "2025-01-15T00:00:00Z")
        self.assertEqual(normalize_iso_date("garbage"), "")
        self.assertEqual(normalize_iso_date("   "), "")
        self.assertEqual(normalize_iso_date(None), "")

    def test_datetimes_and_epochs(self) -> None:
        dt = datetime(2025, 1, 15, 14, 30, 5, tzinfo=timezone.utc)
        self.assertEqual(normalize_iso_date(dt), "2025-01-15T14:30:05Z")
        self.assertEqual(normalize_iso_date(date(2025, 1, 15)), "2025-01-15T00:00:00Z")
        self.assertEqual(normalize_iso_date(dt.timestamp()), "2025-01-15T14:30:05Z")
        self.assertEqual(normalize_iso_date(int(dt.timestamp() * 1000)), "2025-01-15T14:30:05Z")

    def test_parse_iso_assumes_utc_for_naive(self) -> None:
        parsed = parse_iso("2025-01-15T14:30:05")
        self.assertEqual(parsed.tzinfo, timezone.utc)
        self.assertIsNone(parse_iso("nope"))
        self.assertEqual(iso_to_epoch("nope"), 0.0)


class ParseBeforeDateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.now = datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_relative_units(self) -> None:
        self.assertEqual(parse_before_date("30d", self.now), "2025-01-30T00:00:00Z")
        self.assertEqual(parse_before_date("2w", self.now), "2025-02-15T00:00:00Z")
        self.assertEqual(parse_before_date("3m", self.now), "2024-12-01T00:00:00Z")

    def test_absolute_date(self) -> None:
        self.assertEqual(parse_before_date("2024-01-01"), "2024-01-01T00:00:00Z")

    def test_invalid_value(self) -> None:
        with self.assertRaises(ValueError):
            parse_before_date("yesterday-ish")
        with self.assertRaises(ValueError):
            parse_before_date("")


if __name__ == "__main__":
    unittest.main()
