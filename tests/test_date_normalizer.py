from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from resume_intake.errors import DateUnparseableError, ErrorKind  # noqa: E402
from resume_intake.services.date_normalizer import (  # noqa: E402
    is_normalized,
    is_present_phrase,
    normalize,
    split_range,
)


class NormalizeTests(unittest.TestCase):
    def test_already_normalized_values_are_returned_unchanged(self) -> None:
        for value in ("2020-01", "1999-12", "2021", "present"):
            with self.subTest(value=value):
                self.assertTrue(is_normalized(value))
                self.assertEqual(normalize(value), value)
                self.assertEqual(normalize(normalize(value, "ru"), "ru"), value)

    def test_english_month_names(self) -> None:
        cases = {
            "January 2020": "2020-01",
            "Jan 2020": "2020-01",
            "Sept. 2019": "2019-09",
            "March, 2018": "2018-03",
            "2017 Nov": "2017-11",
            "15 August 2016": "2016-08",
            "August 15th, 2016": "2016-08",
        }
        for phrase, expected in cases.items():
            with self.subTest(phrase=phrase):
                self.assertEqual(normalize(phrase, "en"), expected)

    def test_russian_month_names_and_year_suffix(self) -> None:
        cases = {
            "Январь 2020": "2020-01",
            "января 2020 г.": "2020-01",
            "май 2019": "2019-05",
            "мая 2019 года": "2019-05",
            "сент. 2018": "2018-09",
            "Декабрь 2015": "2015-12",
            "2014 г.": "2014",
        }
        for phrase, expected in cases.items():
            with self.subTest(phrase=phrase):
                self.assertEqual(normalize(phrase, "ru"), expected)

    def test_numeric_forms(self) -> None:
        self.assertEqual(normalize("2020-01-15"), "2020-01")
        self.assertEqual(normalize("2020/3"), "2020-03")
        self.assertEqual(normalize("03/2020"), "2020-03")
        self.assertEqual(normalize("3.2020"), "2020-03")
        self.assertEqual(normalize("2019"), "2019")

    def test_day_month_order_follows_locale(self) -> None:
        self.assertEqual(normalize("03/05/2020", "en"), "2020-03")
        self.assertEqual(normalize("03.05.2020", "ru"), "2020-05")
        self.assertEqual(normalize("25/04/2020", "en"), "2020-04")

    def test_present_phrases(self) -> None:
        for phrase, hint in (
            ("Present", "en"),
            ("currently", "en"),
            ("to date", "en"),
            ("по настоящее время", "ru"),
            ("н.в.", "ru"),
            ("Настоящее время", "en"),
        ):
            with self.subTest(phrase=phrase):
                self.assertTrue(is_present_phrase(phrase, hint))
                self.assertEqual(normalize(phrase, hint), "present")

    def test_words_sharing_a_month_prefix_are_not_months(self) -> None:
        for phrase, hint in (
            ("Marketing 2020", "en"),
            ("Junior 2019", "en"),
            ("Decade 2015", "en"),
            ("Augment 2018", "en"),
            ("Mayor 2017", "en"),
            ("Маркетинг 2020", "ru"),
        ):
            with self.subTest(phrase=phrase):
                with self.assertRaises(DateUnparseableError):
                    normalize(phrase, hint)

    def test_unrecognized_phrases_raise_date_unparseable(self) -> None:
        for phrase in ("Summer 2020", "soon", "13/2020", "1850", ""):
            with self.subTest(phrase=phrase):
                with self.assertRaises(DateUnparseableError) as ctx:
                    normalize(phrase)
                self.assertEqual(ctx.exception.kind, ErrorKind.DATE_UNPARSEABLE)


class SplitRangeTests(unittest.TestCase):
    def test_splits_common_separators(self) -> None:
        self.assertEqual(split_range("Jan 2020 - Present"), ("Jan 2020", "Present"))
        self.assertEqual(split_range("2018 – 2020"), ("2018", "2020"))
        self.assertEqual(split_range("from 2020-01 to present"), ("2020-01", "present"))
        self.assertEqual(
            split_range("с января 2019 по настоящее время"),
            ("января 2019", "настоящее время"),
        )

    def test_single_date_has_no_end(self) -> None:
        self.assertEqual(split_range("since 2019"), ("2019", None))
        self.assertEqual(split_range("2020-01"), ("2020-01", None))


if __name__ == "__main__":
    unittest.main()
