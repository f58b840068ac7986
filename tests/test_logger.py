from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from resume_intake.utils.logger import get_logger, sanitize_for_log  # noqa: E402


class SanitizeForLogTests(unittest.TestCase):
    def test_masks_contact_details(self) -> None:
        text = "Jane Doe jane.doe@example.com 555-123-4567 +1 (206) 555 0100 SSN 123-45-6789"
        sanitized = sanitize_for_log(text)

        self.assertNotIn("jane.doe@example.com", sanitized)
        self.assertNotIn("555-123-4567", sanitized)
        self.assertNotIn("123-45-6789", sanitized)
        self.assertIn("[EMAIL]", sanitized)
        self.assertIn("[SSN]", sanitized)
        self.assertEqual(sanitized.count("[PHONE]"), 2)

    def test_keeps_dates_and_truncates(self) -> None:
        self.assertEqual(sanitize_for_log("Acme\n 2019-01 - 2020-03"), "Acme 2019-01 - 2020-03")
        self.assertEqual(sanitize_for_log("x" * 20, max_length=5), "xxxxx...")


class GetLoggerTests(unittest.TestCase):
    def test_handler_is_added_once(self) -> None:
        first = get_logger("resume_intake.tests.logger")
        second = get_logger("resume_intake.tests.logger")
        self.assertIs(first, second)
        self.assertEqual(len(second.handlers), 1)


if __name__ == "__main__":
    unittest.main()
