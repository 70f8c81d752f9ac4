from __future__ import annotations

import json
import logging
import unittest

from workhub.logging_utils import JsonFormatter, bind_request_id, current_request_id, reset_request_id


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("workhub.test", logging.INFO, __file__, 1, "attendance_check_in", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class JsonFormatterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.formatter = JsonFormatter()

    def test_extra_fields_are_flattened(self) -> None:
        payload = json.loads(self.formatter.format(_record(employee_id=7)))

        self.assertEqual(payload["message"], "attendance_check_in")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["employee_id"], 7)
        self.assertNotIn("request_id", payload)

    def test_bound_request_id_is_attached_until_reset(self) -> None:
        token = bind_request_id("req-123")
        try:
            payload = json.loads(self.formatter.format(_record()))
        finally:
            reset_request_id(token)

        self.assertEqual(payload["request_id"], "req-123")
        self.assertIsNone(current_request_id())
        self.assertNotIn("request_id", json.loads(self.formatter.format(_record())))

    def test_explicit_request_id_wins_over_bound_one(self) -> None:
        token = bind_request_id("req-outer")
        try:
            payload = json.loads(self.formatter.format(_record(request_id="req-explicit")))
        finally:
            reset_request_id(token)

        self.assertEqual(payload["request_id"], "req-explicit")


if __name__ == "__main__":
    unittest.main()
