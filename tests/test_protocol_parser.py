from __future__ import annotations

import unittest

from attsync.services.protocol import (
    PunchLine,
    is_attlog_table,
    parse_attlog,
    parse_attlog_line,
)


class ProtocolParserTests(unittest.TestCase):
    def test_three_fields_default_status_and_work_code(self) -> None:
        punches = list(parse_attlog("7 2024-01-05 08:01:00"))

        self.assertEqual(
            punches,
            [
                PunchLine(
                    user_id="7",
                    log_time="2024-01-05 08:01:00",
                    status="0",
                    work_code="0",
                    raw_line="7 2024-01-05 08:01:00",
                )
            ],
        )

    def test_two_fields_yield_nothing(self) -> None:
        self.assertEqual(list(parse_attlog("7\t2024-01-05T08:01:00\n")), [])
        self.assertIsNone(parse_attlog_line("7 2024-01-05T08:01:00"))

    def test_tab_and_space_separators_are_equivalent(self) -> None:
        (punch,) = list(parse_attlog("7\t2024-01-05 08:01:00\n"))

        self.assertEqual(punch.user_id, "7")
        self.assertEqual(punch.log_time, "2024-01-05 08:01:00")

    def test_full_zkteco_line_keeps_status_work_code_and_raw_text(self) -> None:
        body = "1001\t2024-03-02 09:15:44\t1\t15\t0\t0\r\n"

        (punch,) = list(parse_attlog(body))

        self.assertEqual(punch.user_id, "1001")
        self.assertEqual(punch.log_time, "2024-03-02 09:15:44")
        self.assertEqual(punch.status, "1")
        self.assertEqual(punch.work_code, "15")
        self.assertEqual(punch.raw_line, "1001\t2024-03-02 09:15:44\t1\t15\t0\t0")

    def test_mixed_body_drops_short_and_blank_lines(self) -> None:
        body = "\n".join(
            [
                "  ",
                "1 2024-01-05 08:00:00 0 1",
                "garbage",
                "",
                "2    2024-01-05   08:05:00",
                "3 2024-01-05",
            ]
        )

        punches = list(parse_attlog(body))

        self.assertEqual([item.user_id for item in punches], ["1", "2"])
        self.assertEqual(punches[1].log_time, "2024-01-05 08:05:00")

    def test_never_produces_more_punches_than_non_empty_lines(self) -> None:
        bodies = [
            "",
            "\r\n\r\n",
            "a b c\nd e\nf g h i j k",
            "\x00\x01 \t\n\t\t\t",
            "x y z\ry z q\r\n",
        ]
        for body in bodies:
            with self.subTest(body=body):
                non_empty = [line for line in body.splitlines() if line.strip()]
                self.assertLessEqual(len(list(parse_attlog(body))), len(non_empty))

    def test_none_body_is_empty(self) -> None:
        self.assertEqual(list(parse_attlog(None)), [])

    def test_parser_is_lazy(self) -> None:
        iterator = parse_attlog("1 2024-01-05 08:00:00\n2 2024-01-05 08:01:00")
        self.assertEqual(next(iterator).user_id, "1")

    def test_attlog_table_match_is_case_insensitive(self) -> None:
        self.assertTrue(is_attlog_table("ATTLOG"))
        self.assertTrue(is_attlog_table("attlog"))
        self.assertFalse(is_attlog_table("OPERLOG"))
        self.assertFalse(is_attlog_table(None))


if __name__ == "__main__":
    unittest.main()
