import unittest

from bkci.logs import (
    count_lines,
    strip_ansi_and_control_sequences,
    tail_lines,
    transform_log_content,
    truncate_to_max_bytes,
)


class TransformLogContentTests(unittest.TestCase):
    def test_tail_lines_only(self):
        result = transform_log_content("line-1\nline-2\nline-3\nline-4", tail_line_count=2)

        self.assertEqual(result.content, "line-3\nline-4")
        self.assertEqual(result.line_count, 2)
        self.assertFalse(result.truncated)

    def test_truncates_by_bytes(self):
        result = transform_log_content("a" * 32, max_bytes=8)

        self.assertLessEqual(len(result.content.encode("utf-8")), 8)
        self.assertTrue(result.truncated)
        # 32 -> 16 -> 8 characters, front halves dropped.
        self.assertEqual(result.content, "a" * 8)

    def test_strips_ansi_and_buildkite_control_sequences(self):
        raw = "\x1b_bk;t=1770510296903\x07\x1b[38;5;48mINFO\x1b[0m hello\r\nnext-line\x1b[0m"

        result = transform_log_content(raw, strip_ansi=True)

        self.assertNotIn("\x1b", result.content)
        self.assertNotIn("\r", result.content)
        self.assertEqual(result.content, "INFO hello\nnext-line")
        self.assertEqual(result.line_count, 2)

    def test_no_stripping_unless_requested(self):
        raw = "\x1b[31mred\x1b[0m\r"
        self.assertEqual(transform_log_content(raw).content, raw)

    def test_tail_happens_before_truncation(self):
        raw = "first line that is long\nshort\nend"
        result = transform_log_content(raw, tail_line_count=2, max_bytes=100)
        self.assertEqual(result.content, "short\nend")
        self.assertFalse(result.truncated)

    def test_tail_selection_alone_never_sets_truncated(self):
        result = transform_log_content("a\nb\nc\nd", tail_line_count=1)
        self.assertEqual(result.content, "d")
        self.assertFalse(result.truncated)

    def test_empty_content_has_zero_lines(self):
        result = transform_log_content("", max_bytes=10, tail_line_count=3)
        self.assertEqual(result.content, "")
        self.assertEqual(result.line_count, 0)

    def test_trailing_newline_counts_as_segment(self):
        self.assertEqual(count_lines("a\nb\n"), 3)
        self.assertEqual(count_lines("a"), 1)


class TailLinesTests(unittest.TestCase):
    def test_count_at_or_above_line_total_is_noop(self):
        value = "one\ntwo\nthree"
        for count in (3, 4, 100):
            with self.subTest(count=count):
                self.assertIs(tail_lines(value, count), value)

    def test_count_below_one_is_noop(self):
        self.assertEqual(tail_lines("a\nb", 0), "a\nb")
        self.assertEqual(tail_lines("a\nb", -3), "a\nb")


class TruncateToMaxBytesTests(unittest.TestCase):
    def test_budget_that_fits_is_noop(self):
        for value in ("", "abc", "héllo wörld", "日本語のログ"):
            with self.subTest(value=value):
                budget = len(value.encode("utf-8"))
                self.assertEqual(truncate_to_max_bytes(value, max(budget, 1)), (value, False))
                self.assertEqual(truncate_to_max_bytes(value, budget + 10), (value, False))

    def test_budget_below_one_is_noop(self):
        self.assertEqual(truncate_to_max_bytes("abcdef", 0), ("abcdef", False))

    def test_multibyte_content_stays_valid_utf8(self):
        value = "ログ" * 10
        content, truncated = truncate_to_max_bytes(value, 7)

        self.assertTrue(truncated)
        encoded = content.encode("utf-8")
        self.assertLessEqual(len(encoded), 7)
        self.assertEqual(encoded.decode("utf-8"), content)
        self.assertTrue(value.endswith(content))

    def test_single_wide_character_over_budget_empties(self):
        self.assertEqual(truncate_to_max_bytes("日", 1), ("", True))


class StripSequencesTests(unittest.TestCase):
    def test_osc_terminated_by_bell_and_string_terminator(self):
        raw = "\x1b]0;title\x07a\x1b]8;;https://x\x1b\\b"
        self.assertEqual(strip_ansi_and_control_sequences(raw), "ab")

    def test_apc_terminated_by_string_terminator(self):
        self.assertEqual(strip_ansi_and_control_sequences("\x1b_bk;t=1\x1b\\ok"), "ok")
