import unittest

from commit_composer.diff.optimizer import (
    compress_whitespace_changes,
    optimize_diff,
    optimize_file_diff,
    remove_binary_indicators,
    summarize_context_lines,
    truncate_file_diff,
)

HEADER = ["diff --git a/f.py b/f.py", "--- a/f.py", "+++ b/f.py", "@@ -1,600 +1,600 @@"]


def file_diff(body_lines):
    return "\n".join(HEADER + list(body_lines))


class TestBinaryIndicators(unittest.TestCase):
    def test_binary_lines_removed(self):
        diff = "diff --git a/x.png b/x.png\nBinary files a/x.png and b/x.png differ\n"
        self.assertEqual(remove_binary_indicators(diff), "diff --git a/x.png b/x.png\n")

    def test_text_mentioning_binary_is_kept(self):
        diff = "+# Binary files are skipped\n"
        self.assertEqual(remove_binary_indicators(diff), diff)


class TestTruncateFileDiff(unittest.TestCase):
    def test_long_body_is_cut(self):
        diff = file_diff(f"+line {i}" for i in range(600))
        result = truncate_file_diff(diff, max_lines=500).split("\n")
        self.assertEqual(result[:4], HEADER)
        self.assertEqual(len(result), 4 + 500 + 1)
        self.assertEqual(result[-2], "+line 499")
        self.assertEqual(result[-1], "... (100 more lines truncated to reduce token usage) ...")

    def test_short_diff_unchanged(self):
        diff = file_diff(["+a", "-b"])
        self.assertEqual(truncate_file_diff(diff), diff)


class TestContextSummary(unittest.TestCase):
    def test_long_context_run_is_summarized(self):
        lines = ["+added"] + [f" ctx {i}" for i in range(60)] + ["-removed"]
        result = summarize_context_lines("\n".join(lines), max_context=50).split("\n")
        self.assertEqual(result[0], "+added")
        self.assertEqual(result[1:26], [f" ctx {i}" for i in range(25)])
        self.assertEqual(result[26], "... (10 context lines) ...")
        self.assertEqual(result[27:52], [f" ctx {i}" for i in range(35, 60)])
        self.assertEqual(result[-1], "-removed")

    def test_short_context_run_unchanged(self):
        diff = "\n".join(["+a"] + [" ctx"] * 50 + ["+b"])
        self.assertEqual(summarize_context_lines(diff, max_context=50), diff)

    def test_tiny_context_limit_keeps_only_marker(self):
        diff = "\n".join(["+a", " ctx 1", " ctx 2", " ctx 3", "+b"])
        self.assertEqual(
            summarize_context_lines(diff, max_context=1),
            "+a\n... (3 context lines) ...\n+b",
        )


class TestWhitespaceCompression(unittest.TestCase):
    def test_long_whitespace_run_is_collapsed(self):
        diff = "\n".join(["+code"] + ["+    "] * 6 + ["-more"])
        self.assertEqual(
            compress_whitespace_changes(diff),
            "+code\n... (6 whitespace-only lines) ...\n-more",
        )

    def test_short_whitespace_run_unchanged(self):
        diff = "\n".join(["+code"] + ["+  "] * 5)
        self.assertEqual(compress_whitespace_changes(diff), diff)


class TestOptimizeDiff(unittest.TestCase):
    def test_small_diff_unchanged(self):
        diff = file_diff(["+a"])
        self.assertEqual(optimize_diff(diff), diff)

    def test_large_multi_file_diff(self):
        big = file_diff(f"+line number {i}" for i in range(600)) + "\n"
        binary = "diff --git a/logo.png b/logo.png\nBinary files a/logo.png and b/logo.png differ\n"
        diff = big + binary
        result = optimize_diff(diff)

        self.assertTrue(result.startswith("diff --git a/f.py b/f.py\n"))
        self.assertIn(") ...\ndiff --git a/logo.png b/logo.png", result)
        self.assertNotIn("Binary files", result)
        self.assertIn("more lines truncated to reduce token usage", result)
        self.assertLess(len(result), len(diff))

    def test_only_original_lines_or_markers_survive(self):
        body = [f"+x{i}" for i in range(300)] + [" same"] * 120 + ["+ "] * 10 + [f"-y{i}" for i in range(300)]
        diff = file_diff(body)
        original = set(diff.split("\n"))
        for line in optimize_file_diff(diff).split("\n"):
            if line.startswith("... (") and line.endswith(") ..."):
                continue
            self.assertIn(line, original)


if __name__ == "__main__":
    unittest.main()
