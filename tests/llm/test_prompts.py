import unittest

from commit_composer.config.loader import Settings
from commit_composer.diff.splitter import FileDiff
from commit_composer.llm.prompts import build_grouping_messages, build_system_prompt, wrap_diff


class TestSystemPrompt(unittest.TestCase):
    def test_default_prompt(self):
        messages = build_system_prompt(Settings())
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0]["role"], "system")
        content = messages[0]["content"]
        self.assertIn("Conventional Commits", content)
        self.assertNotIn("GitMoji", content)
        self.assertNotIn("Generate the commit message in", content)

    def test_options(self):
        content = build_system_prompt(Settings(emoji=True, language="de"), context="ticket 42")[0]["content"]
        self.assertIn("GitMoji", content)
        self.assertIn("in de language", content)
        self.assertIn("Additional context: ticket 42", content)

    def test_one_line_overrides_description(self):
        content = build_system_prompt(Settings(description=True, one_line=True))[0]["content"]
        self.assertIn("single-line", content)
        self.assertNotIn("detailed description", content)
        content = build_system_prompt(Settings(description=True))[0]["content"]
        self.assertIn("detailed description", content)


class TestWrapDiff(unittest.TestCase):
    def test_wrap(self):
        wrapped = wrap_diff("+x")
        self.assertTrue(wrapped.startswith("Here is the git diff:\n\n+x"))
        self.assertTrue(wrapped.endswith("Generate a commit message for these changes."))


class TestGroupingMessages(unittest.TestCase):
    def test_grouping_request(self):
        files = [FileDiff("src/a.py", "+hello\n+world"), FileDiff("README.md", "+docs")]
        messages = build_grouping_messages(files, branch_hint="Current branch: feature/x", target_count=2)
        self.assertEqual([m["role"] for m in messages], ["system", "user"])
        self.assertIn("exactly 2 commit groups", messages[0]["content"])
        user = messages[1]["content"]
        self.assertIn("1. src/a.py (13 B) - +hello +world...", user)
        self.assertIn("2. README.md (5 B)", user)
        self.assertIn("Branch context:\nCurrent branch: feature/x", user)

    def test_preview_is_bounded(self):
        files = [FileDiff("big.py", "x" * 5000)]
        user = build_grouping_messages(files)[1]["content"]
        self.assertIn("x" * 200 + "...", user)
        self.assertNotIn("x" * 201, user)
        self.assertNotIn("exactly", user)


if __name__ == "__main__":
    unittest.main()
