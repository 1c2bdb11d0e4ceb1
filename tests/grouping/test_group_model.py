import unittest

from commit_composer.diff.splitter import FileDiff
from commit_composer.grouping.group_model import CommitGroup, FileGroup


class TestFileGroup(unittest.TestCase):
    def test_total_size_follows_files(self):
        group = FileGroup(id="g", name="core", files=[FileDiff("a.py", "abc"), FileDiff("b.py", "de")])
        self.assertEqual(group.total_size, 5)
        group.files.append(FileDiff("c.py", "f"))
        self.assertEqual(group.total_size, 6)
        self.assertEqual(group.file_paths, ["a.py", "b.py", "c.py"])

    def test_empty_group(self):
        group = FileGroup(id="g", name="empty")
        self.assertEqual(group.total_size, 0)
        self.assertEqual(group.file_paths, [])
        self.assertIsNone(group.description)


class TestCommitGroup(unittest.TestCase):
    def test_from_group(self):
        files = [FileDiff("a.py", "abc")]
        group = FileGroup(id="g1", name="core", files=files, description="core changes")
        commit = CommitGroup.from_group(group, "feat: add core")
        self.assertEqual(commit.id, "g1")
        self.assertEqual(commit.name, "core")
        self.assertEqual(commit.description, "core changes")
        self.assertEqual(commit.message, "feat: add core")
        self.assertFalse(commit.confirmed)
        self.assertEqual(commit.files, files)
        self.assertIsNot(commit.files, files)


if __name__ == "__main__":
    unittest.main()
