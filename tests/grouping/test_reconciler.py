import unittest
from collections import Counter

from commit_composer.diff.splitter import FileDiff
from commit_composer.grouping.group_model import FileGroup
from commit_composer.grouping.reconciler import (
    ParsedGroups,
    ParseFailed,
    SuggestedGroup,
    build_groups_from_suggestion,
    group_files_by_directory,
    parse_grouping_response,
    reconcile_group_count,
)


def paths_of(groups):
    return Counter(path for group in groups for path in group.file_paths)


class TestParseGroupingResponse(unittest.TestCase):
    def test_plain_json(self):
        result = parse_grouping_response('[{"files": [1, 2], "name": "Auth", "description": "Login flow"}]')
        self.assertEqual(result, ParsedGroups([SuggestedGroup([1, 2], "Auth", "Login flow")]))

    def test_code_fence_and_prose_are_removed(self):
        fenced = '```json\n[{"files": [3]}]\n```'
        self.assertEqual(parse_grouping_response(fenced), ParsedGroups([SuggestedGroup([3])]))
        chatty = 'Sure! Here are the groups: [{"files": [1]}] Hope this helps.'
        self.assertEqual(parse_grouping_response(chatty), ParsedGroups([SuggestedGroup([1])]))

    def test_failures(self):
        for response in (None, "", "   ", "not json at all", "[{broken", '{"groups": 3}'):
            self.assertIsInstance(parse_grouping_response(response), ParseFailed, response)

    def test_malformed_items_are_skipped(self):
        response = (
            '[{"files": [1, "2", true, 3], "name": "  ", "description": 5},'
            ' "junk", {"files": []}, {"files": "1"}, {"name": "no files"}]'
        )
        result = parse_grouping_response(response)
        self.assertEqual(result, ParsedGroups([SuggestedGroup([1, 3])]))


class TestBuildGroupsFromSuggestion(unittest.TestCase):
    def setUp(self):
        self.files = [FileDiff(f"f{i}.py", "x" * (i + 1)) for i in range(4)]

    def test_first_claim_wins_and_leftovers_become_singletons(self):
        suggestions = [
            SuggestedGroup([1, 2], name="Core"),
            SuggestedGroup([2, 3]),
            SuggestedGroup([9, 0]),
        ]
        groups = build_groups_from_suggestion(self.files, suggestions)
        self.assertEqual([g.file_paths for g in groups], [["f0.py", "f1.py"], ["f2.py"], ["f3.py"]])
        self.assertEqual([g.name for g in groups], ["Core", "Group 2", "f3.py"])
        self.assertEqual(len({g.id for g in groups}), 3)
        self.assertEqual(paths_of(groups), Counter(f.file_path for f in self.files))

    def test_empty_suggestion(self):
        groups = build_groups_from_suggestion(self.files, [])
        self.assertEqual(len(groups), 4)


class TestGroupFilesByDirectory(unittest.TestCase):
    def test_groups_by_directory(self):
        files = [FileDiff(p, "x") for p in ("src/a.py", "README.md", "src/b.py", "docs/guide.md")]
        groups = group_files_by_directory(files)
        self.assertEqual([g.name for g in groups], ["README.md", "docs/guide.md", "src (2 files)"])
        self.assertEqual(groups[-1].file_paths, ["src/a.py", "src/b.py"])
        self.assertEqual(groups[-1].id, "dir-0")

    def test_group_per_file(self):
        files = [FileDiff("a", "x"), FileDiff("b", "y")]
        groups = group_files_by_directory(files, group_by="file")
        self.assertEqual([g.id for g in groups], ["file-0", "file-1"])

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            group_files_by_directory([], group_by="type")


class TestReconcileGroupCount(unittest.TestCase):
    def _single_file_groups(self, sizes):
        names = "ABCDEFGH"
        return [
            FileGroup(id=f"g{i}", name=names[i], files=[FileDiff(f"{names[i]}.py", "x" * size)])
            for i, size in enumerate(sizes)
        ]

    def test_merges_smallest_groups(self):
        groups = self._single_file_groups([10, 20, 30, 40, 50])
        result = reconcile_group_count(groups, 3)
        self.assertEqual(len(result), 3)
        self.assertEqual(sorted(g.name for g in result), ["A + B + C", "D", "E"])
        merged = next(g for g in result if g.name == "A + B + C")
        self.assertEqual(merged.id, "merged-2")
        self.assertEqual(merged.total_size, 60)
        self.assertEqual(paths_of(result), paths_of(groups))

    def test_splits_largest_group(self):
        files = [FileDiff(f"src/f{i}.py", "x" * 10) for i in range(6)]
        groups = [FileGroup(id="all", name="everything", files=files)]
        result = reconcile_group_count(groups, 3)
        self.assertEqual(len(result), 3)
        self.assertEqual(paths_of(result), paths_of(groups))
        self.assertIn("everything (part 2)", [g.name for g in result])
        self.assertTrue(all(g.files for g in result))

    def test_shortfall_accepted_when_groups_cannot_split(self):
        groups = self._single_file_groups([5, 5])
        self.assertEqual(len(reconcile_group_count(groups, 5)), 2)

    def test_matching_count_unchanged(self):
        groups = self._single_file_groups([1, 2, 3])
        self.assertEqual(reconcile_group_count(groups, 3), groups)

    def test_target_must_be_positive(self):
        with self.assertRaises(ValueError):
            reconcile_group_count(self._single_file_groups([1]), 0)

    def test_merge_down_to_one(self):
        groups = self._single_file_groups([3, 1, 2])
        result = reconcile_group_count(groups, 1)
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].total_size, 6)


if __name__ == "__main__":
    unittest.main()
