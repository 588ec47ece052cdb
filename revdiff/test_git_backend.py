import asyncio
import tempfile
import unittest
from pathlib import Path

from git import Repo

from revdiff.backend import BackendInvocationError, GitBackend
from revdiff.engine import compute_change_set, compute_revision_breakdown
from revdiff.models import HEAD, ComparisonTarget, Status
from revdiff.selection import SelectionSnapshot
from revdiff.working_tree import working_changes


class GitTestBase(unittest.TestCase):
    repo: Repo
    temp_dir: tempfile.TemporaryDirectory
    repo_path: str
    backend: GitBackend

    def setUp(self):
        """Set up a temporary directory and initialize a Git repository."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.repo_path = self.temp_dir.name
        self.repo = Repo.init(self.repo_path)
        with self.repo.config_writer() as cw:
            cw.set_value("user", "name", "Test User")
            cw.set_value("user", "email", "test@example.com")
            # Global GPG signing would make commits fail
            cw.set_value("commit", "gpgsign", "false")
        self.backend = GitBackend(self.repo_path)

    def tearDown(self):
        """Clean up the temporary directory."""
        self.backend.close()
        self.repo.close()
        self.temp_dir.cleanup()

    # --- Helper Methods ---
    def _path(self, filename):
        return Path(self.repo_path) / filename

    def _write_file(self, filename, content):
        filepath = self._path(filename)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            filepath.write_text(content, encoding='utf-8')
        else:
            filepath.write_bytes(content)

    def _stage_file(self, filename, content=None):
        if content is not None:
            self._write_file(filename, content)
        self.repo.index.add([Path(filename).as_posix()])
        self.repo.index.write()

    def _commit_file(self, filename, content, commit_msg="Commit") -> str:
        self._stage_file(filename, content)
        return self.repo.index.commit(commit_msg).hexsha

    def _compare(self, ids, target, path=None):
        return asyncio.run(compute_change_set(SelectionSnapshot.of(*ids), target, self.backend, path))


class TestGitBackend(GitTestBase):
    def test_revision_list_is_newest_first(self):
        first = self._commit_file("a.txt", "a\n", "First")
        second = self._commit_file("a.txt", "a\nb\n", "Second | with pipe")
        revisions = asyncio.run(self.backend.revision_list())
        self.assertEqual([r.id for r in revisions], [second, first])
        self.assertEqual(revisions[0].message, "Second | with pipe")
        self.assertEqual(revisions[0].author, "Test User")
        self.assertEqual(revisions[0].parents, (first,))
        self.assertTrue(revisions[1].is_root)

    def test_revision_list_limit_and_exclude(self):
        base = self._commit_file("a.txt", "a\n")
        self.repo.create_head("base", base)
        tip = self._commit_file("a.txt", "a\nb\n")
        self.assertEqual([r.id for r in asyncio.run(self.backend.revision_list(limit=1))], [tip])
        only_new = asyncio.run(self.backend.revision_list(exclude="base"))
        self.assertEqual([r.id for r in only_new], [tip])

    def test_file_exists_at(self):
        rev = self._commit_file("kept.txt", "x\n")
        self._write_file("loose.txt", "y\n")
        self.assertTrue(asyncio.run(self.backend.file_exists_at(rev, "kept.txt")))
        self.assertFalse(asyncio.run(self.backend.file_exists_at(rev, "loose.txt")))
        self.assertTrue(asyncio.run(self.backend.file_exists_at(None, "loose.txt")))
        with self.assertRaises(BackendInvocationError):
            asyncio.run(self.backend.file_exists_at("no-such-revision", "kept.txt"))

    def test_working_tree_status(self):
        self._commit_file("tracked.txt", "1\n")
        self._write_file("tracked.txt", "2\n")
        self._write_file("dir/new file.txt", "n\n")
        entries = {e.path: e for e in asyncio.run(self.backend.working_tree_status())}
        self.assertTrue(entries["tracked.txt"].unstaged)
        self.assertTrue(entries["dir/new file.txt"].untracked)

    def test_has_parent(self):
        root = self._commit_file("a.txt", "a\n")
        child = self._commit_file("a.txt", "b\n")
        self.assertFalse(asyncio.run(self.backend.has_parent(root)))
        self.assertTrue(asyncio.run(self.backend.has_parent(child)))

    def test_head(self):
        self._commit_file("a.txt", "a\n")
        tip = self._commit_file("a.txt", "b\n")
        self.assertEqual(asyncio.run(self.backend.head()), tip)

    def test_not_a_repository(self):
        with tempfile.TemporaryDirectory() as empty:
            with self.assertRaises(BackendInvocationError):
                GitBackend(empty)


class TestComparisons(GitTestBase):
    def test_single_revision(self):
        self._commit_file("a.txt", "1\n2\n3\n")
        rev = self._commit_file("a.txt", "1\nchanged\n3\nnew\n")
        changes = self._compare([rev], ComparisonTarget.PreviousRevision())
        record = changes.record_for("a.txt")
        self.assertEqual((record.additions, record.deletions), (2, 1))

    def test_root_revision(self):
        rev = self._commit_file("a.txt", "1\n2\n")
        changes = self._compare([rev], ComparisonTarget.PreviousRevision())
        self.assertEqual(changes.record_for("a.txt").status, Status.ADDED)

    def test_range_from_root_revision(self):
        root = self._commit_file("a.txt", "1\n2\n", "Root")
        tip = self._commit_file("b.txt", "b\n", "Tip")
        changes = self._compare([tip, root], ComparisonTarget.PreviousRevision())
        self.assertFalse(changes.failed_query)
        record = changes.record_for("a.txt")
        self.assertEqual((record.additions, record.deletions), (2, 0))
        self.assertEqual(changes.record_for("b.txt").additions, 1)

        diff = self._compare([tip, root], ComparisonTarget.WorkingTree(), "a.txt").diff
        self.assertEqual(diff.split("\n")[-2:], ["+1", "+2"])

    def test_range_nets_out(self):
        self._commit_file("base.txt", "base\n")
        self._commit_file("counter.txt", "0\n")
        up = self._commit_file("counter.txt", "0\n1\n", "Increment")
        down = self._commit_file("counter.txt", "0\n", "Decrement")
        changes = self._compare([down, up], ComparisonTarget.PreviousRevision())
        self.assertIsNone(changes.record_for("counter.txt"))
        self.assertFalse(changes.failed_query)

        breakdown = asyncio.run(compute_revision_breakdown(SelectionSnapshot.of(down, up), self.backend))
        self.assertEqual([(r.revision, r.additions, r.deletions) for r in breakdown.records],
                         [(down, 0, 1), (up, 1, 0)])

    def test_named_branch_missing_file(self):
        base = self._commit_file("a.txt", "a\n")
        self.repo.create_head("base", base)
        rev = self._commit_file("a.txt", "b\n")
        changes = self._compare([rev], ComparisonTarget.NamedBranch("base"), "ghost.txt")
        self.assertTrue(changes.is_empty)
        self.assertFalse(changes.failed_query)
        changes = self._compare([rev], ComparisonTarget.NamedBranch("base"), "a.txt")
        self.assertIn("+b", changes.diff.split("\n"))

    def test_working_tree_head_with_untracked(self):
        self._commit_file("a.txt", "a\n")
        self._write_file("a.txt", "a\nb\n")
        self._write_file("fresh.txt", "one\ntwo\n")
        changes = self._compare([HEAD], ComparisonTarget.WorkingTree())
        self.assertEqual(changes.record_for("a.txt").additions, 1)
        fresh = changes.record_for("fresh.txt")
        self.assertEqual((fresh.status, fresh.additions), (Status.ADDED, 2))

        diff = self._compare([HEAD], ComparisonTarget.WorkingTree(), "fresh.txt").diff
        self.assertIn("--- /dev/null", diff.split("\n"))
        self.assertEqual(diff.split("\n")[-2:], ["+one", "+two"])

    def test_working_tree_historical_revision(self):
        old = self._commit_file("a.txt", "old\n")
        self._commit_file("a.txt", "new\n")
        diff = self._compare([old], ComparisonTarget.WorkingTree(), "a.txt").diff.split("\n")
        self.assertIn("+old", diff)
        self.assertIn("-new", diff)

    def test_bad_revision_becomes_warning(self):
        self._commit_file("a.txt", "a\n")
        changes = self._compare(["0" * 40], ComparisonTarget.PreviousRevision())
        self.assertTrue(changes.failed_query)
        self.assertTrue(changes.is_empty)

    def test_working_changes(self):
        self._commit_file("a.txt", "a\n")
        self._stage_file("staged.txt", "s\n")
        self._write_file("a.txt", "a\nb\n")
        changes = asyncio.run(working_changes(self.backend))
        self.assertEqual([(r.path, r.status) for r in changes.staged], [("staged.txt", Status.ADDED)])
        self.assertEqual([(r.path, r.additions) for r in changes.unstaged], [("a.txt", 1)])


if __name__ == '__main__':
    unittest.main()
