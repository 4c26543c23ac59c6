"""Tests for sharing files across the worktrees of one repository."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from grm.exceptions import NotFoundError
from grm.fs import LocalFileSystem
from grm.memfs import InMemoryFileSystem
from grm.models import RepoInfo
from grm.shared import SharedResourceManager


def snapshot(fs: InMemoryFileSystem, root: Path) -> dict[Path, tuple]:
    """Describe every entry under ``root`` without following symlinks."""

    state: dict[Path, tuple] = {}
    pending = [root]
    while pending:
        directory = pending.pop()
        for entry in fs.read_dir(directory):
            if fs.is_symlink(entry):
                state[entry] = ("link", fs.read_link(entry))
            elif fs.is_dir(entry):
                state[entry] = ("dir",)
                pending.append(entry)
            else:
                state[entry] = ("file", fs.read_bytes(entry))
    return state


class SharedResourceManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = Path("/grm")
        self.info = RepoInfo("github.com", "acme", "widgets")
        self.main = self.root / "github.com/acme/widgets+main"
        self.feature = self.root / "github.com/acme/widgets+feature"
        self.shared_root = self.root / ".shared/github.com/acme/widgets"

        self.fs = InMemoryFileSystem(current_dir=self.main)
        self.fs.add_git_repo(self.main)
        self.fs.add_git_repo(self.feature)
        self.fs.add_file(self.main / "secrets.env", b"TOKEN=abc\n")
        self.manager = SharedResourceManager(self.info, self.fs, self.root)

    def test_end_to_end_share_then_unshare(self) -> None:
        self.manager.share(self.main, "secrets.env")

        shared = self.shared_root / "secrets.env"
        self.assertTrue(self.fs.exists(shared))
        self.assertFalse(self.fs.is_symlink(shared))
        self.assertEqual(self.fs.read_bytes(shared), b"TOKEN=abc\n")
        for worktree in (self.main, self.feature):
            link = worktree / "secrets.env"
            self.assertTrue(self.fs.is_symlink(link))
            self.assertEqual(self.fs.read_link(link), shared)
            self.assertEqual(self.fs.read_bytes(link), b"TOKEN=abc\n")

        self.fs.set_current_dir(self.feature)
        self.assertEqual(self.manager.unshare(self.feature, "secrets.env"), 2)
        for worktree in (self.main, self.feature):
            link = worktree / "secrets.env"
            self.assertFalse(self.fs.is_symlink(link))
            self.assertFalse(self.fs.exists(link))
        self.assertEqual(self.fs.read_bytes(shared), b"TOKEN=abc\n")

        self.assertEqual(
            sorted(self.manager.scanner.scan_worktrees(self.root, self.info)), [self.feature, self.main]
        )

    def test_share_twice_is_idempotent(self) -> None:
        self.manager.share(self.main, "secrets.env")
        before = snapshot(self.fs, self.root)
        self.manager.share(self.main, "secrets.env")
        self.assertEqual(snapshot(self.fs, self.root), before)

    def test_share_missing_source(self) -> None:
        with self.assertRaises(NotFoundError):
            self.manager.share(self.main, "missing.env")

    def test_share_outside_repo_root(self) -> None:
        self.fs.add_file("/tmp/outside.env", b"")
        with self.assertRaises(NotFoundError):
            self.manager.share(self.main, "/tmp/outside.env")

    def test_worktree_root_is_rejected(self) -> None:
        self.fs.add_file(self.feature / "work.txt", b"uncommitted\n")
        self.fs.add_dir(self.main / "config")
        before = snapshot(self.fs, self.root)

        operations = {
            "conflicts": self.manager.conflicts,
            "share": self.manager.share,
            "unshare": self.manager.unshare,
            "isolate": self.manager.isolate,
        }
        for current, path in ((self.main, "."), (self.main / "config", ".."), (self.main, str(self.main))):
            self.fs.set_current_dir(current)
            for name, operation in operations.items():
                with self.subTest(operation=name, cwd=str(current), path=path):
                    with self.assertRaises(NotFoundError):
                        operation(self.main, path)

        self.assertEqual(snapshot(self.fs, self.root), before)
        self.assertTrue(self.fs.is_git_repository(self.feature))
        self.assertFalse(self.fs.is_symlink(self.feature))

    def test_entry_inside_shared_directory_is_already_shared(self) -> None:
        self.fs.add_file(self.main / ".vscode/settings.json", b"{}")
        self.manager.share(self.main, ".vscode")
        before = snapshot(self.fs, self.root)

        self.assertEqual(self.manager.conflicts(self.main, ".vscode/settings.json"), [])
        self.manager.share(self.main, ".vscode/settings.json")
        self.fs.set_current_dir(self.main / ".vscode")
        self.manager.share(self.main, "settings.json")
        self.assertEqual(self.manager.unshare(self.main, ".vscode/settings.json"), 0)
        self.manager.isolate(self.main, ".vscode/settings.json")

        self.assertEqual(snapshot(self.fs, self.root), before)
        self.assertEqual(self.fs.read_bytes(self.shared_root / ".vscode/settings.json"), b"{}")
        self.assertEqual(self.fs.read_bytes(self.feature / ".vscode/settings.json"), b"{}")

    def test_share_overwrites_previous_shared_copy(self) -> None:
        self.fs.add_file(self.shared_root / "secrets.env", b"OLD\n")
        self.fs.add_file(self.feature / "secrets.env", b"FEATURE\n")
        self.manager.share(self.main, "secrets.env")
        self.assertEqual(self.fs.read_bytes(self.shared_root / "secrets.env"), b"TOKEN=abc\n")
        self.assertTrue(self.fs.is_symlink(self.feature / "secrets.env"))
        self.assertEqual(self.fs.read_bytes(self.feature / "secrets.env"), b"TOKEN=abc\n")

    def test_share_from_subdirectory_creates_missing_parents(self) -> None:
        self.fs.add_file(self.main / "config/app.toml", b"debug = true\n")
        self.fs.set_current_dir(self.main / "config")
        self.manager.share(self.main, "app.toml")

        shared = self.shared_root / "config/app.toml"
        self.assertEqual(self.fs.read_bytes(shared), b"debug = true\n")
        self.assertTrue(self.fs.is_dir(self.feature / "config"))
        self.assertEqual(self.fs.read_link(self.feature / "config/app.toml"), shared)

    def test_share_directory(self) -> None:
        self.fs.add_file(self.main / ".vscode/settings.json", b"{}")
        self.manager.share(self.main, ".vscode")
        self.assertTrue(self.fs.is_dir(self.shared_root / ".vscode"))
        self.assertTrue(self.fs.is_symlink(self.feature / ".vscode"))
        self.assertEqual(self.fs.read_bytes(self.feature / ".vscode/settings.json"), b"{}")

    def test_symlinked_source_is_treated_as_shared(self) -> None:
        self.fs.add_file("/elsewhere/secrets.env", b"ELSEWHERE\n")
        self.fs.remove(self.main / "secrets.env")
        self.fs.add_symlink(self.main / "secrets.env", "/elsewhere/secrets.env")
        self.manager.share(self.main, "secrets.env")
        self.assertFalse(self.fs.exists(self.shared_root / "secrets.env"))
        self.assertFalse(self.fs.exists(self.feature / "secrets.env"))

    def test_conflicts_empty_until_shared(self) -> None:
        self.fs.add_file(self.feature / "secrets.env", b"FEATURE\n")
        self.assertEqual(self.manager.conflicts(self.main, "secrets.env"), [])

    def test_conflicts_exclude_callers_own_file(self) -> None:
        self.manager.share(self.main, "secrets.env")
        self.assertEqual(self.manager.conflicts(self.main, "secrets.env"), [self.feature / "secrets.env"])

        self.fs.set_current_dir(self.feature)
        self.assertEqual(self.manager.conflicts(self.feature, "secrets.env"), [self.main / "secrets.env"])

    def test_conflicts_report_real_files_and_skip_missing(self) -> None:
        hotfix = self.root / "github.com/acme/widgets+hotfix"
        self.fs.add_git_repo(hotfix)
        self.fs.add_file(self.shared_root / "secrets.env", b"SHARED\n")
        self.fs.add_file(self.feature / "secrets.env", b"FEATURE\n")
        self.assertEqual(self.manager.conflicts(self.main, "secrets.env"), [self.feature / "secrets.env"])

    def test_unshare_counts_every_link(self) -> None:
        for branch in ("hotfix", "release/1.0"):
            self.fs.add_git_repo(self.root / f"github.com/acme/widgets+{branch}")
        self.manager.share(self.main, "secrets.env")
        self.fs.set_current_dir(self.feature)
        self.assertEqual(self.manager.unshare(self.feature, "secrets.env"), 4)

    def test_unshare_leaves_real_files(self) -> None:
        self.fs.add_file(self.feature / "secrets.env", b"PRIVATE\n")
        self.assertEqual(self.manager.unshare(self.main, "secrets.env"), 0)
        self.assertEqual(self.fs.read_bytes(self.feature / "secrets.env"), b"PRIVATE\n")

    def test_isolate_restores_private_copy(self) -> None:
        self.manager.share(self.main, "secrets.env")
        self.manager.isolate(self.main, "secrets.env")

        target = self.main / "secrets.env"
        self.assertFalse(self.fs.is_symlink(target))
        self.assertEqual(self.fs.read_bytes(target), b"TOKEN=abc\n")
        self.assertTrue(self.fs.is_symlink(self.feature / "secrets.env"))
        self.assertTrue(self.fs.exists(self.shared_root / "secrets.env"))

    def test_isolate_directory_copies_recursively(self) -> None:
        self.fs.add_file(self.main / ".vscode/settings.json", b"{}")
        self.fs.add_file(self.main / ".vscode/nested/launch.json", b"[]")
        self.manager.share(self.main, ".vscode")
        self.manager.isolate(self.main, ".vscode")
        self.assertFalse(self.fs.is_symlink(self.main / ".vscode"))
        self.assertEqual(self.fs.read_bytes(self.main / ".vscode/nested/launch.json"), b"[]")

    def test_isolate_non_symlink_is_noop(self) -> None:
        self.manager.isolate(self.main, "secrets.env")
        self.assertEqual(self.fs.read_bytes(self.main / "secrets.env"), b"TOKEN=abc\n")

    def test_isolate_missing_target(self) -> None:
        with self.assertRaises(NotFoundError):
            self.manager.isolate(self.main, "missing.env")

    def test_isolate_link_without_shared_copy(self) -> None:
        self.fs.add_file("/elsewhere/secrets.env", b"")
        self.fs.remove(self.main / "secrets.env")
        self.fs.add_symlink(self.main / "secrets.env", "/elsewhere/secrets.env")
        with self.assertRaises(NotFoundError):
            self.manager.isolate(self.main, "secrets.env")

    def test_mount_links_everything_shared(self) -> None:
        self.fs.add_file(self.main / "config/app.toml", b"")
        self.manager.share(self.main, "secrets.env")
        self.manager.share(self.main, "config/app.toml")

        hotfix = self.root / "github.com/acme/widgets+hotfix"
        self.fs.add_git_repo(hotfix)
        self.fs.add_file(hotfix / "secrets.env", b"STALE\n")

        self.assertEqual(self.manager.mount(hotfix), 2)
        self.assertEqual(self.fs.read_link(hotfix / "secrets.env"), self.shared_root / "secrets.env")
        self.assertEqual(self.fs.read_link(hotfix / "config/app.toml"), self.shared_root / "config/app.toml")
        self.assertTrue(self.fs.is_dir(hotfix / "config"))
        self.assertFalse(self.fs.is_symlink(hotfix / "config"))

    def test_mount_keeps_directory_links(self) -> None:
        self.fs.add_file(self.main / ".vscode/settings.json", b"{}")
        self.manager.share(self.main, ".vscode")
        self.assertEqual(self.manager.mount(self.feature), 0)
        self.assertTrue(self.fs.is_symlink(self.feature / ".vscode"))
        self.assertEqual(self.fs.read_bytes(self.shared_root / ".vscode/settings.json"), b"{}")

    def test_mount_without_shared_storage(self) -> None:
        with self.assertRaises(NotFoundError):
            self.manager.mount(self.feature)


class SharedResourceManagerOnDiskTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name).resolve()
        self.info = RepoInfo("github.com", "acme", "widgets")
        self.main = self.root / "github.com/acme/widgets+main"
        self.feature = self.root / "github.com/acme/widgets+feature"
        for worktree in (self.main, self.feature):
            (worktree / ".git").mkdir(parents=True)
        (self.main / "secrets.env").write_text("TOKEN=abc\n")
        self.manager = SharedResourceManager(self.info, LocalFileSystem(), self.root)

    def test_share_isolate_unshare(self) -> None:
        shared = self.root / ".shared/github.com/acme/widgets/secrets.env"

        self.manager.share(self.main, self.main / "secrets.env")
        self.assertTrue(shared.is_file())
        self.assertFalse(shared.is_symlink())
        self.assertEqual(os.readlink(self.feature / "secrets.env"), str(shared))

        self.manager.isolate(self.main, self.main / "secrets.env")
        self.assertFalse((self.main / "secrets.env").is_symlink())
        self.assertEqual((self.main / "secrets.env").read_text(), "TOKEN=abc\n")

        self.assertEqual(self.manager.unshare(self.feature, self.feature / "secrets.env"), 1)
        self.assertFalse((self.feature / "secrets.env").is_symlink())
        self.assertTrue(shared.is_file())

    def test_share_worktree_root_keeps_siblings(self) -> None:
        (self.feature / "work.txt").write_text("uncommitted\n")
        with self.assertRaises(NotFoundError):
            self.manager.share(self.main, self.main)
        self.assertTrue((self.main / ".git").is_dir())
        self.assertFalse(self.feature.is_symlink())
        self.assertEqual((self.feature / "work.txt").read_text(), "uncommitted\n")

    def test_share_inside_shared_directory_keeps_content(self) -> None:
        (self.main / ".vscode").mkdir()
        (self.main / ".vscode/settings.json").write_text("{}")
        self.manager.share(self.main, self.main / ".vscode")

        self.manager.share(self.main, self.main / ".vscode/settings.json")

        shared = self.root / ".shared/github.com/acme/widgets/.vscode/settings.json"
        self.assertEqual(shared.read_text(), "{}")
        self.assertFalse(shared.is_symlink())
        self.assertEqual((self.feature / ".vscode/settings.json").read_text(), "{}")


if __name__ == "__main__":
    unittest.main()
