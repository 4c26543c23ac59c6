"""Cross-worktree file sharing.

A shared file lives once under ``{root}/.shared/{host}/{user}/{repo}/`` and
appears as a symlink at the same repository-relative path in every worktree.
The manager keeps no state between calls: each operation re-derives its paths
and re-scans the root.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath

from . import paths
from .exceptions import NotFoundError
from .fs import FileSystem
from .models import RepoInfo
from .scanner import RepositoryScanner

logger = logging.getLogger(__name__)


class SharedResourceManager:
    def __init__(self, info: RepoInfo, fs: FileSystem, root: Path):
        self.info = info
        self.fs = fs
        self.root = Path(root)
        self.scanner = RepositoryScanner(fs)

    @property
    def shared_root(self) -> Path:
        return paths.build_shared_root(self.root, self.info)

    def conflicts(self, repo_root: Path, relative_path: str | PurePath) -> list[Path]:
        """List the entries other worktrees hold at the path about to be shared.

        Returns an empty list while nothing is shared at that path yet. The
        caller's own file is never reported.
        """

        source, repo_relative = self._locate(repo_root, relative_path)
        shared_path = paths.build_shared_path(self.root, self.info, repo_relative)
        if not self.fs.exists(shared_path) or self._linked_ancestor(repo_root, repo_relative) is not None:
            return []

        found: list[Path] = []
        for worktree in self._worktrees():
            target = worktree / repo_relative
            if target == source:
                continue
            if self._occupied(target):
                found.append(target)
        return found

    def share(self, repo_root: Path, relative_path: str | PurePath) -> None:
        """Move a file into shared storage and link it into every worktree.

        A source that is already a symlink, or that sits below a symlinked
        directory of the worktree, counts as shared and is left alone.
        Whatever already sits at the shared destination or at a worktree's
        link location is replaced.
        """

        source, repo_relative = self._locate(repo_root, relative_path)
        if not self.fs.exists(source):
            raise NotFoundError(f"File/Directory not found: {relative_path}")
        if self.fs.is_symlink(source):
            logger.debug("%s is already a symlink, treating it as shared", source)
            return
        linked = self._linked_ancestor(repo_root, repo_relative)
        if linked is not None:
            logger.debug("%s is below the symlinked directory %s, treating it as shared", source, linked)
            return

        shared_path = paths.build_shared_path(self.root, self.info, repo_relative)
        self.fs.create_dir(shared_path.parent)
        if self._occupied(shared_path):
            logger.debug("Replacing existing shared copy %s", shared_path)
            self.fs.remove(shared_path)
        self.fs.rename(source, shared_path)

        for worktree in self._worktrees():
            self._link(shared_path, worktree / repo_relative)

    def unshare(self, repo_root: Path, relative_path: str | PurePath) -> int:
        """Remove the symlinks to a shared file from every worktree.

        The shared copy stays where it is. Returns the number of links removed.
        """

        _, repo_relative = self._locate(repo_root, relative_path)
        removed = 0
        for worktree in self._worktrees():
            target = worktree / repo_relative
            if self.fs.is_symlink(target):
                self.fs.remove(target)
                removed += 1
        logger.debug("Removed %d link(s) to %s", removed, repo_relative)
        return removed

    def isolate(self, repo_root: Path, relative_path: str | PurePath) -> None:
        """Replace this worktree's link with a private copy of the shared content."""

        _, repo_relative = self._locate(repo_root, relative_path)
        target = Path(repo_root) / repo_relative
        if not self.fs.exists(target):
            raise NotFoundError(f"File/Directory not found: {repo_relative}")
        if not self.fs.is_symlink(target):
            return

        shared_path = paths.build_shared_path(self.root, self.info, repo_relative)
        if not self.fs.exists(shared_path):
            raise NotFoundError(f"Shared storage not found at {shared_path}")

        self.fs.remove(target)
        self.fs.copy(shared_path, target)

    def mount(self, repo_root: Path) -> int:
        """Link every shared file of the repository into ``repo_root``.

        Used right after a worktree is created. Returns the number of links made.
        """

        shared_root = self.shared_root
        if not self.fs.exists(shared_root):
            raise NotFoundError(f"Shared storage not found at {shared_root}")

        repo_root = Path(repo_root)
        linked = 0
        pending = [shared_root]
        while pending:
            directory = pending.pop()
            for entry in self.fs.read_dir(directory):
                mirrored = repo_root / entry.relative_to(shared_root)
                if self.fs.is_dir(entry):
                    if self.fs.is_symlink(mirrored):
                        # Already linked as a whole directory.
                        continue
                    self.fs.create_dir(mirrored)
                    pending.append(entry)
                    continue
                self._link(entry, mirrored)
                linked += 1
        logger.debug("Mounted %d shared file(s) into %s", linked, repo_root)
        return linked

    def _locate(self, repo_root: Path, relative_path: str | PurePath) -> tuple[Path, Path]:
        """Resolve a caller-supplied path against the cwd and ``repo_root``."""

        absolute = self.fs.normalize(relative_path, self.fs.current_dir())
        try:
            repo_relative = absolute.relative_to(repo_root)
        except ValueError as exc:
            raise NotFoundError(f"{absolute} is not inside {repo_root}") from exc
        if repo_relative == Path("."):
            raise NotFoundError(f"{absolute} is the worktree root, not a path inside it")
        return absolute, repo_relative

    def _linked_ancestor(self, repo_root: Path, repo_relative: Path) -> Path | None:
        """First directory between ``repo_root`` and the entry that is a symlink."""

        current = Path(repo_root)
        for part in repo_relative.parts[:-1]:
            current = current / part
            if self.fs.is_symlink(current):
                return current
        return None

    def _worktrees(self) -> list[Path]:
        return self.scanner.scan_worktrees(self.root, self.info)

    def _occupied(self, path: Path) -> bool:
        return self.fs.exists(path) or self.fs.is_symlink(path)

    def _link(self, shared_path: Path, link: Path) -> None:
        self.fs.create_dir(link.parent)
        if self._occupied(link):
            self.fs.remove(link)
        self.fs.create_symlink(shared_path, link)
