"""Discovery of managed repositories and worktrees under the root."""

from __future__ import annotations

import logging
from pathlib import Path

from . import paths
from .exceptions import FileSystemError, InvalidInputError, ScanError
from .fs import FileSystem
from .models import RepoInfo

logger = logging.getLogger(__name__)


class RepositoryScanner:
    def __init__(self, fs: FileSystem):
        self.fs = fs

    def scan_repositories(self, root: Path) -> list[Path]:
        """Return every directory below ``root`` that directly contains ``.git``.

        Symlinks are never followed and repositories are never descended into.
        The order of the result is unspecified.
        """

        logger.debug("Scanning %s for repositories", root)
        repositories: list[Path] = []
        pending = [Path(root)]
        while pending:
            directory = pending.pop()
            try:
                entries = self.fs.read_dir(directory)
            except FileSystemError as exc:
                raise ScanError(f"IO error during scanning: {exc}") from exc
            for entry in entries:
                if self.fs.is_symlink(entry) or not self.fs.is_dir(entry):
                    continue
                if self.fs.is_git_repository(entry):
                    repositories.append(entry)
                else:
                    pending.append(entry)
        return repositories

    def scan_worktrees(self, root: Path, info: RepoInfo) -> list[Path]:
        """Return the worktrees of ``info``: repositories under ``root/host/user/repo+``."""

        prefix = paths.repo_prefix(root, info)
        return [path for path in self.scan_repositories(root) if str(path).startswith(prefix)]

    def find_repositories(self, root: Path, info: RepoInfo) -> list[Path]:
        """Return every checkout of ``info``, with or without a branch suffix."""

        owner_dir = Path(root) / info.host / info.user
        if not self.fs.is_dir(owner_dir):
            return []
        matches: list[Path] = []
        for path in self.scan_repositories(owner_dir):
            try:
                decoded = paths.from_path(root, path)
            except InvalidInputError:
                continue
            if decoded.repo == info.repo:
                matches.append(path)
        return matches
