"""Use cases that operate on whole repositories under the managed root."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.markup import escape

from . import git, interactive, paths
from .exceptions import AlreadyExistsError, UnmanagedRepositoryError, UserAbort
from .fs import FileSystem
from .models import Config
from .scanner import RepositoryScanner

logger = logging.getLogger(__name__)


@dataclass
class RepositoryService:
    config: Config
    fs: FileSystem
    console: Console
    confirm: Callable[[str], bool] = interactive.confirm

    @property
    def root(self) -> Path:
        return self.config.root

    def show_root(self) -> Path:
        self._echo(str(self.root))
        return self.root

    def clone(self, url: str, branch: str | None = None) -> Path:
        info = paths.from_url(url)
        branch = branch or git.default_branch(url)
        target = paths.build_repo_path(self.root, info, branch)
        if self.fs.exists(target):
            raise AlreadyExistsError(f"Path already exists: {target}")
        self.fs.create_dir(target.parent)
        git.clone(url, target, branch)
        self._echo(f"Repository cloned to: {target}")
        return target

    def list_repositories(self, *, full_path: bool = False) -> list[Path]:
        if not self.fs.exists(self.root):
            self._echo("Nothing to display")
            return []
        repositories = sorted(RepositoryScanner(self.fs).scan_repositories(self.root))
        if not repositories:
            self._echo("Nothing to display")
            return []
        for repo in repositories:
            self._echo(str(repo if full_path else repo.relative_to(self.root)))
        return repositories

    def remove(self, url: str, *, force: bool = False) -> list[Path]:
        """Delete every checkout of ``url`` along with its shared storage."""

        info = paths.from_url(url)
        matches = sorted(RepositoryScanner(self.fs).find_repositories(self.root, info))
        if not matches:
            raise UnmanagedRepositoryError(url, str(self.root / info.host / info.user))

        if not force:
            self._echo("The following repositories will be deleted:")
            for repo in matches:
                self._echo(f"  - {repo}")
            self._echo("")
            if not self.confirm("Do you want to continue?"):
                raise UserAbort()

        removed: list[Path] = []
        for repo in matches:
            if self.fs.is_symlink(repo):
                self.console.print(f"[yellow]Warning:[/yellow] Skipping symlink: {escape(str(repo))}", highlight=False)
                continue
            self.fs.remove(repo)
            removed.append(repo)
            self._echo(f"Removed: {repo}")

        shared_root = paths.build_shared_root(self.root, info)
        if self.fs.exists(shared_root) or self.fs.is_symlink(shared_root):
            self.fs.remove(shared_root)
            logger.debug("Removed shared storage %s", shared_root)

        self._echo(f"\nSuccessfully removed {len(removed)} repository(ies).")
        return removed

    def _echo(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)
