"""High-level orchestration for worktree operations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from rich.console import Console

from . import git, interactive, paths
from .exceptions import (
    AlreadyExistsError,
    GitCommandError,
    InvalidInputError,
    NotFoundError,
    NotInManagedRepositoryError,
    UserAbort,
)
from .fs import FileSystem
from .models import Config, RepoInfo
from .shared import SharedResourceManager


@dataclass
class WorktreeService:
    config: Config
    fs: FileSystem
    console: Console
    confirm: Callable[[str], bool] = interactive.confirm

    @property
    def root(self) -> Path:
        return self.config.root

    def split(self, branch: str) -> Path:
        """Create a worktree for ``branch`` next to the current one and mount shared files."""

        repo_root = self._repo_root()
        url = self._remote_url(repo_root)
        info = paths.from_url(url)
        target = paths.build_repo_path(self.root, info, branch)
        if self.fs.exists(target):
            raise AlreadyExistsError(f"Path already exists: {target}")
        self.fs.create_dir(target.parent)

        create_new = not git.branch_exists(repo_root, branch) and not git.remote_branch_exists(
            repo_root, url, branch
        )
        git.worktree_add(repo_root, target, branch, create_new=create_new)
        self._echo(str(target))

        manager = self._manager(info)
        if self.fs.exists(manager.shared_root):
            linked = manager.mount(target)
            self._echo(f"Linked {linked} shared file(s) into {target}")
        return target

    def remove(self, branch: str) -> Path:
        repo_root = self._repo_root()
        info = paths.from_url(self._remote_url(repo_root))
        target = paths.build_repo_path(self.root, info, branch)
        if not self.fs.exists(target):
            raise NotFoundError(f"Worktree does not exist: {target}")
        git.worktree_remove(repo_root, target)
        self._echo(f"Removed worktree: {target}")
        return target

    def share(self, path: str) -> None:
        repo_root = self._repo_root()
        manager = self._manager(self._managed_info(repo_root))

        source = self.fs.normalize(path, self.fs.current_dir())
        if not self.fs.exists(source):
            raise NotFoundError(f"File/Directory not found: {path}")

        conflicts = manager.conflicts(repo_root, path)
        if conflicts:
            self._echo("The following files will be overwritten:")
            for conflict in conflicts:
                self._echo(f"  {conflict}")
            if not self.confirm("Do you want to continue?"):
                raise UserAbort()

        manager.share(repo_root, path)
        self._echo(f"Shared {path} across worktrees")

    def unshare(self, path: str) -> int:
        repo_root = self._repo_root()
        manager = self._manager(self._managed_info(repo_root))
        removed = manager.unshare(repo_root, path)
        if removed == 0:
            self._echo("No shared files found to unshare.")
        else:
            self._echo(f"Unshared {removed} file(s) from all worktrees.")
        return removed

    def isolate(self, path: str) -> None:
        repo_root = self._repo_root()
        manager = self._manager(self._managed_info(repo_root))
        manager.isolate(repo_root, path)
        self._echo(f"Isolated {path}")

    def _repo_root(self) -> Path:
        try:
            return git.rev_parse_toplevel(self.fs.current_dir())
        except GitCommandError as exc:
            raise NotInManagedRepositoryError() from exc

    def _remote_url(self, repo_root: Path) -> str:
        try:
            return git.remote_url(repo_root)
        except GitCommandError as exc:
            raise NotInManagedRepositoryError() from exc

    def _managed_info(self, repo_root: Path) -> RepoInfo:
        try:
            return paths.from_path(self.root, repo_root)
        except InvalidInputError as exc:
            raise NotInManagedRepositoryError(
                f"Not in a managed git repository: {repo_root} is not under {self.root}"
            ) from exc

    def _manager(self, info: RepoInfo) -> SharedResourceManager:
        return SharedResourceManager(info, self.fs, self.root)

    def _echo(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)
