"""Filesystem capability used by the scanner and the shared-resource manager."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path, PurePath
from typing import Callable, Protocol

from .exceptions import FileSystemError

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Operations the core needs from a filesystem.

    Predicates never raise. Everything else raises ``FileSystemError``.
    """

    def exists(self, path: Path) -> bool:
        """True if a file, directory or followable symlink target is present."""
        ...

    def is_symlink(self, path: Path) -> bool:
        """True iff ``path`` itself (not its target) is a symbolic link."""
        ...

    def is_dir(self, path: Path) -> bool:
        """True iff ``path`` is a directory, following symlinks."""
        ...

    def is_git_repository(self, path: Path) -> bool:
        """True iff ``path/.git`` exists as a file or a directory."""
        ...

    def current_dir(self) -> Path: ...

    def home_dir(self) -> Path: ...

    def read_dir(self, path: Path) -> list[Path]:
        """Immediate children of ``path``, unsorted."""
        ...

    def read_text(self, path: Path) -> str:
        """Contents of a UTF-8 text file, following symlinks."""
        ...

    def create_dir(self, path: Path) -> None:
        """Create ``path`` and all missing ancestors."""
        ...

    def create_symlink(self, target: Path, link: Path) -> None: ...

    def copy(self, source: Path, destination: Path) -> None:
        """Copy a file byte for byte, or a directory recursively."""
        ...

    def rename(self, source: Path, destination: Path) -> None: ...

    def remove(self, path: Path) -> None:
        """Remove a file or symlink, or a directory recursively."""
        ...

    def normalize(self, path: str | PurePath, base: Path) -> Path:
        """Resolve ``~``, keep absolute paths, join relative ones onto ``base``."""
        ...


def normalize_path(path: str | PurePath, base: Path, home: Callable[[], Path]) -> Path:
    """Lexically normalize ``path`` without touching the disk.

    ``~`` and ``~/...`` expand to ``home()``; absolute paths ignore ``base``;
    ``.`` and ``..`` components are collapsed.
    """

    raw = os.fspath(path)
    if not raw:
        raise FileSystemError("Cannot normalize an empty path")
    pure = PurePath(raw)
    if pure.parts and pure.parts[0] == "~":
        joined = Path(home(), *pure.parts[1:])
    elif pure.is_absolute():
        joined = Path(pure)
    else:
        joined = Path(base) / pure
    return Path(os.path.normpath(joined))


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


class LocalFileSystem:
    """``FileSystem`` backed by the real operating system."""

    def exists(self, path: Path) -> bool:
        try:
            return Path(path).exists()
        except OSError:
            return False

    def is_symlink(self, path: Path) -> bool:
        try:
            return Path(path).is_symlink()
        except OSError:
            return False

    def is_dir(self, path: Path) -> bool:
        try:
            return Path(path).is_dir()
        except OSError:
            return False

    def is_git_repository(self, path: Path) -> bool:
        return self.exists(Path(path) / ".git")

    def current_dir(self) -> Path:
        try:
            return Path.cwd()
        except OSError as exc:
            raise FileSystemError(f"Cannot determine current directory: {exc}") from exc

    def home_dir(self) -> Path:
        try:
            return Path.home().absolute()
        except (OSError, RuntimeError) as exc:
            raise FileSystemError("Home directory not found") from exc

    def read_dir(self, path: Path) -> list[Path]:
        try:
            return list(Path(path).iterdir())
        except OSError as exc:
            raise FileSystemError(f"Cannot read directory {path}: {exc}") from exc

    def read_text(self, path: Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileSystemError(f"Cannot read {path}: {exc}") from exc

    def create_dir(self, path: Path) -> None:
        try:
            ensure_directory(Path(path))
        except OSError as exc:
            raise FileSystemError(f"Cannot create directory {path}: {exc}") from exc

    def create_symlink(self, target: Path, link: Path) -> None:
        logger.debug("Linking %s -> %s", link, target)
        try:
            Path(link).symlink_to(target)
        except OSError as exc:
            raise FileSystemError(f"Cannot create symlink {link}: {exc}") from exc

    def copy(self, source: Path, destination: Path) -> None:
        logger.debug("Copying %s to %s", source, destination)
        try:
            if Path(source).is_dir():
                shutil.copytree(source, destination, dirs_exist_ok=True)
            else:
                shutil.copy2(source, destination)
        except OSError as exc:
            raise FileSystemError(f"Cannot copy {source} to {destination}: {exc}") from exc

    def rename(self, source: Path, destination: Path) -> None:
        logger.debug("Moving %s to %s", source, destination)
        try:
            Path(source).rename(destination)
        except OSError as exc:
            raise FileSystemError(f"Cannot move {source} to {destination}: {exc}") from exc

    def remove(self, path: Path) -> None:
        logger.debug("Removing %s", path)
        target = Path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as exc:
            raise FileSystemError(f"Cannot remove {path}: {exc}") from exc

    def normalize(self, path: str | PurePath, base: Path) -> Path:
        return normalize_path(path, base, self.home_dir)
