"""In-memory ``FileSystem`` used by the test-suite.

Directories, byte files and symlinks live in a dict keyed by absolute
``PurePosixPath``. Symlinks are followed component by component, the way the
kernel walks a path, so links to directories, relative links and dangling
links behave like they do on disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath, PurePosixPath

from .exceptions import FileSystemError
from .fs import normalize_path

_ROOT = PurePosixPath("/")
_MAX_LINK_HOPS = 40


@dataclass
class _Node:
    kind: str  # "dir", "file" or "link"
    data: bytes = b""
    target: str = ""


class InMemoryFileSystem:
    def __init__(self, *, current_dir: str | PurePath = "/", home_dir: str | PurePath = "/home/user"):
        self._nodes: dict[PurePosixPath, _Node] = {_ROOT: _Node("dir")}
        self._cwd = PurePosixPath(current_dir)
        self._home = PurePosixPath(home_dir)

    # -- setup helpers -----------------------------------------------------

    def set_current_dir(self, path: str | PurePath) -> None:
        self._cwd = PurePosixPath(path)

    def set_home_dir(self, path: str | PurePath) -> None:
        self._home = PurePosixPath(path)

    def add_dir(self, path: str | PurePath) -> None:
        self.create_dir(Path(path))

    def add_file(self, path: str | PurePath, content: bytes | str = b"") -> None:
        if isinstance(content, str):
            content = content.encode()
        self.create_dir(Path(path).parent)
        entry = self._entry(path)
        existing = self._nodes.get(entry)
        if existing is not None and existing.kind == "dir":
            raise FileSystemError(f"Is a directory: {path}")
        self._nodes[entry] = _Node("file", data=content)

    def add_symlink(self, link: str | PurePath, target: str | PurePath) -> None:
        self.create_dir(Path(link).parent)
        self.create_symlink(Path(target), Path(link))

    def add_git_repo(self, path: str | PurePath) -> None:
        self.create_dir(Path(path) / ".git")

    def read_bytes(self, path: str | PurePath) -> bytes:
        _, node = self._lookup(path, follow_last=True)
        if node is None:
            raise FileSystemError(f"No such file: {path}")
        if node.kind != "file":
            raise FileSystemError(f"Not a file: {path}")
        return node.data

    def read_link(self, path: str | PurePath) -> Path:
        _, node = self._lookup(path, follow_last=False)
        if node is None or node.kind != "link":
            raise FileSystemError(f"Not a symlink: {path}")
        return Path(node.target)

    # -- FileSystem --------------------------------------------------------

    def exists(self, path: Path) -> bool:
        try:
            _, node = self._lookup(path, follow_last=True)
        except FileSystemError:
            return False
        return node is not None

    def is_symlink(self, path: Path) -> bool:
        try:
            _, node = self._lookup(path, follow_last=False)
        except FileSystemError:
            return False
        return node is not None and node.kind == "link"

    def is_dir(self, path: Path) -> bool:
        try:
            _, node = self._lookup(path, follow_last=True)
        except FileSystemError:
            return False
        return node is not None and node.kind == "dir"

    def is_git_repository(self, path: Path) -> bool:
        return self.exists(Path(path) / ".git")

    def current_dir(self) -> Path:
        return Path(self._cwd)

    def home_dir(self) -> Path:
        return Path(self._home)

    def read_dir(self, path: Path) -> list[Path]:
        resolved, node = self._lookup(path, follow_last=True)
        if node is None:
            raise FileSystemError(f"No such directory: {path}")
        if node.kind != "dir":
            raise FileSystemError(f"Not a directory: {path}")
        return [Path(path) / key.name for key in self._nodes if key != _ROOT and key.parent == resolved]

    def read_text(self, path: Path) -> str:
        try:
            return self.read_bytes(path).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FileSystemError(f"Cannot read {path}: {exc}") from exc

    def create_dir(self, path: Path) -> None:
        current = _ROOT
        for part in self._absolute(path).parts[1:]:
            candidate = self._resolve(current / part, follow_last=True)
            node = self._nodes.get(candidate)
            if node is None:
                self._nodes[candidate] = _Node("dir")
            elif node.kind != "dir":
                raise FileSystemError(f"File exists: {candidate}")
            current = candidate

    def create_symlink(self, target: Path, link: Path) -> None:
        entry = self._entry(link)
        if entry in self._nodes:
            raise FileSystemError(f"File exists: {link}")
        self._nodes[entry] = _Node("link", target=str(target))

    def copy(self, source: Path, destination: Path) -> None:
        _, node = self._lookup(source, follow_last=True)
        if node is None:
            raise FileSystemError(f"No such file or directory: {source}")
        if node.kind == "dir":
            self.create_dir(destination)
            for child in self.read_dir(source):
                self.copy(child, Path(destination) / child.name)
            return
        resolved, existing = self._lookup(destination, follow_last=True)
        if existing is not None and existing.kind == "dir":
            raise FileSystemError(f"Is a directory: {destination}")
        self._nodes[self._entry(resolved)] = _Node("file", data=node.data)

    def rename(self, source: Path, destination: Path) -> None:
        src = self._entry(source)
        node = self._nodes.get(src)
        if node is None:
            raise FileSystemError(f"No such file or directory: {source}")
        dst = self._entry(destination)
        if dst == src:
            return
        if src in dst.parents:
            raise FileSystemError(f"Cannot move {source} into itself")
        existing = self._nodes.get(dst)
        if existing is not None:
            if existing.kind == "dir" and (node.kind != "dir" or self._children(dst)):
                raise FileSystemError(f"Destination exists: {destination}")
            self._drop(dst)
        for key in [key for key in self._nodes if key == src or src in key.parents]:
            self._nodes[dst / key.relative_to(src)] = self._nodes.pop(key)

    def remove(self, path: Path) -> None:
        entry = self._entry(path)
        if entry == _ROOT:
            raise FileSystemError("Cannot remove the filesystem root")
        if entry not in self._nodes:
            raise FileSystemError(f"No such file or directory: {path}")
        self._drop(entry)

    def normalize(self, path: str | PurePath, base: Path) -> Path:
        return normalize_path(path, base, self.home_dir)

    # -- internals ---------------------------------------------------------

    def _absolute(self, path: str | PurePath) -> PurePosixPath:
        pure = PurePosixPath(path)
        return pure if pure.is_absolute() else self._cwd / pure

    def _resolve(self, path: str | PurePath, *, follow_last: bool) -> PurePosixPath:
        pending = list(self._absolute(path).parts[1:])
        current = _ROOT
        hops = 0
        while pending:
            name = pending.pop(0)
            if name == "..":
                current = current.parent
                continue
            candidate = current / name
            node = self._nodes.get(candidate)
            if node is not None and node.kind == "link" and (pending or follow_last):
                hops += 1
                if hops > _MAX_LINK_HOPS:
                    raise FileSystemError(f"Too many levels of symbolic links: {path}")
                target = PurePosixPath(node.target)
                if target.is_absolute():
                    current = _ROOT
                    pending = list(target.parts[1:]) + pending
                else:
                    pending = list(target.parts) + pending
                continue
            current = candidate
        return current

    def _lookup(self, path: str | PurePath, *, follow_last: bool) -> tuple[PurePosixPath, _Node | None]:
        resolved = self._resolve(path, follow_last=follow_last)
        return resolved, self._nodes.get(resolved)

    def _entry(self, path: str | PurePath) -> PurePosixPath:
        """Location of ``path`` itself: parent resolved, last component kept."""

        absolute = self._absolute(path)
        if absolute == _ROOT:
            return _ROOT
        parent, node = self._lookup(absolute.parent, follow_last=True)
        if node is None or node.kind != "dir":
            raise FileSystemError(f"No such directory: {absolute.parent}")
        if absolute.name == "..":
            return parent.parent
        return parent / absolute.name

    def _children(self, directory: PurePosixPath) -> list[PurePosixPath]:
        return [key for key in self._nodes if key != _ROOT and key.parent == directory]

    def _drop(self, entry: PurePosixPath) -> None:
        for key in [key for key in self._nodes if key == entry or entry in key.parents]:
            del self._nodes[key]
