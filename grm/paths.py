"""Conversions between git URLs, managed paths and ``RepoInfo``.

A managed root holds one directory per worktree and one shared-storage tree
per repository::

    {root}/{host}/{user}/{repo}+{branch}
    {root}/.shared/{host}/{user}/{repo}/{relative}

Branch names containing ``/`` become nested directories after the ``+``.
"""

from __future__ import annotations

from pathlib import Path, PurePath

from .exceptions import InvalidInputError
from .models import RepoInfo

SHARED_DIR = ".shared"
BRANCH_SEPARATOR = "+"

# (prefix, separator between host and "user/repo"), tried in order.
_URL_FORMATS = (
    ("https://", "/"),
    ("ssh://git@", "/"),
    ("git@", ":"),
)


def from_url(url: str) -> RepoInfo:
    """Parse a git remote URL into ``RepoInfo``.

    Supported shapes::

        https://host/user/repo[.git]
        ssh://git@host/user/repo[.git]
        git@host:user/repo[.git]
    """

    url = url.strip()
    for prefix, separator in _URL_FORMATS:
        if not url.startswith(prefix):
            continue
        expected = f"Expected format: {prefix}host{separator}user/repo, got: {url}"
        host, found, tail = url[len(prefix):].partition(separator)
        if not found:
            raise InvalidInputError(expected)
        parts = tail.split("/")
        if len(parts) < 2:
            raise InvalidInputError(expected)
        user = parts[0]
        repo = parts[1].removesuffix(".git")
        if not host or not user or not repo:
            raise InvalidInputError(expected)
        return RepoInfo(host=host, user=user, repo=repo)
    raise InvalidInputError(f"Unsupported URL format. Supported: https://, git@, ssh://. Got: {url}")


def from_path(root: PurePath, path: PurePath) -> RepoInfo:
    """Decode ``{root}/{host}/{user}/{repo}+{branch}`` back into ``RepoInfo``."""

    try:
        relative = PurePath(path).relative_to(root)
    except ValueError as exc:
        raise InvalidInputError(f"Path {path} is not under root {root}") from exc

    components = relative.parts
    if len(components) < 3:
        raise InvalidInputError(f"Path {relative} does not have managed repository structure")

    host, user, repo_with_branch = components[:3]
    repo, found, branch_head = repo_with_branch.partition(BRANCH_SEPARATOR)
    if not found:
        return RepoInfo(host=host, user=user, repo=repo)

    remaining = components[3:]
    branch: str | None
    if remaining:
        branch = "/".join((branch_head, *remaining))
    else:
        branch = branch_head or None
    return RepoInfo(host=host, user=user, repo=repo, branch=branch)


def build_repo_path(root: Path, info: RepoInfo, branch: str) -> Path:
    return Path(root) / info.host / info.user / f"{info.repo}{BRANCH_SEPARATOR}{branch}"


def build_shared_root(root: Path, info: RepoInfo) -> Path:
    return Path(root) / SHARED_DIR / info.host / info.user / info.repo


def build_shared_path(root: Path, info: RepoInfo, relative: PurePath) -> Path:
    return build_shared_root(root, info) / relative


def repo_prefix(root: Path, info: RepoInfo) -> str:
    """String prefix shared by every worktree path of ``info`` (``root/host/user/repo+``)."""

    return str(build_repo_path(root, info, ""))
