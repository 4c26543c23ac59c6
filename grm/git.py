"""Thin wrappers around git CLI commands."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable

from .exceptions import GitCommandError, NotFoundError

logger = logging.getLogger(__name__)


def run_git(
    args: Iterable[str],
    *,
    cwd: Path | None = None,
    raise_on_error: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and optionally raise on failure.

    With ``capture=False`` git writes straight to the terminal, which keeps
    clone and worktree progress output visible.
    """

    cmd = ["git", *args]
    logger.debug("Running command: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=capture,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise GitCommandError(cmd, 127, stderr=str(exc)) from exc
    if raise_on_error and proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    return proc


def rev_parse_toplevel(path: Path) -> Path:
    proc = run_git(["rev-parse", "--show-toplevel"], cwd=path)
    return Path(proc.stdout.strip())


def remote_url(path: Path, remote: str = "origin") -> str:
    proc = run_git(["remote", "get-url", remote], cwd=path)
    return proc.stdout.strip()


def default_branch(url: str) -> str:
    """Ask the remote which branch its HEAD points at."""

    proc = run_git(["ls-remote", "--symref", url, "HEAD"])
    for line in proc.stdout.splitlines():
        # ref: refs/heads/main	HEAD
        if not line.startswith("ref:"):
            continue
        parts = line.split()
        if len(parts) >= 2 and parts[1].startswith("refs/heads/"):
            return parts[1][len("refs/heads/"):]
    raise NotFoundError(f"Could not determine the default branch of {url}")


def branch_exists(path: Path, branch: str) -> bool:
    proc = run_git(
        ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
        cwd=path,
        raise_on_error=False,
    )
    return proc.returncode == 0


def remote_branch_exists(path: Path, remote: str, branch: str) -> bool:
    ref = f"refs/heads/{branch}"
    proc = run_git(["ls-remote", "--heads", remote, ref], cwd=path)
    return any(line.endswith(ref) for line in proc.stdout.splitlines())


def clone(url: str, target: Path, branch: str | None = None) -> None:
    args = ["clone", url, str(target)]
    if branch:
        args.extend(["--branch", branch])
    run_git(args, capture=False)


def worktree_add(path: Path, target: Path, branch: str, *, create_new: bool) -> None:
    if create_new:
        args = ["worktree", "add", "-b", branch, str(target)]
    else:
        args = ["worktree", "add", str(target), branch]
    run_git(args, cwd=path, capture=False)


def worktree_remove(path: Path, target: Path) -> None:
    run_git(["worktree", "remove", str(target)], cwd=path, capture=False)


def global_config(key: str) -> str | None:
    """Return a key from the global git config, or None when it is unset."""

    proc = run_git(["config", "--global", "--get", key], raise_on_error=False)
    if proc.returncode == 0:
        return proc.stdout.strip() or None
    if proc.returncode == 1:
        return None
    raise GitCommandError(proc.args, proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
