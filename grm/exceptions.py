"""Custom exception hierarchy for grm."""

from __future__ import annotations


class GrmError(RuntimeError):
    """Base error for all custom exceptions."""


class InvalidInputError(GrmError):
    """Raised when a URL or path does not decode to a repository."""


class NotFoundError(GrmError):
    """Raised when a file, directory or shared counterpart is missing."""


class AlreadyExistsError(GrmError):
    """Raised when a destination path is already occupied."""


class FileSystemError(GrmError):
    """Raised when a filesystem operation fails."""


class ScanError(GrmError):
    """Raised when the repository scan cannot list a directory."""


class ConfigError(GrmError):
    """Raised when a configuration source exists but cannot be used."""


class NotInManagedRepositoryError(GrmError):
    """Raised when the current directory is not a worktree under the root."""

    def __init__(self, message: str = "Not in a managed git repository"):
        super().__init__(message)


class UnmanagedRepositoryError(GrmError):
    """Raised when no managed checkout matches a repository URL."""

    def __init__(self, url: str, searched_path: str):
        super().__init__(f"No repositories found for URL: {url}\nSearched in: {searched_path}")
        self.url = url
        self.searched_path = searched_path


class GitCommandError(GrmError):
    """Raised when a git invocation fails."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = "Git command failed"
        if command:
            message = f"Git command failed (exit {returncode}): {' '.join(command)}"
        if self.stderr.strip():
            message = f"{message}\n{self.stderr.strip()}"
        super().__init__(message)


class UserAbort(GrmError):
    """Raised when the user declines a confirmation prompt."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)
