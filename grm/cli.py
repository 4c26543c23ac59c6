"""Typer-based CLI for grm."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, NoReturn

import typer
from rich.console import Console

from . import __version__
from .config import load_config
from .exceptions import GrmError, UserAbort
from .fs import LocalFileSystem
from .models import Config
from .repositories import RepositoryService
from .worktrees import WorktreeService

app = typer.Typer(help="Git Repository Manager", no_args_is_help=True, add_completion=False)
worktree_app = typer.Typer(help="Manage git worktrees of the current repository", no_args_is_help=True)
app.add_typer(worktree_app, name="worktree")


@dataclass(slots=True)
class AppState:
    config: Config
    fs: LocalFileSystem
    console: Console
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"grm {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the grm version and exit.",
    ),
) -> None:
    _ = version  # handled via callback
    configure_logging(verbose)
    fs = LocalFileSystem()
    try:
        config = load_config(fs)
    except GrmError as err:
        _fail(str(err))
    ctx.obj = AppState(config=config, fs=fs, console=Console(), verbose=verbose)


@app.command(help="Show the root directory for managed repositories")
def root(ctx: typer.Context) -> None:
    with _handle_errors():
        _repositories(ctx).show_root()


@app.command(help="Clone a repository into the managed structure")
def clone(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Git repository URL"),
    branch: str | None = typer.Option(
        None, "--branch", "-b", help="Branch to clone (queries remote if not specified)"
    ),
) -> None:
    with _handle_errors():
        _repositories(ctx).clone(url, branch)


@app.command(name="list", help="List managed repositories")
def list_(
    ctx: typer.Context,
    full_path: bool = typer.Option(False, "--full-path", "-f", help="Show full absolute paths"),
) -> None:
    with _handle_errors():
        _repositories(ctx).list_repositories(full_path=full_path)


@app.command(help="Remove every checkout of a repository")
def remove(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Git repository URL (e.g. https://github.com/user/repo)"),
    force: bool = typer.Option(False, "--force", "-f", help="Force removal without confirmation"),
) -> None:
    with _handle_errors():
        _repositories(ctx).remove(url, force=force)


@worktree_app.command(help="Create a new worktree for a branch")
def split(ctx: typer.Context, branch: str = typer.Argument(..., help="Branch name")) -> None:
    with _handle_errors():
        _worktrees(ctx).split(branch)


@worktree_app.command(name="remove", help="Remove a worktree")
def remove_worktree(ctx: typer.Context, branch: str = typer.Argument(..., help="Branch name")) -> None:
    with _handle_errors():
        _worktrees(ctx).remove(branch)


@worktree_app.command(help="Share a file/directory between worktrees")
def share(ctx: typer.Context, path: str = typer.Argument(..., help="Path to file/directory to share")) -> None:
    with _handle_errors():
        _worktrees(ctx).share(path)


@worktree_app.command(help="Unshare a file/directory")
def unshare(
    ctx: typer.Context, path: str = typer.Argument(..., help="Path to file/directory to unshare")
) -> None:
    with _handle_errors():
        _worktrees(ctx).unshare(path)


@worktree_app.command(help="Isolate a shared file/directory (copy to local)")
def isolate(
    ctx: typer.Context, path: str = typer.Argument(..., help="Path to shared file/directory")
) -> None:
    with _handle_errors():
        _worktrees(ctx).isolate(path)


def _require_state(ctx: typer.Context) -> AppState:
    state = ctx.find_root().obj
    if not isinstance(state, AppState):  # pragma: no cover
        raise typer.Exit(1)
    return state


def _repositories(ctx: typer.Context) -> RepositoryService:
    state = _require_state(ctx)
    return RepositoryService(state.config, state.fs, state.console)


def _worktrees(ctx: typer.Context) -> WorktreeService:
    state = _require_state(ctx)
    return WorktreeService(state.config, state.fs, state.console)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except UserAbort as err:
        typer.secho(str(err), err=True, fg=typer.colors.YELLOW)
        raise typer.Exit(1) from err
    except GrmError as err:
        _fail(f"Error: {err}")


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
