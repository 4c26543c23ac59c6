"""Resolve the managed root directory.

Sources are tried in priority order and the first one that yields a path
wins:

1. the ``GRM_ROOT`` environment variable
2. ``~/.grmrc`` (TOML, ``root = "/path/to/root"``)
3. ``grm.root`` in the global git config
4. ``~/grm``
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Callable

from . import git
from .exceptions import ConfigError, FileSystemError, GitCommandError
from .fs import FileSystem
from .models import Config

logger = logging.getLogger(__name__)

ROOT_ENV_VAR = "GRM_ROOT"
RC_FILE_NAME = ".grmrc"
GIT_CONFIG_ROOT_KEY = "grm.root"
DEFAULT_ROOT_NAME = "grm"


def load_config(fs: FileSystem) -> Config:
    providers: list[tuple[str, Callable[[FileSystem], str | None]]] = [
        ("environment", _from_env),
        (RC_FILE_NAME, _from_rc_file),
        ("git config", _from_git_config),
    ]
    for name, provider in providers:
        raw = provider(fs)
        if raw:
            logger.debug("Root directory taken from %s: %s", name, raw)
            return Config(root=_normalize(fs, raw))
    return Config(root=fs.home_dir() / DEFAULT_ROOT_NAME)


def _from_env(fs: FileSystem) -> str | None:
    return os.environ.get(ROOT_ENV_VAR) or None


def _from_rc_file(fs: FileSystem) -> str | None:
    rc_path = fs.home_dir() / RC_FILE_NAME
    if not fs.exists(rc_path):
        return None
    try:
        content = fs.read_text(rc_path)
    except FileSystemError as exc:
        raise ConfigError(f"Failed to read {rc_path}: {exc}") from exc
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {rc_path}: {exc}") from exc
    root = data.get("root")
    if not isinstance(root, str):
        raise ConfigError(f"Failed to parse {rc_path}: expected a string 'root' key")
    return root


def _from_git_config(fs: FileSystem) -> str | None:
    try:
        return git.global_config(GIT_CONFIG_ROOT_KEY)
    except GitCommandError as exc:
        raise ConfigError(f"Git config error: {exc}") from exc


def _normalize(fs: FileSystem, raw: str) -> Path:
    try:
        return fs.normalize(raw, fs.current_dir())
    except FileSystemError as exc:
        raise ConfigError(str(exc)) from exc
