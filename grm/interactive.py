"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys

from InquirerPy import inquirer

from .exceptions import InvalidInputError, UserAbort


def _ensure_tty() -> None:
    if not sys.stdin.isatty():
        raise InvalidInputError("Interactive confirmation requires a TTY.")


def confirm(message: str, default: bool = False) -> bool:
    _ensure_tty()
    try:
        return bool(inquirer.confirm(message=message, default=default).execute())
    except KeyboardInterrupt as exc:  # pragma: no cover - user cancel
        raise UserAbort() from exc
