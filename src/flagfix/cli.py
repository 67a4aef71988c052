"""Shared CLI utilities for flagfix commands.

Provides common Typer options, config-loading helpers, and standardised
output / error helpers so that every command gets consistent ``--project``
support, error reporting, flag-value parsing, and JSON output without
boilerplate.

Usage in a command module::

    import typer
    from flagfix.cli import ProjectOption, get_config, error_exit, json_print

    app = typer.Typer()

    @app.command()
    def main(project: Path | None = ProjectOption) -> None:
        cfg = get_config(project)
        ...
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from flagfix.config import ProjectConfig, load_config
from flagfix.errors import ConflictViolation, FlagfixError
from flagfix.registry import State

# Re-usable Typer option for --project
ProjectOption: Path | None = typer.Option(
    None,
    "--project",
    "-C",
    help="Project root containing flagfix.toml (default: search upward from cwd).",
)

JsonOption: bool = typer.Option(False, "--json", help="Output results as JSON")


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(
    msg: str, *, json_mode: bool = False, code: int = 1, extra: dict[str, Any] | None = None
) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg, **(extra or {})}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {escape(msg)}")
    raise typer.Exit(code=code)


def exit_code_for(exc: FlagfixError) -> int:
    """Conflicts exit with 2 so build scripts can tell them apart."""
    return 2 if isinstance(exc, ConflictViolation) else 1


def fail(exc: FlagfixError, *, json_mode: bool = False) -> NoReturn:
    """Report a library error (with its structured fields) and exit."""
    extra = {k: v for k, v in exc.to_dict().items() if k != "error"}
    error_exit(str(exc), json_mode=json_mode, code=exit_code_for(exc), extra=extra)


def get_config(root: Path | None = None, *, json_mode: bool = False) -> ProjectConfig:
    """Load the project config, exiting cleanly on a missing or broken file."""
    try:
        return load_config(root)
    except FileNotFoundError as exc:
        error_exit(str(exc), json_mode=json_mode)
    except FlagfixError as exc:
        fail(exc, json_mode=json_mode)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))


def parse_state(value: str, *, json_mode: bool = False) -> bool:
    """Parse ``on``/``off`` (or true/false, 1/0), exiting on anything else."""
    try:
        state = State.parse(value)
    except ValueError:
        state = State.UNSET
    if state is State.UNSET:
        error_exit(f"Invalid flag value: {value!r} (expected on or off)", json_mode=json_mode)
    return state is State.ON


def write_output(path: Path, text: str) -> None:
    """Atomically write *text* to *path* via a temporary file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
