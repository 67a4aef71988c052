"""flagfix cfg: Programmatic editor for flagfix.toml.

Uses tomlkit for format-preserving round-trip editing (comments,
ordering, and whitespace are retained).

Usage::

    flagfix cfg list-profiles
    flagfix cfg show [KEY]
    flagfix cfg set-flag upwelling PERFECT_RESTART on
    flagfix cfg drop-flag upwelling PERFECT_RESTART
    flagfix cfg add-option BIO_FENNEL --default off --description "Fennel ecosystem"
"""

from pathlib import Path

import tomlkit
import typer

from flagfix.cli import parse_state, write_output
from flagfix.config import CONFIG_NAME
from flagfix.registry import State

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _find_root() -> Path:
    """Walk up from cwd to find flagfix.toml."""
    candidate = Path.cwd().resolve()
    while candidate != candidate.parent:
        if (candidate / CONFIG_NAME).exists():
            return candidate
        candidate = candidate.parent
    typer.secho(
        f"Error: Could not find {CONFIG_NAME} in any parent directory.\n"
        "Run this command from within a flagfix project, or use 'flagfix init' first.",
        fg=typer.colors.RED,
        err=True,
    )
    raise typer.Exit(code=1)


def _load_toml(root: Path | None = None) -> tuple[tomlkit.TOMLDocument, Path]:
    """Load flagfix.toml as a tomlkit document, preserving formatting."""
    if root is None:
        root = _find_root()
    toml_path = root / CONFIG_NAME
    if not toml_path.exists():
        typer.secho(f"Error: {toml_path} not found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    doc = tomlkit.parse(toml_path.read_text(encoding="utf-8"))
    return doc, toml_path


def _save_toml(doc: tomlkit.TOMLDocument, path: Path) -> None:
    """Write tomlkit document back atomically, preserving formatting."""
    write_output(path, tomlkit.dumps(doc))


def _get_profile(doc: tomlkit.TOMLDocument, name: str):
    """Return the ``[profiles.<name>]`` table, exiting if it does not exist."""
    profiles = doc.get("profiles", {})
    if name not in profiles:
        typer.secho(
            f"Error: Profile '{name}' not found. Available: {list(profiles.keys())}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    return profiles[name]


def _require_option(doc: tomlkit.TOMLDocument, flag: str) -> None:
    if flag not in doc.get("options", {}):
        typer.secho(
            f"Error: Unknown option '{flag}'. Add it first with 'flagfix cfg add-option'.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Read and edit flagfix.toml programmatically.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  flagfix cfg list-profiles                        List profiles with their application flag
  flagfix cfg show profiles.upwelling              Show one profile table
  flagfix cfg set-flag upwelling BIO_FENNEL on     Set an explicit flag
  flagfix cfg drop-flag upwelling BIO_FENNEL       Remove an explicit flag
  flagfix cfg add-option NEMURO --default off      Register a new option

[dim]Edits keep comments and ordering intact.  Supports dotted key paths
for nested TOML tables (e.g. 'profiles.upwelling.flags').[/dim]""",
)


@app.command("list-profiles")
def list_profiles() -> None:
    """List all profiles defined in flagfix.toml."""
    doc, _ = _load_toml()
    profiles = doc.get("profiles", {})
    if not profiles:
        typer.echo("No profiles defined.")
        return
    for name in profiles.keys():
        prof = profiles[name]
        app_flag = prof.get("application", "") or "-"
        n_flags = len(prof.get("flags", {}))
        parent = prof.get("extends")
        suffix = f", extends {parent}" if parent else ""
        typer.echo(f"  {name}  ({app_flag}, {n_flags} flags{suffix})")


@app.command("show")
def show(
    key: str | None = typer.Argument(
        None, help="Dot-separated key to show, e.g. 'profiles.upwelling.flags'"
    ),
) -> None:
    """Show the current config, or a specific key."""
    doc, _ = _load_toml()

    if key is None:
        typer.echo(tomlkit.dumps(doc))
        return

    current = doc
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            typer.secho(f"Key '{key}' not found.", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    if isinstance(current, dict):
        typer.echo(tomlkit.dumps(current))
    else:
        typer.echo(str(current))


@app.command("set-flag")
def set_flag(
    profile: str = typer.Argument(..., help="Profile name."),
    flag: str = typer.Argument(..., help="Option name (must be declared under [options])."),
    value: str = typer.Argument(..., help="on or off."),
) -> None:
    """Set an explicit flag in a profile (appends, or updates in place)."""
    doc, toml_path = _load_toml()
    prof = _get_profile(doc, profile)
    _require_option(doc, flag)
    enabled = parse_state(value)

    flags = prof.get("flags")
    if flags is None:
        flags = tomlkit.table()
        prof["flags"] = flags
    flags[flag] = "on" if enabled else "off"
    _save_toml(doc, toml_path)
    typer.secho(
        f"Set profiles.{profile}.flags.{flag} = \"{'on' if enabled else 'off'}\"",
        fg=typer.colors.GREEN,
    )


@app.command("drop-flag")
def drop_flag(
    profile: str = typer.Argument(..., help="Profile name."),
    flag: str = typer.Argument(..., help="Option name to remove from the profile."),
) -> None:
    """Remove an explicit flag from a profile (idempotent)."""
    doc, toml_path = _load_toml()
    prof = _get_profile(doc, profile)
    flags = prof.get("flags", {})
    if flag not in flags:
        typer.secho(f"'{flag}' is not set in {profile} (already removed).", fg=typer.colors.YELLOW)
        return
    del flags[flag]
    _save_toml(doc, toml_path)
    typer.secho(f"Removed {flag} from profiles.{profile}", fg=typer.colors.GREEN)


@app.command("add-option")
def add_option(
    name: str = typer.Argument(..., help="Option name (e.g. 'BIO_FENNEL')."),
    default: str = typer.Option("unset", "--default", "-d", help="on, off or unset."),
    description: str = typer.Option("", "--description", help="One-line description."),
) -> None:
    """Declare a new option under [options] (idempotent)."""
    doc, toml_path = _load_toml()
    try:
        state = State.parse(default)
    except ValueError:
        typer.secho(f"Error: Invalid default {default!r}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from None

    options = doc.get("options")
    if options is None:
        options = tomlkit.table()
        doc["options"] = options
    if name in options:
        typer.secho(f"Option '{name}' already exists (no changes made).", fg=typer.colors.YELLOW)
        return

    if description:
        entry = tomlkit.inline_table()
        entry.update({"default": state.value, "description": description})
        options[name] = entry
    else:
        options[name] = state.value
    _save_toml(doc, toml_path)
    typer.secho(f"Added option {name} (default {state.value})", fg=typer.colors.GREEN)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main_entry() -> None:
    app()


if __name__ == "__main__":
    main_entry()
