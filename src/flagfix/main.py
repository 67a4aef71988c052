"""main.py – Umbrella CLI entry point for flagfix.

Imports each subcommand module and registers its typer command.

Single-command modules are registered as flat ``app.command()`` entries;
only true multi-command modules (currently only ``cfg``) use ``add_typer()``.
"""

import importlib

import typer

from flagfix.log import setup_logging

app = typer.Typer(
    help="Fixed-point resolver for build-time feature flags.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  flagfix init                         Create flagfix.toml
  flagfix options                      List declared options
  flagfix resolve <profile>            Resolve one application profile
  flagfix explain <profile> <FLAG>     Why is a flag on/off?
  flagfix check                        Resolve every profile (CI)

[dim]All subcommands read project settings from flagfix.toml.
Run 'flagfix <cmd> --help' for details.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("resolve", "flagfix.resolve", "Resolve an application profile to a complete flag set."),
    ("check", "flagfix.check", "Resolve every profile and report which ones fail."),
    ("explain", "flagfix.explain", "Explain why a flag has its resolved value."),
    ("options", "flagfix.options", "List registered options with their defaults."),
    ("init", "flagfix.init", "Initialize a new flagfix project."),
]

_MULTI_COMMANDS: list[tuple[str, str, str]] = [
    ("cfg", "flagfix.cfg", "Read and edit flagfix.toml programmatically."),
]


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each resolution pass."),
) -> None:
    setup_logging("DEBUG" if verbose else "WARNING")


for _name, _module, _help in _SINGLE_COMMANDS:
    _mod = importlib.import_module(_module)
    _epilog = getattr(_mod.app.info, "epilog", None)
    if not isinstance(_epilog, str):
        _epilog = None
    app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)

for _name, _module, _help in _MULTI_COMMANDS:
    _mod = importlib.import_module(_module)
    app.add_typer(_mod.app, name=_name, help=_help)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
