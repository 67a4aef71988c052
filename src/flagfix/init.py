"""Initialize a new flagfix project directory.

Usage:
    flagfix init [--name NAME] [--profile PROFILE] [--application FLAG]
"""

from pathlib import Path

import typer

from flagfix.cli import error_exit, write_output
from flagfix.config import CONFIG_NAME

app = typer.Typer(
    help="Initialize a new flagfix project directory.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

flagfix init                                       Defaults (one 'main' profile)

flagfix init --profile upwelling -a UPWELLING      Name the first profile

[bold]What it creates:[/bold]

flagfix.toml           Options, rules and profiles in one file

[dim]Run this once in an empty directory, then edit [options] and [rules].[/dim]""",
)

DEFAULT_FLAGFIX_TOML = """# flagfix project configuration
# Declares the build options, the rules between them, and one profile per
# application.  Every flagfix command reads from this file.

# ---------------------------------------------------------------------------
# Project-level settings
# ---------------------------------------------------------------------------

[project]
name = "{project_name}"
max_passes = 0                 # 0 = number of rules + 1
default_format = "table"       # table | defines | header | json

# ---------------------------------------------------------------------------
# Options: NAME = "on" | "off" | "unset"  (unset resolves to off)
# ---------------------------------------------------------------------------

[options]
SOLVE3D = {{ default = "on", description = "Solve 3D primitive equations" }}
SALINITY = "off"
GLS_MIXING = {{ default = "unset", description = "Generic length-scale closure" }}
LMD_MIXING = {{ default = "unset", description = "Large/McWilliams/Doney closure" }}
ANA_VMIX = {{ default = "off", description = "Analytical vertical mixing" }}
N2S2_HORAVG = "off"
RI_SPLINES = "off"

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

[[rules.implies]]
name = "gls"
when = "GLS_MIXING"
set = {{ N2S2_HORAVG = "on", RI_SPLINES = "on" }}

[[rules.conflicts]]
name = "vertical-mixing"
flags = ["GLS_MIXING", "LMD_MIXING"]

[[rules.fallbacks]]
name = "analytic-vmix"
candidates = ["GLS_MIXING", "LMD_MIXING"]
set = "ANA_VMIX"

# Optional rule bundles, selected per profile with bundles = ["name"].
# [bundles.experimental]
# description = "Alternative rules kept for comparison"
# [[bundles.experimental.implies]]
# when = "LMD_MIXING"
# set = {{ RI_SPLINES = "on" }}

# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

[profiles.{profile_name}]
application = "{application}"
description = "Options for {profile_name}."
bundles = []

[profiles.{profile_name}.flags]
SOLVE3D = "on"
GLS_MIXING = "on"
"""


@app.command()
def main(
    name: str | None = typer.Option(None, "--name", "-n", help="Project name (default: directory name)."),
    profile_name: str = typer.Option("main", "--profile", "-p", help="Name of the initial profile."),
    application: str = typer.Option(
        "", "--application", "-a", help="Application flag the build defines (e.g. UPWELLING)."
    ),
) -> None:
    """
    Initialize a new flagfix project in the current directory.

    Creates a flagfix.toml with a few example options, one rule of each
    kind, and a single profile.
    """
    cwd = Path.cwd()
    toml_path = cwd / CONFIG_NAME

    if toml_path.exists():
        error_exit(f"A {CONFIG_NAME} already exists in {cwd}")

    content = DEFAULT_FLAGFIX_TOML.format(
        project_name=name or cwd.name,
        profile_name=profile_name,
        application=application or profile_name.upper(),
    )
    write_output(toml_path, content)
    typer.secho(f"Created {toml_path.name}", fg=typer.colors.GREEN)

    typer.secho("\nInitialization complete! Next steps:", fg=typer.colors.CYAN, bold=True)
    typer.echo("1. Declare your build options under [options]")
    typer.echo("2. Add implication / conflict / fallback rules under [rules]")
    typer.echo(f"3. Run 'flagfix resolve {profile_name}' to see the result")


def main_entry() -> None:
    """Run the Typer CLI application."""
    app()


if __name__ == "__main__":
    main_entry()
