"""resolve.py – Resolve one application profile and render the result.

Usage::

    flagfix resolve upwelling                       Rich table of enabled flags
    flagfix resolve upwelling --format defines      -DUPWELLING -DUV_ADV ...
    flagfix resolve upwelling --format header -o build/upwelling.h
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from flagfix.cli import (
    JsonOption,
    ProjectOption,
    error_exit,
    fail,
    get_config,
    json_print,
    write_output,
)
from flagfix.errors import FlagfixError
from flagfix.profile import load_profile_file
from flagfix.report import build_table, cpp_defines, render_header, to_json
from flagfix.resolver import ResolvedConfig

_FORMATS = ("table", "defines", "header", "json")

_EPILOG = """\
[bold]Examples:[/bold]

flagfix resolve upwelling                          Enabled flags with provenance

flagfix resolve upwelling --all                    Include flags resolved off

flagfix resolve upwelling -f defines               Compiler -D arguments, one line

flagfix resolve upwelling -f header -o opts.h      Write a #define/#undef header

flagfix resolve upwelling -b legacy_bio            Also apply a rule bundle

flagfix resolve --profile-file my_case.yaml        Resolve a standalone profile

[bold]Exit codes:[/bold]

0  resolved    1  invalid input or unstable rules    2  conflicting flags"""

app = typer.Typer(
    help="Resolve an application profile to a complete flag set.",
    rich_markup_mode="rich",
    epilog=_EPILOG,
)


def render(cfg: ResolvedConfig, fmt: str) -> str:
    """Render *cfg* as text in one of the non-table formats."""
    if fmt == "defines":
        return " ".join(cpp_defines(cfg)) + "\n"
    if fmt == "header":
        return render_header(cfg)
    return to_json(cfg) + "\n"


@app.command(epilog=_EPILOG)
def main(
    profile: str | None = typer.Argument(None, help="Profile name from flagfix.toml"),
    fmt: str | None = typer.Option(
        None, "--format", "-f", help="Output format: table, defines, header, json"
    ),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show flags resolved off too"),
    bundles: list[str] = typer.Option(
        [], "--bundle", "-b", help="Extra rule bundle to apply (repeatable)"
    ),
    profile_file: Path | None = typer.Option(
        None, "--profile-file", help="Standalone .toml/.yaml profile to resolve"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write output to a file"),
    json_output: bool = JsonOption,
    project: Path | None = ProjectOption,
) -> None:
    """Resolve a profile and print the final flag assignment."""
    cfg = get_config(project, json_mode=json_output)
    fmt = "json" if json_output else (fmt or cfg.default_format)
    if fmt not in _FORMATS:
        error_exit(f"Unknown format '{fmt}'. Choose from: {', '.join(_FORMATS)}")

    try:
        if profile_file is not None:
            prof = load_profile_file(profile_file, known=cfg.profiles)
        elif profile is not None:
            prof = cfg.profile(profile)
        else:
            error_exit(
                f"No profile given. Available profiles: {', '.join(cfg.profiles) or '(none)'}",
                json_mode=json_output,
            )
        result = cfg.resolver().resolve(prof, bundles=bundles)
    except FlagfixError as exc:
        fail(exc, json_mode=json_output)

    if output is not None:
        text = render(result, "defines" if fmt == "table" else fmt)
        write_output(output, text)
        typer.secho(f"Wrote {output}", fg=typer.colors.GREEN, err=True)
        return

    if fmt == "json":
        json_print(result.to_dict())
        return
    if fmt != "table":
        typer.echo(render(result, fmt), nl=False)
        return

    console = Console()
    subtitle = (
        f"[bold]{len(result.enabled())}[/]/{len(result)} flags on"
        f"  ·  {result.passes} passes"
        f"  ·  {len(result.overrides)} overrides kept"
    )
    title = f"[bold]{result.profile}[/]"
    if result.application:
        title += f" ({result.application})"
    console.print(Panel(build_table(result, show_all), title=title, subtitle=subtitle))
    for o in result.overrides:
        console.print(
            f"[yellow]note:[/] rule '{o.rule}' wanted {o.flag}="
            f"{'on' if o.attempted else 'off'}; profile keeps {'on' if o.kept else 'off'}"
        )


def main_entry() -> None:
    """Run the resolve CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
