"""explain.py – Say why a flag ended up on or off for a profile."""

from pathlib import Path

import typer

from flagfix.cli import JsonOption, ProjectOption, fail, get_config, json_print
from flagfix.errors import FlagfixError
from flagfix.report import explain

app = typer.Typer(
    help="Explain why a flag has its resolved value.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

flagfix explain upwelling ANA_VMIX        Which rule turned it on?

flagfix explain upwelling AVERAGES --json""",
)


@app.command()
def main(
    profile: str = typer.Argument(help="Profile name from flagfix.toml"),
    flag: str = typer.Argument(help="Flag to explain"),
    bundles: list[str] = typer.Option([], "--bundle", "-b", help="Extra rule bundle to apply"),
    json_output: bool = JsonOption,
    project: Path | None = ProjectOption,
) -> None:
    """Explain one flag of a resolved profile."""
    cfg = get_config(project, json_mode=json_output)
    try:
        cfg.registry.lookup(flag, context="command line")
        result = cfg.resolver().resolve(cfg.profile(profile), bundles=bundles)
    except FlagfixError as exc:
        fail(exc, json_mode=json_output)

    if json_output:
        entry = result.trace[flag]
        json_print(
            {
                "profile": result.profile,
                "flag": flag,
                **entry.to_dict(),
                "overrides": [o.to_dict() for o in result.overrides if o.flag == flag],
                "explanation": explain(result, flag),
            }
        )
        return
    typer.echo(explain(result, flag))


def main_entry() -> None:
    """Run the explain CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
