"""check.py – Resolve every profile in the project and report failures.

Intended for CI: exits non-zero as soon as any profile is inconsistent
(conflicting flags, unstable rules, or references to unknown options).
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from flagfix.cli import JsonOption, ProjectOption, exit_code_for, get_config, json_print
from flagfix.resolver import Outcome

app = typer.Typer(
    help="Resolve every profile and report which ones fail.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

flagfix check                   Table of all profiles with pass/fail

flagfix check --json            Machine-readable results

[dim]Exit code is 0 only if every profile resolves.  A conflict anywhere
gives exit code 2, any other failure gives 1.[/dim]""",
)


def _outcome_dict(outcome: Outcome) -> dict[str, object]:
    if outcome.ok:
        assert outcome.config is not None
        return {
            "profile": outcome.profile,
            "ok": True,
            "enabled": len(outcome.config.enabled()),
            "overrides": len(outcome.config.overrides),
        }
    assert outcome.error is not None
    return {"profile": outcome.profile, "ok": False, **outcome.error.to_dict()}


def summary_table(outcomes: list[Outcome]) -> Table:
    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("Profile")
    tbl.add_column("Result")
    tbl.add_column("Details")
    for o in outcomes:
        if o.ok:
            assert o.config is not None
            details = f"{len(o.config.enabled())} on, {len(o.config.overrides)} overrides kept"
            tbl.add_row(o.profile, "[green]ok[/]", details)
        else:
            tbl.add_row(o.profile, "[red]FAIL[/]", escape(str(o.error)))
    return tbl


@app.command()
def main(
    json_output: bool = JsonOption,
    project: Path | None = ProjectOption,
) -> None:
    """Resolve all profiles defined in flagfix.toml."""
    cfg = get_config(project, json_mode=json_output)
    outcomes = cfg.resolver().resolve_all(cfg.profiles.values())
    failed = [o for o in outcomes if not o.ok]

    if json_output:
        json_print(
            {
                "project": cfg.name,
                "passed": len(outcomes) - len(failed),
                "failed": len(failed),
                "profiles": [_outcome_dict(o) for o in outcomes],
            }
        )
    else:
        console = Console()
        if not outcomes:
            console.print("[yellow]No profiles defined.[/]")
        else:
            title = f"[bold]{cfg.name}[/]: {len(outcomes) - len(failed)}/{len(outcomes)} profiles ok"
            border = "green" if not failed else "red"
            console.print(Panel(summary_table(outcomes), title=title, border_style=border))

    if failed:
        raise typer.Exit(code=max(exit_code_for(o.error) for o in failed if o.error is not None))


def main_entry() -> None:
    """Run the check CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
