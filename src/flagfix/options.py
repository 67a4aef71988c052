"""options.py – List the registered build options."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from flagfix.cli import JsonOption, ProjectOption, get_config, json_print

app = typer.Typer(
    help="List registered options with their defaults.",
    rich_markup_mode="rich",
)

_DEFAULT_STYLE = {"on": "green", "off": "red", "unset": "dim"}


@app.command()
def main(
    json_output: bool = JsonOption,
    project: Path | None = ProjectOption,
) -> None:
    """List every option in the registry."""
    cfg = get_config(project, json_mode=json_output)

    if json_output:
        json_print(
            [
                {"name": o.name, "default": o.default.value, "description": o.description}
                for o in cfg.registry
            ]
        )
        return

    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("Option")
    tbl.add_column("Default")
    tbl.add_column("Description", style="dim")
    for opt in cfg.registry:
        style = _DEFAULT_STYLE[opt.default.value]
        tbl.add_row(opt.name, f"[{style}]{opt.default.value}[/]", opt.description)
    Console().print(tbl)


def main_entry() -> None:
    """Run the options CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
