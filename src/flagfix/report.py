"""report.py – Render a ResolvedConfig for the downstream build.

Every function here is a pure transformation of a
:class:`~flagfix.resolver.ResolvedConfig`; printing is left to the CLI.
"""

from __future__ import annotations

import json

from rich.table import Table

from flagfix.engine import Provenance
from flagfix.resolver import ResolvedConfig

_PROVENANCE_COLORS = {
    Provenance.EXPLICIT: "bold",
    Provenance.IMPLIED: "cyan",
    Provenance.DEFAULT: "dim",
}


def cpp_defines(cfg: ResolvedConfig, prefix: str = "-D") -> list[str]:
    """Compiler define arguments: the application flag, then every enabled flag."""
    defines = [f"{prefix}{cfg.application}"] if cfg.application else []
    defines.extend(f"{prefix}{name}" for name in cfg.enabled())
    return defines


def render_header(cfg: ResolvedConfig) -> str:
    """Render a ``#define``/``#undef`` header for the resolved profile."""
    lines = ["/*"]
    lines.append(f"** {cfg.description or 'Options for ' + cfg.profile}")
    lines.append("**")
    if cfg.application:
        lines.append(f"** Application flag:   {cfg.application}")
    if cfg.input_script:
        lines.append(f"** Input script:       {cfg.input_script}")
    lines.append(f"** Generated by flagfix from profile '{cfg.profile}'.")
    if cfg.bundles:
        lines.append(f"** Rule bundles:       {', '.join(cfg.bundles)}")
    lines.append("*/")
    lines.append("")
    for name, value in cfg.values.items():
        lines.append(f"#define {name}" if value else f"#undef  {name}")
    return "\n".join(lines) + "\n"


def to_json(cfg: ResolvedConfig) -> str:
    return json.dumps(cfg.to_dict(), indent=2)


def build_table(cfg: ResolvedConfig, show_all: bool = False) -> Table:
    """Rich table of flag / value / provenance / rule (off flags hidden by default)."""
    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("Flag")
    tbl.add_column("Value")
    tbl.add_column("Source", style="dim")
    tbl.add_column("Rule")

    for name, entry in cfg.trace.items():
        if not entry.value and not show_all:
            continue
        value = "[green]on[/]" if entry.value else "[red]off[/]"
        style = _PROVENANCE_COLORS[entry.provenance]
        tbl.add_row(
            f"[{style}]{name}[/]", value, entry.provenance.value, entry.rule or ""
        )
    return tbl


def explain(cfg: ResolvedConfig, flag: str) -> str:
    """Explain in one paragraph why *flag* has its resolved value."""
    entry = cfg.trace[flag]
    state = "on" if entry.value else "off"
    if entry.provenance is Provenance.EXPLICIT:
        text = f"{flag} is {state}: set explicitly by profile '{cfg.profile}'."
    elif entry.provenance is Provenance.IMPLIED:
        text = f"{flag} is {state}: set by rule '{entry.rule}'."
    else:
        text = f"{flag} is {state}: registry default (no profile setting or rule applied)."

    skipped = [o for o in cfg.overrides if o.flag == flag]
    if skipped:
        rules = ", ".join(f"'{o.rule}'" for o in skipped)
        attempted = "on" if skipped[0].attempted else "off"
        text += f" Rule(s) {rules} tried to turn it {attempted} but the profile setting wins."
    return text
