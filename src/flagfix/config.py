"""Centralised project configuration loader for flagfix.

Reads ``flagfix.toml`` from the project root and builds the option registry,
the shared rule set (with its bundles) and every application profile, so
that each CLI command works from a single source of truth.

Layout::

    [project]
    name = "roms-apps"
    max_passes = 0                 # 0 = automatic bound
    default_format = "table"       # table | defines | header | json

    [options]
    UV_ADV = "off"
    AVERAGES = { default = "on", description = "Write time-averaged fields" }

    [[rules.implies]]
    name = "perfect-restart"
    when = "PERFECT_RESTART"
    set = { AVERAGES = "off", OUT_DOUBLE = "on" }

    [[rules.conflicts]]
    flags = ["GLS_MIXING", "LMD_MIXING", "MY25_MIXING"]

    [[rules.fallbacks]]
    candidates = ["GLS_MIXING", "LMD_MIXING", "MY25_MIXING"]
    set = "ANA_VMIX"

    [bundles.legacy_bio]           # same three arrays, opted into per profile
    description = "..."

    [profiles.upwelling]           # see flagfix.profile

Usage::

    from flagfix.config import load_config
    cfg = load_config()
    result = cfg.resolver().resolve(cfg.profile("upwelling"))
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flagfix.errors import FlagfixError, ProfileError
from flagfix.profile import Profile, load_profiles
from flagfix.registry import OptionRegistry
from flagfix.resolver import Resolver
from flagfix.rules import RuleCollector, RuleSet

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

CONFIG_NAME = "flagfix.toml"

_FORMATS = ("table", "defines", "header", "json")


@dataclass
class ProjectConfig:
    """Parsed project configuration."""

    # Root directory (where flagfix.toml lives)
    root: Path
    name: str = ""
    registry: OptionRegistry = field(default_factory=OptionRegistry)
    rules: RuleSet | None = None
    profiles: dict[str, Profile] = field(default_factory=dict)
    max_passes: int | None = None
    default_format: str = "table"

    @property
    def path(self) -> Path:
        return self.root / CONFIG_NAME

    def profile(self, name: str) -> Profile:
        """Return the named profile; raises :class:`ProfileError` if undefined."""
        try:
            return self.profiles[name]
        except KeyError:
            raise ProfileError(
                f"Profile '{name}' not found.  Available profiles: {list(self.profiles)}",
                CONFIG_NAME,
            ) from None

    def resolver(self) -> Resolver:
        return Resolver(self.registry, self.rules, max_passes=self.max_passes)


def _find_root(start: Path | None = None) -> Path:
    """Walk up from *start* (or cwd) to find flagfix.toml."""
    if start is not None:
        return start
    candidate = Path.cwd().resolve()
    while candidate != candidate.parent:
        if (candidate / CONFIG_NAME).exists():
            return candidate
        candidate = candidate.parent
    raise FileNotFoundError(
        f"Could not find {CONFIG_NAME} in any parent of the current directory. "
        "Run flagfix commands from within a project, or run 'flagfix init' first."
    )


def _load_options(registry: OptionRegistry, table: Mapping[str, Any]) -> None:
    for name, spec in table.items():
        if isinstance(spec, Mapping):
            default = spec.get("default", "unset")
            description = spec.get("description", "")
        else:
            default, description = spec, ""
        try:
            registry.register(name, default, description)
        except ValueError as exc:
            raise ProfileError(f"option '{name}': {exc}", f"{CONFIG_NAME} [options]") from None


def _load_rules(collector: RuleCollector, table: Mapping[str, Any], where: str) -> None:
    """Add the implies / conflicts / fallbacks arrays of *table* to *collector*."""
    for i, entry in enumerate(table.get("implies", [])):
        source = f"{CONFIG_NAME} [{where}.implies] #{i + 1}"
        if "when" not in entry or "set" not in entry:
            raise ProfileError("implication needs 'when' and 'set'", source)
        try:
            collector.add_implication(entry["when"], entry["set"], name=entry.get("name"))
        except ValueError as exc:
            raise ProfileError(str(exc), source) from None

    for i, entry in enumerate(table.get("conflicts", [])):
        source = f"{CONFIG_NAME} [{where}.conflicts] #{i + 1}"
        if "flags" not in entry:
            raise ProfileError("conflict needs 'flags'", source)
        try:
            collector.add_conflict(entry["flags"], name=entry.get("name"))
        except ValueError as exc:
            raise ProfileError(str(exc), source) from None

    for i, entry in enumerate(table.get("fallbacks", [])):
        source = f"{CONFIG_NAME} [{where}.fallbacks] #{i + 1}"
        if "candidates" not in entry or "set" not in entry:
            raise ProfileError("fallback needs 'candidates' and 'set'", source)
        try:
            collector.add_default_fallback(entry["candidates"], entry["set"], name=entry.get("name"))
        except ValueError as exc:
            raise ProfileError(str(exc), source) from None


def load_config(root: Path | None = None) -> ProjectConfig:
    """Load flagfix.toml.

    Args:
        root: Project root directory.  Auto-detected if ``None``.

    Raises:
        FileNotFoundError: no flagfix.toml was found.
        FlagfixError: the file is malformed or references unknown options.
    """
    root = _find_root(root)
    toml_path = root / CONFIG_NAME
    if not toml_path.exists():
        raise FileNotFoundError(f"Config not found: {toml_path}")

    with open(toml_path, "rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ProfileError(f"cannot parse: {exc}", str(toml_path)) from None

    project = raw.get("project", {})
    max_passes = project.get("max_passes", 0)
    if isinstance(max_passes, bool) or not isinstance(max_passes, int) or max_passes < 0:
        raise ProfileError("max_passes must be a non-negative integer", CONFIG_NAME)
    max_passes = max_passes or None
    default_format = project.get("default_format", "table")
    if default_format not in _FORMATS:
        raise ProfileError(f"default_format must be one of {', '.join(_FORMATS)}", CONFIG_NAME)

    registry = OptionRegistry()
    _load_options(registry, raw.get("options", {}))

    rules = RuleSet(registry)
    _load_rules(rules, raw.get("rules", {}), "rules")
    for bname, btable in raw.get("bundles", {}).items():
        if not isinstance(btable, Mapping):
            raise FlagfixError(f"[bundles.{bname}] must be a table")
        bundle = rules.bundle(bname, btable.get("description", ""))
        _load_rules(bundle, btable, f"bundles.{bname}")

    profiles = load_profiles(raw.get("profiles", {}), CONFIG_NAME)
    for prof in profiles.values():
        prof.validate(registry)
        rules.rules_for(prof.bundles)

    return ProjectConfig(
        root=root,
        name=project.get("name", root.name),
        registry=registry,
        rules=rules,
        profiles=profiles,
        max_passes=max_passes,
        default_format=default_format,
    )
