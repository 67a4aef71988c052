"""profile.py – Application profiles and their loader.

A profile is one application's baseline: an ordered list of explicit flag
assignments plus the rule bundles it opts into.  Profiles come from the
``[profiles.<name>]`` tables of ``flagfix.toml`` or from a standalone TOML
or YAML file::

    [profiles.upwelling]
    application = "UPWELLING"
    input_script = "roms_upwelling.in"
    description = "Options for Upwelling Test."
    bundles = []

    [profiles.upwelling.flags]
    UV_ADV = "on"
    MIX_GEO_UV = "off"

A profile may ``extends = "<parent>"``; the parent's assignments come first
so the child's own assignments win.
"""

from __future__ import annotations

import sys
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from flagfix.errors import ProfileError
from flagfix.registry import OptionRegistry, State

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass(frozen=True)
class Profile:
    """Named, ordered explicit flag assignments."""

    name: str
    assignments: tuple[tuple[str, bool], ...] = ()
    bundles: tuple[str, ...] = ()
    application: str = ""
    description: str = ""
    input_script: str = ""

    def explicit(self) -> dict[str, bool]:
        """Final explicit value per flag; later assignments win."""
        out: dict[str, bool] = {}
        for flag, value in self.assignments:
            out[flag] = value
        return out

    def flags(self) -> list[str]:
        return list(dict.fromkeys(flag for flag, _ in self.assignments))

    def validate(self, registry: OptionRegistry) -> None:
        """Raise :class:`UnknownOption` for any flag not in *registry*."""
        registry.require(self.flags(), context=f"profile '{self.name}'")


@dataclass
class _RawProfile:
    name: str
    source: str
    table: Mapping[str, Any] = field(default_factory=dict)


def _parse_assignments(flags: Any, source: str) -> tuple[tuple[str, bool], ...]:
    """Accept a mapping ``FLAG -> on/off`` or a list of ``[FLAG, on/off]`` pairs."""
    if flags is None:
        return ()
    if isinstance(flags, Mapping):
        items = list(flags.items())
    elif isinstance(flags, list):
        items = []
        for entry in flags:
            if isinstance(entry, (list, tuple)) and len(entry) == 2:
                items.append((entry[0], entry[1]))
            elif isinstance(entry, Mapping) and len(entry) == 1:
                items.extend(entry.items())
            else:
                raise ProfileError(f"bad flag entry {entry!r}", source)
    else:
        raise ProfileError("'flags' must be a table or a list of [FLAG, value] pairs", source)

    out = []
    seen: dict[str, bool] = {}
    for flag, raw in items:
        try:
            state = State.parse(raw)
        except ValueError as exc:
            raise ProfileError(f"flag '{flag}': {exc}", source) from None
        if state is State.UNSET:
            raise ProfileError(f"flag '{flag}' must be on or off in a profile", source)
        value = state is State.ON
        if flag in seen and seen[flag] != value:
            warnings.warn(
                f"{source}: '{flag}' assigned twice; the later value ({state.value}) wins",
                stacklevel=2,
            )
        seen[flag] = value
        out.append((str(flag), value))
    return tuple(out)


def _str_list(value: Any, key: str, source: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ProfileError(f"'{key}' must be a string or a list of strings", source)


def _parent_name(table: Mapping[str, Any], source: str) -> str | None:
    parent = table.get("extends")
    if parent is None:
        return None
    if not isinstance(parent, str):
        raise ProfileError("'extends' must be a profile name", source)
    return parent


def profile_from_table(
    name: str,
    table: Mapping[str, Any],
    source: str = "",
    parent: Profile | None = None,
) -> Profile:
    """Build a :class:`Profile` from a parsed table, layering over *parent*."""
    source = source or f"profile '{name}'"
    if not isinstance(table, Mapping):
        raise ProfileError("profile must be a table", source)
    own = _parse_assignments(table.get("flags"), source)
    bundles = _str_list(table.get("bundles"), "bundles", source)
    if parent is not None:
        return Profile(
            name=name,
            assignments=parent.assignments + own,
            bundles=tuple(dict.fromkeys(parent.bundles + bundles)),
            application=table.get("application", parent.application),
            description=table.get("description", parent.description),
            input_script=table.get("input_script", parent.input_script),
        )
    return Profile(
        name=name,
        assignments=own,
        bundles=bundles,
        application=table.get("application", ""),
        description=table.get("description", ""),
        input_script=table.get("input_script", ""),
    )


def load_profiles(tables: Mapping[str, Any], source: str = "flagfix.toml") -> dict[str, Profile]:
    """Build every profile in *tables*, resolving ``extends`` chains."""
    raw = {name: _RawProfile(name, f"{source} [profiles.{name}]", t) for name, t in tables.items()}
    built: dict[str, Profile] = {}

    def build(name: str, chain: tuple[str, ...]) -> Profile:
        if name in built:
            return built[name]
        if name in chain:
            cycle = " -> ".join(chain + (name,))
            raise ProfileError(f"profile inheritance cycle: {cycle}", source)
        entry = raw.get(name)
        if entry is None:
            raise ProfileError(f"profile '{name}' not found (extended by '{chain[-1]}')", source)
        if not isinstance(entry.table, Mapping):
            raise ProfileError("profile must be a table", entry.source)
        parent = None
        parent_name = _parent_name(entry.table, entry.source)
        if parent_name:
            parent = build(parent_name, chain + (name,))
        prof = profile_from_table(name, entry.table, entry.source, parent)
        built[name] = prof
        return prof

    for name in raw:
        build(name, ())
    return {name: built[name] for name in raw}


def load_profile_file(path: Path, known: Mapping[str, Profile] | None = None) -> Profile:
    """Load a standalone profile from a ``.toml``, ``.yaml`` or ``.yml`` file.

    The profile name defaults to the file stem.  ``extends`` may name a
    profile in *known* (usually the project's own profiles).
    """
    source = str(path)
    if not path.exists():
        raise ProfileError("profile file not found", source)
    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            with open(path, "rb") as f:
                table = tomllib.load(f)
        elif suffix in (".yaml", ".yml"):
            with open(path, encoding="utf-8") as f:
                table = yaml.safe_load(f) or {}
        else:
            raise ProfileError(f"unsupported profile format '{suffix}'", source)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ProfileError(f"cannot parse: {exc}", source) from None

    if not isinstance(table, Mapping):
        raise ProfileError("profile must be a table", source)
    name = table.get("name", path.stem)
    parent = None
    parent_name = _parent_name(table, source)
    if parent_name:
        if not known or parent_name not in known:
            raise ProfileError(f"parent profile '{parent_name}' not found", source)
        parent = known[parent_name]
    return profile_from_table(name, table, source, parent)
