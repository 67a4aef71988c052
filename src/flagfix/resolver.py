"""resolver.py – Turn a profile into a complete, consistent flag assignment.

:class:`Resolver` combines the option registry, the shared rule set and one
profile::

    resolver = Resolver(registry, rules)
    cfg = resolver.resolve(profile)
    cfg["N2S2_HORAVG"]          # True
    cfg.trace["N2S2_HORAVG"]    # TraceEntry(value=True, provenance=IMPLIED, rule='gls')

Resolution is a pure function of (registry, rules, profile): the working
assignment lives only inside one :meth:`Resolver.resolve` call, so the same
resolver can serve several threads at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from loguru import logger

from flagfix.engine import (
    Assignment,
    SkippedOverride,
    TraceEntry,
    check_conflicts,
    fill_defaults,
    run_fixed_point,
)
from flagfix.errors import FlagfixError
from flagfix.profile import Profile
from flagfix.registry import OptionRegistry
from flagfix.rules import RuleSet


@dataclass(frozen=True)
class ResolvedConfig:
    """Final on/off value of every option, with provenance."""

    profile: str
    values: Mapping[str, bool]
    trace: Mapping[str, TraceEntry]
    overrides: tuple[SkippedOverride, ...] = ()
    bundles: tuple[str, ...] = ()
    passes: int = 0
    application: str = ""
    input_script: str = ""
    description: str = ""

    def __getitem__(self, flag: str) -> bool:
        return self.values[flag]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def enabled(self) -> list[str]:
        """Flags resolved on, in registry order."""
        return [name for name, value in self.values.items() if value]

    def disabled(self) -> list[str]:
        return [name for name, value in self.values.items() if not value]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "profile": self.profile,
            "application": self.application,
            "bundles": list(self.bundles),
            "passes": self.passes,
            "values": dict(self.values),
            "trace": {name: entry.to_dict() for name, entry in self.trace.items()},
            "overrides": [o.to_dict() for o in self.overrides],
        }


class Resolver:
    """Resolves profiles against a frozen registry and rule set."""

    def __init__(
        self, registry: OptionRegistry, rules: RuleSet, max_passes: int | None = None
    ) -> None:
        if rules.registry is not registry:
            raise FlagfixError("Rule set was built against a different option registry")
        registry.freeze()
        rules.freeze()
        self.registry = registry
        self.rules = rules
        self.max_passes = max_passes

    def resolve(self, profile: Profile, bundles: Iterable[str] = ()) -> ResolvedConfig:
        """Resolve *profile*; raises a :class:`FlagfixError` subclass on failure."""
        profile.validate(self.registry)
        selected = tuple(dict.fromkeys((*profile.bundles, *bundles)))
        effective = self.rules.rules_for(selected)
        names = self.registry.names()
        logger.debug("resolving '{}' with bundles {}", profile.name, list(selected))

        work = Assignment.from_explicit(names, profile.explicit())
        passes = run_fixed_point(work, effective, self.max_passes)
        filled = fill_defaults(work, self.registry)
        logger.debug("{} flag(s) took registry defaults", len(filled))
        # Implications guarded by defaulted flags only fire now.
        passes += run_fixed_point(work, effective, self.max_passes)
        check_conflicts(work.values, effective.conflicts)

        trace = work.trace()
        return ResolvedConfig(
            profile=profile.name,
            values=MappingProxyType({name: entry.value for name, entry in trace.items()}),
            trace=MappingProxyType(trace),
            overrides=work.skipped,
            bundles=selected,
            passes=passes,
            application=profile.application,
            input_script=profile.input_script,
            description=profile.description,
        )

    def resolve_all(self, profiles: Iterable[Profile]) -> "list[Outcome]":
        """Resolve each profile independently, collecting failures instead of stopping."""
        outcomes = []
        for prof in profiles:
            try:
                outcomes.append(Outcome(prof.name, config=self.resolve(prof)))
            except FlagfixError as exc:
                outcomes.append(Outcome(prof.name, error=exc))
        return outcomes


@dataclass
class Outcome:
    """Result of resolving one profile in a batch."""

    profile: str
    config: ResolvedConfig | None = None
    error: FlagfixError | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None
