"""rules.py – Rule primitives and the shared rule set.

Implication: when <condition> then set {F: on/off, ...}
Conflict:    at most one of {F1, ..., Fn} may be on
Fallback:    when none of {F1, ..., Fn} is set, apply {Fk: on, ...}

Rules live in a :class:`RuleSet` that is shared across profiles.  Optional
*bundles* group extra rules that a profile can opt into by name (e.g. an
older biology configuration kept alongside the current one).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from flagfix.conditions import Condition, as_condition
from flagfix.errors import FlagfixError, UnknownBundle
from flagfix.registry import OptionRegistry, State


def _as_names(flags: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(flags, str):
        return (flags,)
    if isinstance(flags, Mapping) or not isinstance(flags, Iterable):
        raise ValueError("expected a flag name or a list of flag names")
    return tuple(dict.fromkeys(flags))


def _freeze_effects(effects: str | Mapping[str, object]) -> Mapping[str, bool]:
    """A bare flag name means ``{name: on}``."""
    if isinstance(effects, str):
        effects = {effects: True}
    if not isinstance(effects, Mapping):
        raise ValueError("effects must be a flag name or a table of flag = on|off")
    out: dict[str, bool] = {}
    for name, value in effects.items():
        state = State.parse(value)
        if state is State.UNSET:
            raise ValueError(f"effect on '{name}' must be on or off")
        out[name] = state is State.ON
    return MappingProxyType(out)


@dataclass(frozen=True)
class Implication:
    """If *condition* holds, assign *effects*."""

    name: str
    condition: Condition
    effects: Mapping[str, bool]

    def describe(self) -> str:
        sets = ", ".join(f"{k}={'on' if v else 'off'}" for k, v in self.effects.items())
        return f"when {self.condition} then {sets}"


@dataclass(frozen=True)
class Conflict:
    """Mutually exclusive flags: at most one may resolve on."""

    name: str
    flags: tuple[str, ...]

    def describe(self) -> str:
        return f"at most one of {', '.join(self.flags)}"


@dataclass(frozen=True)
class DefaultFallback:
    """Apply *chosen* while every candidate is still unset."""

    name: str
    candidates: tuple[str, ...]
    chosen: Mapping[str, bool]

    def describe(self) -> str:
        sets = ", ".join(f"{k}={'on' if v else 'off'}" for k, v in self.chosen.items())
        return f"when none of {', '.join(self.candidates)} is set then {sets}"


@dataclass
class EffectiveRules:
    """Ordered rule lists in effect for one resolution."""

    implications: list[Implication] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    fallbacks: list[DefaultFallback] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.implications) + len(self.conflicts) + len(self.fallbacks)


class RuleCollector:
    """Shared ``add_*`` API for the base rule set and its bundles."""

    def __init__(self, registry: OptionRegistry, label: str) -> None:
        self._registry = registry
        self._label = label
        self._rules = EffectiveRules()
        self._frozen = False

    def _check_writable(self) -> None:
        if self._frozen:
            raise FlagfixError(f"Rule set '{self._label}' is frozen")

    def _auto_name(self, kind: str, count: int) -> str:
        prefix = "" if self._label == "base" else f"{self._label}:"
        return f"{prefix}{kind}#{count + 1}"

    def add_implication(
        self,
        condition: Condition | str,
        effects: str | Mapping[str, object],
        name: str | None = None,
    ) -> Implication:
        """Declare ``when condition then effects``."""
        self._check_writable()
        cond = as_condition(condition)
        name = name or self._auto_name("implies", len(self._rules.implications))
        frozen = _freeze_effects(effects)
        self._registry.require(cond.flags(), context=f"rule '{name}'")
        self._registry.require(frozen, context=f"rule '{name}'")
        rule = Implication(name=name, condition=cond, effects=frozen)
        self._rules.implications.append(rule)
        return rule

    def add_conflict(self, flags: str | Iterable[str], name: str | None = None) -> Conflict:
        """Declare a mutually exclusive group."""
        self._check_writable()
        members = _as_names(flags)
        name = name or self._auto_name("conflict", len(self._rules.conflicts))
        if len(members) < 2:
            raise FlagfixError(f"Conflict rule '{name}' needs at least two flags")
        self._registry.require(members, context=f"rule '{name}'")
        rule = Conflict(name=name, flags=members)
        self._rules.conflicts.append(rule)
        return rule

    def add_default_fallback(
        self,
        candidates: str | Iterable[str],
        chosen: str | Mapping[str, object],
        name: str | None = None,
    ) -> DefaultFallback:
        """Declare an "else" branch: apply *chosen* when no candidate is set.

        *chosen* may be a single flag name, meaning ``{name: on}``.
        """
        self._check_writable()
        members = _as_names(candidates)
        name = name or self._auto_name("fallback", len(self._rules.fallbacks))
        frozen = _freeze_effects(chosen)
        self._registry.require(members, context=f"rule '{name}'")
        self._registry.require(frozen, context=f"rule '{name}'")
        rule = DefaultFallback(name=name, candidates=members, chosen=frozen)
        self._rules.fallbacks.append(rule)
        return rule

    def freeze(self) -> None:
        self._frozen = True

    @property
    def implications(self) -> list[Implication]:
        return list(self._rules.implications)

    @property
    def conflicts(self) -> list[Conflict]:
        return list(self._rules.conflicts)

    @property
    def fallbacks(self) -> list[DefaultFallback]:
        return list(self._rules.fallbacks)

    def __len__(self) -> int:
        return len(self._rules)


class RuleBundle(RuleCollector):
    """An optional, independently selectable group of rules."""

    def __init__(self, registry: OptionRegistry, name: str, description: str = "") -> None:
        super().__init__(registry, name)
        self.name = name
        self.description = description


class RuleSet(RuleCollector):
    """The base rule set plus any named bundles."""

    def __init__(self, registry: OptionRegistry) -> None:
        super().__init__(registry, "base")
        self.registry = registry
        self._bundles: dict[str, RuleBundle] = {}

    def bundle(self, name: str, description: str = "") -> RuleBundle:
        """Return the bundle called *name*, creating it on first use."""
        if name not in self._bundles:
            self._check_writable()
            self._bundles[name] = RuleBundle(self._registry, name, description)
        return self._bundles[name]

    @property
    def bundles(self) -> dict[str, RuleBundle]:
        return dict(self._bundles)

    def freeze(self) -> None:
        super().freeze()
        for b in self._bundles.values():
            b.freeze()

    def rules_for(self, bundles: Iterable[str] = ()) -> EffectiveRules:
        """Base rules followed by each selected bundle's rules, in order."""
        out = EffectiveRules(
            implications=self.implications,
            conflicts=self.conflicts,
            fallbacks=self.fallbacks,
        )
        for bname in dict.fromkeys(bundles):
            try:
                b = self._bundles[bname]
            except KeyError:
                raise UnknownBundle(bname) from None
            out.implications.extend(b.implications)
            out.conflicts.extend(b.conflicts)
            out.fallbacks.extend(b.fallbacks)
        return out
