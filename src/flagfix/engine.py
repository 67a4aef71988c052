"""engine.py – Fixed-point rule evaluation.

The engine works on an :class:`Assignment`: the current tri-state value of
every option plus where that value came from.  Precedence is simple:

* ``EXPLICIT`` values (from the profile) are never overwritten by rules;
  an attempt to do so is recorded as a :class:`SkippedOverride`.
* ``IMPLIED`` values (from an implication or fallback) and ``DEFAULT``
  values (from the registry) may be revised by any later rule.

:func:`run_fixed_point` applies implications then fallbacks in declaration
order, pass after pass, until a full pass changes nothing.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from loguru import logger

from flagfix.errors import ConflictViolation, UnstableRuleSet
from flagfix.registry import OptionRegistry, State
from flagfix.rules import Conflict, EffectiveRules


class Provenance(enum.Enum):
    EXPLICIT = "explicit"
    IMPLIED = "implied"
    DEFAULT = "default"


@dataclass(frozen=True)
class TraceEntry:
    """Final value of one flag and the rule (if any) that last set it."""

    value: bool
    provenance: Provenance
    rule: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"value": self.value, "provenance": self.provenance.value, "rule": self.rule}


@dataclass(frozen=True)
class SkippedOverride:
    """A rule tried to flip a flag that the profile set explicitly."""

    flag: str
    rule: str
    attempted: bool
    kept: bool

    def to_dict(self) -> dict[str, object]:
        return {"flag": self.flag, "rule": self.rule, "attempted": self.attempted, "kept": self.kept}


class Assignment:
    """Mutable working state for a single resolution."""

    def __init__(self, names: list[str]) -> None:
        self.values: dict[str, State] = dict.fromkeys(names, State.UNSET)
        self.provenance: dict[str, Provenance | None] = dict.fromkeys(names)
        self.rules: dict[str, str | None] = dict.fromkeys(names)
        self._skipped: dict[tuple[str, str], SkippedOverride] = {}

    @classmethod
    def from_explicit(cls, names: list[str], explicit: Mapping[str, bool]) -> "Assignment":
        a = cls(names)
        for flag, value in explicit.items():
            a.values[flag] = State.of(value)
            a.provenance[flag] = Provenance.EXPLICIT
        return a

    def apply(self, flag: str, value: bool, rule: str) -> bool:
        """Apply a rule effect; return True if the stored value changed."""
        target = State.of(value)
        current = self.values[flag]
        prov = self.provenance[flag]

        if prov is Provenance.EXPLICIT:
            if current is not target and (flag, rule) not in self._skipped:
                logger.info("{}: kept explicit {}={} over rule {}", flag, flag, current.value, rule)
                self._skipped[(flag, rule)] = SkippedOverride(
                    flag=flag, rule=rule, attempted=value, kept=current is State.ON
                )
            return False

        if current is target:
            if prov is Provenance.DEFAULT:
                self.provenance[flag] = Provenance.IMPLIED
                self.rules[flag] = rule
            return False

        logger.debug("{} -> {} ({})", flag, target.value, rule)
        self.values[flag] = target
        self.provenance[flag] = Provenance.IMPLIED
        self.rules[flag] = rule
        return True

    @property
    def skipped(self) -> tuple[SkippedOverride, ...]:
        return tuple(self._skipped.values())

    def unset(self) -> list[str]:
        return [name for name, state in self.values.items() if state is State.UNSET]

    def trace(self) -> dict[str, TraceEntry]:
        """Per-flag trace; only valid once every flag is on/off."""
        return {
            name: TraceEntry(
                value=state is State.ON,
                provenance=self.provenance[name] or Provenance.DEFAULT,
                rule=self.rules[name],
            )
            for name, state in self.values.items()
        }


def default_pass_bound(rules: EffectiveRules) -> int:
    """Passes allowed before a rule set is declared unstable."""
    return len(rules.implications) + len(rules.fallbacks) + 1


def run_pass(assignment: Assignment, rules: EffectiveRules) -> dict[str, str]:
    """Run one pass; return ``{flag: rule}`` for every flag that changed."""
    changed: dict[str, str] = {}
    for imp in rules.implications:
        if imp.condition.evaluate(assignment.values) is not True:
            continue
        for flag, value in imp.effects.items():
            if assignment.apply(flag, value, imp.name):
                changed[flag] = imp.name

    for fb in rules.fallbacks:
        if any(assignment.values[c] is not State.UNSET for c in fb.candidates):
            continue
        for flag, value in fb.chosen.items():
            if assignment.apply(flag, value, fb.name):
                changed[flag] = fb.name
    return changed


def run_fixed_point(
    assignment: Assignment, rules: EffectiveRules, max_passes: int | None = None
) -> int:
    """Apply *rules* until nothing changes; return the number of passes run.

    Raises :class:`UnstableRuleSet` if the bound is exhausted.
    """
    bound = max_passes or default_pass_bound(rules)
    changed: dict[str, str] = {}
    for n in range(1, bound + 1):
        logger.debug("pass {}", n)
        changed = run_pass(assignment, rules)
        if not changed:
            return n
    raise UnstableRuleSet(bound, tuple(changed), tuple(dict.fromkeys(changed.values())))


def fill_defaults(assignment: Assignment, registry: OptionRegistry) -> list[str]:
    """Give every still-unset flag its registry default; return those flags."""
    filled = assignment.unset()
    for name in filled:
        opt = registry.lookup(name)
        assignment.values[name] = State.of(opt.resolved_default)
        assignment.provenance[name] = Provenance.DEFAULT
    return filled


def find_conflicts(
    values: Mapping[str, State], conflicts: list[Conflict]
) -> list[tuple[str, tuple[str, ...]]]:
    """Return ``(rule, enabled_flags)`` for every violated conflict group."""
    violations = []
    for rule in conflicts:
        on = tuple(f for f in rule.flags if values.get(f) is State.ON)
        if len(on) > 1:
            violations.append((rule.name, on))
    return violations


def check_conflicts(values: Mapping[str, State], conflicts: list[Conflict]) -> None:
    violations = find_conflicts(values, conflicts)
    if violations:
        raise ConflictViolation(violations)
