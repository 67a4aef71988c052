"""Tests for the fixed-point engine and the core resolution scenarios."""

import pytest

from flagfix.engine import (
    Assignment,
    Provenance,
    default_pass_bound,
    fill_defaults,
    find_conflicts,
    run_fixed_point,
    run_pass,
)
from flagfix.errors import ConflictViolation, UnstableRuleSet
from flagfix.profile import Profile
from flagfix.registry import OptionRegistry, State
from flagfix.resolver import Resolver
from flagfix.rules import RuleSet


def _mixing_rules(fallback: bool = False) -> tuple[OptionRegistry, RuleSet]:
    reg = OptionRegistry()
    for name in ("GLS_MIXING", "LMD_MIXING", "N2S2_HORAVG", "RI_SPLINES", "ANA_VMIX"):
        reg.register(name, "off" if fallback else "unset")
    rules = RuleSet(reg)
    rules.add_implication("GLS_MIXING", {"N2S2_HORAVG": "on", "RI_SPLINES": "on"}, name="gls")
    rules.add_conflict(["GLS_MIXING", "LMD_MIXING"], name="vmix")
    if fallback:
        rules.add_default_fallback(["GLS_MIXING", "LMD_MIXING"], "ANA_VMIX", name="ana")
    return reg, rules


def _restart_rules() -> tuple[OptionRegistry, RuleSet]:
    reg = OptionRegistry()
    reg.register("PERFECT_RESTART", "off")
    reg.register("AVERAGES", "on")
    reg.register("DIAGNOSTICS_TS", "on")
    reg.register("OUT_DOUBLE", "off")
    rules = RuleSet(reg)
    rules.add_implication(
        "PERFECT_RESTART",
        {"AVERAGES": "off", "DIAGNOSTICS_TS": "off", "OUT_DOUBLE": "on"},
        name="perfect-restart",
    )
    return reg, rules


def _profile(**flags: bool) -> Profile:
    return Profile("test", assignments=tuple(flags.items()))


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_implication_fires(self) -> None:
        reg, rules = _mixing_rules()
        cfg = Resolver(reg, rules).resolve(_profile(GLS_MIXING=True))
        assert cfg["GLS_MIXING"] is True
        assert cfg["N2S2_HORAVG"] is True
        assert cfg["RI_SPLINES"] is True
        assert cfg["LMD_MIXING"] is False
        assert cfg.trace["N2S2_HORAVG"].provenance is Provenance.IMPLIED
        assert cfg.trace["N2S2_HORAVG"].rule == "gls"

    def test_conflict_detected(self) -> None:
        reg, rules = _mixing_rules()
        with pytest.raises(ConflictViolation) as exc_info:
            Resolver(reg, rules).resolve(_profile(GLS_MIXING=True, LMD_MIXING=True))
        assert set(exc_info.value.flags) == {"GLS_MIXING", "LMD_MIXING"}
        assert exc_info.value.rule == "vmix"

    def test_rule_overrides_default(self) -> None:
        reg, rules = _restart_rules()
        cfg = Resolver(reg, rules).resolve(_profile(PERFECT_RESTART=True))
        assert dict(cfg.values) == {
            "PERFECT_RESTART": True,
            "AVERAGES": False,
            "DIAGNOSTICS_TS": False,
            "OUT_DOUBLE": True,
        }
        assert cfg.overrides == ()

    def test_fallback_applies(self) -> None:
        reg, rules = _mixing_rules(fallback=True)
        cfg = Resolver(reg, rules).resolve(_profile())
        assert cfg["ANA_VMIX"] is True
        assert cfg.trace["ANA_VMIX"].rule == "ana"
        assert cfg["GLS_MIXING"] is False
        assert cfg["LMD_MIXING"] is False

    def test_fallback_applies_with_three_candidates(self) -> None:
        reg = OptionRegistry()
        for name in ("GLS_MIXING", "LMD_MIXING", "MY25_MIXING"):
            reg.register(name, "off")
        reg.register("ANA_VMIX", "off")
        rules = RuleSet(reg)
        rules.add_default_fallback(
            ["GLS_MIXING", "LMD_MIXING", "MY25_MIXING"], {"ANA_VMIX": "on"}, name="ana"
        )
        cfg = Resolver(reg, rules).resolve(_profile())
        assert dict(cfg.values) == {
            "GLS_MIXING": False,
            "LMD_MIXING": False,
            "MY25_MIXING": False,
            "ANA_VMIX": True,
        }

    def test_fallback_skipped_when_candidate_set(self) -> None:
        reg, rules = _mixing_rules(fallback=True)
        cfg = Resolver(reg, rules).resolve(_profile(LMD_MIXING=False))
        assert cfg["ANA_VMIX"] is False
        assert cfg.trace["ANA_VMIX"].provenance is Provenance.DEFAULT


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    def test_deterministic(self) -> None:
        reg, rules = _mixing_rules(fallback=True)
        resolver = Resolver(reg, rules)
        first = resolver.resolve(_profile(GLS_MIXING=True))
        second = resolver.resolve(_profile(GLS_MIXING=True))
        assert first.to_dict() == second.to_dict()

    def test_every_option_assigned(self) -> None:
        reg, rules = _mixing_rules()
        cfg = Resolver(reg, rules).resolve(_profile())
        assert list(cfg) == reg.names()
        assert all(isinstance(v, bool) for v in cfg.values.values())

    def test_explicit_value_wins(self) -> None:
        reg, rules = _restart_rules()
        cfg = Resolver(reg, rules).resolve(_profile(PERFECT_RESTART=True, AVERAGES=True))
        assert cfg["AVERAGES"] is True
        assert cfg.trace["AVERAGES"].provenance is Provenance.EXPLICIT
        assert len(cfg.overrides) == 1
        skipped = cfg.overrides[0]
        assert (skipped.flag, skipped.rule, skipped.attempted, skipped.kept) == (
            "AVERAGES",
            "perfect-restart",
            False,
            True,
        )

    def test_resolved_state_is_a_fixed_point(self) -> None:
        reg, rules = _mixing_rules(fallback=True)
        cfg = Resolver(reg, rules).resolve(_profile(GLS_MIXING=True))
        work = Assignment(reg.names())
        for name, entry in cfg.trace.items():
            work.values[name] = State.of(entry.value)
            work.provenance[name] = entry.provenance
            work.rules[name] = entry.rule
        assert run_pass(work, rules.rules_for()) == {}

    def test_unset_guard_fires_after_defaults(self) -> None:
        reg = OptionRegistry()
        reg.register("GLS_MIXING")
        reg.register("CANUTO_A")
        reg.register("KANTHA_CLAYSON")
        rules = RuleSet(reg)
        rules.add_implication("GLS_MIXING && !CANUTO_A", {"KANTHA_CLAYSON": "on"}, name="kc")
        cfg = Resolver(reg, rules).resolve(_profile(GLS_MIXING=True))
        assert cfg["KANTHA_CLAYSON"] is True
        assert cfg.trace["KANTHA_CLAYSON"].rule == "kc"


# ---------------------------------------------------------------------------
# Engine internals
# ---------------------------------------------------------------------------


class TestAssignment:
    def test_apply_reports_change(self) -> None:
        work = Assignment(["A"])
        assert work.apply("A", True, "r") is True
        assert work.apply("A", True, "r") is False
        assert work.provenance["A"] is Provenance.IMPLIED

    def test_reassert_default_relabels(self) -> None:
        work = Assignment(["A"])
        work.values["A"] = State.OFF
        work.provenance["A"] = Provenance.DEFAULT
        assert work.apply("A", False, "r") is False
        assert work.provenance["A"] is Provenance.IMPLIED
        assert work.rules["A"] == "r"

    def test_skipped_recorded_once(self) -> None:
        work = Assignment.from_explicit(["A"], {"A": True})
        work.apply("A", False, "r")
        work.apply("A", False, "r")
        assert len(work.skipped) == 1

    def test_unset_and_fill_defaults(self) -> None:
        reg = OptionRegistry()
        reg.register("A", "on")
        reg.register("B")
        work = Assignment(reg.names())
        assert work.unset() == ["A", "B"]
        assert fill_defaults(work, reg) == ["A", "B"]
        assert work.values == {"A": State.ON, "B": State.OFF}


class TestFixedPoint:
    def test_pass_count(self) -> None:
        reg, rules = _mixing_rules()
        work = Assignment.from_explicit(reg.names(), {"GLS_MIXING": True})
        assert run_fixed_point(work, rules.rules_for()) == 2

    def test_unstable_rules(self) -> None:
        reg = OptionRegistry()
        reg.register("T")
        reg.register("X")
        rules = RuleSet(reg)
        rules.add_implication("T", {"X": "on"}, name="a")
        rules.add_implication("T", {"X": "off"}, name="b")
        with pytest.raises(UnstableRuleSet) as exc_info:
            Resolver(reg, rules).resolve(_profile(T=True))
        assert exc_info.value.flags == ("X",)
        assert exc_info.value.passes == default_pass_bound(rules.rules_for())

    def test_explicit_max_passes(self) -> None:
        reg, rules = _mixing_rules()
        work = Assignment.from_explicit(reg.names(), {"GLS_MIXING": True})
        with pytest.raises(UnstableRuleSet) as exc_info:
            run_fixed_point(work, rules.rules_for(), max_passes=1)
        assert exc_info.value.passes == 1

    def test_find_conflicts_lists_every_group(self) -> None:
        reg = OptionRegistry()
        for name in "ABCD":
            reg.register(name)
        rules = RuleSet(reg)
        rules.add_conflict(["A", "B"], name="ab")
        rules.add_conflict(["C", "D"], name="cd")
        values = dict.fromkeys("ABCD", State.ON)
        assert find_conflicts(values, rules.conflicts) == [("ab", ("A", "B")), ("cd", ("C", "D"))]
