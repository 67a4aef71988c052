"""Tests for the option registry."""

import pytest

from flagfix.errors import DuplicateOption, RegistryFrozen, UnknownOption
from flagfix.registry import Option, OptionRegistry, State

# ---------------------------------------------------------------------------
# State.parse()
# ---------------------------------------------------------------------------


class TestStateParse:
    @pytest.mark.parametrize("raw", ["on", "ON", " true ", "yes", "1", True, "define"])
    def test_on_values(self, raw) -> None:
        assert State.parse(raw) is State.ON

    @pytest.mark.parametrize("raw", ["off", "False", "no", "0", False, "undef"])
    def test_off_values(self, raw) -> None:
        assert State.parse(raw) is State.OFF

    def test_unset(self) -> None:
        assert State.parse("unset") is State.UNSET

    def test_passthrough(self) -> None:
        assert State.parse(State.OFF) is State.OFF

    def test_garbage_raises(self) -> None:
        with pytest.raises(ValueError):
            State.parse("maybe")

    def test_int_rejected(self) -> None:
        with pytest.raises(ValueError):
            State.parse(2)


# ---------------------------------------------------------------------------
# OptionRegistry
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_and_lookup(self) -> None:
        reg = OptionRegistry()
        reg.register("SOLVE3D", "on", "3D solver")
        opt = reg.lookup("SOLVE3D")
        assert opt == Option("SOLVE3D", State.ON, "3D solver")

    def test_default_is_unset(self) -> None:
        reg = OptionRegistry()
        assert reg.register("UV_ADV").default is State.UNSET

    def test_bool_default(self) -> None:
        reg = OptionRegistry()
        assert reg.register("UV_ADV", True).default is State.ON

    def test_duplicate_raises(self) -> None:
        reg = OptionRegistry()
        reg.register("UV_ADV")
        with pytest.raises(DuplicateOption) as exc_info:
            reg.register("UV_ADV", "on")
        assert exc_info.value.name == "UV_ADV"

    def test_unknown_lookup(self) -> None:
        reg = OptionRegistry()
        with pytest.raises(UnknownOption) as exc_info:
            reg.lookup("NOPE", context="test")
        assert exc_info.value.name == "NOPE"
        assert "test" in str(exc_info.value)

    def test_require_reports_first_missing(self) -> None:
        reg = OptionRegistry()
        reg.register("A")
        with pytest.raises(UnknownOption) as exc_info:
            reg.require(["A", "B", "C"])
        assert exc_info.value.name == "B"


class TestFreeze:
    def test_register_after_freeze(self) -> None:
        reg = OptionRegistry()
        reg.register("A")
        reg.freeze()
        assert reg.frozen
        with pytest.raises(RegistryFrozen):
            reg.register("B")

    def test_lookup_still_works_when_frozen(self) -> None:
        reg = OptionRegistry()
        reg.register("A")
        reg.freeze()
        assert reg.lookup("A").name == "A"


class TestOrdering:
    def test_registration_order(self) -> None:
        reg = OptionRegistry()
        for name in ("Z", "A", "M"):
            reg.register(name)
        assert reg.names() == ["Z", "A", "M"]
        assert [o.name for o in reg] == ["Z", "A", "M"]
        assert len(reg) == 3
        assert "A" in reg
        assert "Q" not in reg

    def test_resolved_default(self) -> None:
        assert Option("A", State.ON).resolved_default is True
        assert Option("A", State.OFF).resolved_default is False
        assert Option("A", State.UNSET).resolved_default is False
