"""registry.py – The option registry.

Holds the universe of known flags with their defaults.  The registry is
append-only until a :class:`~flagfix.resolver.Resolver` freezes it; from then
on it is read-only and safe to share between concurrent resolutions.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

from flagfix.errors import DuplicateOption, RegistryFrozen, UnknownOption


class State(enum.Enum):
    """Tri-state flag value."""

    ON = "on"
    OFF = "off"
    UNSET = "unset"

    @classmethod
    def parse(cls, value: object) -> "State":
        """Coerce ``True``/``False``/``"on"``/``"off"``/``"unset"`` to a State."""
        if isinstance(value, State):
            return value
        if isinstance(value, bool):
            return cls.ON if value else cls.OFF
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("on", "true", "yes", "1", "define"):
                return cls.ON
            if text in ("off", "false", "no", "0", "undef"):
                return cls.OFF
            if text in ("unset", "", "none"):
                return cls.UNSET
        raise ValueError(f"not a flag state: {value!r}")

    @classmethod
    def of(cls, value: bool) -> "State":
        return cls.ON if value else cls.OFF


@dataclass(frozen=True)
class Option:
    """A single named build option."""

    name: str
    default: State = State.UNSET
    description: str = ""

    @property
    def resolved_default(self) -> bool:
        """Concrete value used when nothing assigns the option (unset means off)."""
        return self.default is State.ON


class OptionRegistry:
    """Ordered, freezable collection of :class:`Option` objects."""

    def __init__(self) -> None:
        self._options: dict[str, Option] = {}
        self._frozen = False

    def register(
        self, name: str, default: State | bool | str = State.UNSET, description: str = ""
    ) -> Option:
        """Add a new option; raises :class:`DuplicateOption` if *name* exists."""
        if self._frozen:
            raise RegistryFrozen(name)
        if name in self._options:
            raise DuplicateOption(name)
        opt = Option(name=name, default=State.parse(default), description=description)
        self._options[name] = opt
        return opt

    def lookup(self, name: str, context: str = "") -> Option:
        """Return the option called *name*; raises :class:`UnknownOption` if absent."""
        try:
            return self._options[name]
        except KeyError:
            raise UnknownOption(name, context) from None

    def require(self, names, context: str = "") -> None:
        """Raise :class:`UnknownOption` for the first name not in the registry."""
        for name in names:
            self.lookup(name, context)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> list[str]:
        """Option names in registration order."""
        return list(self._options)

    def __contains__(self, name: object) -> bool:
        return name in self._options

    def __iter__(self) -> Iterator[Option]:
        return iter(self._options.values())

    def __len__(self) -> int:
        return len(self._options)
