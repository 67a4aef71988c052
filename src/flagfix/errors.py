"""errors.py – Exception hierarchy for flagfix.

Every error raised by the library derives from :class:`FlagfixError` and
carries the offending flag / rule names as attributes so that callers (and
``flagfix --json``) can report them without parsing messages.
"""

from __future__ import annotations

from typing import Any


class FlagfixError(Exception):
    """Base class for all flagfix errors."""

    kind = "error"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error output."""
        return {"error": str(self), "kind": self.kind}


# ---------------------------------------------------------------------------
# Registration-time errors
# ---------------------------------------------------------------------------


class DuplicateOption(FlagfixError):
    """An option with this name is already registered."""

    kind = "duplicate_option"

    def __init__(self, name: str) -> None:
        super().__init__(f"Option '{name}' is already registered")
        self.name = name

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "flags": [self.name]}


class UnknownOption(FlagfixError):
    """A name was looked up (or referenced by a rule/profile) but never registered."""

    kind = "unknown_option"

    def __init__(self, name: str, context: str = "") -> None:
        where = f" (referenced by {context})" if context else ""
        super().__init__(f"Unknown option '{name}'{where}")
        self.name = name
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "flags": [self.name], "context": self.context}


class RegistryFrozen(FlagfixError):
    """Registration was attempted after resolution started."""

    kind = "registry_frozen"

    def __init__(self, name: str) -> None:
        super().__init__(f"Cannot register '{name}': the option registry is frozen")
        self.name = name


class UnknownBundle(FlagfixError):
    """A profile selected a rule bundle that was never declared."""

    kind = "unknown_bundle"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown rule bundle '{name}'")
        self.name = name


class ConditionSyntaxError(FlagfixError):
    """A textual condition could not be parsed."""

    kind = "condition_syntax"

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"Invalid condition {text!r}: {reason}")
        self.text = text
        self.reason = reason


class ProfileError(FlagfixError):
    """A profile or project file is malformed."""

    kind = "profile_error"

    def __init__(self, msg: str, source: str = "") -> None:
        super().__init__(f"{source}: {msg}" if source else msg)
        self.source = source


# ---------------------------------------------------------------------------
# Resolution-time errors
# ---------------------------------------------------------------------------


class UnstableRuleSet(FlagfixError):
    """The rule set did not reach a fixed point within the pass bound."""

    kind = "unstable_rule_set"

    def __init__(self, passes: int, flags: tuple[str, ...], rules: tuple[str, ...]) -> None:
        super().__init__(
            f"Rules did not converge after {passes} passes; "
            f"still changing: {', '.join(flags) or '?'} (rules: {', '.join(rules) or '?'})"
        )
        self.passes = passes
        self.flags = flags
        self.rules = rules

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "passes": self.passes,
            "flags": list(self.flags),
            "rules": list(self.rules),
        }


class ConflictViolation(FlagfixError):
    """Two or more mutually exclusive flags resolved ``on``.

    ``flags`` / ``rule`` describe the first violated group; ``violations``
    lists every violated group as ``(rule, flags)`` pairs.
    """

    kind = "conflict_violation"

    def __init__(self, violations: list[tuple[str, tuple[str, ...]]]) -> None:
        rule, flags = violations[0]
        more = f" (+{len(violations) - 1} more)" if len(violations) > 1 else ""
        super().__init__(f"Conflicting flags enabled together: {', '.join(flags)} [{rule}]{more}")
        self.rule = rule
        self.flags = flags
        self.violations = violations

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "flags": list(self.flags),
            "rule": self.rule,
            "violations": [{"rule": r, "flags": list(f)} for r, f in self.violations],
        }
