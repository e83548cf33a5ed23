"""Built-in rule conditions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from release_engine.engine.rules import Condition
from release_engine.models import values_equal

if TYPE_CHECKING:
    from release_engine.engine.rules import RuleInput

_MISSING = object()


class ContextSpecificCondition(Condition):
    """Match only releases for exactly this resource and environment."""

    def __init__(self, resource_id: str, environment_id: str) -> None:
        self.resource_id = resource_id
        self.environment_id = environment_id

    def matches(self, rule_input: RuleInput) -> bool:
        ctx = rule_input.context
        return ctx.resource_id == self.resource_id and ctx.environment_id == self.environment_id

    def __repr__(self) -> str:
        return f"ContextSpecificCondition({self.resource_id!r}, {self.environment_id!r})"


def _previous_value(rule_input: RuleInput) -> Any:
    if rule_input.previous_variable is not None:
        return rule_input.previous_variable.value
    if rule_input.previous_release is not None:
        return rule_input.previous_release.metadata.variable_value
    return _MISSING


class VariableChangedCondition(Condition):
    """Match when the variable was created, deleted, or its value changed.

    The previous value comes from ``previous_variable`` or, failing that,
    from ``previous_release``.
    """

    def matches(self, rule_input: RuleInput) -> bool:
        previous = _previous_value(rule_input)
        new = rule_input.new_variable
        if previous is _MISSING:
            return new is not None
        if new is None:
            return True
        return not values_equal(previous, new.value)

    def __repr__(self) -> str:
        return "VariableChangedCondition()"


class VariableNameCondition(Condition):
    """Match releases triggered by any of the given variable names."""

    def __init__(self, *names: str) -> None:
        if not names:
            raise ValueError("VariableNameCondition needs at least one name")
        self.names = frozenset(names)

    def matches(self, rule_input: RuleInput) -> bool:
        return rule_input.release.trigger_id in self.names

    def __repr__(self) -> str:
        return f"VariableNameCondition({', '.join(repr(n) for n in sorted(self.names))})"


class AllConditions(Condition):
    """Match when every wrapped condition matches (short-circuits)."""

    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def matches(self, rule_input: RuleInput) -> bool:
        return all(c.matches(rule_input) for c in self.conditions)


class AnyCondition(Condition):
    """Match when at least one wrapped condition matches (short-circuits)."""

    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def matches(self, rule_input: RuleInput) -> bool:
        return any(c.matches(rule_input) for c in self.conditions)
