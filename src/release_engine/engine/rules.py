"""Rule engine: evaluate (condition, action) rules against new releases."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from release_engine.engine.errors import (
    DuplicateRuleError,
    RuleActionError,
    RuleConditionError,
    RuleError,
)

if TYPE_CHECKING:
    from release_engine.models import Context, Release, Variable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleInput:
    """Everything a condition or action sees for one release."""

    release: Release
    new_variable: Variable | None
    previous_variable: Variable | None
    context: Context
    previous_release: Release | None = None


class Condition:
    """Base class for rule conditions."""

    def matches(self, rule_input: RuleInput) -> bool:
        raise NotImplementedError


class Action:
    """Base class for rule actions.

    ``execute`` may take the :class:`RuleInput` or no arguments at all; the
    engine passes the input only when the method declares a parameter for it.
    """

    async def execute(self, rule_input: RuleInput) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    condition: Condition
    action: Action


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating a single rule."""

    rule_id: str
    matched: bool
    executed: bool = False
    error: RuleError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class RuleEngineResult:
    outcomes: list[RuleOutcome] = field(default_factory=list)

    @property
    def fired(self) -> list[str]:
        """Ids of rules whose action completed."""
        return [o.rule_id for o in self.outcomes if o.executed]

    @property
    def failures(self) -> list[RuleError]:
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failures


ErrorSink = Callable[[Rule, RuleError], None]


def _takes_input(execute: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(execute).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in params
    )


def _call_execute(action: Action, rule_input: RuleInput) -> Awaitable[None]:
    if _takes_input(action.execute):
        return action.execute(rule_input)
    return action.execute()  # type: ignore[call-arg]


class RuleEngine:
    """Evaluate every registered rule against a release, in registration order.

    Each condition check and action call is isolated: a failure is recorded
    on the rule's outcome, logged, and handed to ``on_error``; the remaining
    rules still run. Actions are awaited one at a time. With
    ``action_timeout`` set, an action that does not finish in time counts as
    failed. The engine keeps no state between calls.
    """

    def __init__(
        self,
        *,
        rules: Sequence[Rule] = (),
        on_error: ErrorSink | None = None,
        action_timeout: float | None = None,
    ) -> None:
        self._rules: list[Rule] = []
        self._on_error = on_error
        self._action_timeout = action_timeout
        for rule in rules:
            self.add_rule(rule)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    def add_rule(self, rule: Rule) -> None:
        if any(r.id == rule.id for r in self._rules):
            raise DuplicateRuleError(rule.id)
        self._rules.append(rule)

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule by id. Return False if it was not registered."""
        for i, rule in enumerate(self._rules):
            if rule.id == rule_id:
                del self._rules[i]
                return True
        return False

    def _report(self, rule: Rule, error: RuleError) -> None:
        logger.warning("%s", error)
        if self._on_error is not None:
            self._on_error(rule, error)

    async def _run_action(self, rule: Rule, rule_input: RuleInput) -> None:
        pending = _call_execute(rule.action, rule_input)
        if self._action_timeout is None:
            await pending
        else:
            await asyncio.wait_for(pending, self._action_timeout)

    async def _evaluate(self, rule: Rule, rule_input: RuleInput) -> RuleOutcome:
        try:
            matched = bool(rule.condition.matches(rule_input))
        except Exception as exc:
            error = RuleConditionError(rule, f"condition failed: {exc}")
            error.__cause__ = exc
            self._report(rule, error)
            return RuleOutcome(rule_id=rule.id, matched=False, error=error)

        if not matched:
            return RuleOutcome(rule_id=rule.id, matched=False)

        logger.debug("Rule %s matched release %s", rule.id, rule_input.release.id)
        try:
            await self._run_action(rule, rule_input)
        except TimeoutError as exc:
            error = RuleActionError(rule, f"action timed out after {self._action_timeout}s")
            error.__cause__ = exc
            self._report(rule, error)
            return RuleOutcome(rule_id=rule.id, matched=True, error=error)
        except Exception as exc:
            error = RuleActionError(rule, f"action failed: {exc}")
            error.__cause__ = exc
            self._report(rule, error)
            return RuleOutcome(rule_id=rule.id, matched=True, error=error)
        return RuleOutcome(rule_id=rule.id, matched=True, executed=True)

    async def process_release(
        self,
        release: Release,
        new_variable: Variable | None,
        previous_variable: Variable | None,
        context: Context,
        *,
        previous_release: Release | None = None,
    ) -> RuleEngineResult:
        """Run every matching rule's action for *release*."""
        rule_input = RuleInput(
            release=release,
            new_variable=new_variable,
            previous_variable=previous_variable,
            context=context,
            previous_release=previous_release,
        )
        outcomes = [await self._evaluate(rule, rule_input) for rule in tuple(self._rules)]
        result = RuleEngineResult(outcomes=outcomes)
        logger.debug(
            "Processed release %s: %d rule(s) fired, %d failed",
            release.id,
            len(result.fired),
            len(result.failures),
        )
        return result
