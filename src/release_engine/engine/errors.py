"""Engine error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from release_engine.engine.rules import Rule


class ReleaseEngineError(Exception):
    """Base exception for engine errors."""


class InvalidContextError(ReleaseEngineError):
    """Raised when a resolution context is malformed (missing or inconsistent ids)."""


class DuplicateRuleError(ReleaseEngineError):
    """Raised when a rule id is registered twice on the same engine."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Duplicate rule id: {rule_id}")
        self.rule_id = rule_id


class UnknownRuleComponentError(ReleaseEngineError):
    """Raised when a condition or action type has no registration."""

    def __init__(self, kind: str, component_type: str) -> None:
        super().__init__(f"Unknown {kind} type: {component_type}")
        self.kind = kind
        self.component_type = component_type


class RuleError(ReleaseEngineError):
    """A single rule failed during evaluation.

    The original exception is chained via ``__cause__``.
    """

    def __init__(self, rule: Rule, message: str) -> None:
        self.rule_id = rule.id
        self.rule_name = rule.name
        super().__init__(f"Rule {rule.id} ({rule.name}) {message}")


class RuleConditionError(RuleError):
    """Raised when a rule's condition raises while being evaluated."""


class RuleActionError(RuleError):
    """Raised when a rule's action raises or times out."""


class ReleaseLogLockError(ReleaseEngineError):
    """Raised when the release log lock cannot be acquired or released."""
