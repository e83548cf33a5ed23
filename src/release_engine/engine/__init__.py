"""Variable resolution, release management and rule dispatch."""

from release_engine.engine.actions import CallbackAction, LogVariableChangeAction
from release_engine.engine.conditions import (
    AllConditions,
    AnyCondition,
    ContextSpecificCondition,
    VariableChangedCondition,
    VariableNameCondition,
)
from release_engine.engine.errors import (
    DuplicateRuleError,
    InvalidContextError,
    ReleaseEngineError,
    ReleaseLogLockError,
    RuleActionError,
    RuleConditionError,
    RuleError,
    UnknownRuleComponentError,
)
from release_engine.engine.manager import ReleaseManager, ReleaseRecord
from release_engine.engine.registry import RuleComponentRegistration, RuleComponentRegistry
from release_engine.engine.resolver import (
    DEFAULT_TIERS,
    VariableResolver,
    deployment_tier,
    global_tier,
    resource_tier,
)
from release_engine.engine.rules import (
    Action,
    Condition,
    Rule,
    RuleEngine,
    RuleEngineResult,
    RuleInput,
    RuleOutcome,
)

__all__ = [
    "DEFAULT_TIERS",
    "Action",
    "AllConditions",
    "AnyCondition",
    "CallbackAction",
    "Condition",
    "ContextSpecificCondition",
    "DuplicateRuleError",
    "InvalidContextError",
    "LogVariableChangeAction",
    "ReleaseEngineError",
    "ReleaseLogLockError",
    "ReleaseManager",
    "ReleaseRecord",
    "Rule",
    "RuleActionError",
    "RuleComponentRegistration",
    "RuleComponentRegistry",
    "RuleConditionError",
    "RuleEngine",
    "RuleEngineResult",
    "RuleError",
    "RuleInput",
    "RuleOutcome",
    "UnknownRuleComponentError",
    "VariableChangedCondition",
    "VariableNameCondition",
    "VariableResolver",
    "deployment_tier",
    "global_tier",
    "resource_tier",
]
