"""Data model for environments, resources, variables and releases."""

from release_engine.models.context import Context
from release_engine.models.entities import (
    Deployment,
    Environment,
    Resource,
    Selector,
    selectors_match,
)
from release_engine.models.release import Release, ReleaseMetadata
from release_engine.models.variables import (
    BaseVariable,
    DeploymentVariable,
    GlobalVariable,
    ResourceVariable,
    Variable,
    VariableType,
    canonical_value,
    json_value,
    values_equal,
)

__all__ = [
    "BaseVariable",
    "Context",
    "Deployment",
    "DeploymentVariable",
    "Environment",
    "GlobalVariable",
    "Release",
    "ReleaseMetadata",
    "Resource",
    "ResourceVariable",
    "Selector",
    "Variable",
    "VariableType",
    "canonical_value",
    "json_value",
    "selectors_match",
    "values_equal",
]
