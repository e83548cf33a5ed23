"""Variable definitions at the three resolution tiers."""

from __future__ import annotations

import json
from datetime import datetime  # noqa: TC003 (pydantic needs this at runtime)
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field
from pydantic_core import to_jsonable_python

from release_engine.models.entities import Selector, selectors_match, utcnow

_MASK = "(sensitive)"


class VariableType(str, Enum):
    """Variable kinds, highest resolution priority first."""

    RESOURCE = "resourceVariable"
    DEPLOYMENT = "deploymentVariable"
    GLOBAL = "variable"


def json_value(value: Any) -> Any:
    """Plain JSON form of a variable value, as the release log stores it.

    Always builds new containers, so the result shares no state with *value*.
    NaN and infinities become ``None``; datetimes become ISO strings.
    """
    return to_jsonable_python(value, inf_nan_mode="null", serialize_unknown=True)


def canonical_value(value: Any) -> str:
    """Stable JSON encoding of a variable value, used for equality checks."""
    return json.dumps(json_value(value), sort_keys=True, separators=(",", ":"))


def values_equal(a: Any, b: Any) -> bool:
    """Deep equality on canonical JSON (``True`` and ``1`` differ, key order does not)."""
    return canonical_value(a) == canonical_value(b)


class BaseVariable(BaseModel):
    """Fields shared by every variable kind."""

    model_config = ConfigDict(extra="forbid")

    yaml_alias: ClassVar[str]

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    value: Any = None
    sensitive: bool = False
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def variable_type(self) -> VariableType:
        return VariableType(self.type)  # type: ignore[attr-defined]

    def display_value(self) -> str:
        """Value rendered for logs and terminals; sensitive values are masked."""
        if self.sensitive:
            return _MASK
        return canonical_value(self.value)


class GlobalVariable(BaseVariable):
    """Workspace-wide default, lowest priority."""

    yaml_alias: ClassVar[str] = "global"

    type: Literal["variable"] = "variable"


class DeploymentVariable(BaseVariable):
    """Applies to any resource whose labels satisfy ``selectors``."""

    yaml_alias: ClassVar[str] = "deployment"

    type: Literal["deploymentVariable"] = "deploymentVariable"
    deployment_id: str
    selectors: list[Selector] = Field(default_factory=list)

    def applies_to(self, labels: dict[str, str]) -> bool:
        return selectors_match(self.selectors, labels)


class ResourceVariable(BaseVariable):
    """Bound to one exact resource + environment pair, highest priority."""

    yaml_alias: ClassVar[str] = "resource"

    type: Literal["resourceVariable"] = "resourceVariable"
    resource_id: str
    environment_id: str


Variable = Annotated[
    GlobalVariable | DeploymentVariable | ResourceVariable,
    Discriminator("type"),
]
