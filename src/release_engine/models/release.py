"""Release records: the append-only ledger of observed variable states."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 (pydantic needs this at runtime)
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from release_engine.models.variables import VariableType  # noqa: TC001 (pydantic needs this at runtime)


class ReleaseMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    variable_type: VariableType
    variable_name: str
    variable_value: Any = None


class Release(BaseModel):
    """An immutable record of a resolved variable value for one context.

    Attributes:
        id: Workspace-unique id from the injected generator
        trigger_type: Always ``"variable"``
        trigger_id: Name of the variable that produced the release
        resource_id: Resource the value was resolved for
        environment_id: Environment the value was resolved for
        metadata: Tier, name and value of the winning variable
        created_at: When the release was minted
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    trigger_type: Literal["variable"] = "variable"
    trigger_id: str
    resource_id: str
    environment_id: str
    metadata: ReleaseMetadata
    created_at: datetime

    @property
    def key(self) -> tuple[str, str, str]:
        """Dedup key: ``(trigger_id, resource_id, environment_id)``."""
        return (self.trigger_id, self.resource_id, self.environment_id)
