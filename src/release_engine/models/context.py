"""Resolution context."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from release_engine.models.entities import Environment, Resource


class Context(BaseModel):
    """The (resource, environment, optional deployment) a variable is resolved for.

    ``resource`` and ``environment`` let callers supply materialized entities
    that are not (yet) in storage.  When given, their ids must agree with
    ``resource_id`` / ``environment_id``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    resource_id: str = Field(min_length=1)
    environment_id: str = Field(min_length=1)
    deployment_id: str | None = None
    resource: Resource | None = None
    environment: Environment | None = None

    @model_validator(mode="after")
    def _check_materialized_ids(self) -> Self:
        if self.resource is not None and self.resource.id != self.resource_id:
            raise ValueError(
                f"resource.id {self.resource.id!r} does not match resource_id {self.resource_id!r}"
            )
        if self.environment is not None and self.environment.id != self.environment_id:
            raise ValueError(
                f"environment.id {self.environment.id!r} does not match "
                f"environment_id {self.environment_id!r}"
            )
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.resource_id, self.environment_id)
