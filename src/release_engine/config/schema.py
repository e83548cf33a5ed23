"""Configuration models for YAML workspace files."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Discriminator, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from release_engine.models import (
    Deployment,
    DeploymentVariable,
    Environment,
    GlobalVariable,
    Resource,
    ResourceVariable,
)


class EngineSettings(BaseSettings):
    """Engine settings.

    Fields can be set in the ``settings:`` YAML section or via environment
    variables with the ``RELEASE_ENGINE_`` prefix. YAML values take precedence.
    """

    model_config = SettingsConfigDict(env_prefix="RELEASE_ENGINE_")

    release_log: Path = Path(".release-log.json")
    action_timeout: float | None = Field(default=None, gt=0)
    lock_timeout: float | None = Field(default=None, ge=0)


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


def _type_aliases(*models: type[BaseModel]) -> dict[str, str]:
    """Collect ``yaml_alias`` → ``type`` default from model classes."""
    aliases: dict[str, str] = {}
    for m in models:
        yaml_alias = getattr(m, "yaml_alias", None)
        if yaml_alias is not None:
            aliases[yaml_alias] = m.model_fields["type"].default
    return aliases


_VARIABLE_ALIASES = _type_aliases(GlobalVariable, DeploymentVariable, ResourceVariable)


def _normalize_variable_type(v: Any) -> Any:
    if isinstance(v, dict) and "type" in v:
        v["type"] = _VARIABLE_ALIASES.get(v["type"], v["type"])
    return v


_VariableEntry = Annotated[
    GlobalVariable | DeploymentVariable | ResourceVariable,
    BeforeValidator(_normalize_variable_type),
    Discriminator("type"),
]


class RuleSpec(BaseModel):
    """A rule declared in YAML; ``condition``/``action`` are built via the registry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    condition: dict[str, Any]
    action: dict[str, Any] = Field(default_factory=lambda: {"type": "log"})

    @model_validator(mode="after")
    def _default_name(self) -> RuleSpec:
        if not self.name:
            self.name = self.id
        return self


class Config(BaseModel):
    """Workspace configuration, validated directly from the YAML structure."""

    settings: EngineSettings = Field(default_factory=EngineSettings)
    environments: Annotated[list[Environment], BeforeValidator(_none_to_list)] = []
    resources: Annotated[list[Resource], BeforeValidator(_none_to_list)] = []
    deployments: Annotated[list[Deployment], BeforeValidator(_none_to_list)] = []
    variables: Annotated[list[_VariableEntry], BeforeValidator(_none_to_list)] = []
    rules: Annotated[list[RuleSpec], BeforeValidator(_none_to_list)] = []
    config_dir: Path = Path()

    @property
    def global_variables(self) -> list[GlobalVariable]:
        return [v for v in self.variables if isinstance(v, GlobalVariable)]

    @property
    def deployment_variables(self) -> list[DeploymentVariable]:
        return [v for v in self.variables if isinstance(v, DeploymentVariable)]

    @property
    def resource_variables(self) -> list[ResourceVariable]:
        return [v for v in self.variables if isinstance(v, ResourceVariable)]

    @property
    def release_log_path(self) -> Path:
        """Release log location; relative paths are taken from the config directory."""
        path = self.settings.release_log
        return path if path.is_absolute() else self.config_dir / path
