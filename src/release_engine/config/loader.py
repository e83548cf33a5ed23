"""YAML workspace file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from release_engine.config.schema import Config

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name → environment variable.
_SETTINGS_ENV_MAP: dict[str, str] = {
    "release_log": "RELEASE_ENGINE_RELEASE_LOG",
    "action_timeout": "RELEASE_ENGINE_ACTION_TIMEOUT",
    "lock_timeout": "RELEASE_ENGINE_LOCK_TIMEOUT",
}


def _resolve_settings(raw_settings: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve settings from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _SETTINGS_ENV_MAP.items():
        val = raw_settings.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            resolved[field] = val

    unknown = set(raw_settings) - set(_SETTINGS_ENV_MAP)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
    return resolved


def _duplicates(kind: str, ids: list[str]) -> list[str]:
    seen: set[str] = set()
    errors: list[str] = []
    for i in ids:
        if i in seen:
            errors.append(f"Duplicate {kind} id '{i}'")
        seen.add(i)
    return errors


def _validate_references(config: Config) -> list[str]:
    """Check ids are unique and that variables only point at declared entities."""
    errors: list[str] = []
    errors += _duplicates("environment", [e.id for e in config.environments])
    errors += _duplicates("resource", [r.id for r in config.resources])
    errors += _duplicates("deployment", [d.id for d in config.deployments])
    errors += _duplicates("variable", [v.id for v in config.variables])
    errors += _duplicates("rule", [r.id for r in config.rules])

    environment_ids = {e.id for e in config.environments}
    resource_ids = {r.id for r in config.resources}
    deployment_ids = {d.id for d in config.deployments}

    for r in config.resources:
        if environment_ids and r.environment_id not in environment_ids:
            errors.append(f"Resource '{r.id}' references unknown environment '{r.environment_id}'")

    for v in config.deployment_variables:
        if v.deployment_id not in deployment_ids:
            errors.append(f"Variable '{v.id}' references unknown deployment '{v.deployment_id}'")

    # One resource-tier definition per (name, resource, environment).
    bound: dict[tuple[str, str, str], str] = {}
    for v in config.resource_variables:
        if v.resource_id not in resource_ids:
            errors.append(f"Variable '{v.id}' references unknown resource '{v.resource_id}'")
        if environment_ids and v.environment_id not in environment_ids:
            errors.append(
                f"Variable '{v.id}' references unknown environment '{v.environment_id}'"
            )
        key = (v.name, v.resource_id, v.environment_id)
        if key in bound:
            errors.append(
                f"Variable '{v.name}' is bound twice to {v.resource_id}/{v.environment_id}: "
                f"found in both {bound[key]} and {v.id}"
            )
        else:
            bound[key] = v.id
    return errors


def load_config(path: Path | str) -> Config:
    """Load a YAML workspace file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors, invalid structure, or dangling references.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    try:
        raw["settings"] = _resolve_settings(raw.get("settings") or {}, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent

    errors = _validate_references(config)
    if errors:
        raise ConfigError("\n".join(errors))

    logger.info(
        "Loaded config from %s (%d resources, %d variables, %d rules)",
        path,
        len(config.resources),
        len(config.variables),
        len(config.rules),
    )
    return config
