"""
Settings loader (``fincontrol_config.loader``).

Responsibility
--------------
Reads the YAML settings file, applies environment overrides, and returns a
frozen ``AppSettings``.

Precedence (highest first)
--------------------------
1. ``FINCONTROL_DATABASE_URL`` / ``DATABASE_URL`` and ``FINCONTROL_LOG_LEVEL``
2. The YAML file (``path`` argument, else ``FINCONTROL_CONFIG``, else
   ``config/fincontrol.yaml`` if it exists)
3. Built-in defaults from ``schema.py``

Failure modes
-------------
* Explicit path that does not exist  -> ``FileNotFoundError``.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from fincontrol_batch.domain.types import JobTrigger
from fincontrol_config.schema import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    SchedulerSettings,
    default_triggers,
)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "fincontrol.yaml"

_DATABASE_URL_VARS = ("FINCONTROL_DATABASE_URL", "DATABASE_URL")
_LOG_LEVEL_VAR = "FINCONTROL_LOG_LEVEL"
_CONFIG_PATH_VAR = "FINCONTROL_CONFIG"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_trigger(name: str, data: Mapping[str, Any]) -> JobTrigger:
    return JobTrigger(
        name=name,
        cron_expression=str(data["cron"]),
        task_types=tuple(data["tasks"]),
        is_active=bool(data.get("active", True)),
    )


def parse_settings(data: Mapping[str, Any]) -> AppSettings:
    """Build AppSettings from an already-loaded mapping."""
    database = DatabaseSettings(**(data.get("database") or {}))
    log = LoggingSettings(**(data.get("logging") or {}))

    scheduler_data = dict(data.get("scheduler") or {})
    trigger_data = scheduler_data.pop("triggers", None)
    if trigger_data is None:
        triggers = default_triggers()
    else:
        triggers = tuple(parse_trigger(name, spec) for name, spec in trigger_data.items())
    scheduler = SchedulerSettings(triggers=triggers, **scheduler_data)

    return AppSettings(database=database, logging=log, scheduler=scheduler)


def _apply_env(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    for var in _DATABASE_URL_VARS:
        if env.get(var):
            data.setdefault("database", {})
            data["database"] = {**(data["database"] or {}), "url": env[var]}
            break
    if env.get(_LOG_LEVEL_VAR):
        data["logging"] = {**(data.get("logging") or {}), "level": env[_LOG_LEVEL_VAR]}
    return data


def load_settings(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppSettings:
    """
    Load settings from YAML plus environment overrides.

    Args:
        path: Explicit settings file.  Must exist when given.
        env: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if env is None else env

    if path is None and env.get(_CONFIG_PATH_VAR):
        path = env[_CONFIG_PATH_VAR]

    if path is not None:
        data = load_yaml_file(Path(path))
    elif DEFAULT_CONFIG_PATH.exists():
        data = load_yaml_file(DEFAULT_CONFIG_PATH)
    else:
        data = {}

    return parse_settings(_apply_env(dict(data), env))
