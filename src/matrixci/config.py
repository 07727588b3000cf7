"""
Build file (appveyor.yml style) parser and validator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .model import PHASES, SHELLS, Step

logger = logging.getLogger(__name__)

# config key -> phase
PHASE_KEYS: Dict[str, str] = {
    "init": "init",
    "install": "install",
    "build_script": "build",
    "test_script": "test",
}

# `build: off` / `test: off` switch a phase off entirely
PHASE_SWITCHES: Dict[str, str] = {
    "build": "build",
    "test": "test",
}

KNOWN_KEYS = {"platform", "environment", "matrix", *PHASE_KEYS, *PHASE_SWITCHES}


class ConfigError(Exception):
    """Raised when the build configuration is invalid."""
    pass


@dataclass
class BuildConfig:
    platforms: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    matrix: List[Dict[str, str]] = field(default_factory=list)
    allow_failures: List[Dict[str, str]] = field(default_factory=list)
    init: Tuple[Step, ...] = ()
    install: Tuple[Step, ...] = ()
    build: Tuple[Step, ...] = ()
    test: Tuple[Step, ...] = ()

    def phase_steps(self, phase: str) -> Tuple[Step, ...]:
        return getattr(self, phase)


def load_config(path: str | Path) -> BuildConfig:
    """Read and validate a build file from disk."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")
    logger.debug(f"Loading build config from {p}")
    return parse_config(p.read_text(encoding="utf-8"))


def parse_config(yaml_content: str) -> BuildConfig:
    """Parse build configuration from a YAML string."""
    try:
        config = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    return validate_config(config)


def _scalar(value: Any, where: str) -> str:
    if isinstance(value, bool):
        # YAML 1.1 reads off/no/yes/on as booleans; they become "false"/"true"
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"{where} must be a scalar value")


def _var_map(value: Any, where: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping")
    out: Dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str):
            raise ConfigError(f"{where} has a non-string key: {k!r}")
        out[k] = _scalar(v, f"{where}.{k}")
    return out


def _is_off(value: Any) -> bool:
    return value is False or (isinstance(value, str) and value.lower() == "off")


def validate_step(item: Any, key: str, phase: str, index: int) -> Step:
    """Validate one step entry: a string, or a single-key {shell: command} mapping."""
    where = f"{key}[{index}]"
    if isinstance(item, str):
        return Step(phase=phase, index=index, run=item)

    if isinstance(item, dict):
        if len(item) != 1:
            raise ConfigError(f"{where} must have exactly one shell key, got {sorted(item)}")
        shell, run = next(iter(item.items()))
        if shell not in SHELLS or shell == "default":
            raise ConfigError(f"{where} uses unknown shell {shell!r}")
        if not isinstance(run, str):
            raise ConfigError(f"{where} command must be a string")
        return Step(phase=phase, index=index, run=run, shell=shell)

    raise ConfigError(f"{where} must be a string or a mapping")


def validate_steps(value: Any, key: str, phase: str) -> Tuple[Step, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list")
    return tuple(validate_step(item, key, phase, i) for i, item in enumerate(value))


def validate_platforms(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError("'platform' must be a string or a list")
    return [_scalar(p, f"platform[{i}]") for i, p in enumerate(value)]


def validate_environment(value: Any) -> Tuple[Dict[str, str], List[Dict[str, str]]]:
    """
    Split `environment` into global variables and matrix entries.

    Accepted forms:
      environment: {FOO: 1, matrix: [{TARGET: a}, {TARGET: b}]}
      environment: [{TARGET: a}, {TARGET: b}]   (a bare matrix)
    """
    if value is None:
        return {}, []

    if isinstance(value, list):
        matrix_value: Any = value
        global_env: Dict[str, str] = {}
    elif isinstance(value, dict):
        matrix_value = value.get("matrix")
        global_env = _var_map(
            {k: v for k, v in value.items() if k != "matrix"},
            "environment",
        )
    else:
        raise ConfigError("'environment' must be a mapping or a list")

    if matrix_value is None:
        return global_env, []
    if not isinstance(matrix_value, list):
        raise ConfigError("'environment.matrix' must be a list")

    entries = [
        _var_map(entry, f"environment.matrix[{i}]")
        for i, entry in enumerate(matrix_value)
    ]
    return global_env, entries


def validate_allow_failures(value: Any) -> List[Dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, dict):
        raise ConfigError("'matrix' must be a mapping")
    allow = value.get("allow_failures")
    if allow is None:
        return []
    if not isinstance(allow, list):
        raise ConfigError("'matrix.allow_failures' must be a list")
    return [
        _var_map(entry, f"matrix.allow_failures[{i}]")
        for i, entry in enumerate(allow)
    ]


def validate_config(config: Optional[Dict[str, Any]]) -> BuildConfig:
    """Validate build configuration structure."""
    if not config:
        raise ConfigError("Empty build configuration")

    if not isinstance(config, dict):
        raise ConfigError("Build configuration must be a mapping")

    for key in config:
        if key not in KNOWN_KEYS:
            logger.debug(f"Ignoring unsupported key {key!r}")

    global_env, matrix = validate_environment(config.get("environment"))

    phases: Dict[str, Tuple[Step, ...]] = {}
    for key, phase in PHASE_KEYS.items():
        phases[phase] = validate_steps(config.get(key), key, phase)

    for key, phase in PHASE_SWITCHES.items():
        if key not in config:
            continue
        if _is_off(config[key]):
            phases[phase] = ()
        else:
            logger.debug(f"Ignoring '{key}' settings other than 'off'")

    if not any(phases[p] for p in PHASES):
        raise ConfigError("Build configuration has no steps")

    return BuildConfig(
        platforms=validate_platforms(config.get("platform")),
        env=global_env,
        matrix=matrix,
        allow_failures=validate_allow_failures(config.get("matrix")),
        **phases,
    )
