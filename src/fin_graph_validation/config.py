from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

from fin_graph_validation.validation.thresholds import (
    ALLOCATION_TOLERANCE_PCT,
    QUALITY_THRESHOLD_PCT,
    RELATIONSHIP_TOLERANCE_PCT,
    TOTAL_NODE_TOLERANCE,
    ValidationThresholds,
)


class PathsConfig(BaseModel):
    data: str
    reports: str


class SnapshotConfig(BaseModel):
    environment: str = "static-data"
    extra_node_counts: Dict[str, int] = {}
    extra_relationship_counts: Dict[str, int] = {}


class ValidationConfig(BaseModel):
    total_node_tolerance: int = Field(default=TOTAL_NODE_TOLERANCE, ge=0)
    relationship_tolerance_pct: float = Field(default=RELATIONSHIP_TOLERANCE_PCT, ge=0)
    quality_threshold: float = Field(default=QUALITY_THRESHOLD_PCT, ge=0, le=100)
    allocation_tolerance: float = Field(default=ALLOCATION_TOLERANCE_PCT, ge=0)
    profile_records: bool = False

    def thresholds(self) -> ValidationThresholds:
        return ValidationThresholds(
            total_node_tolerance=self.total_node_tolerance,
            relationship_tolerance_pct=self.relationship_tolerance_pct,
            quality_threshold=self.quality_threshold,
            allocation_tolerance=self.allocation_tolerance,
        )


class LoggingConfig(BaseModel):
    level: str = "INFO"


class ReportConfig(BaseModel):
    version: str = "1.0"
    write_csv: bool = True


class AppConfig(BaseModel):
    paths: PathsConfig
    snapshot: SnapshotConfig
    validation: ValidationConfig
    report: ReportConfig
    logging: LoggingConfig = LoggingConfig()


def _resolve_default_config_path() -> Path:
    package_candidate = Path(__file__).resolve().parent / "configs" / "default.yaml"
    repo_candidate = Path(__file__).resolve().parents[2] / "configs" / "default.yaml"
    for candidate in (package_candidate, repo_candidate):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        "Unable to locate default configuration; expected it under "
        f"{package_candidate} or {repo_candidate}."
    )


DEFAULT_CONFIG_PATH = _resolve_default_config_path()
ENV_TO_PATH: Dict[str, Tuple[str, ...]] = {
    "FGV_DATA_DIR": ("paths", "data"),
    "FGV_REPORTS_DIR": ("paths", "reports"),
    "FGV_ENVIRONMENT": ("snapshot", "environment"),
    "FGV_PROFILE_RECORDS": ("validation", "profile_records"),
    "FGV_LOG_LEVEL": ("logging", "level"),
}


def load_config(
    default_path: Path,
    override_yaml_path_or_none: Optional[Path],
    env: Mapping[str, str],
    cli_overrides: Mapping[str, Any],
) -> AppConfig:
    """Merge defaults, an optional override file, env vars and CLI flags, in that order."""
    data = _load_yaml(default_path)
    if override_yaml_path_or_none:
        data = _deep_merge(data, _load_yaml(override_yaml_path_or_none))

    data = _apply_env_overrides(data, env)
    data = _apply_cli_overrides(data, cli_overrides)

    return AppConfig.model_validate(data)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path.read_text(encoding="utf-8")
    if not content.strip():
        return {}

    loaded = yaml.safe_load(content)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level.")
    return loaded


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(
    data: Dict[str, Any], env: Mapping[str, str]
) -> Dict[str, Any]:
    updated = copy.deepcopy(data)
    for var, path in ENV_TO_PATH.items():
        if var in env:
            _assign_path(updated, path, env[var])
    return updated


def _apply_cli_overrides(
    data: Dict[str, Any], overrides: Mapping[str, Any]
) -> Dict[str, Any]:
    updated = copy.deepcopy(data)
    for key, value in overrides.items():
        path = tuple(key.split(".")) if isinstance(key, str) else tuple(key)
        if not path:
            continue
        _assign_path(updated, path, value)
    return updated


def _assign_path(
    target: MutableMapping[str, Any], path: Tuple[str, ...], value: Any
) -> None:
    cursor: MutableMapping[str, Any] = target
    for part in path[:-1]:
        if part not in cursor or not isinstance(cursor[part], MutableMapping):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[path[-1]] = value


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "LoggingConfig",
    "ValidationConfig",
    "load_config",
]
