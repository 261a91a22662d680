"""Job configuration loading for treesync."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, MutableMapping, Optional, Tuple

import yaml

from .sync.compare import DEFAULT_PARTIAL_LENGTH, SIZE_TOLERANCE, ComparisonOptions

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = REPO_ROOT / "config"
CONFIG_ENV_VAR = "TREESYNC_CONFIG"

DiagnosticLevel = Literal["info", "warning", "error"]
ConfigurationStatus = Literal["ready", "missing", "invalid"]


SchemaSpec = Dict[str, Any]

JOB_SCHEMA: SchemaSpec = {
    "source_path": {"type": str, "required": True},
    "target_path": {"type": str, "required": True},
}

CONFIG_SCHEMA: SchemaSpec = {
    "logging": {
        "type": dict,
        "schema": {
            "level": {"type": str, "default": "WARNING"},
            "directory": {"type": str, "default": ".treesync"},
            "structured": {"type": bool, "default": False},
        },
        "default": {},
    },
    "comparison": {
        "type": dict,
        "schema": {
            "check_length": {"type": bool, "default": False},
            "check_full_content": {"type": bool, "default": False},
            "check_partial_content": {"type": bool, "default": False},
            "partial_content_max_length": {"type": int, "min": 0, "default": DEFAULT_PARTIAL_LENGTH},
            "size_tolerance": {"type": int, "min": 0, "default": SIZE_TOLERANCE},
        },
        "default": {},
    },
    "scan": {
        "type": dict,
        "schema": {
            "exclude_patterns": {"type": list, "item_type": str, "default_factory": list},
        },
        "default": {},
    },
    "execution": {
        "type": dict,
        "schema": {
            "confirm_each": {"type": bool, "default": True},
            "dry_run": {"type": bool, "default": False},
        },
        "default": {},
    },
    "jobs": {
        "type": dict,
        "value_schema": JOB_SCHEMA,
        "default": {},
    },
}


@dataclass
class Diagnostic:
    """Represents a configuration validation or loading issue."""

    level: DiagnosticLevel
    message: str
    source: Optional[Path] = None


@dataclass
class SyncJob:
    """A named source/target pair to reconcile."""

    name: str
    source_path: Path
    target_path: Path


@dataclass
class ConfigurationBundle:
    """All configuration data treesync needs at runtime."""

    config_path: Optional[Path]
    status: ConfigurationStatus
    merged: Dict[str, Any] = field(default_factory=dict)
    repo_defaults: Dict[str, Any] = field(default_factory=dict)
    overrides: Dict[str, Any] = field(default_factory=dict)
    files_loaded: List[Path] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    log_path: Optional[Path] = None

    def jobs(self) -> List[SyncJob]:
        """Jobs with both paths set, in definition order."""
        jobs: List[SyncJob] = []
        for name, raw in (self.merged.get("jobs") or {}).items():
            if not isinstance(raw, Mapping):
                continue
            source = raw.get("source_path")
            target = raw.get("target_path")
            if not isinstance(source, str) or not isinstance(target, str):
                continue
            jobs.append(
                SyncJob(
                    name=str(name),
                    source_path=Path(source).expanduser(),
                    target_path=Path(target).expanduser(),
                )
            )
        return jobs

    def comparison_options(self) -> ComparisonOptions:
        return ComparisonOptions.from_config(self.merged.get("comparison"))

    def section(self, name: str) -> Dict[str, Any]:
        return self.merged.get(name) or {}


def resolve_config_path(env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Resolve the user configuration path from the environment."""

    env_source = env if env is not None else os.environ
    raw = env_source.get(CONFIG_ENV_VAR)
    if not raw:
        return None
    return Path(raw).expanduser()


def load_configuration(config_path: Optional[Path] = None) -> ConfigurationBundle:
    """Load repo defaults and the user configuration file or directory."""

    resolved = config_path or resolve_config_path()
    diagnostics: List[Diagnostic] = []
    files_loaded: List[Path] = []

    repo_defaults, repo_files = _load_directory_configs(
        DEFAULT_CONFIG_DIR,
        diagnostics,
        label="repo defaults",
    )
    files_loaded.extend(repo_files)

    status: ConfigurationStatus = "ready"
    overrides: Dict[str, Any] = {}

    if resolved is None:
        diagnostics.append(
            Diagnostic(
                level="info",
                message=f"No user configuration given (use --config or {CONFIG_ENV_VAR}).",
            )
        )
    elif not resolved.exists():
        diagnostics.append(
            Diagnostic(
                level="error",
                message=f"Configuration path '{resolved}' does not exist.",
                source=resolved,
            )
        )
        status = "missing"
    elif resolved.is_dir():
        overrides, override_files = _load_directory_configs(
            resolved,
            diagnostics,
            label="user configuration",
        )
        files_loaded.extend(override_files)
    else:
        content = _load_yaml_file(resolved, diagnostics)
        if content is not None:
            overrides = content
            files_loaded.append(resolved)

    merged = deepcopy(repo_defaults)
    _deep_merge_dicts(merged, overrides)

    _validate_schema(merged, diagnostics)

    if status == "ready" and not merged.get("jobs"):
        diagnostics.append(Diagnostic(level="warning", message="No jobs configured."))

    if status == "ready" and any(diag.level == "error" for diag in diagnostics):
        status = "invalid"

    return ConfigurationBundle(
        config_path=resolved,
        status=status,
        merged=merged,
        repo_defaults=repo_defaults,
        overrides=overrides,
        files_loaded=files_loaded,
        diagnostics=diagnostics,
    )


def _load_directory_configs(
    directory: Path,
    diagnostics: List[Diagnostic],
    label: str,
) -> Tuple[Dict[str, Any], List[Path]]:
    """Load all YAML files from a directory, merging them in order."""

    data: Dict[str, Any] = {}
    loaded_files: List[Path] = []

    if not directory.exists():
        diagnostics.append(
            Diagnostic(
                level="warning",
                message=f"No configuration directory found at '{directory}' ({label}).",
                source=directory,
            )
        )
        return data, loaded_files

    if not directory.is_dir():
        diagnostics.append(
            Diagnostic(
                level="error",
                message=f"Configuration path '{directory}' ({label}) is not a directory.",
                source=directory,
            )
        )
        return data, loaded_files

    yaml_files = sorted(directory.glob("*.yml")) + sorted(directory.glob("*.yaml"))

    for yaml_file in yaml_files:
        content = _load_yaml_file(yaml_file, diagnostics)
        if content is None:
            continue
        _deep_merge_dicts(data, content)
        loaded_files.append(yaml_file)

    if not loaded_files:
        diagnostics.append(
            Diagnostic(
                level="info",
                message=f"No YAML files found under '{directory}' ({label}).",
                source=directory,
            )
        )

    return data, loaded_files


def _load_yaml_file(yaml_file: Path, diagnostics: List[Diagnostic]) -> Optional[Dict[str, Any]]:
    """Parse one YAML file into a mapping; problems become diagnostics."""

    try:
        content = yaml.safe_load(yaml_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        diagnostics.append(
            Diagnostic(
                level="error",
                message=f"Failed to parse '{yaml_file}': {exc}",
                source=yaml_file,
            )
        )
        return None

    if content is None:
        return {}

    if not isinstance(content, MutableMapping):
        diagnostics.append(
            Diagnostic(
                level="warning",
                message=f"Ignoring '{yaml_file}' because it does not contain a mapping.",
                source=yaml_file,
            )
        )
        return None

    return dict(content)


def _deep_merge_dicts(dest: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    """Recursively merge mapping values."""

    for key, value in source.items():
        if (
            key in dest
            and isinstance(dest[key], MutableMapping)
            and isinstance(value, Mapping)
        ):
            _deep_merge_dicts(dest[key], value)
        else:
            dest[key] = deepcopy(value)


def _default_from_spec(spec: SchemaSpec) -> Any:
    if "default_factory" in spec and callable(spec["default_factory"]):
        return spec["default_factory"]()
    return deepcopy(spec.get("default"))


def _validate_schema(config: Dict[str, Any], diagnostics: List[Diagnostic]) -> None:
    _validate_section(config, CONFIG_SCHEMA, "config", diagnostics)


def _validate_section(
    target: Dict[str, Any],
    schema: SchemaSpec,
    path: str,
    diagnostics: List[Diagnostic],
) -> None:
    if not isinstance(target, dict):
        diagnostics.append(
            Diagnostic(
                level="error",
                message=f"Configuration section '{path}' must be a mapping.",
            )
        )
        return

    for key in list(target.keys()):
        if key not in schema:
            diagnostics.append(
                Diagnostic(
                    level="warning",
                    message=f"Unknown configuration key '{path}.{key}'.",
                )
            )

    for key, spec in schema.items():
        child_path = f"{path}.{key}"
        if key not in target:
            if spec.get("required"):
                diagnostics.append(
                    Diagnostic(
                        level="error",
                        message=f"'{child_path}' is required.",
                    )
                )
                continue
            if "default" in spec or "default_factory" in spec:
                target[key] = _default_from_spec(spec)
            # Fill nested defaults of sections that were absent
            if spec.get("type") is not dict or key not in target:
                continue

        value = target[key]
        expected_type = spec.get("type")

        if expected_type is dict:
            if not isinstance(value, dict):
                diagnostics.append(
                    Diagnostic(
                        level="error",
                        message=f"'{child_path}' must be a mapping.",
                    )
                )
                target[key] = _default_from_spec(spec) or {}
                continue
            if "value_schema" in spec:
                for name, item in value.items():
                    _validate_section(item, spec["value_schema"], f"{child_path}.{name}", diagnostics)
            else:
                _validate_section(value, spec.get("schema", {}), child_path, diagnostics)
        elif expected_type is list:
            if not isinstance(value, list):
                diagnostics.append(
                    Diagnostic(
                        level="error",
                        message=f"'{child_path}' must be a list.",
                    )
                )
                target[key] = _default_from_spec(spec) or []
                continue
            item_type = spec.get("item_type")
            if item_type is not None:
                filtered: List[Any] = []
                for idx, item in enumerate(value):
                    if isinstance(item, item_type):
                        filtered.append(item)
                    else:
                        diagnostics.append(
                            Diagnostic(
                                level="error",
                                message=(
                                    f"'{child_path}[{idx}]' must be of type "
                                    f"{item_type.__name__}."
                                ),
                            )
                        )
                target[key] = filtered
        elif expected_type and (
            not isinstance(value, expected_type)
            # bool is an int subclass; reject it where a number is expected
            or (expected_type is int and isinstance(value, bool))
        ):
            if isinstance(expected_type, tuple):
                type_name = ", ".join(t.__name__ for t in expected_type)
            else:
                type_name = expected_type.__name__
            diagnostics.append(
                Diagnostic(
                    level="error",
                    message=f"'{child_path}' must be of type {type_name}.",
                )
            )
            target[key] = _default_from_spec(spec)
        elif "min" in spec and value < spec["min"]:
            diagnostics.append(
                Diagnostic(
                    level="error",
                    message=f"'{child_path}' must be at least {spec['min']}.",
                )
            )
            target[key] = _default_from_spec(spec)


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigurationBundle",
    "ConfigurationStatus",
    "DEFAULT_CONFIG_DIR",
    "Diagnostic",
    "SyncJob",
    "load_configuration",
    "resolve_config_path",
]
