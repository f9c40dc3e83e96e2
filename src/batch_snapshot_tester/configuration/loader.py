"""Configuration loader service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from batch_snapshot_tester.execution_engine.runnables import DEFAULT_TIMEOUT_MS

from .runtime_settings import (
    BatchSourceSettings,
    Configuration,
    HostSettings,
    ReportingSettings,
    RunSettings,
    SnapshotSettings,
    StorageSettings,
)

DEFAULT_JSON_REPORT_FILENAME = "batch-report.json"
STORAGE_BACKENDS = ("local", "http")


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(config_path: Path | str) -> Configuration:
    """Load and validate the configuration file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    base_path = path.parent.resolve()
    return Configuration(
        path=path,
        host=_parse_host_section(parsed.get("host")),
        batches=_parse_batches_section(parsed.get("batches")),
        storage=_parse_storage_section(parsed.get("storage"), base_path),
        snapshots=_parse_snapshots_section(parsed.get("snapshots")),
        reporting=_parse_reporting_section(parsed.get("reporting"), base_path),
        run=_parse_run_section(parsed.get("run")),
    )


def _parse_host_section(value: Any) -> HostSettings:
    section = _optional_mapping(value, "host")
    packages = _normalize_string_sequence(
        section.get("installed_packages"), "host.installed_packages"
    )
    return HostSettings(installed_packages=packages)


def _parse_batches_section(value: Any) -> BatchSourceSettings:
    section = _optional_mapping(value, "batches")
    modules = _normalize_string_sequence(section.get("modules"), "batches.modules")
    example_batches = _optional_bool(section.get("example_batches"), "batches.example_batches")
    return BatchSourceSettings(modules=modules, example_batches=example_batches)


def _parse_storage_section(value: Any, base_path: Path) -> StorageSettings:
    section = _optional_mapping(value, "storage")
    backend = _require_non_empty_string(section.get("backend", "local"), "storage.backend").lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigurationError(
            f"storage.backend must be one of {', '.join(STORAGE_BACKENDS)}."
        )
    timeout_seconds = _require_positive_int(
        section.get("timeout_seconds", 30), "storage.timeout_seconds"
    )
    if backend == "http":
        base_url = _require_non_empty_string(section.get("base_url"), "storage.base_url")
        if not base_url.startswith(("http://", "https://")):
            raise ConfigurationError("storage.base_url must start with http:// or https://.")
        return StorageSettings(
            backend=backend, root=None, base_url=base_url, timeout_seconds=timeout_seconds
        )
    root_value = _require_non_empty_string(section.get("root", "data"), "storage.root")
    return StorageSettings(
        backend=backend,
        root=_resolve_path(base_path, root_value),
        base_url=None,
        timeout_seconds=timeout_seconds,
    )


def _parse_snapshots_section(value: Any) -> SnapshotSettings:
    section = _optional_mapping(value, "snapshots")
    return SnapshotSettings(update=_optional_bool(section.get("update"), "snapshots.update"))


def _parse_reporting_section(value: Any, base_path: Path) -> ReportingSettings:
    section = _optional_mapping(value, "reporting")
    log_test_details = _optional_bool(
        section.get("log_test_details", True), "reporting.log_test_details"
    )
    json_report = _parse_json_report(section.get("json_report"))
    results_dir_value = _optional_string(section.get("results_dir"), "reporting.results_dir")
    results_dir = _resolve_path(base_path, results_dir_value) if results_dir_value else None
    return ReportingSettings(
        log_test_details=log_test_details,
        json_report=json_report,
        results_dir=results_dir,
    )


def _parse_json_report(value: Any) -> str | None:
    if value is None or value is False:
        return None
    if value is True:
        return DEFAULT_JSON_REPORT_FILENAME
    filename = _require_non_empty_string(value, "reporting.json_report")
    if filename.endswith("/"):
        raise ConfigurationError("reporting.json_report must name a file, not a directory.")
    return filename.lstrip("/")


def _parse_run_section(value: Any) -> RunSettings:
    section = _optional_mapping(value, "run")
    pre_selected_only = _optional_bool(
        section.get("pre_selected_only"), "run.pre_selected_only"
    )
    timeout_ms = _require_non_negative_int(
        section.get("timeout_ms", DEFAULT_TIMEOUT_MS), "run.timeout_ms"
    )
    return RunSettings(pre_selected_only=pre_selected_only, timeout_ms=timeout_ms)


def _normalize_string_sequence(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        stripped = value.strip()
        return (stripped,) if stripped else ()
    if isinstance(value, Sequence):
        normalized = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigurationError(f"{field_name} entries must be strings.")
            stripped = item.strip()
            if stripped:
                normalized.append(stripped)
        return tuple(normalized)
    raise ConfigurationError(f"{field_name} must be a string or list of strings.")


def _resolve_path(base_path: Path, raw_path: str) -> Path:
    candidate = Path(raw_path)
    if not candidate.is_absolute():
        return (base_path / candidate).resolve()
    return candidate


def _optional_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _optional_bool(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be true or false.")
    return value


def _require_positive_int(value: Any, field_name: str) -> int:
    checked = _require_non_negative_int(value, field_name)
    if checked == 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return checked


def _require_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value < 0:
        raise ConfigurationError(f"{field_name} must not be negative.")
    return value
