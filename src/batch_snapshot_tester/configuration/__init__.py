"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import DEFAULT_JSON_REPORT_FILENAME, ConfigurationError, load_configuration
from .runtime_settings import (
    BatchSourceSettings,
    Configuration,
    HostSettings,
    ReportingSettings,
    RunSettings,
    SnapshotSettings,
    StorageSettings,
)

__all__ = [
    "BatchSourceSettings",
    "Configuration",
    "HostSettings",
    "ReportingSettings",
    "RunSettings",
    "SnapshotSettings",
    "StorageSettings",
    "ConfigurationError",
    "load_configuration",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_JSON_REPORT_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
