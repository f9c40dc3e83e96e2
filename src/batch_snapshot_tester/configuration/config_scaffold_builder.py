"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "batch-tester.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Configuration template for batch-snapshot-tester.
# Replace every <REQUIRED> placeholder before running list-batches or run.
# Remove or fill <OPTIONAL> placeholders only when your setup needs them.

host:
  # Owner namespaces (the part of a batch key before the first ".") known to the host.
  # Batches registered under any other namespace produce a warning.
  installed_packages:
    - "<REQUIRED>"

batches:
  # Importable modules exposing register_batches(registry).
  modules:
    - "<REQUIRED>"
  example_batches: false

storage:
  # local stores snapshots below root; http talks to a file service at base_url.
  backend: local
  root: "data"
  # base_url: "<OPTIONAL>"
  timeout_seconds: 30

snapshots:
  # Write new and changed snapshots after every run unless overridden on the command line.
  update: false

reporting:
  log_test_details: true
  # Set to true or a file name (relative to the storage root) to store a JSON report.
  json_report: false
  # results_dir: "<OPTIONAL>"

run:
  pre_selected_only: false
  timeout_ms: 2000
"""


def build_placeholder_configuration() -> str:
    """Build a YAML configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
