"""Configuration loader tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from batch_snapshot_tester.configuration.loader import (
    DEFAULT_JSON_REPORT_FILENAME,
    ConfigurationError,
    load_configuration,
)


def _write_file(path: Path, contents: str) -> Path:
    path.write_text(contents, encoding="utf-8")
    return path


def test_loads_yaml_configuration_with_all_sections(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "config.yaml",
        """
host:
  installed_packages: [my_pkg, other_pkg]
batches:
  modules:
    - my_pkg.test_batches
  example_batches: true
storage:
  backend: local
  root: ./snapshots-root
  timeout_seconds: 10
snapshots:
  update: true
reporting:
  log_test_details: false
  json_report: reports/run.json
  results_dir: results
run:
  pre_selected_only: true
  timeout_ms: 500
""",
    )

    configuration = load_configuration(config_path)

    assert configuration.host.installed_packages == ("my_pkg", "other_pkg")
    assert configuration.batches.modules == ("my_pkg.test_batches",)
    assert configuration.batches.example_batches is True
    assert configuration.storage.backend == "local"
    assert configuration.storage.root == (tmp_path / "snapshots-root").resolve()
    assert configuration.storage.timeout_seconds == 10
    assert configuration.snapshots.update is True
    assert configuration.reporting.log_test_details is False
    assert configuration.reporting.json_report == "reports/run.json"
    assert configuration.reporting.results_dir == (tmp_path / "results").resolve()
    assert configuration.run.pre_selected_only is True
    assert configuration.run.timeout_ms == 500


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    configuration = load_configuration(_write_file(tmp_path / "config.yaml", ""))

    assert configuration.host.installed_packages == ()
    assert configuration.batches.modules == ()
    assert configuration.batches.example_batches is False
    assert configuration.storage.root == (tmp_path / "data").resolve()
    assert configuration.storage.timeout_seconds == 30
    assert configuration.snapshots.update is False
    assert configuration.reporting.log_test_details is True
    assert configuration.reporting.json_report is None
    assert configuration.reporting.results_dir is None
    assert configuration.run.timeout_ms == 2000


def test_loads_json_configuration_for_http_backend(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "config.json",
        json.dumps(
            {
                "storage": {"backend": "HTTP", "base_url": "https://files.example.com/api"},
                "reporting": {"json_report": True},
            }
        ),
    )

    configuration = load_configuration(config_path)

    assert configuration.storage.backend == "http"
    assert configuration.storage.base_url == "https://files.example.com/api"
    assert configuration.storage.root is None
    assert configuration.reporting.json_report == DEFAULT_JSON_REPORT_FILENAME


@pytest.mark.parametrize(
    ("contents", "message"),
    [
        ("storage:\n  backend: ftp\n", "storage.backend must be one of"),
        ("storage:\n  backend: http\n", "storage.base_url must be a string"),
        (
            "storage:\n  backend: http\n  base_url: files.example.com\n",
            "must start with http",
        ),
        ("storage:\n  timeout_seconds: 0\n", "greater than zero"),
        ("snapshots:\n  update: sometimes\n", "snapshots.update must be true or false"),
        ("run:\n  timeout_ms: -1\n", "run.timeout_ms must not be negative"),
        ("batches:\n  modules: [1]\n", "batches.modules entries must be strings"),
        ("reporting:\n  json_report: reports/\n", "must name a file"),
        ("host: []\n", "Configuration section 'host' must be a mapping"),
    ],
)
def test_errors_name_the_offending_key(tmp_path: Path, contents: str, message: str) -> None:
    config_path = _write_file(tmp_path / "config.yaml", contents)

    with pytest.raises(ConfigurationError, match=message):
        load_configuration(config_path)


def test_errors_when_configuration_root_is_not_mapping(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "config.yaml", "- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="Configuration root must be a mapping"):
        load_configuration(config_path)


def test_errors_when_file_is_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Configuration file not found"):
        load_configuration(tmp_path / "missing.yaml")
