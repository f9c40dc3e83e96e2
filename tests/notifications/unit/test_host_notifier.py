"""Host notifier tests."""

from __future__ import annotations

import logging

import pytest
from batch_snapshot_tester.notifications import LoggingNotifier, suppress_info


class _RecordingNotifier:
    def __init__(self) -> None:
        self.infos: list[str] = []

    def warn(self, message: str) -> None:
        return None

    def error(self, message: str) -> None:
        return None

    def info(self, message: str) -> None:
        self.infos.append(message)


def test_logging_notifier_maps_to_log_levels(caplog: pytest.LogCaptureFixture) -> None:
    notifier = LoggingNotifier(logging.getLogger("batch_snapshot_tester.test"))

    with caplog.at_level(logging.INFO, logger="batch_snapshot_tester.test"):
        notifier.info("saved")
        notifier.warn("careful")
        notifier.error("broken")

    assert [(record.levelname, record.message) for record in caplog.records] == [
        ("INFO", "saved"),
        ("WARNING", "careful"),
        ("ERROR", "broken"),
    ]


def test_suppress_info_drops_matching_messages_only() -> None:
    notifier = _RecordingNotifier()

    with suppress_info(notifier, lambda message: "saved to" in message):
        notifier.info("a.snap.txt saved to dir")
        notifier.info("Uploaded 1 snapshot files for 1 batches.")

    notifier.info("report.json saved to reports")
    assert notifier.infos == [
        "Uploaded 1 snapshot files for 1 batches.",
        "report.json saved to reports",
    ]


def test_suppress_info_restores_info_when_the_block_raises() -> None:
    notifier = _RecordingNotifier()
    original = notifier.info

    with pytest.raises(RuntimeError):
        with suppress_info(notifier, lambda message: True):
            raise RuntimeError("upload crashed")

    assert notifier.info == original
    notifier.info("visible")
    assert notifier.infos == ["visible"]
