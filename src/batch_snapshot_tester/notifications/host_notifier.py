"""Host notification service used for user-facing warnings and summaries."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    """Protocol for the host's notification service."""

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that routes messages to the standard logging system."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def warn(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def info(self, message: str) -> None:
        self._logger.info(message)


@contextmanager
def suppress_info(notifier: Notifier, predicate: Callable[[str], bool]) -> Iterator[None]:
    """Drop `info` messages matching `predicate` while the block runs.

    The notifier's original `info` is restored on every exit path, including
    when the block raises.
    """
    original = notifier.info

    def filtered_info(message: str) -> None:
        if predicate(message):
            return
        original(message)

    notifier.info = filtered_info  # type: ignore[method-assign]
    try:
        yield
    finally:
        notifier.info = original  # type: ignore[method-assign]
