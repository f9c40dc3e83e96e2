"""Notification service exports."""

from .host_notifier import LoggingNotifier, Notifier, suppress_info

__all__ = ["LoggingNotifier", "Notifier", "suppress_info"]
