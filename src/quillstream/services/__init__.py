"""Service layer: settings persistence and user notifications."""

from .notifications import Notice, NotificationCenter, Notifier, Severity
from .settings import Settings, SettingsStore

__all__ = ["Notice", "NotificationCenter", "Notifier", "Severity", "Settings", "SettingsStore"]
