"""Notification system for the order report bot."""

from .base import NotificationError, Notifier
from .email import EmailNotifier

__all__ = ["Notifier", "NotificationError", "EmailNotifier"]
