"""Notification adapters."""

from .console import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
