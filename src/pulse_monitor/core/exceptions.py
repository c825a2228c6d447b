"""
Core exception classes for the Pulse Monitor service.

This module defines custom exceptions used throughout the system
for better error handling and debugging.
"""


class PulseMonitorError(Exception):
    """Base exception for all Pulse Monitor errors."""
    pass


class ConfigurationError(PulseMonitorError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(PulseMonitorError):
    """Raised when caller-supplied data fails validation."""
    pass


class CollectionError(PulseMonitorError):
    """Raised when host metric sampling fails."""
    pass


class NotificationError(PulseMonitorError):
    """Raised when an alert sink fails to deliver a message."""
    pass


class AlertNotFoundError(PulseMonitorError):
    """Raised when an alert id does not match any stored alert."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id
