"""
Pulse Monitor

In-process runtime health monitoring and alerting: host resource sampling,
request instrumentation, scheduled threshold alerts with external
notification, bounded history retention and an aggregate health signal.

Version: 0.1.0
"""

__version__ = "0.1.0"
__description__ = "Runtime health monitoring and alerting service"

from pulse_monitor.config.settings import Settings, get_settings
from pulse_monitor.core.logging import get_logger, setup_logging

__all__ = [
    "__version__",
    "__description__",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
