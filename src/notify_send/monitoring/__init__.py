"""Monitoring package for logging configuration."""

from notify_send.monitoring.logger import configure_logger

__all__ = [
    "configure_logger",
]
