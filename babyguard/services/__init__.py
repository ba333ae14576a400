"""
Core services for the monitoring pipeline.

This package contains acquisition, classification, deduplication and
dispatch, plus the VitalMonitor facade that wires them together.
"""

from .acquisition import AcquisitionLoop
from .classifier import classify
from .cooldown import CooldownRegistry
from .data_source import DataSource, HttpDataSource, Result
from .deduplicator import AlertDeduplicator, ProcessedReading
from .dispatcher import (
    AlertDispatcher,
    ConsoleNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
)
from .monitor import VitalMonitor
from .normalizer import normalize_payload

__all__ = [
    "AcquisitionLoop",
    "AlertDeduplicator",
    "AlertDispatcher",
    "ConsoleNotificationSink",
    "CooldownRegistry",
    "DataSource",
    "HttpDataSource",
    "LoggingNotificationSink",
    "NotificationSink",
    "ProcessedReading",
    "Result",
    "VitalMonitor",
    "classify",
    "normalize_payload",
]
