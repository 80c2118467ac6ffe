"""
Session Engine Core Module
"""

from .event_bus import EventBus, EventType
from .cancellation import (
    CancellationScope,
    CancellationSource,
    CancellationToken,
    OperationCancelledError,
)
from .network_status import NetworkMonitor

__all__ = [
    'EventBus',
    'EventType',
    'CancellationScope',
    'CancellationSource',
    'CancellationToken',
    'OperationCancelledError',
    'NetworkMonitor',
]
