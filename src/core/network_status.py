# -*- coding: utf-8 -*-
"""
Network Status Module

Tracks connectivity and notifies listeners when the network comes and goes.
The platform layer (or a test) drives it through set_connected().
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

NetworkCallback = Callable[[], None]


class NetworkMonitor:
    """
    Connectivity Monitor

    Listeners are only notified on transitions, repeated reports of the same
    state are ignored.

    Usage example:
        monitor = NetworkMonitor()
        listener_id = monitor.add_listener(on_available=resume, on_lost=cancel_all)
        monitor.set_connected(False)   # -> cancel_all()
        monitor.set_connected(False)   # no-op
        monitor.set_connected(True)    # -> resume()
    """

    def __init__(self, connected: bool = True):
        self._connected = connected
        self._listeners: Dict[str, Tuple[Optional[NetworkCallback], Optional[NetworkCallback]]] = {}
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def add_listener(
        self,
        on_available: Optional[NetworkCallback] = None,
        on_lost: Optional[NetworkCallback] = None,
    ) -> str:
        listener_id = str(uuid.uuid4())
        with self._lock:
            self._listeners[listener_id] = (on_available, on_lost)
        return listener_id

    def remove_listener(self, listener_id: str) -> bool:
        with self._lock:
            return self._listeners.pop(listener_id, None) is not None

    def set_connected(self, connected: bool) -> None:
        """Report the current connectivity"""
        with self._lock:
            if connected == self._connected:
                return
            self._connected = connected
            listeners = list(self._listeners.values())

        logger.info("Network %s", "available" if connected else "lost")

        for on_available, on_lost in listeners:
            callback = on_available if connected else on_lost
            if callback is None:
                continue
            try:
                callback()
            except Exception as e:
                logger.error("Network listener error: %s", e)
