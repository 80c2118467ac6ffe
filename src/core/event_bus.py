# -*- coding: utf-8 -*-
"""
Event Bus Module - Publish-Subscribe Pattern Implementation

Provides loose-coupled communication between the session engine and its observers
(UI, notification layer, tests).

Design Notes:
- This is a pure Python implementation, does not depend on any UI framework
- Every notification pass iterates a snapshot of the subscribers, so subscribing or
  unsubscribing from inside a callback only affects later passes
- The session engine publishes synchronously; observers that need another thread
  must hop there themselves
"""

from typing import Dict, Callable, Any, Optional
from enum import Enum
import threading
import uuid
import logging
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event type enumeration"""

    # Playback events
    PLAYBACK_STATE_CHANGED = "playback_state_changed"
    METADATA_CHANGED = "metadata_changed"

    # Queue events
    QUEUE_CHANGED = "queue_changed"
    QUEUE_TITLE_CHANGED = "queue_title_changed"
    SHUFFLE_MODE_CHANGED = "shuffle_mode_changed"

    # Playlist events
    PLAYLIST_SAVED = "playlist_saved"
    PLAYLIST_GENERATED = "playlist_generated"
    COMMAND_COMPLETED = "command_completed"

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_IDLE = "session_idle"

    # System events
    CONFIG_CHANGED = "config_changed"
    USER_MESSAGE = "user_message"


class EventBus:
    """
    Event Bus - Singleton Pattern

    Provides publish-subscribe pattern event system, supports asynchronous event handling.

    Usage example:
        event_bus = EventBus()

        # Subscribe to event
        def on_state_changed(state):
            logger.info("Playback state: %s", state.state)

        sub_id = event_bus.subscribe(EventType.PLAYBACK_STATE_CHANGED, on_state_changed)

        # Publish event
        event_bus.publish_sync(EventType.PLAYBACK_STATE_CHANGED, state)

        # Unsubscribe
        event_bus.unsubscribe(sub_id)
    """

    _instance: Optional['EventBus'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'EventBus':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._subscribers: Dict[EventType, Dict[str, Callable]] = {}
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="EventBus")
        self._sub_lock = threading.Lock()
        self._initialized = True

    def subscribe(
        self,
        event_type: EventType,
        callback: Callable[[Any], None]
    ) -> str:
        """
        Subscribe to event

        Args:
            event_type: Event type
            callback: Callback function, receiving event data as an argument

        Returns:
            str: Subscription ID, used for unsubscription
        """
        subscription_id = str(uuid.uuid4())

        with self._sub_lock:
            if event_type not in self._subscribers:
                self._subscribers[event_type] = {}
            self._subscribers[event_type][subscription_id] = callback

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe

        Args:
            subscription_id: The ID returned when subscribing

        Returns:
            bool: Whether the unsubscription was successful
        """
        with self._sub_lock:
            for event_type in self._subscribers:
                if subscription_id in self._subscribers[event_type]:
                    del self._subscribers[event_type][subscription_id]
                    return True
        return False

    def publish(self, event_type: EventType, data: Any = None) -> None:
        """
        Publish event asynchronously

        The callback function will be executed asynchronously in the thread pool.

        Args:
            event_type: Event type
            data: Event data
        """
        for callback in self._snapshot(event_type):
            self._executor.submit(self._safe_call, callback, data)

    def publish_sync(self, event_type: EventType, data: Any = None) -> None:
        """
        Publish event synchronously

        All callbacks will be executed in the current thread before this returns.

        Args:
            event_type: Event type
            data: Event data
        """
        for callback in self._snapshot(event_type):
            self._safe_call(callback, data)

    def _snapshot(self, event_type: EventType) -> list:
        with self._sub_lock:
            return list(self._subscribers.get(event_type, {}).values())

    def _safe_call(self, callback: Callable, data: Any) -> None:
        """Safely call a callback function"""
        try:
            callback(data)
        except Exception as e:
            # Avoid loop: Do not use publish to report error events
            logger.error("Event callback execution error: %s", e)

    def clear(self) -> None:
        """Clear all subscriptions"""
        with self._sub_lock:
            self._subscribers.clear()

    def shutdown(self) -> None:
        """Shutdown the event bus"""
        self._executor.shutdown(wait=True)

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing only)"""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None
