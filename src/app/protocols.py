# -*- coding: utf-8 -*-
"""
Protocols Definition Module

Defines the interface protocols (Protocol) for the services held by the container.
Uses Protocol instead of ABC to support structural subtyping checks.

Design Decisions:
- Default to using Protocol + @runtime_checkable
- Runtime checks are performed as one-time assertions during container assembly or testing
"""

from __future__ import annotations

from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Optional,
    Protocol,
    runtime_checkable,
)

# Re-export infrastructure interfaces from core.ports
from core.ports.audio import IAudioEngine, IAudioFocus, IResourceLock
from core.ports.images import IImageLoader
from core.ports.store import IStore
from core.ports.video_source import IVideoSource

if TYPE_CHECKING:
    from models.playback_state import PlaybackAction, PlaybackState
    from services.session_commands import CommandResult, SessionCommand


# =============================================================================
# Event Bus Protocol
# =============================================================================

@runtime_checkable
class IEventBus(Protocol):
    """Event Bus Interface

    Provides a publish-subscribe pattern event system.
    """

    def subscribe(
        self,
        event_type: Enum,
        callback: Callable[[Any], None]
    ) -> str:
        """Subscribe to an event

        Args:
            event_type: Event type enumeration
            callback: Callback function

        Returns:
            Subscription ID, used to unsubscribe
        """
        ...

    def unsubscribe(self, subscription_id: str) -> bool:
        ...

    def publish(self, event_type: Enum, data: Any = None) -> None:
        """Publish an event on the worker pool"""
        ...

    def publish_sync(self, event_type: Enum, data: Any = None) -> None:
        """Publish an event in the caller's thread"""
        ...


# =============================================================================
# Configuration Service Protocol
# =============================================================================

@runtime_checkable
class IConfigService(Protocol):
    """Configuration Service Interface"""

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value

        Args:
            key: Configuration key, supports dot-separated nested keys
            default: Default value

        Returns:
            Configuration value
        """
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def save(self) -> bool:
        """Save configuration to file"""
        ...


# =============================================================================
# Session Protocol
# =============================================================================

@runtime_checkable
class ISession(Protocol):
    """Playback session as seen by the presentation layer"""

    @property
    def playback_state(self) -> "PlaybackState":
        ...

    def available_actions(self) -> "PlaybackAction":
        ...

    def play(self) -> None:
        ...

    def request_pause(self) -> None:
        ...

    def request_stop(self) -> None:
        ...

    def seek_to(self, position_ms: int) -> None:
        ...

    def skip_to_next(self) -> bool:
        ...

    def skip_to_previous(self) -> bool:
        ...

    def skip_to_queue_item(self, queue_id: int) -> bool:
        ...

    def play_from_media_id(self, media_id: str) -> bool:
        ...

    async def call_command(
        self,
        command: "SessionCommand",
        args: Optional[Dict[str, Any]] = None,
    ) -> "CommandResult":
        ...


__all__ = [
    "IAudioEngine",
    "IAudioFocus",
    "IResourceLock",
    "IImageLoader",
    "IStore",
    "IVideoSource",
    "IEventBus",
    "IConfigService",
    "ISession",
]
