# -*- coding: utf-8 -*-
"""
Audio Engine Port Interface

Defines abstract interfaces for the audio engine and the platform resources around it
(audio focus, wake/network locks), so the playback controller does not depend on a
specific streaming backend.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable


class AudioEngineError(RuntimeError):
    """Playback failure reported by an audio engine"""
    pass


class NetworkPlaybackError(AudioEngineError):
    """Playback failure caused by the stream's data source losing the network"""
    pass


class FocusChange(Enum):
    """Audio focus changes reported by the platform"""
    GAIN = "gain"
    LOSS = "loss"
    LOSS_TRANSIENT = "loss_transient"
    LOSS_TRANSIENT_CAN_DUCK = "loss_transient_can_duck"


@runtime_checkable
class IAudioEngine(Protocol):
    """Streaming Audio Engine Interface

    An opaque player: it prepares a stream URI, plays/pauses/seeks it and reports
    what happened through callbacks. Callbacks must be delivered on the asyncio
    loop thread that owns the session.
    """

    @property
    def current_position_ms(self) -> int:
        """Current playback position in milliseconds"""
        ...

    @property
    def duration_ms(self) -> int:
        """Duration of the prepared stream in milliseconds"""
        ...

    @property
    def is_playing(self) -> bool:
        """Whether audio is currently being rendered"""
        ...

    def prepare(self, uri: str) -> None:
        """Prepare a stream for playback

        Args:
            uri: Stream URL
        """
        ...

    def play(self) -> None:
        """Start (or continue) playback once the stream is ready"""
        ...

    def pause(self) -> None:
        """Pause playback, keeping the prepared stream"""
        ...

    def stop(self) -> None:
        """Stop playback and drop the prepared stream"""
        ...

    def seek_to(self, position_ms: int) -> None:
        """Seek to a position

        Args:
            position_ms: Target position in milliseconds
        """
        ...

    def set_volume(self, volume: float) -> None:
        """Set volume (0.0 - 1.0)"""
        ...

    def release(self) -> None:
        """Release the engine; it is not used again afterwards"""
        ...

    def set_on_playing_changed(self, callback: Optional[Callable[[bool], None]]) -> None:
        """Set callback for changes of the is_playing flag"""
        ...

    def set_on_seek_complete(self, callback: Optional[Callable[[], None]]) -> None:
        """Set callback fired once a seek has been processed"""
        ...

    def set_on_end(self, callback: Optional[Callable[[], None]]) -> None:
        """Set playback completion callback"""
        ...

    def set_on_error(self, callback: Optional[Callable[[Exception], None]]) -> None:
        """Set error callback

        Args:
            callback: Receives an AudioEngineError (NetworkPlaybackError for data source failures)
        """
        ...


@runtime_checkable
class IAudioFocus(Protocol):
    """Audio Focus Interface"""

    def request(self) -> bool:
        """Request focus; True if granted"""
        ...

    def abandon(self) -> bool:
        """Abandon focus; True if released"""
        ...


@runtime_checkable
class IResourceLock(Protocol):
    """Wake lock / network lock held while streaming"""

    @property
    def is_held(self) -> bool:
        ...

    def acquire(self) -> None:
        ...

    def release(self) -> None:
        ...
