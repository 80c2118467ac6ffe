"""
Playback Controller Module

Wraps the opaque audio engine: owns the playback state machine, audio focus
and the wake/network locks held while streaming.

State flow:
    NONE -> BUFFERING -> PLAYING <-> PAUSED -> STOPPED
plus the transitional SKIPPING_TO_* codes set by the session orchestrator.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from core.ports.audio import (
    AudioEngineError,
    FocusChange,
    IAudioEngine,
    IAudioFocus,
    IResourceLock,
    NetworkPlaybackError,
)
from models.playback_state import PlaybackStateCode
from services.config_service import ConfigService

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], IAudioEngine]


class IPlaybackListener(Protocol):
    """Receives controller events (implemented by the session orchestrator)"""

    def on_completion(self) -> None:
        ...

    def on_playback_state_changed(self, state: PlaybackStateCode) -> None:
        ...

    def on_error(self, message: str) -> None:
        ...


class _FocusState(Enum):
    NO_FOCUS_NO_DUCK = "no_focus_no_duck"
    NO_FOCUS_CAN_DUCK = "no_focus_can_duck"
    FOCUSED = "focused"


class SimpleResourceLock:
    """IResourceLock for platforms without wake/network locks"""

    def __init__(self, name: str = ""):
        self.name = name
        self._held = False

    @property
    def is_held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        self._held = True

    def release(self) -> None:
        self._held = False


class GrantedAudioFocus:
    """IAudioFocus for platforms without focus arbitration"""

    def request(self) -> bool:
        return True

    def abandon(self) -> bool:
        return True


class PlaybackController:
    """
    Playback Controller

    The engine instance is created lazily by load_stream() and released by stop().
    Engine callbacks must arrive on the event loop thread.

    Usage example:
        controller = PlaybackController(engine_factory)
        controller.set_listener(orchestrator)

        controller.state = PlaybackStateCode.BUFFERING
        if await controller.load_stream(resolution.stream_url):
            controller.play_when_ready = True
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        audio_focus: Optional[IAudioFocus] = None,
        wake_lock: Optional[IResourceLock] = None,
        network_lock: Optional[IResourceLock] = None,
        config: Optional[ConfigService] = None,
    ):
        config = config or ConfigService()
        self._engine_factory = engine_factory
        self._audio_focus = audio_focus or GrantedAudioFocus()
        self._wake_lock = wake_lock or SimpleResourceLock("wake")
        self._network_lock = network_lock or SimpleResourceLock("network")
        self._volume_normal = float(config.get("playback.volume_normal", 1.0))
        self._volume_duck = float(config.get("playback.volume_duck", 0.2))

        self._listener: Optional[IPlaybackListener] = None
        self._engine: Optional[IAudioEngine] = None
        self._state = PlaybackStateCode.NONE
        self._focus_state = _FocusState.NO_FOCUS_NO_DUCK
        self._play_when_ready = False
        self._resume_on_focus = False
        self._position_ms = 0

        # Set when a network-class engine error parked playback in BUFFERING
        self.resume_on_network = False

    def set_listener(self, listener: Optional[IPlaybackListener]) -> None:
        self._listener = listener

    # ===== State =====

    @property
    def state(self) -> PlaybackStateCode:
        return self._state

    @state.setter
    def state(self, value: PlaybackStateCode) -> None:
        # Listeners hear every assignment, including repeats
        self._state = value
        logger.debug("Playback state -> %s", value.value)
        if self._listener is not None:
            self._listener.on_playback_state_changed(value)

    @property
    def current_position_ms(self) -> int:
        return self._engine.current_position_ms if self._engine is not None else 0

    @property
    def duration_ms(self) -> int:
        return self._engine.duration_ms if self._engine is not None else 0

    @property
    def has_engine(self) -> bool:
        return self._engine is not None

    @property
    def play_when_ready(self) -> bool:
        return self._engine is not None and self._play_when_ready

    @play_when_ready.setter
    def play_when_ready(self, value: bool) -> None:
        if self._engine is None:
            return
        self._play_when_ready = value
        if value:
            self._engine.play()
        else:
            self._engine.pause()

    @property
    def is_playing(self) -> bool:
        """Playing now, or paused by a focus loss that will resume"""
        if self._engine is not None:
            return self._resume_on_focus or self._engine.is_playing
        return self._resume_on_focus

    # ===== Transport =====

    async def load_stream(self, stream_url: Awaitable[Optional[str]]) -> bool:
        """
        Prepare the engine with a resolved stream.

        The caller sets BUFFERING first; PLAYING follows from the engine's own
        playing callback once play_when_ready is set.

        Returns:
            False when no stream URL could be resolved

        Raises:
            OperationCancelledError: Resolution was cancelled
        """
        if not self._wake_lock.is_held:
            self._wake_lock.acquire()
        if not self._network_lock.is_held:
            self._network_lock.acquire()

        url = await stream_url
        if url is None:
            return False

        self._request_audio_focus()
        self._position_ms = 0

        if self._engine is None:
            self._engine = self._engine_factory()
            self._engine.set_on_playing_changed(self._on_engine_playing_changed)
            self._engine.set_on_seek_complete(self._on_engine_seek_complete)
            self._engine.set_on_end(self._on_engine_end)
            self._engine.set_on_error(self._on_engine_error)
        else:
            self._engine.stop()
            self._play_when_ready = False

        self._engine.prepare(url)
        self._configure_player_state()
        return True

    def resume(self) -> None:
        """Resume from PAUSED; without an engine this stops instead"""
        if self._engine is not None and self._state == PlaybackStateCode.PAUSED:
            self._request_audio_focus()
            self._configure_player_state()

            # Seek if the position was changed while paused, the seek callback sets BUFFERING
            if self._engine.current_position_ms != self._position_ms:
                self._engine.seek_to(self._position_ms)
            else:
                self.state = PlaybackStateCode.BUFFERING

            self.play_when_ready = True
        elif self._engine is None:
            self.stop()

    def pause(self) -> None:
        """Formal pause; focus is only released when leaving PLAYING or BUFFERING"""
        if self._state in (PlaybackStateCode.PLAYING, PlaybackStateCode.BUFFERING):
            if self._engine is not None:
                self.play_when_ready = False
                self._position_ms = self._engine.current_position_ms
            self._abandon_audio_focus()

        self.state = PlaybackStateCode.PAUSED

    def quick_pause(self) -> None:
        """Silence output without a state change (used between tracks)"""
        if self._engine is not None:
            self.play_when_ready = False
            self._position_ms = self._engine.current_position_ms

    def seek_to(self, position_ms: int) -> None:
        if self._engine is None or self._state == PlaybackStateCode.PAUSED:
            self._position_ms = position_ms
        else:
            self._engine.seek_to(position_ms)

    def stop(self) -> None:
        """Release the engine, focus and locks"""
        self.state = PlaybackStateCode.STOPPED
        self._position_ms = self.current_position_ms

        if self._wake_lock.is_held:
            self._wake_lock.release()
        if self._network_lock.is_held:
            self._network_lock.release()

        self._abandon_audio_focus()
        self._release_engine()

    def on_audio_becoming_noisy(self) -> None:
        """Output route changed (e.g. headphones unplugged)"""
        if self._state in (PlaybackStateCode.PLAYING, PlaybackStateCode.BUFFERING):
            self.pause()

    def release(self) -> None:
        self._release_engine()
        self._listener = None

    # ===== Audio focus =====

    def on_audio_focus_change(self, change: FocusChange) -> None:
        if change == FocusChange.GAIN:
            self._focus_state = _FocusState.FOCUSED
        else:
            if change == FocusChange.LOSS_TRANSIENT_CAN_DUCK:
                self._focus_state = _FocusState.NO_FOCUS_CAN_DUCK
            else:
                self._focus_state = _FocusState.NO_FOCUS_NO_DUCK
            self._resume_on_focus |= self._state == PlaybackStateCode.PLAYING

        self._configure_player_state()

    def _configure_player_state(self) -> None:
        if self._focus_state == _FocusState.NO_FOCUS_NO_DUCK and self._state == PlaybackStateCode.PLAYING:
            self.pause()
        elif self._focus_state == _FocusState.NO_FOCUS_CAN_DUCK and self._engine is not None:
            self._engine.set_volume(self._volume_duck)
        elif self._focus_state == _FocusState.FOCUSED and self._engine is not None:
            self._engine.set_volume(self._volume_normal)

        if self._focus_state != _FocusState.NO_FOCUS_NO_DUCK and self._resume_on_focus:
            if self._engine is not None and not self._engine.is_playing:
                if self._position_ms != self._engine.current_position_ms:
                    self._engine.seek_to(self._position_ms)
                self.play_when_ready = True
                self.state = PlaybackStateCode.PLAYING
            self._resume_on_focus = False

    def _request_audio_focus(self) -> None:
        if self._focus_state != _FocusState.FOCUSED and self._audio_focus.request():
            self._focus_state = _FocusState.FOCUSED

    def _abandon_audio_focus(self) -> None:
        if self._focus_state == _FocusState.FOCUSED and self._audio_focus.abandon():
            self._focus_state = _FocusState.NO_FOCUS_NO_DUCK

    def _release_engine(self) -> None:
        if self._engine is not None:
            engine = self._engine
            self._engine = None
            self._play_when_ready = False
            try:
                engine.release()
            except AudioEngineError as e:
                logger.warning("Audio engine release failed: %s", e)

    # ===== Engine callbacks =====

    def _on_engine_playing_changed(self, playing: bool) -> None:
        if not playing:
            return
        self._configure_player_state()
        # Coming back from PAUSED goes through BUFFERING (set by resume)
        if self._state != PlaybackStateCode.PAUSED:
            self.state = PlaybackStateCode.PLAYING

    def _on_engine_seek_complete(self) -> None:
        self._position_ms = self.current_position_ms
        self.state = PlaybackStateCode.BUFFERING

    def _on_engine_end(self) -> None:
        if self.current_position_ms > 0 and self._listener is not None:
            self._listener.on_completion()

    def _on_engine_error(self, error: Exception) -> None:
        if isinstance(error, NetworkPlaybackError):
            logger.warning("Stream lost the network, waiting for recovery: %s", error)
            self.quick_pause()
            self.state = PlaybackStateCode.BUFFERING
            self.resume_on_network = True
            return

        logger.error("Audio engine error: %s", error)
        if self._listener is not None:
            self._listener.on_error(f"Media player error: {error}")
