"""
Playback state data models
"""

from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Optional


class PlaybackStateCode(Enum):
    """Playback state machine states"""
    NONE = "none"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERROR = "error"
    SKIPPING_TO_NEXT = "skipping_to_next"
    SKIPPING_TO_PREVIOUS = "skipping_to_previous"
    SKIPPING_TO_QUEUE_ITEM = "skipping_to_queue_item"

    @property
    def is_active(self) -> bool:
        """Not idle: anything other than NONE or STOPPED"""
        return self not in (PlaybackStateCode.NONE, PlaybackStateCode.STOPPED)


class PlaybackAction(Flag):
    """Transport actions available to controllers"""
    NONE = 0
    PLAY = auto()
    PLAY_FROM_MEDIA_ID = auto()
    PLAY_FROM_SEARCH = auto()
    PAUSE = auto()
    STOP = auto()
    SKIP_TO_PREVIOUS = auto()
    SKIP_TO_NEXT = auto()


@dataclass(frozen=True)
class PlaybackState:
    """
    Snapshot published on every state change.

    state is ERROR whenever error_message is set, regardless of the controller's
    underlying state code.
    """
    state: PlaybackStateCode = PlaybackStateCode.NONE
    position_ms: int = 0
    error_message: Optional[str] = None
    active_queue_id: Optional[int] = None
    actions: PlaybackAction = PlaybackAction.NONE
