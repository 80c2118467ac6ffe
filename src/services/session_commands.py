"""
Session Command Surface

Named commands accepted by SessionOrchestrator.call_command(), their result
codes, and the user-visible messages published on the event bus.
"""

from dataclasses import dataclass
from enum import Enum


class SessionCommand(str, Enum):
    """Custom session commands (values are the wire names)"""
    ENABLE_SHUFFLE_MODE = "CMD_ENABLE_SHUFFLE_MODE"
    DISABLE_SHUFFLE_MODE = "CMD_DISABLE_SHUFFLE_MODE"
    SAVE_QUEUE_ITEMS = "CMD_SAVE_QUEUE_ITEMS"
    DELETE_MEDIA_ITEMS = "CMD_DELETE_MEDIA_ITEMS"
    CLEAR_QUEUE_ITEMS = "CMD_CLEAR_QUEUE_ITEMS"
    MOVE_QUEUE_ITEM = "CMD_MOVE_QUEUE_ITEM"
    REMOVE_QUEUE_ITEM = "CMD_REMOVE_QUEUE_ITEM"
    QUEUE_VIDEO_TO_NEW_PLAYLIST = "CMD_QUEUE_VIDEO_TO_NEW_PLAYLIST"
    QUEUE_VIDEO_NEXT = "CMD_QUEUE_VIDEO_NEXT"
    QUEUE_VIDEO_LAST = "CMD_QUEUE_VIDEO_LAST"
    SAVE_VIDEO_TO_PLAYLIST = "CMD_SAVE_VIDEO_TO_PLAYLIST"
    LOAD_PLAYLIST = "CMD_LOAD_PLAYLIST"
    GENERATE_NEW_PLAYLIST = "CMD_GENERATE_NEW_PLAYLIST"
    CONTINUE_GENERATE_PLAYLIST = "CMD_CONTINUE_GENERATE_PLAYLIST"
    GENERATE_RECOMMENDED_PLAYLIST = "CMD_GENERATE_RECOMMENDED_PLAYLIST"
    CONTINUE_GENERATE_RECOMMENDED_PLAYLIST = "CMD_CONTINUE_GENERATE_RECOMMENDED_PLAYLIST"
    GENERATE_HISTORICAL_PLAYLIST = "CMD_GENERATE_HISTORICAL_PLAYLIST"


class CommandResultCode(Enum):
    OK = "ok"
    CANCELED = "canceled"


@dataclass(frozen=True)
class CommandResult:
    """Result of a command, echoing the command for correlation"""
    command: SessionCommand
    code: CommandResultCode

    @property
    def ok(self) -> bool:
        return self.code == CommandResultCode.OK

    @classmethod
    def success(cls, command: SessionCommand) -> 'CommandResult':
        return cls(command, CommandResultCode.OK)

    @classmethod
    def canceled(cls, command: SessionCommand) -> 'CommandResult':
        return cls(command, CommandResultCode.CANCELED)


class UserMessage(Enum):
    """Messages for the toast side channel (EventType.USER_MESSAGE)"""
    NO_NETWORK = "No network connection"
    ERROR_PLAYING_TRACK = "Error playing track"
    TRACK_COULD_NOT_BE_PLAYED = "Track could not be played"
    ERROR_GENERATING_PLAYLIST = "Error generating playlist"
    ERROR_LOADING_PLAYLIST = "Error loading playlist"


# Queue titles set by the session
RECOMMENDED_MIX_TITLE = "Recommended Mix"
LISTEN_AGAIN_MIX_TITLE = "Listen Again Mix"
