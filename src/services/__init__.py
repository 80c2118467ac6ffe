"""
Service Layer Module
"""

from .config_service import ConfigService
from .json_store import JsonFileStore, MemoryStore
from .settings_service import SettingsService
from .content_service import ContentService
from .recommendation_service import RecommendationService
from .music_queue import MusicQueue
from .image_loader import UrllibImageLoader
from .stream_resolver import StreamResolver, TrackResolution, select_stream_url
from .playback_controller import PlaybackController
from .playlist_generator import PlaylistGenerator, select_item_from_list
from .session_commands import CommandResult, CommandResultCode, SessionCommand, UserMessage
from .session_orchestrator import SessionOrchestrator

__all__ = [
    'ConfigService',
    'JsonFileStore',
    'MemoryStore',
    'SettingsService',
    'ContentService',
    'RecommendationService',
    'MusicQueue',
    'UrllibImageLoader',
    'StreamResolver',
    'TrackResolution',
    'select_stream_url',
    'PlaybackController',
    'PlaylistGenerator',
    'select_item_from_list',
    'CommandResult',
    'CommandResultCode',
    'SessionCommand',
    'UserMessage',
    'SessionOrchestrator',
]
