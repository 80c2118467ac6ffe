"""
Data Models Module
"""

from .track import Track, format_duration
from .video import ContentItem, StreamInfo, Thumbnails, Video, extract_video_id, video_url
from .queue_item import MediaItem, QueueItem
from .playlist import PersistedPlaylist
from .playback_state import PlaybackAction, PlaybackState, PlaybackStateCode
from .metadata import Gradient, TrackMetadata
from .recommendation import Recommendations, SeedTrackData
from .settings import PlaylistSource, SearchPreference, StreamQuality

__all__ = [
    'Track', 'format_duration',
    'ContentItem', 'StreamInfo', 'Thumbnails', 'Video', 'extract_video_id', 'video_url',
    'MediaItem', 'QueueItem',
    'PersistedPlaylist',
    'PlaybackAction', 'PlaybackState', 'PlaybackStateCode',
    'Gradient', 'TrackMetadata',
    'Recommendations', 'SeedTrackData',
    'PlaylistSource', 'SearchPreference', 'StreamQuality',
]
