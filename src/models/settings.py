"""
User preference enumerations
"""

from enum import Enum


class StreamQuality(Enum):
    """Audio stream tier (by bitrate)"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlaylistSource(Enum):
    """Where seed-based playlists come from"""
    YOUTUBE = "youtube"
    YOUTUBE_MUSIC = "youtube_music"


class SearchPreference(Enum):
    GENERAL = "general"
    SONGS = "songs"
    ALBUMS = "albums"
    FEATURED_PLAYLISTS = "featured_playlists"
    COMMUNITY_PLAYLISTS = "community_playlists"
