"""
Media id scheme

Hierarchical ids for the saved-content tree:

    __ROOT__                               root
    __ROOT__/<playlist name>               playlist
    __ROOT__/<playlist name>/<id><suffix>  track

The depth (number of separators) tells the three apart. Track ids end with a random
suffix so the same video can appear more than once in a playlist.
"""

import uuid
from typing import Optional

from models.video import extract_video_id

ROOT_ID = "__ROOT__"
DEFAULT_PLAYLIST_NAME = "[Unsaved Playlist]"
SEPARATOR = "/"


def create_playlist_media_id(playlist_name: str) -> str:
    if SEPARATOR in playlist_name:
        raise ValueError(f"Playlist name may not contain '{SEPARATOR}': {playlist_name!r}")
    return ROOT_ID + SEPARATOR + playlist_name


def create_track_media_id(playlist_name: Optional[str], track_url: str) -> str:
    name = playlist_name if playlist_name is not None else DEFAULT_PLAYLIST_NAME
    suffix = uuid.uuid4().hex[:8]
    return create_playlist_media_id(name) + SEPARATOR + extract_video_id(track_url) + suffix


def is_playlist(media_id: str) -> bool:
    return media_id.count(SEPARATOR) == 1


def is_track(media_id: str) -> bool:
    return media_id.count(SEPARATOR) == 2


def get_playlist_name(media_id: str) -> Optional[str]:
    """Playlist name part of a playlist or track id, None for anything else"""
    if is_playlist(media_id) or is_track(media_id):
        return media_id.split(SEPARATOR)[1]
    return None
