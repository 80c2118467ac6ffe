"""
Content Service Module

Saved playlists (the browsable content tree) and conversions between videos,
media items and queue items.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from core.event_bus import EventBus, EventType
from core.ports.store import IStore
from models import media_id as ids
from models.playlist import PersistedPlaylist
from models.queue_item import MediaItem, QueueItem
from models.track import Track
from models.video import Thumbnails, Video, extract_video_id

logger = logging.getLogger(__name__)


def video_to_media_item(video: Video, playlist_name: Optional[str] = None) -> MediaItem:
    return MediaItem(
        media_id=ids.create_track_media_id(playlist_name, video.url),
        title=video.title,
        subtitle=video.author,
        duration_ms=video.duration_ms,
        media_url=video.url,
        icon_url=video.thumbnails.medium_res_url,
    )


def video_to_queue_item(video: Video, queue_id: int) -> QueueItem:
    return QueueItem.from_media_item(video_to_media_item(video), queue_id)


def track_to_media_item(track: Track, playlist_name: Optional[str] = None) -> MediaItem:
    return MediaItem(
        media_id=ids.create_track_media_id(playlist_name, track.url),
        title=track.title,
        subtitle=track.artist,
        duration_ms=track.duration_ms,
        media_url=track.url,
        icon_url=Thumbnails(track.video_id).medium_res_url,
    )


def track_to_video(track: Track) -> Video:
    return Video(
        video_id=track.video_id,
        title=track.title,
        author=track.artist,
        duration_ms=track.duration_ms,
    )


def media_items_to_queue(items: Iterable[MediaItem], first_queue_id: int = 0) -> List[QueueItem]:
    """Number queue ids consecutively from first_queue_id"""
    return [QueueItem.from_media_item(item, first_queue_id + i) for i, item in enumerate(items)]


def queue_to_media_items(queue_items: Iterable[QueueItem]) -> List[MediaItem]:
    return [item.to_media_item() for item in queue_items]


class ContentService:
    """
    Saved Playlist Service

    Playlists are keyed by exact name and kept sorted by name in the store.

    Usage example:
        content = ContentService(store)
        playlist_id = ids.create_playlist_media_id("Morning")
        content.save_media_items(playlist_id, queue_to_media_items(queue.items))
        tracks = content.get_media_items(playlist_id)
    """

    def __init__(self, store: IStore, event_bus: Optional[EventBus] = None):
        self._store = store
        self._event_bus = event_bus or EventBus()

    def get_playlists(self) -> List[PersistedPlaylist]:
        content = self._store.read_content()
        return [
            PersistedPlaylist.from_dict(p)
            for p in content.get("playlists", [])
            if isinstance(p, dict)
        ]

    def get_playlist(self, name: str) -> Optional[PersistedPlaylist]:
        for playlist in self.get_playlists():
            if playlist.name == name:
                return playlist
        return None

    def playlist_exists(self, media_id: str) -> bool:
        """Whether media_id is a playlist id naming a saved playlist"""
        if not ids.is_playlist(media_id):
            return False
        return self.get_playlist(ids.get_playlist_name(media_id)) is not None

    def get_media_items(self, media_id: str) -> List[MediaItem]:
        """
        Children of a node in the content tree.

        The root lists one entry per playlist (subtitle "<n> Tracks", first track's
        thumbnail as icon). A playlist lists its tracks with fresh track ids.
        Anything else has no children.
        """
        if media_id == ids.ROOT_ID:
            items = []
            for playlist in self.get_playlists():
                icon_url = ""
                if playlist.tracks:
                    icon_url = Thumbnails(playlist.tracks[0].video_id).medium_res_url
                items.append(MediaItem(
                    media_id=ids.create_playlist_media_id(playlist.name),
                    title=playlist.name,
                    subtitle=f"{playlist.track_count} Tracks",
                    icon_url=icon_url,
                ))
            return items

        if ids.is_playlist(media_id):
            playlist = self.get_playlist(ids.get_playlist_name(media_id))
            if playlist is None:
                return []
            return [track_to_media_item(track, playlist.name) for track in playlist.tracks]

        return []

    def save_media_items(self, playlist_media_id: str, items: List[MediaItem]) -> List[MediaItem]:
        """
        Create or overwrite a playlist.

        Args:
            playlist_media_id: Target playlist id
            items: Tracks in order (an empty list saves nothing)

        Returns:
            The items re-keyed under the target playlist

        Raises:
            ValueError: playlist_media_id is not a playlist id
        """
        if not ids.is_playlist(playlist_media_id):
            raise ValueError(f"Not a playlist media id: {playlist_media_id!r}")
        if not items:
            return []

        name = ids.get_playlist_name(playlist_media_id)
        rekeyed = [self._rekey(item, playlist_media_id) for item in items]

        content = self._store.read_content()
        playlists = [
            p for p in content.get("playlists", [])
            if isinstance(p, dict) and p.get("name") != name
        ]
        playlists.append(PersistedPlaylist(name=name, tracks=[i.to_track() for i in rekeyed]).to_dict())
        playlists.sort(key=lambda p: p.get("name", ""))
        content["playlists"] = playlists
        self._store.write_content(content)

        logger.info("Saved playlist '%s' (%d tracks)", name, len(rekeyed))
        self._event_bus.publish_sync(EventType.PLAYLIST_SAVED, name)
        return rekeyed

    def save_media_item(self, playlist_media_id: str, item: MediaItem) -> bool:
        """Append a track to an existing playlist; False when the playlist does not exist"""
        if not self.playlist_exists(playlist_media_id):
            return False

        name = ids.get_playlist_name(playlist_media_id)
        content = self._store.read_content()
        for playlist in content.get("playlists", []):
            if isinstance(playlist, dict) and playlist.get("name") == name:
                playlist.setdefault("tracks", []).append(item.to_track().to_dict())
                break
        self._store.write_content(content)

        logger.debug("Appended '%s' to playlist '%s'", item.title, name)
        self._event_bus.publish_sync(EventType.PLAYLIST_SAVED, name)
        return True

    def delete_media_items(self, playlist_media_id: str) -> bool:
        """Delete a saved playlist; False when it does not exist"""
        if not self.playlist_exists(playlist_media_id):
            return False

        name = ids.get_playlist_name(playlist_media_id)
        content = self._store.read_content()
        content["playlists"] = [
            p for p in content.get("playlists", [])
            if not (isinstance(p, dict) and p.get("name") == name)
        ]
        self._store.write_content(content)
        logger.info("Deleted playlist '%s'", name)
        return True

    def clear_content(self) -> None:
        for item in self.get_media_items(ids.ROOT_ID):
            self.delete_media_items(item.media_id)

    def export_json(self) -> Dict[str, Any]:
        return self._store.read_content()

    def import_json(self, content: Dict[str, Any]) -> None:
        self._store.write_content(content)

    @staticmethod
    def _rekey(item: MediaItem, playlist_media_id: str) -> MediaItem:
        if ids.is_track(item.media_id):
            track_part = item.media_id.split(ids.SEPARATOR)[2]
        else:
            track_part = extract_video_id(item.media_url)
        return MediaItem(
            media_id=playlist_media_id + ids.SEPARATOR + track_part,
            title=item.title,
            subtitle=item.subtitle,
            duration_ms=item.duration_ms,
            media_url=item.media_url,
            icon_url=item.icon_url,
        )
