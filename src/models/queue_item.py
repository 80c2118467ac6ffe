"""
Queue item data models
"""

from dataclasses import dataclass

from models.track import Track, format_duration


@dataclass(frozen=True)
class MediaItem:
    """
    Browsable/playable entry of the saved-content tree.

    For a playlist entry the subtitle holds the track count and media_url is empty.
    """
    media_id: str
    title: str = ""
    subtitle: str = ""
    duration_ms: int = 0
    media_url: str = ""
    icon_url: str = ""

    def to_track(self) -> Track:
        return Track(
            title=self.title,
            artist=self.subtitle,
            duration_ms=self.duration_ms,
            url=self.media_url,
        )


@dataclass(frozen=True)
class QueueItem:
    """
    A playable unit in the play queue.

    queue_id is stable across moves and shuffles and unique within one queue;
    the item's array position is not.
    """
    media_id: str
    title: str = ""
    artist: str = ""
    duration_ms: int = 0
    source_url: str = ""
    artwork_url: str = ""
    queue_id: int = 0

    @property
    def duration_str(self) -> str:
        return format_duration(self.duration_ms)

    def to_media_item(self) -> MediaItem:
        return MediaItem(
            media_id=self.media_id,
            title=self.title,
            subtitle=self.artist,
            duration_ms=self.duration_ms,
            media_url=self.source_url,
            icon_url=self.artwork_url,
        )

    def to_track(self) -> Track:
        return Track(
            title=self.title,
            artist=self.artist,
            duration_ms=self.duration_ms,
            url=self.source_url,
        )

    @classmethod
    def from_media_item(cls, item: MediaItem, queue_id: int) -> 'QueueItem':
        return cls(
            media_id=item.media_id,
            title=item.title,
            artist=item.subtitle,
            duration_ms=item.duration_ms,
            source_url=item.media_url,
            artwork_url=item.icon_url,
            queue_id=queue_id,
        )
