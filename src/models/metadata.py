"""
Track metadata data models
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from models.queue_item import QueueItem
from models.video import Thumbnails, extract_video_id

RGB = Tuple[int, int, int]


def rgb_to_hex(color: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*color)


def hex_to_rgb(value: str) -> RGB:
    value = value.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


@dataclass(frozen=True)
class Gradient:
    """Two-color background derived from the artwork"""
    bottom: RGB
    top: RGB
    orientation: str = "TlBr"

    def to_data(self) -> str:
        """Serialize as "bottom,top,orientation" """
        return f"{rgb_to_hex(self.bottom)},{rgb_to_hex(self.top)},{self.orientation}"

    @classmethod
    def from_data(cls, data: str) -> 'Gradient':
        bottom, top, orientation = data.split(",")
        return cls(bottom=hex_to_rgb(bottom), top=hex_to_rgb(top), orientation=orientation)


@dataclass(frozen=True)
class TrackMetadata:
    """
    Rich metadata for the current session track.

    album_art_url_backup is used when the standard-resolution artwork does not exist.
    The image and gradient fields are filled once the downloads succeed.
    """
    media_id: str
    title: str = ""
    artist: str = ""
    duration_ms: int = 0
    media_url: str = ""
    icon_url: str = ""
    album_art_url: str = ""
    album_art_url_backup: str = ""
    icon: Optional[bytes] = None
    album_art: Optional[bytes] = None
    gradient: Optional[Gradient] = None

    @property
    def has_artwork(self) -> bool:
        return self.album_art is not None

    def with_artwork(self, icon: bytes, album_art: bytes, gradient: Gradient) -> 'TrackMetadata':
        return replace(self, icon=icon, album_art=album_art, gradient=gradient)

    @classmethod
    def from_queue_item(cls, item: QueueItem) -> 'TrackMetadata':
        thumbnails = Thumbnails(extract_video_id(item.source_url))
        return cls(
            media_id=item.media_id,
            title=item.title,
            artist=item.artist,
            duration_ms=item.duration_ms,
            media_url=item.source_url,
            icon_url=thumbnails.medium_res_url,
            album_art_url=thumbnails.standard_res_url,
            album_art_url_backup=thumbnails.high_res_url,
        )
