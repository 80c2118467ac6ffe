"""
Video platform data models

Records returned by the external paginated video source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

VIDEO_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/{name}.jpg"

_VIDEO_ID_PATTERN = re.compile(r"v=(.+)", re.IGNORECASE)


def extract_video_id(url: str) -> str:
    """Extract the video id from a watch URL ("" when the URL has none)"""
    match = _VIDEO_ID_PATTERN.search(url or "")
    return match.group(1) if match else ""


def video_url(video_id: str) -> str:
    return VIDEO_URL_TEMPLATE.format(video_id=video_id)


@dataclass(frozen=True)
class Thumbnails:
    """Thumbnail URLs derived from a video id"""
    video_id: str

    def _url(self, name: str) -> str:
        return THUMBNAIL_URL_TEMPLATE.format(video_id=self.video_id, name=name)

    @property
    def low_res_url(self) -> str:
        return self._url("default")

    @property
    def medium_res_url(self) -> str:
        return self._url("mqdefault")

    @property
    def high_res_url(self) -> str:
        return self._url("hqdefault")

    @property
    def standard_res_url(self) -> str:
        return self._url("sddefault")


@dataclass(frozen=True)
class Video:
    """A playable video on the platform"""
    video_id: str
    title: str = ""
    author: str = ""
    duration_ms: int = 0

    @property
    def url(self) -> str:
        return video_url(self.video_id)

    @property
    def thumbnails(self) -> Thumbnails:
        return Thumbnails(self.video_id)


@dataclass(frozen=True)
class ContentItem:
    """
    One entry of a paginated listing.

    Attributes:
        video: The listed video (None for non-video entries such as channels)
        continuation_token: Token to request the page after this item's page
        visitor_data: Session data that must accompany the continuation token
        data: Extra listing fields (e.g. "playlist_title")
    """
    video: Optional[Video]
    continuation_token: Optional[str] = None
    visitor_data: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamInfo:
    """One encoding of a video"""
    url: str
    mime_type: str
    bitrate: int = 0

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")
