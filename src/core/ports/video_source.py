# -*- coding: utf-8 -*-
"""
Video Source Port Interface

Defines the paginated, asynchronous interface to the external video platform.
Every listing yields ContentItem records that carry the continuation token and
visitor data needed to resume from the following page.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from models.video import ContentItem, StreamInfo


class VideoSourceError(RuntimeError):
    """Video platform request failed"""
    pass


@runtime_checkable
class IVideoSource(Protocol):
    """Paginated Video Source Interface

    Each listing method returns one page as an async iterator. Passing back the
    continuation token and visitor data of the last item resumes at the next page.
    Cancellation is handled by the caller (see CancellationToken.iterate).
    """

    def search(
        self,
        query: str,
        continuation_token: Optional[str] = None,
    ) -> AsyncIterator["ContentItem"]:
        """Search videos

        Args:
            query: Search text (a video id finds that video first)
            continuation_token: Token of the previous page, None for the first page
        """
        ...

    def get_related_videos(
        self,
        video_id: str,
        continuation_token: Optional[str] = None,
        visitor_data: Optional[str] = None,
    ) -> AsyncIterator["ContentItem"]:
        """List videos related to a video (the seed itself is not included)"""
        ...

    def get_watch_playlist(
        self,
        video_id: str,
        continuation_token: Optional[str] = None,
        visitor_data: Optional[str] = None,
    ) -> AsyncIterator["ContentItem"]:
        """List the "watch next" playlist of a video (first item is the seed)"""
        ...

    def get_playlist_videos(
        self,
        playlist_id: str,
        continuation_token: Optional[str] = None,
        visitor_data: Optional[str] = None,
    ) -> AsyncIterator["ContentItem"]:
        """List the videos of a platform playlist

        Items carry the playlist title in ContentItem.data["playlist_title"].
        """
        ...

    async def get_stream_info(self, video_id: str) -> List["StreamInfo"]:
        """List the available encodings of a video

        Raises:
            VideoSourceError: When the request fails
        """
        ...
