"""
Stream Resolver Module

Resolves, for one queue item, the playable audio stream URL and the rich
track metadata (artwork bytes and gradient). Both run concurrently under the
same cancellation token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from core.cancellation import CancellationToken, OperationCancelledError
from core.ports.images import IImageLoader, ImageDownloadError, ImageUnavailableError
from core.ports.video_source import IVideoSource
from models.metadata import TrackMetadata
from models.queue_item import QueueItem
from models.settings import StreamQuality
from models.video import StreamInfo, extract_video_id
from services.artwork_palette import derive_gradient
from services.config_service import ConfigService
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def select_stream_url(streams: List[StreamInfo], quality: StreamQuality) -> Optional[str]:
    """
    Pick an audio stream for a quality tier.

    Audio streams are ordered by bitrate, ascending. LOW takes the first, MEDIUM the
    second, HIGH the last. A missing tier falls back to the first stream.
    """
    audio = sorted((s for s in streams if s.is_audio), key=lambda s: s.bitrate)
    if not audio:
        return None

    if quality == StreamQuality.LOW:
        return audio[0].url
    if quality == StreamQuality.MEDIUM and len(audio) >= 2:
        return audio[1].url
    if quality == StreamQuality.HIGH:
        return audio[-1].url
    return audio[0].url


def _retrieve_exception(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class TrackResolution:
    """
    In-flight resolution of one queue item.

    Usage example:
        resolution = resolver.resolve(item, scope.token)
        metadata = await resolution.metadata
        stream_url = await resolution.stream_url
    """

    def __init__(
        self,
        item: QueueItem,
        token: CancellationToken,
        stream_url: "asyncio.Task[Optional[str]]",
        metadata: "asyncio.Task[Optional[TrackMetadata]]",
    ):
        self.item = item
        self.token = token
        self.stream_url = stream_url
        self.metadata = metadata
        for task in (stream_url, metadata):
            task.add_done_callback(_retrieve_exception)

    def matches(self, item: QueueItem) -> bool:
        return self.item.media_id == item.media_id

    @property
    def reusable(self) -> bool:
        """Still live: token not cancelled and no part failed"""
        if self.token.cancelled:
            return False
        for task in (self.stream_url, self.metadata):
            if task.done() and (task.cancelled() or task.exception() is not None):
                return False
        if self.stream_url.done() and self.stream_url.result() is None:
            return False
        return True

    def cancel(self) -> None:
        for task in (self.stream_url, self.metadata):
            if not task.done():
                task.cancel()


class StreamResolver:
    """
    Stream URL and metadata resolution.

    Cancellation of the token surfaces as OperationCancelledError from both
    operations. Other failures are absorbed: the stream URL becomes None and
    the metadata becomes None.
    """

    def __init__(
        self,
        video_source: IVideoSource,
        image_loader: IImageLoader,
        settings: SettingsService,
        config: Optional[ConfigService] = None,
    ):
        self._video_source = video_source
        self._image_loader = image_loader
        self._settings = settings
        self._config = config or ConfigService()

    def resolve(self, item: QueueItem, token: CancellationToken) -> TrackResolution:
        """Start both operations for an item (requires a running event loop)"""
        logger.debug("Resolving %s", item.media_id)
        return TrackResolution(
            item,
            token,
            asyncio.ensure_future(self.resolve_stream_url(item, token)),
            asyncio.ensure_future(self.resolve_metadata(item, token)),
        )

    async def resolve_stream_url(self, item: QueueItem, token: CancellationToken) -> Optional[str]:
        token.raise_if_cancelled()

        video_id = extract_video_id(item.source_url)
        try:
            streams = await token.wait_or_cancel(self._video_source.get_stream_info(video_id))
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.warning("Stream lookup failed for %s: %s", video_id, e)
            return None

        url = select_stream_url(streams, self._settings.stream_quality)
        if url is None:
            logger.warning("No audio stream available for %s", video_id)
        return url

    async def resolve_metadata(self, item: QueueItem, token: CancellationToken) -> Optional[TrackMetadata]:
        metadata = TrackMetadata.from_queue_item(item)
        attempts = int(self._config.get("metadata.image_attempts", 3))
        delay = int(self._config.get("metadata.image_retry_delay_ms", 100)) / 1000.0
        fallback_color = self._config.get("metadata.default_gradient_color", "#121212")

        for attempt in range(1, attempts + 1):
            try:
                icon = await token.wait_or_cancel(self._image_loader.load(metadata.icon_url))
                try:
                    album_art = await token.wait_or_cancel(self._image_loader.load(metadata.album_art_url))
                except ImageDownloadError:
                    album_art = await token.wait_or_cancel(
                        self._image_loader.load(metadata.album_art_url_backup)
                    )

                gradient = await token.wait_or_cancel(
                    asyncio.to_thread(derive_gradient, album_art, fallback_color)
                )
                return metadata.with_artwork(icon, album_art, gradient)
            except OperationCancelledError:
                # Stop sibling downloads before propagating
                self._image_loader.cancel_pending()
                raise
            except ImageDownloadError as e:
                logger.warning("Artwork missing for %s: %s", item.media_id, e)
                return None
            except ImageUnavailableError as e:
                logger.warning(
                    "Artwork download failed for %s (attempt %d/%d): %s",
                    item.media_id, attempt, attempts, e,
                )

            if attempt < attempts:
                await token.wait_or_cancel(asyncio.sleep(delay))

        return None
