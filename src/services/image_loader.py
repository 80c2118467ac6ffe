"""
HTTP Image Loader

Downloads artwork with urllib on worker threads so the event loop stays free.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from core.ports.images import ImageDownloadError, ImageUnavailableError
from services.config_service import ConfigService

logger = logging.getLogger(__name__)

USER_AGENT = "python-stream-player/1.0"


class UrllibImageLoader:
    """
    IImageLoader over urllib.

    cancel_pending() cancels every download that is still being awaited; the
    worker thread finishes its request in the background and the bytes are dropped.
    """

    def __init__(self, timeout_seconds: Optional[float] = None, config: Optional[ConfigService] = None):
        config = config or ConfigService()
        self._timeout = float(
            timeout_seconds if timeout_seconds is not None
            else config.get("metadata.image_timeout_seconds", 15.0)
        )
        self._pending: Set[asyncio.Task] = set()

    async def load(self, url: str) -> bytes:
        task = asyncio.ensure_future(asyncio.to_thread(self._fetch, url))
        self._pending.add(task)
        try:
            return await task
        finally:
            self._pending.discard(task)

    def cancel_pending(self) -> None:
        pending = list(self._pending)
        self._pending.clear()
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelled %d image downloads", len(pending))

    def _fetch(self, url: str) -> bytes:
        if not url:
            raise ImageUnavailableError("No image URL")

        req = Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urlopen(req, timeout=self._timeout) as resp:
                data = resp.read()
        except HTTPError as e:
            raise ImageDownloadError(url, e.code) from e
        except (URLError, OSError) as e:
            raise ImageUnavailableError(f"Image request failed for {url}: {e}") from e

        if not data:
            raise ImageUnavailableError(f"Empty image response for {url}")
        return data
