# -*- coding: utf-8 -*-
"""
Image Loader Port Interface

Downloads artwork for track metadata.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class ImageDownloadError(RuntimeError):
    """The server answered with an error status (the image does not exist)"""

    def __init__(self, url: str, status: int):
        super().__init__(f"HTTP {status} for {url}")
        self.url = url
        self.status = status


class ImageUnavailableError(RuntimeError):
    """The download produced no usable image (transient, worth retrying)"""
    pass


@runtime_checkable
class IImageLoader(Protocol):
    """Image Loader Interface"""

    async def load(self, url: str) -> bytes:
        """Download an image

        Args:
            url: Image URL

        Returns:
            Raw image bytes

        Raises:
            ImageDownloadError: HTTP error status
            ImageUnavailableError: Empty or unreadable response
        """
        ...

    def cancel_pending(self) -> None:
        """Cancel every in-flight download"""
        ...
