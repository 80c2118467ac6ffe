# -*- coding: utf-8 -*-
"""
Ports Interfaces Package

Defines the interfaces between the session engine and external infrastructure
(audio engine, video platform, image downloads, persistence).

Design Principles:
- Use Protocol to define interfaces, supporting structural subtyping.
- Service layer depends on these interfaces rather than concrete implementations.
- Facilitates replacing with fake/mock during testing.
"""

from core.ports.audio import (
    AudioEngineError,
    FocusChange,
    IAudioEngine,
    IAudioFocus,
    IResourceLock,
    NetworkPlaybackError,
)
from core.ports.images import IImageLoader, ImageDownloadError, ImageUnavailableError
from core.ports.store import IStore, StoreError
from core.ports.video_source import IVideoSource, VideoSourceError

__all__ = [
    "AudioEngineError",
    "FocusChange",
    "IAudioEngine",
    "IAudioFocus",
    "IResourceLock",
    "NetworkPlaybackError",
    "IImageLoader",
    "ImageDownloadError",
    "ImageUnavailableError",
    "IStore",
    "StoreError",
    "IVideoSource",
    "VideoSourceError",
]
