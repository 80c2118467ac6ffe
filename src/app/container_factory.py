# -*- coding: utf-8 -*-
"""
Container Factory Module

Responsible for creating and assembling all session engine dependencies.

This is the **only** instance creation point (Composition Root) for the engine.
All service instance creation should be done here, not within individual services.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from app.container import AppContainer
    from core.network_status import NetworkMonitor
    from core.ports.audio import IAudioFocus, IResourceLock
    from core.ports.images import IImageLoader
    from core.ports.store import IStore
    from core.ports.video_source import IVideoSource
    from services.playback_controller import EngineFactory

logger = logging.getLogger(__name__)


class AppContainerFactory:
    """Application Container Factory

    Creates and assembles all session engine dependencies. The audio engine and
    the video platform client are supplied by the embedding application.

    Usage Example:
        # Application
        container = AppContainerFactory.create(engine_factory, video_source)

        # In tests (in-memory store, no user files)
        container = AppContainerFactory.create_for_testing(FakeAudioEngine, FakeVideoSource())
    """

    @staticmethod
    def create(
        engine_factory: "EngineFactory",
        video_source: "IVideoSource",
        config_path: str = "config/default_config.yaml",
        image_loader: Optional["IImageLoader"] = None,
        audio_focus: Optional["IAudioFocus"] = None,
        wake_lock: Optional["IResourceLock"] = None,
        network_lock: Optional["IResourceLock"] = None,
        network: Optional["NetworkMonitor"] = None,
        store: Optional["IStore"] = None,
    ) -> "AppContainer":
        """Create Application Container

        Creates all service instances in dependency order and assembles them into the container.

        Args:
            engine_factory: Creates a fresh audio engine for each playback session
            video_source: Paginated video platform client
            config_path: Configuration file path
            image_loader: Artwork downloader (defaults to the urllib loader)
            audio_focus: Platform audio focus (defaults to always granted)
            wake_lock: Platform wake lock
            network_lock: Platform network lock
            network: Connectivity monitor driven by the platform
            store: Persistence (defaults to JSON files in storage.data_dir)

        Returns:
            A configured AppContainer instance
        """
        from services.config_service import ConfigService
        from services.json_store import JsonFileStore

        logger.info("Creating application container...")

        # === 1. Infrastructure Layer ===
        config = ConfigService(config_path)
        if store is None:
            data_dir = config.get("storage.data_dir") or ConfigService.get_user_data_dir()
            store = JsonFileStore(Path(data_dir))
            logger.info("Using JSON store in %s", data_dir)

        container = AppContainerFactory._assemble(
            config=config,
            store=store,
            engine_factory=engine_factory,
            video_source=video_source,
            image_loader=image_loader,
            audio_focus=audio_focus,
            wake_lock=wake_lock,
            network_lock=network_lock,
            network=network,
        )

        logger.info("Application container creation complete")
        return container

    @staticmethod
    def create_for_testing(
        engine_factory: "EngineFactory",
        video_source: "IVideoSource",
        config_path: Optional[str] = None,
        image_loader: Optional["IImageLoader"] = None,
        network: Optional["NetworkMonitor"] = None,
        initial_documents: Optional[Dict[str, Any]] = None,
    ) -> "AppContainer":
        """Create a container for testing

        Uses an in-memory store, never touching the user's data directory.

        Args:
            engine_factory: Fake audio engine factory
            video_source: Fake video source
            config_path: Configuration file path (None: built-in defaults via the current singleton)
            image_loader: Fake image loader
            network: Connectivity monitor the test drives
            initial_documents: Optional {"content", "settings", "recommendations"} seed data

        Returns:
            A configured test AppContainer instance
        """
        from services.config_service import ConfigService
        from services.json_store import MemoryStore

        logger.info("Creating test application container...")

        documents = initial_documents or {}
        store = MemoryStore(
            content=documents.get("content"),
            settings=documents.get("settings"),
            recommendations=documents.get("recommendations"),
        )

        container = AppContainerFactory._assemble(
            config=ConfigService(config_path),
            store=store,
            engine_factory=engine_factory,
            video_source=video_source,
            image_loader=image_loader,
            network=network,
        )

        logger.info("Test application container creation complete")
        return container

    @staticmethod
    def _assemble(
        config: Any,
        store: "IStore",
        engine_factory: "EngineFactory",
        video_source: "IVideoSource",
        image_loader: Optional["IImageLoader"] = None,
        audio_focus: Optional["IAudioFocus"] = None,
        wake_lock: Optional["IResourceLock"] = None,
        network_lock: Optional["IResourceLock"] = None,
        network: Optional["NetworkMonitor"] = None,
    ) -> "AppContainer":
        from app.container import AppContainer
        from core.event_bus import EventBus
        from core.network_status import NetworkMonitor
        from services.content_service import ContentService
        from services.image_loader import UrllibImageLoader
        from services.playback_controller import PlaybackController
        from services.playlist_generator import PlaylistGenerator
        from services.recommendation_service import RecommendationService
        from services.session_orchestrator import SessionOrchestrator
        from services.settings_service import SettingsService
        from services.stream_resolver import StreamResolver

        # === 2. Event Bus ===
        event_bus = EventBus()
        network = network or NetworkMonitor()

        # === 3. Persistence-backed services ===
        settings = SettingsService(store, event_bus=event_bus)
        settings.initialize()
        content = ContentService(store, event_bus=event_bus)
        history = RecommendationService(store, config=config)

        # === 4. Playback ===
        image_loader = image_loader or UrllibImageLoader(config=config)
        controller = PlaybackController(
            engine_factory,
            audio_focus=audio_focus,
            wake_lock=wake_lock,
            network_lock=network_lock,
            config=config,
        )
        resolver = StreamResolver(video_source, image_loader, settings, config=config)
        generator = PlaylistGenerator(
            video_source, history, settings, config=config, event_bus=event_bus
        )

        # === 5. Session ===
        orchestrator = SessionOrchestrator(
            controller=controller,
            resolver=resolver,
            generator=generator,
            content=content,
            history=history,
            network=network,
            event_bus=event_bus,
            config=config,
        )

        # === 6. Assemble Container ===
        return AppContainer(
            config=config,
            event_bus=event_bus,
            store=store,
            network=network,
            orchestrator=orchestrator,
            _settings=settings,
            _content=content,
            _history=history,
            _controller=controller,
            _resolver=resolver,
            _generator=generator,
            _image_loader=image_loader,
        )
