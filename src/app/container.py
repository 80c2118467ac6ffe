# -*- coding: utf-8 -*-
"""
Application Container Module

Defines the dependency container for the session engine, holding all service instances centrally.

Design Principles:
- Only the embedding application (UI shell, CLI, tests) holds the complete AppContainer
- Presentation code talks to the orchestrator, not to the services behind it
- Prohibited to pass AppContainer to sub-components
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.protocols import IConfigService, IEventBus, IStore
    from core.network_status import NetworkMonitor
    from services.session_orchestrator import SessionOrchestrator


@dataclass
class AppContainer:
    """Application Dependency Container

    Holds all service instances centrally, serving as the composition root for dependency injection.

    Usage Example:
        container = AppContainerFactory.create(engine_factory, video_source)
        orchestrator = container.orchestrator

        await orchestrator.call_command(SessionCommand.GENERATE_HISTORICAL_PLAYLIST)
        ...
        container.cleanup()
    """

    # === Public Attributes ===
    config: "IConfigService"
    event_bus: "IEventBus"
    store: "IStore"
    network: "NetworkMonitor"
    orchestrator: "SessionOrchestrator"

    # === Internal Service References ===
    # Use field(repr=False) to avoid leaking in debug output
    _settings: Any = field(default=None, repr=False)
    _content: Any = field(default=None, repr=False)
    _history: Any = field(default=None, repr=False)
    _controller: Any = field(default=None, repr=False)
    _resolver: Any = field(default=None, repr=False)
    _generator: Any = field(default=None, repr=False)
    _image_loader: Any = field(default=None, repr=False)

    @property
    def settings(self) -> Any:
        return self._settings

    @property
    def content(self) -> Any:
        return self._content

    @property
    def history(self) -> Any:
        return self._history

    @property
    def generator(self) -> Any:
        return self._generator

    def cleanup(self) -> None:
        """Clean up all resources

        Should be called when the application exits.
        """
        # Stop the session (releases the audio engine)
        if self.orchestrator and hasattr(self.orchestrator, 'shutdown'):
            self.orchestrator.shutdown()

        # Drop pending artwork downloads
        if self._image_loader and hasattr(self._image_loader, 'cancel_pending'):
            self._image_loader.cancel_pending()

        # Shutdown event bus
        if self.event_bus and hasattr(self.event_bus, 'shutdown'):
            self.event_bus.shutdown()
