# -*- coding: utf-8 -*-
"""
Persistence Store Port Interface

Whole-document JSON persistence: every read returns a complete document and
every write replaces it. There are no partial updates.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable


class StoreError(RuntimeError):
    """A document could not be read or written"""
    pass


@runtime_checkable
class IStore(Protocol):
    """Document Store Interface

    Current implementations: JsonFileStore, MemoryStore
    """

    def read_content(self) -> Dict[str, Any]:
        """Read the saved playlists document"""
        ...

    def write_content(self, content: Dict[str, Any]) -> None:
        """Replace the saved playlists document"""
        ...

    def read_settings(self) -> Dict[str, Any]:
        """Read the user settings document"""
        ...

    def write_settings(self, settings: Dict[str, Any]) -> None:
        """Replace the user settings document"""
        ...

    def read_recommendations(self) -> Dict[str, Any]:
        """Read the listening history document"""
        ...

    def write_recommendations(self, recommendations: Dict[str, Any]) -> None:
        """Replace the listening history document"""
        ...
