"""
Settings Service Module

User preferences stored in the store's settings document, plus export/import
of the combined app data blob (settings, listening history, saved playlists).
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

from core.event_bus import EventBus, EventType
from core.ports.store import IStore
from models.settings import PlaylistSource, SearchPreference, StreamQuality

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

SEARCH_PREFERENCE_KEY = "search_preference"
STREAM_QUALITY_KEY = "stream_quality"
PLAYLIST_SOURCE_KEY = "playlist_source"

APP_DATA_SETTINGS = "settings"
APP_DATA_RECOMMENDATIONS = "recommendations"
APP_DATA_CONTENT = "content"


class SettingsService:
    """
    User preference access.

    Unknown or missing stored values fall back to the defaults
    (songs search, medium quality, YouTube Music playlists).
    """

    DEFAULTS: Dict[str, Enum] = {
        SEARCH_PREFERENCE_KEY: SearchPreference.SONGS,
        STREAM_QUALITY_KEY: StreamQuality.MEDIUM,
        PLAYLIST_SOURCE_KEY: PlaylistSource.YOUTUBE_MUSIC,
    }

    def __init__(self, store: IStore, event_bus: Optional[EventBus] = None):
        self._store = store
        self._event_bus = event_bus or EventBus()

    def initialize(self) -> None:
        """Write the defaults for any preference not yet stored"""
        settings = self._read()
        missing = {k: v.value for k, v in self.DEFAULTS.items() if k not in settings}
        if missing:
            settings.update(missing)
            self._store.write_settings(settings)
            logger.info("Initialized settings defaults: %s", sorted(missing))

    @property
    def search_preference(self) -> SearchPreference:
        return self._get_enum(SEARCH_PREFERENCE_KEY, SearchPreference)

    @search_preference.setter
    def search_preference(self, value: SearchPreference) -> None:
        self._set(SEARCH_PREFERENCE_KEY, value)

    @property
    def stream_quality(self) -> StreamQuality:
        return self._get_enum(STREAM_QUALITY_KEY, StreamQuality)

    @stream_quality.setter
    def stream_quality(self, value: StreamQuality) -> None:
        self._set(STREAM_QUALITY_KEY, value)

    @property
    def playlist_source(self) -> PlaylistSource:
        return self._get_enum(PLAYLIST_SOURCE_KEY, PlaylistSource)

    @playlist_source.setter
    def playlist_source(self, value: PlaylistSource) -> None:
        self._set(PLAYLIST_SOURCE_KEY, value)

    def export_app_data(self) -> str:
        """
        Serialize all persisted data.

        Returns:
            JSON text: {"settings": ..., "recommendations": ..., "content": ...}
        """
        data = {
            APP_DATA_SETTINGS: self._read(),
            APP_DATA_RECOMMENDATIONS: self._store.read_recommendations(),
            APP_DATA_CONTENT: self._store.read_content(),
        }
        return json.dumps(data, ensure_ascii=False)

    def import_app_data(self, raw: str) -> None:
        """
        Replace all persisted data with an exported blob.

        Raises:
            ValueError: The blob is not valid JSON or lacks one of the three documents
        """
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ValueError(f"Invalid app data: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Invalid app data: expected an object")

        documents = {}
        for key in (APP_DATA_SETTINGS, APP_DATA_RECOMMENDATIONS, APP_DATA_CONTENT):
            document = data.get(key)
            if not isinstance(document, dict):
                raise ValueError(f"Invalid app data: missing '{key}' object")
            documents[key] = document

        self._store.write_settings(documents[APP_DATA_SETTINGS])
        self._store.write_recommendations(documents[APP_DATA_RECOMMENDATIONS])
        self._store.write_content(documents[APP_DATA_CONTENT])
        logger.info("Imported app data")

    def _read(self) -> Dict[str, Any]:
        settings = self._store.read_settings()
        # Older documents nest the preferences under a "settings" root
        nested = settings.get(APP_DATA_SETTINGS)
        if isinstance(nested, dict):
            return dict(nested)
        return settings

    def _get_enum(self, key: str, enum_type: Type[E]) -> E:
        raw = self._read().get(key)
        try:
            return enum_type(raw)
        except ValueError:
            return self.DEFAULTS[key]

    def _set(self, key: str, value: Enum) -> None:
        settings = self._read()
        settings[key] = value.value
        self._store.write_settings(settings)
        self._event_bus.publish_sync(EventType.CONFIG_CHANGED, {"key": key, "value": value})
