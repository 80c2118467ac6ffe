"""
Listening History Service

Most-recent-first list of played tracks, used as the seed pool for
recommendations and the "listen again" mix.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.ports.store import IStore
from models.track import Track
from models.video import Video
from services.config_service import ConfigService

logger = logging.getLogger(__name__)


class RecommendationService:
    """
    Listening history backed by the store's recommendations document.

    A url appears at most once; re-adding a track moves it to the front.
    """

    def __init__(self, store: IStore, config: Optional[ConfigService] = None):
        self._store = store
        self._config = config or ConfigService()

    @property
    def history_limit(self) -> int:
        return int(self._config.get("recommendations.history_limit", 500))

    def tracks(self) -> List[Track]:
        data = self._store.read_recommendations()
        return [Track.from_dict(t) for t in data.get("tracks", []) if isinstance(t, dict)]

    def add_track(self, title: str, artist: str, duration_ms: int, url: str) -> None:
        track = Track(title=title, artist=artist, duration_ms=duration_ms, url=url)

        history = [t for t in self.tracks() if t.url != url]
        history.insert(0, track)
        del history[self.history_limit:]

        self._write(history)
        logger.debug("Added to history: %s", track.display_name)

    def add(self, track: Track) -> None:
        self.add_track(track.title, track.artist, track.duration_ms, track.url)

    def remove_track(self, url: str) -> None:
        self._write([t for t in self.tracks() if t.url != url])

    def clear(self) -> None:
        self._write([])
        logger.info("Listening history cleared")

    def historical_videos(self) -> List[Video]:
        return [
            Video(
                video_id=t.video_id,
                title=t.title,
                author=t.artist,
                duration_ms=t.duration_ms,
            )
            for t in self.tracks()
        ]

    def export_json(self) -> Dict[str, Any]:
        return self._store.read_recommendations()

    def import_json(self, data: Dict[str, Any]) -> None:
        self._store.write_recommendations(data)

    def _write(self, tracks: List[Track]) -> None:
        data = self._store.read_recommendations()
        data["tracks"] = [t.to_dict() for t in tracks]
        self._store.write_recommendations(data)
