"""
JSON Document Store

Whole-document persistence for saved playlists, user settings and the
listening history. One JSON file per document, replaced atomically.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from core.ports.store import StoreError

logger = logging.getLogger(__name__)

CONTENT_FILE = "content.json"
SETTINGS_FILE = "settings.json"
RECOMMENDATIONS_FILE = "recommendations.json"


def _empty_content() -> Dict[str, Any]:
    return {"playlists": []}


def _empty_settings() -> Dict[str, Any]:
    return {}


def _empty_recommendations() -> Dict[str, Any]:
    return {"tracks": []}


class JsonFileStore:
    """
    File-backed implementation of IStore.

    Missing files read as empty documents and are created on first write.

    Usage example:
        store = JsonFileStore(Path.home() / ".config" / "python-stream-player")
        content = store.read_content()
        content["playlists"].append({"name": "Morning", "tracks": []})
        store.write_content(content)
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)
        self._lock = threading.Lock()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def read_content(self) -> Dict[str, Any]:
        return self._read(CONTENT_FILE, _empty_content)

    def write_content(self, content: Dict[str, Any]) -> None:
        self._write(CONTENT_FILE, content)

    def read_settings(self) -> Dict[str, Any]:
        return self._read(SETTINGS_FILE, _empty_settings)

    def write_settings(self, settings: Dict[str, Any]) -> None:
        self._write(SETTINGS_FILE, settings)

    def read_recommendations(self) -> Dict[str, Any]:
        return self._read(RECOMMENDATIONS_FILE, _empty_recommendations)

    def write_recommendations(self, recommendations: Dict[str, Any]) -> None:
        self._write(RECOMMENDATIONS_FILE, recommendations)

    def _read(self, name: str, empty: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        path = self._data_dir / name
        with self._lock:
            if not path.exists():
                return empty()
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise StoreError(f"Failed to read {path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Unexpected document type in {path}: {type(data).__name__}")
        return data

    def _write(self, name: str, document: Dict[str, Any]) -> None:
        path = self._data_dir / name
        tmp = path.with_suffix(path.suffix + ".tmp")
        with self._lock:
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                os.replace(tmp, path)
            except (OSError, TypeError, ValueError) as e:
                raise StoreError(f"Failed to write {path}: {e}") from e
        logger.debug("Wrote %s", path)


class MemoryStore:
    """In-memory IStore (tests and ephemeral sessions)"""

    def __init__(
        self,
        content: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
        recommendations: Optional[Dict[str, Any]] = None,
    ):
        self._documents: Dict[str, Dict[str, Any]] = {
            CONTENT_FILE: content if content is not None else _empty_content(),
            SETTINGS_FILE: settings if settings is not None else _empty_settings(),
            RECOMMENDATIONS_FILE: recommendations if recommendations is not None else _empty_recommendations(),
        }
        self._lock = threading.Lock()

    def read_content(self) -> Dict[str, Any]:
        return self._get(CONTENT_FILE)

    def write_content(self, content: Dict[str, Any]) -> None:
        self._put(CONTENT_FILE, content)

    def read_settings(self) -> Dict[str, Any]:
        return self._get(SETTINGS_FILE)

    def write_settings(self, settings: Dict[str, Any]) -> None:
        self._put(SETTINGS_FILE, settings)

    def read_recommendations(self) -> Dict[str, Any]:
        return self._get(RECOMMENDATIONS_FILE)

    def write_recommendations(self, recommendations: Dict[str, Any]) -> None:
        self._put(RECOMMENDATIONS_FILE, recommendations)

    # Documents are deep-copied in both directions
    def _get(self, name: str) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._documents[name])

    def _put(self, name: str, document: Dict[str, Any]) -> None:
        with self._lock:
            self._documents[name] = copy.deepcopy(document)
