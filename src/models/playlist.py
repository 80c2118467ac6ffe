"""
Persisted playlist data model
"""

from dataclasses import dataclass, field
from typing import List

from models.track import Track


@dataclass
class PersistedPlaylist:
    """
    Saved playlist. The name is the unique key (exact, case-sensitive match).
    """

    name: str = ""
    tracks: List[Track] = field(default_factory=list)

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    @property
    def total_duration_ms(self) -> int:
        return sum(track.duration_ms for track in self.tracks)

    @property
    def duration_str(self) -> str:
        """Formatted total duration"""
        total_seconds = self.total_duration_ms // 1000
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60

        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'name': self.name,
            'tracks': [track.to_dict() for track in self.tracks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PersistedPlaylist':
        """Create PersistedPlaylist object from dictionary"""
        return cls(
            name=data.get('name', ''),
            tracks=[Track.from_dict(t) for t in data.get('tracks', []) if isinstance(t, dict)],
        )
