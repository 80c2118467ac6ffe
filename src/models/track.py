"""
Track data model
"""

from dataclasses import dataclass

from models.video import extract_video_id


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as m:ss (minutes are not wrapped into hours)"""
    minutes = duration_ms // 60000
    seconds = (duration_ms % 60000) // 1000
    return f"{minutes}:{seconds:02d}"


@dataclass
class Track:
    """
    Track data model

    A saved track: the unit stored in persisted playlists and in the listening history.
    """

    title: str = ""
    artist: str = ""
    duration_ms: int = 0
    url: str = ""

    @property
    def duration_str(self) -> str:
        """Formatted duration string (m:ss)"""
        return format_duration(self.duration_ms)

    @property
    def video_id(self) -> str:
        return extract_video_id(self.url)

    @property
    def display_name(self) -> str:
        """Display name"""
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'title': self.title,
            'artist': self.artist,
            'duration_ms': self.duration_ms,
            'url': self.url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Track':
        """Create Track object from dictionary"""
        return cls(
            title=data.get('title', ''),
            artist=data.get('artist', ''),
            duration_ms=int(data.get('duration_ms', 0) or 0),
            url=data.get('url', ''),
        )
