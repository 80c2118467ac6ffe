"""
Recommendation data models
"""

from dataclasses import dataclass, field
from typing import List, Optional

from models.video import Video


@dataclass
class SeedTrackData:
    """
    Pagination state of one recommendation seed.

    Updated in place after every fetch so a later "continue" call resumes
    at the next page of the seed's watch playlist.
    """
    url: str
    continuation_token: Optional[str] = None
    visitor_data: Optional[str] = None


@dataclass
class Recommendations:
    """Home-page recommendations: sampled related videos plus the listening history"""
    recommended: List[Video] = field(default_factory=list)
    historical: List[Video] = field(default_factory=list)
