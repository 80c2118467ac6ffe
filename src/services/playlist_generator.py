"""
Playlist Generator Module

Builds playlists from the paginated video source:
- Seed-based generation from one track's related / "watch next" pages
- Recommendation generation sampling several history seeds with
  weighted reciprocal selection
- Loading a platform playlist page by page

The generator only fetches; the session orchestrator owns the queue.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple

from core.cancellation import CancellationToken, OperationCancelledError
from core.event_bus import EventBus, EventType
from core.ports.video_source import IVideoSource
from models.recommendation import Recommendations, SeedTrackData
from models.settings import PlaylistSource
from models.video import ContentItem, Video, extract_video_id
from services.config_service import ConfigService
from services.music_queue import MusicQueue
from services.recommendation_service import RecommendationService
from services.session_commands import UserMessage
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def select_item_from_list(
    item_count: int,
    randomness: float,
    rand: Callable[[], float] = random.random,
) -> int:
    """
    Pick an index with weighted reciprocal selection.

    Item i (1-based) weighs (1/i) * (1 - randomness) + randomness, so 0 strongly
    favors the first items and 1 is uniform.

    Args:
        item_count: Number of candidates, ordered by preference
        randomness: Blend between the 1/rank curve and uniform, in [0, 1]
        rand: Uniform random source in [0, 1)

    Returns:
        Index in [0, item_count - 1], or -1 when item_count is 0

    Raises:
        ValueError: randomness is outside [0, 1]
    """
    if randomness < 0 or randomness > 1:
        raise ValueError(f"randomness must be between 0 and 1, got {randomness}")
    if item_count <= 0:
        return -1

    def weight(rank: int) -> float:
        return (1.0 / rank) * (1 - randomness) + randomness

    total = sum(weight(i) for i in range(1, item_count + 1))
    target = rand() * total

    accumulated = 0.0
    for i in range(1, item_count + 1):
        accumulated += weight(i)
        if accumulated >= target:
            return i - 1

    return item_count - 1


@dataclass
class GenerationState:
    """Continuation state of the last seed-based generation"""
    seed_video_id: str
    source: PlaylistSource
    continuation_token: Optional[str] = None
    visitor_data: Optional[str] = None

    def track(self, content: ContentItem) -> None:
        self.continuation_token = content.continuation_token
        self.visitor_data = content.visitor_data

    def reset_pagination(self) -> None:
        self.continuation_token = None
        self.visitor_data = None


@dataclass
class LoadedPlaylist:
    """A platform playlist fetched in full"""
    title: str
    videos: List[Video] = field(default_factory=list)


class PlaylistGenerator:
    """
    Playlist Generator

    Every operation takes the caller's cancellation token; cancellation
    propagates as OperationCancelledError and is never retried. Other failures
    are retried up to playlist.generation_attempts times.

    Usage example:
        generator = PlaylistGenerator(video_source, history, settings)

        videos = await generator.generate_playlist("dQw4w9WgXcQ", scope.token)
        more = await generator.continue_generation(scope.token)

        mix = await generator.generate_recommended(scope.token)
    """

    def __init__(
        self,
        video_source: IVideoSource,
        history: RecommendationService,
        settings: SettingsService,
        config: Optional[ConfigService] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._video_source = video_source
        self._history = history
        self._settings = settings
        self._config = config or ConfigService()
        self._event_bus = event_bus or EventBus()

        self._generation: Optional[GenerationState] = None
        self._seed_tracks: List[SeedTrackData] = []

    # ===== Configuration =====

    def _cfg_int(self, key: str, default: int) -> int:
        return int(self._config.get(key, default))

    def _cfg_float(self, key: str, default: float) -> float:
        return float(self._config.get(key, default))

    @property
    def generation_state(self) -> Optional[GenerationState]:
        return self._generation

    @property
    def can_continue_generation(self) -> bool:
        state = self._generation
        return state is not None and bool(state.continuation_token) and bool(state.seed_video_id)

    @property
    def seed_tracks(self) -> List[SeedTrackData]:
        return list(self._seed_tracks)

    # ===== Seed-based generation =====

    async def generate_playlist(self, video_id: str, token: CancellationToken) -> List[Video]:
        """
        Generate a playlist around a seed video.

        The seed comes first (found by search when the source is YouTube, where
        related videos exclude it; the watch playlist of YouTube Music starts
        with it). The caller shuffles everything after the seed.

        Returns:
            The videos (more than one), or an empty list after all attempts failed
        """
        source = self._settings.playlist_source
        state = GenerationState(seed_video_id=video_id, source=source)
        self._generation = state

        attempts = self._cfg_int("playlist.generation_attempts", 3)
        for attempt in range(1, attempts + 1):
            videos: List[Video] = []
            state.reset_pagination()
            try:
                if source == PlaylistSource.YOUTUBE:
                    seed = await self._search_video(video_id, token)
                    if seed is not None:
                        videos.append(seed)
                await self._fetch_pages(state, videos, token, reset_on_single=True)
            except OperationCancelledError:
                raise
            except Exception as e:
                self._report_failure("Playlist generation", attempt, attempts, e)

            if len(videos) > 1:
                logger.info("Generated playlist for %s: %d tracks", video_id, len(videos))
                return videos

            if attempt < attempts:
                await self._retry_delay(token)

        logger.warning("Playlist generation for %s produced no usable result", video_id)
        return []

    async def continue_generation(self, token: CancellationToken) -> List[Video]:
        """
        Fetch more pages for the last generated playlist.

        Returns:
            New videos (more than one), or an empty list when there is nothing
            to continue or all attempts failed
        """
        if not self.can_continue_generation:
            return []
        state = self._generation

        attempts = self._cfg_int("playlist.generation_attempts", 3)
        for attempt in range(1, attempts + 1):
            videos: List[Video] = []
            try:
                await self._fetch_pages(state, videos, token, reset_on_single=False)
            except OperationCancelledError:
                raise
            except Exception as e:
                self._report_failure("Playlist continuation", attempt, attempts, e)

            if len(videos) > 1:
                logger.info("Continued playlist for %s: %d more tracks", state.seed_video_id, len(videos))
                return videos

            if attempt < attempts:
                await self._retry_delay(token)

        return []

    async def _search_video(self, video_id: str, token: CancellationToken) -> Optional[Video]:
        async for content in token.iterate(self._video_source.search(video_id)):
            if content.video is not None:
                return content.video
        return None

    def _page_source(self, state: GenerationState):
        if state.source == PlaylistSource.YOUTUBE:
            return self._video_source.get_related_videos(
                state.seed_video_id, state.continuation_token, state.visitor_data
            )
        return self._video_source.get_watch_playlist(
            state.seed_video_id, state.continuation_token, state.visitor_data
        )

    async def _fetch_pages(
        self,
        state: GenerationState,
        videos: List[Video],
        token: CancellationToken,
        reset_on_single: bool,
    ) -> None:
        max_pages = self._cfg_int("playlist.generate_pages", 5)
        pages = 0

        while True:
            async for content in token.iterate(self._page_source(state)):
                if content.video is None:
                    continue
                state.track(content)
                videos.append(content.video)
            pages += 1

            # A single result is a known first-call glitch of the platform, start over
            if reset_on_single and len(videos) <= 1:
                state.reset_pagination()

            if not state.continuation_token or pages >= max_pages:
                break

    # ===== Recommendation generation =====

    async def generate_recommended(self, token: CancellationToken, continue_existing: bool = False) -> List[Video]:
        """
        Generate (or extend) the recommended mix.

        A new mix starts from fresh seeds drawn from the listening history;
        continuing resumes every seed's watch playlist at its next page.

        Returns:
            Shuffled videos, empty when the history (or the continuation state)
            is empty or all attempts failed
        """
        if not continue_existing:
            self._seed_tracks = []
        elif not self._seed_tracks:
            return []

        attempts = self._cfg_int("playlist.generation_attempts", 3)
        for attempt in range(1, attempts + 1):
            try:
                items, self._seed_tracks = await self.generate_recommended_playlist(self._seed_tracks, token)
            except OperationCancelledError:
                raise
            except Exception as e:
                self._report_failure("Recommended playlist generation", attempt, attempts, e)
            else:
                if items:
                    logger.info("Generated recommended playlist: %d tracks", len(items))
                    return [item.video for item in items]
                if not self._seed_tracks:
                    logger.info("No listening history, recommended playlist not generated")
                    return []

            if attempt < attempts:
                await self._retry_delay(token)

        return []

    async def generate_recommended_playlist(
        self,
        seed_tracks: List[SeedTrackData],
        token: CancellationToken,
    ) -> Tuple[List[ContentItem], List[SeedTrackData]]:
        """
        One recommendation pass.

        Args:
            seed_tracks: Seed continuation state; empty to start from the whole history
            token: Cancellation token

        Returns:
            (sampled items shuffled, seed state updated in place for the next pass).
            Both lists are empty when there is no history.
        """
        if not seed_tracks:
            history = self._history.tracks()
            if not history:
                return [], seed_tracks
            seed_tracks = [SeedTrackData(url=track.url) for track in history]

        selected = self._select_seeds(
            seed_tracks, self._cfg_float("recommendations.seed_randomness", 0.75)
        )
        items = await self._sample_seeds(selected, token, continue_pages=True)
        MusicQueue.shuffle_list(items, keep_first=False)
        return items, seed_tracks

    async def get_recommendations(self, token: CancellationToken) -> Optional[Recommendations]:
        """
        Home-page recommendations.

        Returns:
            Sampled related videos plus the history, None when the history is empty
        """
        history = self._history.tracks()
        if not history:
            return None

        seeds = [SeedTrackData(url=track.url) for track in history]
        selected = self._select_seeds(seeds, self._cfg_float("recommendations.home_randomness", 0.5))
        items = await self._sample_seeds(selected, token, continue_pages=False)
        MusicQueue.shuffle_list(items, keep_first=False)

        return Recommendations(
            recommended=[item.video for item in items],
            historical=self._history.historical_videos(),
        )

    def _select_seeds(self, seeds: List[SeedTrackData], randomness: float) -> List[SeedTrackData]:
        """Draw up to recommendations.seed_count distinct seeds, favoring recent ones"""
        count = min(self._cfg_int("recommendations.seed_count", 5), len(seeds))
        pool = list(seeds)
        selected = []
        for _ in range(count):
            selected.append(pool.pop(select_item_from_list(len(pool), randomness)))
        return selected

    async def _sample_seeds(
        self,
        seeds: List[SeedTrackData],
        token: CancellationToken,
        continue_pages: bool,
    ) -> List[ContentItem]:
        if not seeds:
            return []

        semaphore = asyncio.Semaphore(self._cfg_int("recommendations.max_concurrency", 5))
        results = await asyncio.gather(
            *(self._sample_seed(seed, len(seeds), semaphore, token, continue_pages) for seed in seeds),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            if isinstance(error, OperationCancelledError):
                raise error
        if errors:
            raise errors[0]

        return [item for picked in results for item in picked]

    async def _sample_seed(
        self,
        seed: SeedTrackData,
        seed_count: int,
        semaphore: asyncio.Semaphore,
        token: CancellationToken,
        continue_pages: bool,
    ) -> List[ContentItem]:
        """Fetch one watch-playlist page of a seed and keep a random slice of it"""
        target_yield = self._cfg_int("recommendations.target_yield", 24)
        page_randomness = self._cfg_float("recommendations.page_randomness", 1.0)

        async with semaphore:
            page_source = self._video_source.get_watch_playlist(
                extract_video_id(seed.url),
                seed.continuation_token if continue_pages else None,
                seed.visitor_data if continue_pages else None,
            )
            page = [content async for content in token.iterate(page_source) if content.video is not None]

        # The watch playlist starts with the seed itself
        if page:
            page.pop(0)

        keep = len(page) if len(page) < 5 else round(target_yield / seed_count)

        picked = []
        for _ in range(keep):
            if not page:
                break
            content = page.pop(select_item_from_list(len(page), page_randomness))
            picked.append(content)
            if continue_pages:
                seed.continuation_token = content.continuation_token
                seed.visitor_data = content.visitor_data
        return picked

    # ===== Playlist load =====

    async def load_playlist(self, playlist_id: str, token: CancellationToken) -> LoadedPlaylist:
        """
        Fetch every video of a platform playlist, without duplicates.

        Pagination continues while there is a continuation token and either the
        processed count is a whole number of pages (more may follow) or the last
        page only held duplicates.

        Raises:
            OperationCancelledError: The token was cancelled
            VideoSourceError: A page request failed
        """
        page_size = self._cfg_int("playlist.load_page_size", 100)
        max_pages = self._cfg_int("playlist.max_load_pages", 50)

        playlist = LoadedPlaylist(title="")
        seen: Set[str] = set()
        continuation_token: Optional[str] = None
        visitor_data: Optional[str] = None
        processed = 0
        pages = 0

        while True:
            added_before = len(playlist.videos)
            page_source = self._video_source.get_playlist_videos(playlist_id, continuation_token, visitor_data)
            async for content in token.iterate(page_source):
                processed += 1
                playlist.title = content.data.get("playlist_title", playlist.title)
                continuation_token = content.continuation_token
                visitor_data = content.visitor_data

                video = content.video
                if video is None or video.video_id in seen:
                    continue
                seen.add(video.video_id)
                playlist.videos.append(video)
            pages += 1

            if not continuation_token or pages >= max_pages:
                break
            if processed % page_size != 0 and len(playlist.videos) != added_before:
                break

        logger.info("Loaded playlist '%s': %d tracks", playlist.title, len(playlist.videos))
        return playlist

    # ===== Helpers =====

    async def _retry_delay(self, token: CancellationToken) -> None:
        delay = self._cfg_int("playlist.retry_delay_ms", 250) / 1000.0
        await token.wait_or_cancel(asyncio.sleep(delay))

    def _report_failure(self, what: str, attempt: int, attempts: int, error: Exception) -> None:
        logger.warning("%s failed (attempt %d/%d): %s", what, attempt, attempts, error)
        self._event_bus.publish_sync(EventType.USER_MESSAGE, UserMessage.ERROR_GENERATING_PLAYLIST)
