"""
Playlist generation tests: weighted selection, seed-based generation,
recommendations and platform playlist loading.
"""

from __future__ import annotations

import asyncio

import pytest

from fakes import make_video, make_videos


@pytest.fixture
def history(config):
    from services.json_store import MemoryStore
    from services.recommendation_service import RecommendationService

    return RecommendationService(MemoryStore(), config=config)


@pytest.fixture
def settings():
    from services.json_store import MemoryStore
    from services.settings_service import SettingsService

    settings = SettingsService(MemoryStore())
    settings.initialize()
    return settings


@pytest.fixture
def generator(video_source, history, settings, config):
    from services.playlist_generator import PlaylistGenerator

    return PlaylistGenerator(video_source, history, settings, config=config)


def _token():
    from core.cancellation import CancellationSource

    return CancellationSource().token


def _add_history(history, *video_ids):
    # Most recent first: add in reverse
    for video_id in reversed(video_ids):
        video = make_video(video_id)
        history.add_track(video.title, video.author, video.duration_ms, video.url)


class TestSelectItemFromList:
    """Weighted Reciprocal Selection Tests"""

    def test_rejects_randomness_out_of_range(self):
        from services.playlist_generator import select_item_from_list

        with pytest.raises(ValueError):
            select_item_from_list(3, -0.1)
        with pytest.raises(ValueError):
            select_item_from_list(3, 1.5)

    def test_empty_list(self):
        from services.playlist_generator import select_item_from_list

        assert select_item_from_list(0, 0.5) == -1

    def test_single_item(self):
        from services.playlist_generator import select_item_from_list

        assert select_item_from_list(1, 0.0, rand=lambda: 0.99) == 0

    def test_zero_randomness_favors_first(self):
        from services.playlist_generator import select_item_from_list

        # Weights 1, 1/2, 1/3 -> total 11/6; first item covers 6/11 of the range
        assert select_item_from_list(3, 0.0, rand=lambda: 0.5) == 0
        assert select_item_from_list(3, 0.0, rand=lambda: 0.6) == 1
        assert select_item_from_list(3, 0.0, rand=lambda: 0.95) == 2

    def test_full_randomness_is_uniform(self):
        from services.playlist_generator import select_item_from_list

        assert select_item_from_list(4, 1.0, rand=lambda: 0.10) == 0
        assert select_item_from_list(4, 1.0, rand=lambda: 0.30) == 1
        assert select_item_from_list(4, 1.0, rand=lambda: 0.60) == 2
        assert select_item_from_list(4, 1.0, rand=lambda: 0.90) == 3

    def test_result_always_in_range(self):
        from services.playlist_generator import select_item_from_list

        for _ in range(200):
            assert 0 <= select_item_from_list(7, 0.3) < 7


class TestGeneratePlaylist:
    """Seed-Based Generation Tests"""

    def test_youtube_music_uses_watch_playlist(self, generator, video_source):
        video_source.watch["seed"] = [make_videos("seed", "a", "b"), make_videos("c", "d")]

        videos = asyncio.run(generator.generate_playlist("seed", _token()))

        assert [v.video_id for v in videos] == ["seed", "a", "b", "c", "d"]
        assert generator.can_continue_generation is False

    def test_youtube_puts_search_seed_first(self, generator, video_source, settings):
        from models.settings import PlaylistSource

        settings.playlist_source = PlaylistSource.YOUTUBE
        video_source.search_results["seed"] = [make_video("seed")]
        video_source.related["seed"] = [make_videos("a", "b", "c")]

        videos = asyncio.run(generator.generate_playlist("seed", _token()))

        assert [v.video_id for v in videos] == ["seed", "a", "b", "c"]

    def test_page_limit_leaves_continuation(self, generator, video_source, config):
        config.set("playlist.generate_pages", 2)
        video_source.watch["seed"] = [
            make_videos("seed", "a"),
            make_videos("b", "c"),
            make_videos("d", "e"),
        ]

        videos = asyncio.run(generator.generate_playlist("seed", _token()))

        assert [v.video_id for v in videos] == ["seed", "a", "b", "c"]
        assert generator.can_continue_generation is True
        assert generator.generation_state.continuation_token == "seed:2"

    def test_continue_generation(self, generator, video_source, config):
        config.set("playlist.generate_pages", 1)
        video_source.watch["seed"] = [make_videos("seed", "a"), make_videos("b", "c")]

        async def run():
            await generator.generate_playlist("seed", _token())
            return await generator.continue_generation(_token())

        more = asyncio.run(run())
        assert [v.video_id for v in more] == ["b", "c"]

    def test_continue_without_state(self, generator):
        assert asyncio.run(generator.continue_generation(_token())) == []

    def test_retries_after_failure(self, generator, video_source, config):
        from core.event_bus import EventBus, EventType
        from services.session_commands import UserMessage

        messages = []
        EventBus().subscribe(EventType.USER_MESSAGE, messages.append)

        video_source.watch["seed"] = [make_videos("seed", "a", "b")]
        video_source.fail_listing("seed", times=1)

        videos = asyncio.run(generator.generate_playlist("seed", _token()))

        assert len(videos) == 3
        assert messages == [UserMessage.ERROR_GENERATING_PLAYLIST]

    def test_gives_up_after_all_attempts(self, generator, video_source, config):
        config.set("playlist.generation_attempts", 2)
        video_source.watch["seed"] = [make_videos("seed", "a")]
        video_source.fail_listing("seed", times=5)

        assert asyncio.run(generator.generate_playlist("seed", _token())) == []
        assert len([c for c in video_source.calls if c[0] == "watch"]) == 2

    def test_single_result_is_not_a_playlist(self, generator, video_source):
        video_source.watch["seed"] = [make_videos("seed")]

        assert asyncio.run(generator.generate_playlist("seed", _token())) == []

    def test_cancelled_token_propagates(self, generator, video_source):
        from core.cancellation import CancellationSource, OperationCancelledError

        video_source.watch["seed"] = [make_videos("seed", "a")]
        source = CancellationSource()
        source.cancel()

        with pytest.raises(OperationCancelledError):
            asyncio.run(generator.generate_playlist("seed", source.token))


class TestRecommendations:
    """Recommendation Generation Tests"""

    def test_empty_history(self, generator):
        assert asyncio.run(generator.generate_recommended(_token())) == []
        assert generator.seed_tracks == []

    def test_samples_every_selected_seed(self, generator, video_source, history, config):
        config.set("recommendations.seed_count", 2)
        config.set("recommendations.target_yield", 6)
        _add_history(history, "h1", "h2")
        video_source.watch["h1"] = [make_videos("h1", "a1", "a2", "a3", "a4", "a5", "a6"), make_videos("a7")]
        video_source.watch["h2"] = [make_videos("h2", "b1", "b2", "b3", "b4", "b5", "b6")]

        videos = asyncio.run(generator.generate_recommended(_token()))

        ids = [v.video_id for v in videos]
        assert len(ids) == 6
        assert len([i for i in ids if i.startswith("a")]) == 3
        assert len([i for i in ids if i.startswith("b")]) == 3
        assert "h1" not in ids and "h2" not in ids

        seeds = {seed.url: seed for seed in generator.seed_tracks}
        assert seeds[make_video("h1").url].continuation_token == "h1:1"

    def test_short_pages_are_kept_whole(self, generator, video_source, history, config):
        config.set("recommendations.seed_count", 1)
        _add_history(history, "h1")
        video_source.watch["h1"] = [make_videos("h1", "a1", "a2")]

        videos = asyncio.run(generator.generate_recommended(_token()))
        assert sorted(v.video_id for v in videos) == ["a1", "a2"]

    def test_continue_resumes_seed_pages(self, generator, video_source, history, config):
        config.set("recommendations.seed_count", 1)
        _add_history(history, "h1")
        video_source.watch["h1"] = [make_videos("h1", "a1", "a2"), make_videos("x", "b1", "b2")]

        async def run():
            await generator.generate_recommended(_token())
            return await generator.generate_recommended(_token(), continue_existing=True)

        more = asyncio.run(run())
        assert sorted(v.video_id for v in more) == ["b1", "b2"]
        assert ("watch", "h1", "h1:1") in video_source.calls

    def test_continue_without_seeds(self, generator):
        assert asyncio.run(generator.generate_recommended(_token(), continue_existing=True)) == []

    def test_get_recommendations(self, generator, video_source, history, config):
        config.set("recommendations.seed_count", 1)
        _add_history(history, "h1", "h2")
        for seed in ("h1", "h2"):
            video_source.watch[seed] = [make_videos(seed, f"{seed}-r1", f"{seed}-r2")]

        result = asyncio.run(generator.get_recommendations(_token()))

        assert len(result.recommended) == 2
        assert [v.video_id for v in result.historical] == ["h1", "h2"]

    def test_get_recommendations_empty_history(self, generator):
        assert asyncio.run(generator.get_recommendations(_token())) is None

    def test_seed_failure_fails_the_pass(self, generator, video_source, history, config):
        config.set("recommendations.seed_count", 1)
        config.set("playlist.generation_attempts", 1)
        _add_history(history, "h1")
        video_source.watch["h1"] = [make_videos("h1", "a1")]
        video_source.fail_listing("h1", times=1)

        assert asyncio.run(generator.generate_recommended(_token())) == []


class TestLoadPlaylist:
    """Platform Playlist Load Tests"""

    def test_loads_all_pages_without_duplicates(self, generator, video_source, config):
        config.set("playlist.load_page_size", 2)
        video_source.playlist_titles["PL1"] = "Road Trip"
        video_source.playlists["PL1"] = [
            make_videos("a", "b"),
            make_videos("b", "c"),
            make_videos("d"),
        ]

        playlist = asyncio.run(generator.load_playlist("PL1", _token()))

        assert playlist.title == "Road Trip"
        assert [v.video_id for v in playlist.videos] == ["a", "b", "c", "d"]

    def test_short_page_ends_the_load(self, generator, video_source, config):
        config.set("playlist.load_page_size", 3)
        video_source.playlists["PL1"] = [make_videos("a", "b"), make_videos("c")]

        playlist = asyncio.run(generator.load_playlist("PL1", _token()))
        assert [v.video_id for v in playlist.videos] == ["a", "b"]

    def test_duplicate_only_page_keeps_loading(self, generator, video_source, config):
        config.set("playlist.load_page_size", 2)
        video_source.playlists["PL1"] = [make_videos("a", "b"), make_videos("a"), make_videos("c")]

        playlist = asyncio.run(generator.load_playlist("PL1", _token()))
        assert [v.video_id for v in playlist.videos] == ["a", "b", "c"]

    def test_source_error_propagates(self, generator, video_source):
        from core.ports.video_source import VideoSourceError

        video_source.playlists["PL1"] = [make_videos("a")]
        video_source.fail_listing("PL1")

        with pytest.raises(VideoSourceError):
            asyncio.run(generator.load_playlist("PL1", _token()))
