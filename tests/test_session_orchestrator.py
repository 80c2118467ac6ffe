"""
SessionOrchestrator scenario tests

Each scenario runs on its own event loop against the fakes-backed container:
the audio engine reports back synchronously, so awaiting wait_for_pending()
leaves the session in a settled state.
"""

from __future__ import annotations

import asyncio

import pytest

from fakes import make_video, make_videos, video_args


async def _spin(times: int = 20) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


async def _queue_and_play(orchestrator, *video_ids):
    from services.session_commands import SessionCommand

    await orchestrator.call_command(SessionCommand.QUEUE_VIDEO_TO_NEW_PLAYLIST, video_args(video_ids[0]))
    for video_id in video_ids[1:]:
        await orchestrator.call_command(SessionCommand.QUEUE_VIDEO_LAST, video_args(video_id))
    await orchestrator.wait_for_pending()


def _current_video_id(orchestrator) -> str:
    from models.video import extract_video_id

    return extract_video_id(orchestrator.queue.current_item().source_url)


def _history_urls(container):
    return [track.url for track in container.history.tracks()]


@pytest.fixture
def orchestrator(container):
    return container.orchestrator


class TestPlayback:
    """Track Sequencing Tests"""

    def test_generated_playlist_starts_playing(self, orchestrator, container, video_source, engines, events):
        from core.event_bus import EventType
        from models import media_id as ids
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        video_source.watch["seed"] = [make_videos("seed", "a", "b", "c")]

        async def scenario():
            result = await orchestrator.call_command(SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"})
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.ok
        assert len(orchestrator.queue) == 4
        assert _current_video_id(orchestrator) == "seed"
        assert orchestrator.queue_title == ids.DEFAULT_PLAYLIST_NAME
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert orchestrator.is_session_active is True
        # Medium quality: second audio stream by bitrate
        assert engines[0].prepared_uri == "https://audio.example/seed/128"
        assert events.of(EventType.PLAYLIST_GENERATED) == [4]
        assert len(events.of(EventType.SESSION_STARTED)) == 1
        assert _history_urls(container) == [make_video("seed").url]

    def test_metadata_published_with_fallback_gradient(self, orchestrator, events):
        from core.event_bus import EventType

        asyncio.run(_queue_and_play(orchestrator, "a"))

        metadata = orchestrator.metadata
        assert metadata is not None
        assert metadata.title == "Title a"
        assert metadata.has_artwork
        assert metadata.gradient.bottom == (0x12, 0x12, 0x12)
        assert events.of(EventType.METADATA_CHANGED) == [metadata]

    def test_completion_advances_then_stops_at_end(self, orchestrator, engines, events):
        from core.event_bus import EventType
        from models.playback_state import PlaybackStateCode

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            engines[0].finish()
            await orchestrator.wait_for_pending()
            assert _current_video_id(orchestrator) == "b"
            assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
            assert engines[0].prepared_uri == "https://audio.example/b/128"

            engines[0].finish()
            await orchestrator.wait_for_pending()
            await asyncio.sleep(0.1)

        asyncio.run(scenario())

        assert orchestrator.playback_state.state == PlaybackStateCode.STOPPED
        assert engines[0].released is True
        assert len(events.of(EventType.SESSION_IDLE)) == 1
        assert orchestrator.is_session_active is False

    def test_skip_next_previous_and_queue_item(self, orchestrator, engines):
        from models.playback_state import PlaybackStateCode

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b", "c")

            assert orchestrator.skip_to_next() is True
            await orchestrator.wait_for_pending()
            assert _current_video_id(orchestrator) == "b"

            assert orchestrator.skip_to_previous() is True
            await orchestrator.wait_for_pending()
            assert orchestrator.skip_to_previous() is True
            await orchestrator.wait_for_pending()
            assert _current_video_id(orchestrator) == "c"

            first = orchestrator.queue.item_at(0)
            assert orchestrator.skip_to_queue_item(first.queue_id) is True
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert _current_video_id(orchestrator) == "a"
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert engines[0].prepared_uri == "https://audio.example/a/128"

    def test_skip_on_empty_queue(self, orchestrator):
        assert orchestrator.skip_to_next() is False
        assert orchestrator.skip_to_previous() is False

    def test_pause_resume_and_idle(self, orchestrator, engines, events):
        from core.event_bus import EventType
        from models.playback_state import PlaybackStateCode

        async def scenario():
            await _queue_and_play(orchestrator, "a")
            orchestrator.request_pause()
            assert orchestrator.playback_state.state == PlaybackStateCode.PAUSED
            await asyncio.sleep(0.1)
            assert len(events.of(EventType.SESSION_IDLE)) == 1

            orchestrator.play()
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert engines[0].playing is True
        assert len(engines) == 1

    def test_seek(self, orchestrator, engines):
        async def scenario():
            await _queue_and_play(orchestrator, "a")
            orchestrator.seek_to(60000)

        asyncio.run(scenario())
        assert engines[0].position_ms == 60000

    def test_stream_failure_skips_to_next_track(self, orchestrator, video_source, config, events):
        from core.event_bus import EventType
        from models.playback_state import PlaybackStateCode
        from services.session_commands import UserMessage

        config.set("session.load_attempts", 2)
        video_source.failing_streams.add("a")

        asyncio.run(_queue_and_play(orchestrator, "a", "b"))

        assert _current_video_id(orchestrator) == "b"
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert events.of(EventType.USER_MESSAGE) == [UserMessage.TRACK_COULD_NOT_BE_PLAYED]
        assert len([c for c in video_source.calls if c[:2] == ("streams", "a")]) == 2

    def test_every_track_failing_stops(self, orchestrator, video_source, config, events):
        from core.event_bus import EventType
        from models.playback_state import PlaybackStateCode
        from services.session_commands import UserMessage

        config.set("session.load_attempts", 1)
        video_source.failing_streams.update({"a", "b"})

        asyncio.run(_queue_and_play(orchestrator, "a", "b"))

        assert orchestrator.playback_state.state == PlaybackStateCode.STOPPED
        assert events.of(EventType.USER_MESSAGE) == [UserMessage.TRACK_COULD_NOT_BE_PLAYED] * 2

    def test_missing_artwork_publishes_error_state_and_plays(self, orchestrator, image_loader, events):
        from core.event_bus import EventType
        from fakes import missing_image
        from models.playback_state import PlaybackStateCode
        from models.video import Thumbnails

        icon_url = Thumbnails("a").medium_res_url
        image_loader.responses[icon_url] = missing_image(icon_url)

        asyncio.run(_queue_and_play(orchestrator, "a"))

        states = events.of(EventType.PLAYBACK_STATE_CHANGED)
        assert any(
            s.state == PlaybackStateCode.ERROR and s.error_message == "Unable to load track metadata"
            for s in states
        )
        assert orchestrator.metadata is None
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING

    def test_engine_error_publishes_error_state(self, orchestrator, engines):
        from core.ports.audio import AudioEngineError
        from models.playback_state import PlaybackStateCode

        async def scenario():
            await _queue_and_play(orchestrator, "a")
            engines[0].fail(AudioEngineError("decoder failed"))

        asyncio.run(scenario())

        state = orchestrator.playback_state
        assert state.state == PlaybackStateCode.ERROR
        assert state.error_message == "Media player error: decoder failed"

    def test_next_track_resolved_ahead_of_time(self, orchestrator, config, engines, video_source):
        config.set("session.progress_interval_ms", 10)

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            engines[0].position_ms = 150000
            await asyncio.sleep(0.1)
            assert ("streams", "b", None) in video_source.calls

            orchestrator.skip_to_next()
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert _current_video_id(orchestrator) == "b"
        assert len([c for c in video_source.calls if c[:2] == ("streams", "b")]) == 1

    def test_published_actions(self, orchestrator):
        from models.playback_state import PlaybackAction

        assert orchestrator.available_actions() == (
            PlaybackAction.PLAY | PlaybackAction.PLAY_FROM_MEDIA_ID | PlaybackAction.PLAY_FROM_SEARCH
        )

        asyncio.run(_queue_and_play(orchestrator, "a", "b"))

        actions = orchestrator.playback_state.actions
        for action in (PlaybackAction.PAUSE, PlaybackAction.STOP, PlaybackAction.SKIP_TO_NEXT):
            assert action in actions


class TestNetwork:
    """Connectivity Loss / Recovery Tests"""

    def test_loss_while_loading_stops_with_one_message(self, orchestrator, image_loader, network, events):
        from core.event_bus import EventType
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand, UserMessage

        async def scenario():
            image_loader.gate = asyncio.Event()
            await orchestrator.call_command(SessionCommand.QUEUE_VIDEO_TO_NEW_PLAYLIST, video_args("a"))
            await _spin()
            network.set_connected(False)
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert orchestrator.playback_state.state == PlaybackStateCode.STOPPED
        assert events.of(EventType.USER_MESSAGE) == [UserMessage.NO_NETWORK]
        assert image_loader.cancel_count >= 1

    def test_play_while_offline(self, orchestrator, network, engines, events):
        from core.event_bus import EventType
        from services.session_commands import UserMessage

        network.set_connected(False)

        async def scenario():
            orchestrator.play()
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert events.of(EventType.USER_MESSAGE) == [UserMessage.NO_NETWORK]
        assert engines == []

    def test_stream_drop_resumes_at_position_after_recovery(self, orchestrator, network, engines, events):
        from core.event_bus import EventType
        from core.ports.audio import NetworkPlaybackError
        from models.playback_state import PlaybackStateCode

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            engines[0].position_ms = 42000

            network.set_connected(False)
            engines[0].fail(NetworkPlaybackError("connection reset"))
            assert orchestrator.playback_state.state == PlaybackStateCode.BUFFERING

            # Parked for recovery: pause and skips are ignored
            orchestrator.request_pause()
            assert orchestrator.skip_to_next() is False
            assert orchestrator.playback_state.state == PlaybackStateCode.BUFFERING

            network.set_connected(True)
            await orchestrator.wait_for_pending()
            engines[0].report_playing()

        asyncio.run(scenario())

        assert _current_video_id(orchestrator) == "a"
        assert engines[0].position_ms == 42000
        assert engines[0].playing is True
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert events.of(EventType.USER_MESSAGE) == []

    def test_network_commands_while_offline_tell_the_user(
        self, orchestrator, container, video_source, network, config, events
    ):
        from core.event_bus import EventType
        from services.session_commands import CommandResultCode, SessionCommand, UserMessage

        config.set("playlist.generate_pages", 1)
        seed = make_video("h1")
        container.history.add_track(seed.title, seed.author, seed.duration_ms, seed.url)
        video_source.watch["h1"] = [make_videos("h1", "r1", "r2", "r3")]
        video_source.watch["seed"] = [make_videos("seed", "a"), make_videos("b", "c")]
        video_source.playlists["PL1"] = [make_videos("p1", "p2")]

        commands = [
            (SessionCommand.LOAD_PLAYLIST, {"playlist_id": "PL1"}),
            (SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"}),
            (SessionCommand.CONTINUE_GENERATE_PLAYLIST, None),
            (SessionCommand.GENERATE_RECOMMENDED_PLAYLIST, None),
            (SessionCommand.CONTINUE_GENERATE_RECOMMENDED_PLAYLIST, None),
        ]

        async def scenario():
            await orchestrator.call_command(SessionCommand.GENERATE_RECOMMENDED_PLAYLIST)
            await orchestrator.call_command(SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"})
            await orchestrator.wait_for_pending()
            assert container.generator.can_continue_generation
            assert container.generator.seed_tracks

            queued = [i.queue_id for i in orchestrator.queue.items]
            network.set_connected(False)
            events.clear()

            results = []
            for command, args in commands:
                results.append(await orchestrator.call_command(command, args))
                assert events.of(EventType.USER_MESSAGE) == [UserMessage.NO_NETWORK]
                events.clear()
            await orchestrator.wait_for_pending()
            return queued, results

        queued, results = asyncio.run(scenario())

        assert [r.code for r in results] == [CommandResultCode.CANCELED] * len(commands)
        assert [i.queue_id for i in orchestrator.queue.items] == queued
        assert video_source.calls.count(("playlist", "PL1", None)) == 0

    def test_loss_cancels_generation(self, orchestrator, video_source, network):
        from services.session_commands import CommandResultCode, SessionCommand

        video_source.watch["seed"] = [make_videos("seed", "a")]

        async def scenario():
            video_source.gate = asyncio.Event()
            task = asyncio.ensure_future(
                orchestrator.call_command(SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"})
            )
            await _spin()
            assert orchestrator.is_generating is True
            network.set_connected(False)
            return await task

        result = asyncio.run(scenario())

        assert result.code == CommandResultCode.CANCELED
        assert orchestrator.is_generating is False
        assert len(orchestrator.queue) == 0


class TestQueueCommands:
    """Queue Editing Command Tests"""

    def test_queue_next_on_empty_queue_starts_new_playlist(self, orchestrator, container):
        from models import media_id as ids
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        async def scenario():
            result = await orchestrator.call_command(SessionCommand.QUEUE_VIDEO_NEXT, video_args("a"))
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.command == SessionCommand.QUEUE_VIDEO_NEXT
        assert result.ok
        assert len(orchestrator.queue) == 1
        assert orchestrator.queue_title == ids.DEFAULT_PLAYLIST_NAME
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert _history_urls(container) == [make_video("a").url]

    def test_queue_next_inserts_after_current(self, orchestrator, engines):
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            return await orchestrator.call_command(SessionCommand.QUEUE_VIDEO_NEXT, video_args("n"))

        result = asyncio.run(scenario())

        assert result.ok
        items = orchestrator.queue.items
        assert [i.title for i in items] == ["Title a", "Title n", "Title b"]
        assert len({i.queue_id for i in items}) == 3
        assert _current_video_id(orchestrator) == "a"
        assert len(engines) == 1

    def test_queue_last_plays_when_stopped(self, orchestrator, engines):
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a")
            orchestrator.request_stop()
            result = await orchestrator.call_command(
                SessionCommand.QUEUE_VIDEO_LAST, video_args("z", play_if_stopped=True)
            )
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.ok
        assert _current_video_id(orchestrator) == "z"
        assert engines[-1].prepared_uri == "https://audio.example/z/128"

    def test_queue_command_missing_arguments(self, orchestrator):
        from services.session_commands import CommandResultCode, SessionCommand

        args = video_args("a")
        del args["title"]
        result = asyncio.run(orchestrator.call_command(SessionCommand.QUEUE_VIDEO_TO_NEW_PLAYLIST, args))
        assert result.code == CommandResultCode.CANCELED

    def test_move_queue_item(self, orchestrator, events):
        from core.event_bus import EventType
        from services.session_commands import CommandResultCode, SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b", "c")
            events.clear()
            moved = orchestrator.queue.item_at(2)
            ok = await orchestrator.call_command(
                SessionCommand.MOVE_QUEUE_ITEM, {"media_id": moved.media_id, "to_position": 0}
            )
            missing = await orchestrator.call_command(SessionCommand.MOVE_QUEUE_ITEM, {"to_position": 0})
            return ok, missing

        ok, missing = asyncio.run(scenario())

        assert ok.ok
        assert missing.code == CommandResultCode.CANCELED
        assert [i.title for i in orchestrator.queue.items] == ["Title c", "Title a", "Title b"]
        assert _current_video_id(orchestrator) == "a"
        assert len(events.of(EventType.QUEUE_CHANGED)) == 1

    def test_remove_playing_item_plays_the_next(self, orchestrator, engines):
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b", "c")
            result = await orchestrator.call_command(SessionCommand.REMOVE_QUEUE_ITEM, {"position": 0})
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.ok
        assert [i.title for i in orchestrator.queue.items] == ["Title b", "Title c"]
        assert _current_video_id(orchestrator) == "b"
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert engines[0].released is True
        assert engines[-1].prepared_uri == "https://audio.example/b/128"

    def test_remove_last_remaining_item_stops(self, orchestrator):
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a")
            await orchestrator.call_command(SessionCommand.REMOVE_QUEUE_ITEM, {"position": 0})

        asyncio.run(scenario())

        assert len(orchestrator.queue) == 0
        assert orchestrator.playback_state.state == PlaybackStateCode.STOPPED

    def test_clear_queue(self, orchestrator):
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            return await orchestrator.call_command(SessionCommand.CLEAR_QUEUE_ITEMS)

        result = asyncio.run(scenario())

        assert result.ok
        assert len(orchestrator.queue) == 0
        assert orchestrator.playback_state.state == PlaybackStateCode.STOPPED

    def test_shuffle_keeps_playing_item_first(self, orchestrator, events):
        from core.event_bus import EventType
        from services.session_commands import SessionCommand

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b", "c", "d")
            orchestrator.skip_to_next()
            await orchestrator.wait_for_pending()
            await orchestrator.call_command(SessionCommand.ENABLE_SHUFFLE_MODE)
            assert orchestrator.queue.index == 0
            assert _current_video_id(orchestrator) == "b"
            await orchestrator.call_command(SessionCommand.DISABLE_SHUFFLE_MODE)

        asyncio.run(scenario())

        assert [i.title for i in orchestrator.queue.items] == ["Title a", "Title b", "Title c", "Title d"]
        assert _current_video_id(orchestrator) == "b"
        assert events.of(EventType.SHUFFLE_MODE_CHANGED) == [True, False]
        assert orchestrator.shuffle_mode is False

    def test_command_by_wire_name(self, orchestrator, events):
        from core.event_bus import EventType
        from services.session_commands import SessionCommand

        result = asyncio.run(orchestrator.call_command("CMD_CLEAR_QUEUE_ITEMS"))

        assert result.command == SessionCommand.CLEAR_QUEUE_ITEMS
        assert events.of(EventType.COMMAND_COMPLETED) == [result]

    def test_unknown_command(self, orchestrator):
        with pytest.raises(ValueError):
            asyncio.run(orchestrator.call_command("CMD_DOES_NOT_EXIST"))


class TestPlaylistCommands:
    """Saved / Loaded / Generated Playlist Command Tests"""

    def test_save_queue_items_rekeys_queue(self, orchestrator, container):
        from models import media_id as ids
        from services.session_commands import CommandResultCode, SessionCommand

        playlist_id = ids.create_playlist_media_id("Mix")

        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            orchestrator.skip_to_next()
            await orchestrator.wait_for_pending()
            saved = await orchestrator.call_command(SessionCommand.SAVE_QUEUE_ITEMS, {"parent_media_id": playlist_id})
            invalid = await orchestrator.call_command(SessionCommand.SAVE_QUEUE_ITEMS, {"parent_media_id": "Mix"})
            return saved, invalid

        saved, invalid = asyncio.run(scenario())

        assert saved.ok
        assert invalid.code == CommandResultCode.CANCELED
        assert orchestrator.queue_title == "Mix"
        assert all(i.media_id.startswith(playlist_id + "/") for i in orchestrator.queue.items)
        assert orchestrator.queue.index == 1
        assert [t.title for t in container.content.get_playlist("Mix").tracks] == ["Title a", "Title b"]

    def test_save_empty_queue_is_canceled(self, orchestrator, container):
        from models import media_id as ids
        from services.content_service import video_to_media_item
        from services.session_commands import CommandResultCode, SessionCommand

        playlist_id = ids.create_playlist_media_id("Morning")
        container.content.save_media_items(playlist_id, [video_to_media_item(make_video("m1"))])

        result = asyncio.run(
            orchestrator.call_command(SessionCommand.SAVE_QUEUE_ITEMS, {"parent_media_id": playlist_id})
        )

        assert result.code == CommandResultCode.CANCELED
        assert len(orchestrator.queue) == 0
        assert orchestrator.queue_title == ""
        assert container.content.get_playlist("Morning").track_count == 1

    def test_delete_media_items(self, orchestrator, container):
        from models import media_id as ids
        from models.queue_item import MediaItem
        from services.session_commands import CommandResultCode, SessionCommand

        playlist_id = ids.create_playlist_media_id("Old")
        container.content.save_media_items(
            playlist_id, [MediaItem(media_id="x", title="x", media_url=make_video("x").url)]
        )

        deleted = asyncio.run(orchestrator.call_command(SessionCommand.DELETE_MEDIA_ITEMS, {"parent_media_id": playlist_id}))
        again = asyncio.run(orchestrator.call_command(SessionCommand.DELETE_MEDIA_ITEMS, {"parent_media_id": playlist_id}))

        assert deleted.ok
        assert again.code == CommandResultCode.CANCELED
        assert container.content.get_playlists() == []

    def test_save_video_to_open_playlist_appends_to_queue(self, orchestrator, container):
        from models import media_id as ids
        from services.session_commands import CommandResultCode, SessionCommand

        playlist_id = ids.create_playlist_media_id("Mix")

        async def scenario():
            await _queue_and_play(orchestrator, "a")
            await orchestrator.call_command(SessionCommand.SAVE_QUEUE_ITEMS, {"parent_media_id": playlist_id})
            saved = await orchestrator.call_command(
                SessionCommand.SAVE_VIDEO_TO_PLAYLIST, dict(video_args("n"), parent_media_id=playlist_id)
            )
            missing = await orchestrator.call_command(
                SessionCommand.SAVE_VIDEO_TO_PLAYLIST,
                dict(video_args("n"), parent_media_id=ids.create_playlist_media_id("Nope")),
            )
            return saved, missing

        saved, missing = asyncio.run(scenario())

        assert saved.ok
        assert missing.code == CommandResultCode.CANCELED
        assert [t.title for t in container.content.get_playlist("Mix").tracks] == ["Title a", "Title n"]
        assert [i.title for i in orchestrator.queue.items] == ["Title a", "Title n"]

    def test_play_from_saved_playlist(self, orchestrator, container):
        from models import media_id as ids
        from models.playback_state import PlaybackStateCode
        from services.content_service import video_to_media_item

        playlist_id = ids.create_playlist_media_id("Morning")
        container.content.save_media_items(
            playlist_id, [video_to_media_item(v) for v in make_videos("m1", "m2")]
        )

        async def scenario():
            assert orchestrator.play_from_media_id(playlist_id) is True
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())

        assert orchestrator.queue_title == "Morning"
        assert len(orchestrator.queue) == 2
        assert _current_video_id(orchestrator) == "m1"
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert _history_urls(container) == [make_video("m1").url]

    def test_play_from_queue_track_id(self, orchestrator):
        async def scenario():
            await _queue_and_play(orchestrator, "a", "b")
            target = orchestrator.queue.item_at(1)
            assert orchestrator.play_from_media_id(target.media_id) is True
            await orchestrator.wait_for_pending()

        asyncio.run(scenario())
        assert _current_video_id(orchestrator) == "b"

    def test_play_from_unknown_media_id(self, orchestrator):
        from models import media_id as ids

        assert orchestrator.play_from_media_id(ids.create_playlist_media_id("Nope")) is False
        assert orchestrator.play_from_media_id(ids.ROOT_ID) is False

    def test_load_playlist(self, orchestrator, container, video_source):
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        video_source.playlist_titles["PL1"] = "Road Trip"
        video_source.playlists["PL1"] = [make_videos("a", "b")]

        async def scenario():
            result = await orchestrator.call_command(SessionCommand.LOAD_PLAYLIST, {"playlist_id": "PL1"})
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.ok
        assert orchestrator.queue_title == "Road Trip"
        assert [i.title for i in orchestrator.queue.items] == ["Title a", "Title b"]
        assert _current_video_id(orchestrator) == "a"
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        assert _history_urls(container) == [make_video("a").url]

    def test_load_playlist_failure(self, orchestrator, video_source, events):
        from core.event_bus import EventType
        from services.session_commands import CommandResultCode, SessionCommand, UserMessage

        video_source.playlists["PL1"] = [make_videos("a")]
        video_source.fail_listing("PL1")

        result = asyncio.run(orchestrator.call_command(SessionCommand.LOAD_PLAYLIST, {"playlist_id": "PL1"}))

        assert result.code == CommandResultCode.CANCELED
        assert events.of(EventType.USER_MESSAGE) == [UserMessage.ERROR_LOADING_PLAYLIST]
        assert orchestrator.is_loading is False

    def test_continue_generated_playlist(self, orchestrator, video_source, config):
        from services.session_commands import CommandResultCode, SessionCommand

        config.set("playlist.generate_pages", 1)
        video_source.watch["seed"] = [make_videos("seed", "a"), make_videos("b", "c")]

        async def scenario():
            first = await orchestrator.call_command(SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"})
            await orchestrator.wait_for_pending()
            more = await orchestrator.call_command(SessionCommand.CONTINUE_GENERATE_PLAYLIST)
            done = await orchestrator.call_command(SessionCommand.CONTINUE_GENERATE_PLAYLIST)
            return first, more, done

        first, more, done = asyncio.run(scenario())

        assert first.ok and more.ok
        assert done.code == CommandResultCode.CANCELED
        assert len(orchestrator.queue) == 4
        assert len({i.queue_id for i in orchestrator.queue.items}) == 4
        assert _current_video_id(orchestrator) == "seed"

    def test_recommended_without_history_is_canceled(self, orchestrator):
        from services.session_commands import RECOMMENDED_MIX_TITLE, CommandResultCode, SessionCommand

        result = asyncio.run(orchestrator.call_command(SessionCommand.GENERATE_RECOMMENDED_PLAYLIST))

        assert result.code == CommandResultCode.CANCELED
        assert orchestrator.queue_title == RECOMMENDED_MIX_TITLE
        assert len(orchestrator.queue) == 0

    def test_recommended_and_continue(self, orchestrator, container, video_source):
        from models.playback_state import PlaybackStateCode
        from services.session_commands import SessionCommand

        seed = make_video("h1")
        container.history.add_track(seed.title, seed.author, seed.duration_ms, seed.url)
        video_source.watch["h1"] = [make_videos("h1", "r1", "r2", "r3")]

        async def scenario():
            first = await orchestrator.call_command(SessionCommand.GENERATE_RECOMMENDED_PLAYLIST)
            await orchestrator.wait_for_pending()
            more = await orchestrator.call_command(SessionCommand.CONTINUE_GENERATE_RECOMMENDED_PLAYLIST)
            return first, more

        first, more = asyncio.run(scenario())

        assert first.ok and more.ok
        assert len(orchestrator.queue) == 6
        assert orchestrator.playback_state.state == PlaybackStateCode.PLAYING
        # Generated mixes are not added to the history
        assert _history_urls(container) == [seed.url]

    def test_historical_playlist(self, orchestrator, container):
        from services.session_commands import LISTEN_AGAIN_MIX_TITLE, CommandResultCode, SessionCommand

        empty = asyncio.run(orchestrator.call_command(SessionCommand.GENERATE_HISTORICAL_PLAYLIST))
        assert empty.code == CommandResultCode.CANCELED

        for video in reversed(make_videos("h1", "h2", "h3")):
            container.history.add_track(video.title, video.author, video.duration_ms, video.url)

        async def scenario():
            result = await orchestrator.call_command(SessionCommand.GENERATE_HISTORICAL_PLAYLIST)
            await orchestrator.wait_for_pending()
            return result

        result = asyncio.run(scenario())

        assert result.ok
        assert orchestrator.queue_title == LISTEN_AGAIN_MIX_TITLE
        assert len(orchestrator.queue) == 3
        assert _current_video_id(orchestrator) == "h1"


class TestCommandGating:
    """Command Gating Tests"""

    def test_commands_rejected_while_generating(self, orchestrator, container, video_source):
        from models import media_id as ids
        from models.queue_item import MediaItem
        from services.session_commands import CommandResultCode, SessionCommand

        playlist_id = ids.create_playlist_media_id("Favorites")
        container.content.save_media_items(
            playlist_id, [MediaItem(media_id="x", title="x", media_url=make_video("x").url)]
        )
        video_source.watch["seed"] = [make_videos("seed", "a", "b")]

        async def scenario():
            video_source.gate = asyncio.Event()
            generation = asyncio.ensure_future(
                orchestrator.call_command(SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "seed"})
            )
            await _spin()
            assert orchestrator.is_generating is True

            cleared = await orchestrator.call_command(SessionCommand.CLEAR_QUEUE_ITEMS)
            shuffled = await orchestrator.call_command(SessionCommand.ENABLE_SHUFFLE_MODE)
            saved = await orchestrator.call_command(
                SessionCommand.SAVE_VIDEO_TO_PLAYLIST, dict(video_args("s"), parent_media_id=playlist_id)
            )

            video_source.gate.set()
            generated = await generation
            await orchestrator.wait_for_pending()
            return cleared, shuffled, saved, generated

        cleared, shuffled, saved, generated = asyncio.run(scenario())

        assert cleared.code == CommandResultCode.CANCELED
        assert shuffled.code == CommandResultCode.CANCELED
        assert saved.ok
        assert generated.ok
        assert orchestrator.is_generating is False
        assert len(orchestrator.queue) == 3
        assert [t.title for t in container.content.get_playlist("Favorites").tracks] == ["x", "Title s"]
