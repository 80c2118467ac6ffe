"""
Session Orchestrator Module

Drives the playback session: sequences tracks through the MusicQueue,
coordinates stream/metadata resolution with the playback controller,
recovers from network loss and executes the session command surface.

Observers follow the session through the event bus:
PLAYBACK_STATE_CHANGED, METADATA_CHANGED, QUEUE_CHANGED, QUEUE_TITLE_CHANGED,
SHUFFLE_MODE_CHANGED, PLAYLIST_GENERATED, COMMAND_COMPLETED, SESSION_STARTED,
SESSION_IDLE and USER_MESSAGE.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from core.cancellation import CancellationScope, OperationCancelledError
from core.event_bus import EventBus, EventType
from core.network_status import NetworkMonitor
from models import media_id as ids
from models.metadata import TrackMetadata
from models.playback_state import PlaybackAction, PlaybackState, PlaybackStateCode
from models.queue_item import MediaItem, QueueItem
from models.video import Video
from services.config_service import ConfigService
from services.content_service import (
    ContentService,
    media_items_to_queue,
    queue_to_media_items,
    video_to_queue_item,
)
from services.music_queue import MusicQueue
from services.playback_controller import PlaybackController
from services.playlist_generator import PlaylistGenerator
from services.recommendation_service import RecommendationService
from services.session_commands import (
    LISTEN_AGAIN_MIX_TITLE,
    RECOMMENDED_MIX_TITLE,
    CommandResult,
    SessionCommand,
    UserMessage,
)
from services.stream_resolver import StreamResolver, TrackResolution

logger = logging.getLogger(__name__)

CommandArgs = Dict[str, Any]

# Commands that stay available while a playlist is loading or generating
_UNGATED_COMMANDS = frozenset({SessionCommand.SAVE_VIDEO_TO_PLAYLIST})

_VIDEO_ARGS = ("title", "artist", "icon_uri", "media_uri", "duration_ms")


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class SessionOrchestrator:
    """
    Session Orchestrator

    All methods must be called on the event loop thread that owns the session.
    Transport methods (play, skip_*) start playback as background tasks;
    wait_for_pending() awaits them.

    Usage example:
        orchestrator = container.orchestrator

        result = await orchestrator.call_command(
            SessionCommand.GENERATE_NEW_PLAYLIST, {"video_id": "dQw4w9WgXcQ"}
        )
        if result.ok:
            await orchestrator.wait_for_pending()

        orchestrator.skip_to_next()
        orchestrator.request_pause()
    """

    def __init__(
        self,
        controller: PlaybackController,
        resolver: StreamResolver,
        generator: PlaylistGenerator,
        content: ContentService,
        history: RecommendationService,
        network: NetworkMonitor,
        event_bus: Optional[EventBus] = None,
        config: Optional[ConfigService] = None,
        queue: Optional[MusicQueue] = None,
    ):
        self._controller = controller
        self._resolver = resolver
        self._generator = generator
        self._content = content
        self._history = history
        self._network = network
        self._event_bus = event_bus or EventBus()
        self._config = config or ConfigService()
        self._queue = queue or MusicQueue()

        self._track_scope = CancellationScope("track")
        self._playlist_scope = CancellationScope("playlist")

        self._resolution: Optional[TrackResolution] = None
        self._metadata: Optional[TrackMetadata] = None
        self._state = PlaybackState()
        self._queue_title = ""
        self._shuffle_mode = False
        self._session_active = False

        # Command gating flags
        self._loading = False
        self._generating = False

        self._consecutive_failures = 0
        self._tasks: Set[asyncio.Task] = set()
        self._delayed_stop: Optional[asyncio.Task] = None
        self._progress_timer: Optional[asyncio.Task] = None

        self._command_handlers: Dict[SessionCommand, Callable[[CommandArgs], Awaitable[CommandResult]]] = {
            SessionCommand.ENABLE_SHUFFLE_MODE: self._cmd_enable_shuffle_mode,
            SessionCommand.DISABLE_SHUFFLE_MODE: self._cmd_disable_shuffle_mode,
            SessionCommand.SAVE_QUEUE_ITEMS: self._cmd_save_queue_items,
            SessionCommand.DELETE_MEDIA_ITEMS: self._cmd_delete_media_items,
            SessionCommand.CLEAR_QUEUE_ITEMS: self._cmd_clear_queue_items,
            SessionCommand.MOVE_QUEUE_ITEM: self._cmd_move_queue_item,
            SessionCommand.REMOVE_QUEUE_ITEM: self._cmd_remove_queue_item,
            SessionCommand.QUEUE_VIDEO_TO_NEW_PLAYLIST: self._cmd_queue_video_to_new_playlist,
            SessionCommand.QUEUE_VIDEO_NEXT: self._cmd_queue_video_next,
            SessionCommand.QUEUE_VIDEO_LAST: self._cmd_queue_video_last,
            SessionCommand.SAVE_VIDEO_TO_PLAYLIST: self._cmd_save_video_to_playlist,
            SessionCommand.LOAD_PLAYLIST: self._cmd_load_playlist,
            SessionCommand.GENERATE_NEW_PLAYLIST: self._cmd_generate_new_playlist,
            SessionCommand.CONTINUE_GENERATE_PLAYLIST: self._cmd_continue_generate_playlist,
            SessionCommand.GENERATE_RECOMMENDED_PLAYLIST: self._cmd_generate_recommended_playlist,
            SessionCommand.CONTINUE_GENERATE_RECOMMENDED_PLAYLIST: self._cmd_continue_generate_recommended_playlist,
            SessionCommand.GENERATE_HISTORICAL_PLAYLIST: self._cmd_generate_historical_playlist,
        }

        self._controller.set_listener(self)
        self._network_listener_id = self._network.add_listener(
            on_available=self._on_network_available,
            on_lost=self._on_network_lost,
        )

    # ===== Read-only state =====

    @property
    def queue(self) -> MusicQueue:
        return self._queue

    @property
    def playback_state(self) -> PlaybackState:
        """Last published snapshot"""
        return self._state

    @property
    def metadata(self) -> Optional[TrackMetadata]:
        return self._metadata

    @property
    def queue_title(self) -> str:
        return self._queue_title

    @property
    def shuffle_mode(self) -> bool:
        return self._shuffle_mode

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_generating(self) -> bool:
        return self._generating

    @property
    def is_session_active(self) -> bool:
        return self._session_active

    def available_actions(self) -> PlaybackAction:
        actions = PlaybackAction.PLAY | PlaybackAction.PLAY_FROM_MEDIA_ID | PlaybackAction.PLAY_FROM_SEARCH
        if len(self._queue) == 0:
            return actions

        if self._controller.state in (PlaybackStateCode.PAUSED, PlaybackStateCode.PLAYING):
            actions |= PlaybackAction.STOP | PlaybackAction.SKIP_TO_PREVIOUS | PlaybackAction.SKIP_TO_NEXT
        if self._controller.is_playing:
            actions |= PlaybackAction.PAUSE
        return actions

    # ===== Transport =====

    def play(self) -> None:
        """Start request_play() in the background"""
        self._spawn(self.request_play())

    async def request_play(self) -> None:
        """
        Play the current queue item.

        Resumes when paused. Otherwise resolves the item (reusing an in-flight
        resolution for the same item), publishes its metadata and loads the
        stream, retrying up to session.load_attempts times before skipping to
        the next item (or stopping when nothing else can play).
        """
        if not self._require_network():
            return

        token = self._track_scope.token

        if self._controller.state == PlaybackStateCode.PAUSED:
            self._controller.resume()
            return

        item = self._queue.current_item()
        if item is None:
            return

        attempts = int(self._config.get("session.load_attempts", 3))
        retry_delay = int(self._config.get("session.load_retry_delay_ms", 500)) / 1000.0

        for attempt in range(1, attempts + 1):
            resolution = self._ensure_resolution(item)

            try:
                metadata = await resolution.metadata
            except OperationCancelledError:
                self._on_track_load_cancelled()
                return
            except Exception as e:
                logger.error("Metadata load failed for %s: %s", item.media_id, e)
                self._show_message(UserMessage.ERROR_PLAYING_TRACK)
                self.request_stop()
                return

            if metadata is not None:
                self._set_metadata(metadata)
            else:
                self._publish_state(error_message="Unable to load track metadata")

            self._controller.state = PlaybackStateCode.BUFFERING

            try:
                loaded = await self._controller.load_stream(resolution.stream_url)
            except OperationCancelledError:
                self._on_track_load_cancelled()
                return
            except Exception as e:
                logger.error("Stream load failed for %s: %s", item.media_id, e)
                self._show_message(UserMessage.ERROR_PLAYING_TRACK)
                self.request_stop()
                return

            state = self._controller.state
            if state in (PlaybackStateCode.PAUSED, PlaybackStateCode.STOPPED):
                # Paused or stopped while buffering
                return

            if loaded:
                self._consecutive_failures = 0
                self._start_session()
                self._controller.play_when_ready = True
                return

            if attempt < attempts:
                logger.warning(
                    "No stream for %s (attempt %d/%d), retrying", item.media_id, attempt, attempts
                )
                try:
                    await token.wait_or_cancel(asyncio.sleep(retry_delay))
                except OperationCancelledError:
                    self._on_track_load_cancelled()
                    return
                if self._queue.current_item() is not item:
                    return

        self._on_track_failed(item)

    def request_pause(self) -> None:
        # Parked for network recovery: the resume will happen by itself
        if not self._network.is_connected and self._controller.resume_on_network:
            return

        self._controller.pause()
        self._schedule_delayed_stop()

    def request_stop(self) -> None:
        self._controller.stop()
        self._track_scope.cancel_and_replace()
        self._resolution = None
        self._schedule_delayed_stop()

    def seek_to(self, position_ms: int) -> None:
        self._controller.seek_to(position_ms)

    def skip_to_next(self) -> bool:
        return self._skip(PlaybackStateCode.SKIPPING_TO_NEXT, self._queue.increment_index)

    def skip_to_previous(self) -> bool:
        return self._skip(PlaybackStateCode.SKIPPING_TO_PREVIOUS, self._queue.decrement_index)

    def skip_to_queue_item(self, queue_id: int) -> bool:
        return self._skip(
            PlaybackStateCode.SKIPPING_TO_QUEUE_ITEM,
            lambda: self._queue.set_item_by_queue_id(queue_id),
        )

    def play_from_media_id(self, media_id: str) -> bool:
        """
        Play a saved playlist (from its first track) or a track of the current queue.

        Returns:
            False when the id names nothing playable
        """
        if ids.is_playlist(media_id):
            media_items = self._content.get_media_items(media_id)
            if not media_items:
                return False

            self._stop_if_active()
            self._replace_queue(media_items_to_queue(media_items))
            self._set_queue_title(ids.get_playlist_name(media_id))
            self.play()
            self._add_to_history(self._queue.item_at(0))
            return True

        if ids.is_track(media_id):
            item = self._queue.item_by_media_id(media_id)
            if item is None:
                return False

            self._stop_if_active()
            self._queue.set_item_by_queue_id(item.queue_id)
            self.play()
            self._add_to_history(item)
            return True

        return False

    def _skip(self, state: PlaybackStateCode, move: Callable[[], Any]) -> bool:
        if len(self._queue) == 0 or self._controller.resume_on_network:
            return False

        # Mute the old track before the swap
        if self._controller.state == PlaybackStateCode.PLAYING:
            self._controller.quick_pause()
            self._controller.seek_to(0)

        self._controller.state = state
        move()
        self.play()
        return True

    def _stop_if_active(self) -> None:
        if self._controller.state.is_active:
            self.request_stop()

    # ===== Track loading =====

    def _ensure_resolution(self, item: QueueItem) -> TrackResolution:
        resolution = self._resolution
        if resolution is not None and resolution.matches(item) and resolution.reusable:
            logger.debug("Reusing in-flight resolution for %s", item.media_id)
            return resolution

        self._resolution = self._resolver.resolve(item, self._track_scope.token)
        return self._resolution

    def _on_track_load_cancelled(self) -> None:
        # Superseded requests are silent, connectivity loss is not
        if not self._network.is_connected:
            self._show_message(UserMessage.NO_NETWORK)
            self.request_stop()

    def _on_track_failed(self, item: QueueItem) -> None:
        self._consecutive_failures += 1
        logger.error("Track could not be played: %s", item.media_id)
        self._show_message(UserMessage.TRACK_COULD_NOT_BE_PLAYED)

        if len(self._queue) > 1 and self._consecutive_failures < len(self._queue):
            self._controller.state = PlaybackStateCode.SKIPPING_TO_NEXT
            self._queue.increment_index()
            self.play()
        else:
            self._consecutive_failures = 0
            self.request_stop()

    # ===== Controller listener =====

    def on_completion(self) -> None:
        if len(self._queue) == 0:
            self.request_stop()
            return

        self._controller.state = PlaybackStateCode.SKIPPING_TO_NEXT
        self._controller.seek_to(0)
        self._controller.quick_pause()

        if self._queue.index >= len(self._queue) - 1:
            self.request_stop()
        else:
            self._queue.increment_index()
            self.play()

    def on_playback_state_changed(self, state: PlaybackStateCode) -> None:
        self._update_progress_timer(state)
        self._publish_state()

    def on_error(self, message: str) -> None:
        self._publish_state(error_message=message)

    # ===== Network =====

    def _on_network_available(self) -> None:
        self._spawn(self._resume_after_network_recovery())

    async def _resume_after_network_recovery(self) -> None:
        if self._controller.state == PlaybackStateCode.BUFFERING and self._controller.resume_on_network:
            position = self._controller.current_position_ms
            logger.info("Network recovered, resuming at %d ms", position)
            self._controller.state = PlaybackStateCode.STOPPED
            await self.request_play()
            self._controller.seek_to(position)
        self._controller.resume_on_network = False

    def _on_network_lost(self) -> None:
        self._track_scope.cancel_and_replace()
        self._playlist_scope.cancel_and_replace()

    # ===== Timers =====

    def _schedule_delayed_stop(self) -> None:
        loop = _running_loop()
        if loop is None:
            return
        if self._delayed_stop is not None:
            self._delayed_stop.cancel()
        self._delayed_stop = loop.create_task(self._delayed_stop_after())

    async def _delayed_stop_after(self) -> None:
        await asyncio.sleep(int(self._config.get("session.stop_delay_ms", 3000)) / 1000.0)
        if self._controller.is_playing:
            return
        if self._session_active:
            self._session_active = False
            logger.info("Session idle")
            self._event_bus.publish_sync(EventType.SESSION_IDLE, None)

    def _update_progress_timer(self, state: PlaybackStateCode) -> None:
        if state == PlaybackStateCode.PLAYING:
            loop = _running_loop()
            if loop is not None and (self._progress_timer is None or self._progress_timer.done()):
                self._progress_timer = loop.create_task(self._progress_loop())
        elif self._progress_timer is not None:
            self._progress_timer.cancel()
            self._progress_timer = None

    async def _progress_loop(self) -> None:
        interval = int(self._config.get("session.progress_interval_ms", 2000)) / 1000.0
        while True:
            await asyncio.sleep(interval)
            self._on_progress_tick()

    def _on_progress_tick(self) -> None:
        """Pre-resolve the next item once the current one is about to end"""
        duration = self._controller.duration_ms
        if duration <= 0:
            return

        threshold = int(self._config.get("session.preload_threshold_ms", 60000))
        remaining = duration - self._controller.current_position_ms
        if remaining > threshold or self._queue.index >= len(self._queue) - 1:
            return

        next_item = self._queue.item_at(self._queue.index + 1)
        resolving = self._resolution.item.media_id if self._resolution is not None else ""
        if next_item is not None and next_item.media_id != resolving:
            logger.debug("Pre-resolving next track %s", next_item.media_id)
            self._resolution = self._resolver.resolve(next_item, self._track_scope.token)

    # ===== Commands =====

    async def call_command(self, command: SessionCommand, args: Optional[CommandArgs] = None) -> CommandResult:
        """
        Execute a session command.

        Args:
            command: Command (or its wire name)
            args: Command arguments

        Returns:
            OK, or CANCELED when the command was rejected, lacked arguments or failed

        Raises:
            ValueError: Unknown command name
        """
        command = SessionCommand(command)

        if command not in _UNGATED_COMMANDS and (self._loading or self._generating):
            logger.info("Ignoring %s while a playlist is loading or generating", command.value)
            result = CommandResult.canceled(command)
        else:
            result = await self._command_handlers[command](args or {})

        logger.debug("Command %s -> %s", command.value, result.code.value)
        self._event_bus.publish_sync(EventType.COMMAND_COMPLETED, result)
        return result

    async def _cmd_enable_shuffle_mode(self, args: CommandArgs) -> CommandResult:
        keep_current_first = self._controller.state in (
            PlaybackStateCode.PLAYING,
            PlaybackStateCode.PAUSED,
            PlaybackStateCode.BUFFERING,
        )
        self._queue.shuffle(keep_current_first)
        self._set_shuffle_mode(True)
        self._publish_queue()
        return CommandResult.success(SessionCommand.ENABLE_SHUFFLE_MODE)

    async def _cmd_disable_shuffle_mode(self, args: CommandArgs) -> CommandResult:
        self._queue.unshuffle()
        self._set_shuffle_mode(False)
        self._publish_queue()
        return CommandResult.success(SessionCommand.DISABLE_SHUFFLE_MODE)

    async def _cmd_save_queue_items(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.SAVE_QUEUE_ITEMS
        parent_media_id = args.get("parent_media_id")
        if len(self._queue) == 0 or not parent_media_id or not ids.is_playlist(parent_media_id):
            return CommandResult.canceled(command)

        self._content.save_media_items(parent_media_id, queue_to_media_items(self._queue.items))

        # Reload the saved tracks so the queue carries the playlist's media ids
        index = self._queue.index
        self._queue.set_items(media_items_to_queue(self._content.get_media_items(parent_media_id)))
        while self._queue.index != index and self._queue.index < len(self._queue) - 1:
            self._queue.increment_index()

        self._publish_queue()
        self._set_queue_title(ids.get_playlist_name(parent_media_id))
        return CommandResult.success(command)

    async def _cmd_delete_media_items(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.DELETE_MEDIA_ITEMS
        parent_media_id = args.get("parent_media_id")
        if parent_media_id and self._content.delete_media_items(parent_media_id):
            return CommandResult.success(command)
        return CommandResult.canceled(command)

    async def _cmd_clear_queue_items(self, args: CommandArgs) -> CommandResult:
        self._stop_if_active()
        self._replace_queue([])
        return CommandResult.success(SessionCommand.CLEAR_QUEUE_ITEMS)

    async def _cmd_move_queue_item(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.MOVE_QUEUE_ITEM
        media_id = args.get("media_id")
        to_position = args.get("to_position")
        if media_id is None or to_position is None:
            return CommandResult.canceled(command)

        if self._queue.move_item(media_id, int(to_position)):
            self._publish_queue()
        return CommandResult.success(command)

    async def _cmd_remove_queue_item(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.REMOVE_QUEUE_ITEM
        position = args.get("position")
        if position is None:
            return CommandResult.canceled(command)
        position = int(position)

        if len(self._queue) == 1:
            self._stop_if_active()
            self._queue.remove_item(position)
        elif position == self._queue.index and self._controller.state in (
            PlaybackStateCode.PLAYING,
            PlaybackStateCode.BUFFERING,
        ):
            # The cursor now names the item that moved into the slot
            self.request_stop()
            self._queue.remove_item(position)
            self.play()
        else:
            self._queue.remove_item(position)

        self._publish_queue()
        return CommandResult.success(command)

    async def _cmd_queue_video_to_new_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.QUEUE_VIDEO_TO_NEW_PLAYLIST
        item = self._queue_item_from_args(args, queue_id=0)
        if item is None:
            return CommandResult.canceled(command)

        self._stop_if_active()
        self._replace_queue([item])
        self._set_queue_title(ids.DEFAULT_PLAYLIST_NAME)
        self.play()
        self._add_to_history(item)
        return CommandResult.success(command)

    async def _cmd_queue_video_next(self, args: CommandArgs) -> CommandResult:
        if len(self._queue) == 0:
            result = await self._cmd_queue_video_to_new_playlist(args)
            return CommandResult(SessionCommand.QUEUE_VIDEO_NEXT, result.code)

        command = SessionCommand.QUEUE_VIDEO_NEXT
        item = self._queue_item_from_args(args, queue_id=self._queue.next_queue_id())
        if item is None:
            return CommandResult.canceled(command)

        self._queue.insert_next(item)
        self._publish_queue()
        self._add_to_history(item)
        return CommandResult.success(command)

    async def _cmd_queue_video_last(self, args: CommandArgs) -> CommandResult:
        if len(self._queue) == 0:
            result = await self._cmd_queue_video_to_new_playlist(args)
            return CommandResult(SessionCommand.QUEUE_VIDEO_LAST, result.code)

        command = SessionCommand.QUEUE_VIDEO_LAST
        item = self._queue_item_from_args(args, queue_id=self._queue.next_queue_id())
        if item is None:
            return CommandResult.canceled(command)

        self._queue.insert_last(item)
        self._publish_queue()
        self._add_to_history(item)

        if args.get("play_if_stopped") and not self._controller.state.is_active:
            self._queue.set_item_by_queue_id(item.queue_id)
            self.play()
        return CommandResult.success(command)

    async def _cmd_save_video_to_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.SAVE_VIDEO_TO_PLAYLIST
        parent_media_id = args.get("parent_media_id")
        if not parent_media_id or any(args.get(k) is None for k in _VIDEO_ARGS):
            return CommandResult.canceled(command)

        playlist_name = ids.get_playlist_name(parent_media_id)
        media_item = MediaItem(
            media_id=ids.create_track_media_id(playlist_name, args["media_uri"]),
            title=args["title"],
            subtitle=args["artist"],
            duration_ms=int(args["duration_ms"]),
            media_url=args["media_uri"],
            icon_url=args["icon_uri"],
        )
        if not self._content.save_media_item(parent_media_id, media_item):
            return CommandResult.canceled(command)

        # Keep the open playlist in sync with what was saved
        if self._queue_title == playlist_name:
            await self._cmd_queue_video_last(dict(args, play_if_stopped=False))
        return CommandResult.success(command)

    async def _cmd_load_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.LOAD_PLAYLIST
        playlist_id = args.get("playlist_id")
        if not playlist_id or not self._require_network():
            return CommandResult.canceled(command)

        self._loading = True
        try:
            playlist = await self._generator.load_playlist(playlist_id, self._playlist_scope.token)
        except OperationCancelledError:
            logger.info("Playlist load cancelled: %s", playlist_id)
            return CommandResult.canceled(command)
        except Exception as e:
            logger.error("Playlist load failed for %s: %s", playlist_id, e)
            self._show_message(UserMessage.ERROR_LOADING_PLAYLIST)
            return CommandResult.canceled(command)
        finally:
            self._loading = False

        if not playlist.videos:
            return CommandResult.canceled(command)

        self._stop_if_active()
        self._replace_queue(self._videos_to_queue(playlist.videos))
        self._set_queue_title(playlist.title)
        self.play()
        self._add_to_history(self._queue.item_at(0))
        return CommandResult.success(command)

    async def _cmd_generate_new_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.GENERATE_NEW_PLAYLIST
        video_id = args.get("video_id")
        if not video_id:
            return CommandResult.canceled(command)

        self._set_queue_title(ids.DEFAULT_PLAYLIST_NAME)
        if not self._require_network():
            return CommandResult.canceled(command)

        videos = await self._generate(
            lambda token: self._generator.generate_playlist(video_id, token)
        )
        if not videos:
            return CommandResult.canceled(command)

        self._start_generated_queue(videos)
        self._add_to_history(self._queue.item_at(0))
        return CommandResult.success(command)

    async def _cmd_continue_generate_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.CONTINUE_GENERATE_PLAYLIST
        if not self._generator.can_continue_generation or not self._require_network():
            return CommandResult.canceled(command)

        videos = await self._generate(self._generator.continue_generation)
        if not videos:
            return CommandResult.canceled(command)

        self._append_generated(videos)
        return CommandResult.success(command)

    async def _cmd_generate_recommended_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.GENERATE_RECOMMENDED_PLAYLIST
        if not self._require_network():
            return CommandResult.canceled(command)

        self._set_queue_title(RECOMMENDED_MIX_TITLE)
        videos = await self._generate(self._generator.generate_recommended)
        if not videos:
            return CommandResult.canceled(command)

        self._start_generated_queue(videos)
        return CommandResult.success(command)

    async def _cmd_continue_generate_recommended_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.CONTINUE_GENERATE_RECOMMENDED_PLAYLIST
        if not self._generator.seed_tracks or not self._require_network():
            return CommandResult.canceled(command)

        videos = await self._generate(
            lambda token: self._generator.generate_recommended(token, continue_existing=True)
        )
        if not videos:
            return CommandResult.canceled(command)

        self._append_generated(videos)
        return CommandResult.success(command)

    async def _cmd_generate_historical_playlist(self, args: CommandArgs) -> CommandResult:
        command = SessionCommand.GENERATE_HISTORICAL_PLAYLIST
        self._set_queue_title(LISTEN_AGAIN_MIX_TITLE)

        videos = self._history.historical_videos()
        if not videos:
            return CommandResult.canceled(command)

        self._start_generated_queue(videos)
        return CommandResult.success(command)

    async def _generate(self, run: Callable[..., Awaitable[List[Video]]]) -> List[Video]:
        """Run a generator call under the playlist scope with the generating flag set"""
        self._generating = True
        try:
            return await run(self._playlist_scope.token)
        except OperationCancelledError:
            logger.info("Playlist generation cancelled")
            return []
        finally:
            self._generating = False

    def _start_generated_queue(self, videos: List[Video]) -> None:
        """Replace the queue with generated videos (first one pinned) and start playback"""
        self._stop_if_active()
        items = self._videos_to_queue(videos)
        MusicQueue.shuffle_list(items, keep_first=True)
        self._replace_queue(items)
        self.play()
        self._event_bus.publish_sync(EventType.PLAYLIST_GENERATED, len(items))

    def _append_generated(self, videos: List[Video]) -> None:
        items = self._videos_to_queue(videos, first_queue_id=self._queue.next_queue_id())
        MusicQueue.shuffle_list(items, keep_first=False)
        for item in items:
            self._queue.insert_last(item)
        self._publish_queue()
        self._event_bus.publish_sync(EventType.PLAYLIST_GENERATED, len(items))

    @staticmethod
    def _videos_to_queue(videos: List[Video], first_queue_id: int = 0) -> List[QueueItem]:
        return [video_to_queue_item(video, first_queue_id + i) for i, video in enumerate(videos)]

    @staticmethod
    def _queue_item_from_args(args: CommandArgs, queue_id: int) -> Optional[QueueItem]:
        if any(args.get(k) is None for k in _VIDEO_ARGS):
            return None
        media_uri = args["media_uri"]
        return QueueItem(
            media_id=ids.create_track_media_id(ids.DEFAULT_PLAYLIST_NAME, media_uri),
            title=args["title"],
            artist=args["artist"],
            duration_ms=int(args["duration_ms"]),
            source_url=media_uri,
            artwork_url=args["icon_uri"],
            queue_id=queue_id,
        )

    # ===== Publishing =====

    def _publish_state(self, error_message: Optional[str] = None) -> None:
        code = PlaybackStateCode.ERROR if error_message is not None else self._controller.state
        current = self._queue.current_item()
        self._state = PlaybackState(
            state=code,
            position_ms=self._controller.current_position_ms,
            error_message=error_message,
            active_queue_id=current.queue_id if current is not None else None,
            actions=self.available_actions(),
        )
        self._event_bus.publish_sync(EventType.PLAYBACK_STATE_CHANGED, self._state)

    def _publish_queue(self) -> None:
        self._event_bus.publish_sync(EventType.QUEUE_CHANGED, self._queue.items)

    def _replace_queue(self, items: List[QueueItem]) -> None:
        self._queue.set_items(items)
        self._consecutive_failures = 0
        logger.info("Queue replaced (%d items)", len(items))
        self._publish_queue()

    def _set_queue_title(self, title: str) -> None:
        self._queue_title = title
        self._event_bus.publish_sync(EventType.QUEUE_TITLE_CHANGED, title)

    def _set_shuffle_mode(self, enabled: bool) -> None:
        self._shuffle_mode = enabled
        self._event_bus.publish_sync(EventType.SHUFFLE_MODE_CHANGED, enabled)

    def _set_metadata(self, metadata: TrackMetadata) -> None:
        self._metadata = metadata
        self._event_bus.publish_sync(EventType.METADATA_CHANGED, metadata)

    def _show_message(self, message: UserMessage) -> None:
        self._event_bus.publish_sync(EventType.USER_MESSAGE, message)

    def _require_network(self) -> bool:
        """False, after telling the user, when there is no connectivity"""
        if self._network.is_connected:
            return True
        self._show_message(UserMessage.NO_NETWORK)
        return False

    def _start_session(self) -> None:
        if not self._session_active:
            self._session_active = True
            logger.info("Session started")
            self._event_bus.publish_sync(EventType.SESSION_STARTED, None)

    def _add_to_history(self, item: Optional[QueueItem]) -> None:
        if item is not None:
            self._history.add_track(item.title, item.artist, item.duration_ms, item.source_url)

    # ===== Task management =====

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Session task failed: %s", error, exc_info=error)

    async def wait_for_pending(self) -> None:
        """Wait until every background playback task (including ones they start) is done"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def shutdown(self) -> None:
        """Stop playback and release everything the session owns"""
        for task in list(self._tasks):
            task.cancel()
        for timer in (self._delayed_stop, self._progress_timer):
            if timer is not None:
                timer.cancel()
        self._delayed_stop = None
        self._progress_timer = None

        self._track_scope.cancel_and_replace()
        self._playlist_scope.cancel_and_replace()
        self._network.remove_listener(self._network_listener_id)
        self._controller.release()
        logger.info("Session shut down")
