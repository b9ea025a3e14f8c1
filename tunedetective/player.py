from __future__ import annotations

import atexit
import logging
import threading
import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .songs import Song

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PROGRESS_STEP = 1
PROGRESS_END = 100
TICK_SECONDS = 0.3   # 100 ticks -> 30s song preview
IDLE_TIMEOUT_SECONDS = 120   # controllers nobody polls for this long are torn down


class PlaybackState(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_song: Optional[Song] = None
    current_index: Optional[int] = None
    is_playing: bool = False
    progress: int = 0

    @property
    def status(self) -> str:
        if self.current_song is None:
            return "idle"
        return "playing" if self.is_playing else "paused"


IDLE = PlaybackState()


# ----------------- transitions ---------------- #
# Each transition takes the current state and playlist and returns a new state.


def select_song(state: PlaybackState, song: Song, index: int) -> PlaybackState:
    if song.same_track(state.current_song):
        return state.model_copy(update={"is_playing": not state.is_playing})
    return PlaybackState(current_song=song, current_index=index, is_playing=True, progress=0)


def toggle_play_pause(state: PlaybackState, playlist: Sequence[Song]) -> PlaybackState:
    if state.current_song is not None:
        return state.model_copy(update={"is_playing": not state.is_playing})
    if not playlist:
        return state
    return select_song(state, playlist[0], 0)


def next_song(state: PlaybackState, playlist: Sequence[Song]) -> PlaybackState:
    if state.current_index is None or not playlist:
        return state
    index = (state.current_index + 1) % len(playlist)
    return select_song(state, playlist[index], index)


def prev_song(state: PlaybackState, playlist: Sequence[Song]) -> PlaybackState:
    if state.current_index is None or not playlist:
        return state
    index = (state.current_index - 1 + len(playlist)) % len(playlist)
    return select_song(state, playlist[index], index)


def tick(state: PlaybackState, playlist: Sequence[Song]) -> PlaybackState:
    if not state.is_playing or state.current_song is None:
        return state
    progress = state.progress + PROGRESS_STEP
    if progress >= PROGRESS_END:
        advanced = next_song(state, playlist)
        return advanced.model_copy(update={"progress": 0})
    return state.model_copy(update={"progress": progress})


def replace_playlist(state: PlaybackState) -> PlaybackState:
    # always Idle, even if the new playlist contains the current title/artist
    return IDLE


# ----------------- scheduling ---------------- #


class Ticker:
    """
    Periodic task built from chained one-shot timers. At most one timer is pending at a time:
    start() cancels the previous handle before arming a new one.
    """

    def __init__(self, callback: Callable[[], None], period: float = TICK_SECONDS,
                 timer_factory=threading.Timer):
        self.callback = callback
        self.period = period
        self._timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._timer is not None

    def start(self):
        with self._lock:
            self._cancel_locked()
            self._arm_locked()

    def cancel(self):
        with self._lock:
            self._cancel_locked()

    def _arm_locked(self):
        generation = self._generation
        timer = self._timer_factory(self.period, self._fire, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_locked(self):
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int):
        with self._lock:
            # a timer cancelled after it already started running must not re-arm
            if generation != self._generation:
                return
            self._timer = None
        self.callback()
        with self._lock:
            if generation == self._generation and self._timer is None:
                self._arm_locked()


class PlaybackController:
    """
    Owns one PlaybackState plus the ticker that advances it. The ticker runs exactly while
    the state is playing.
    """

    def __init__(self, playlist: Sequence[Song] = (), period: float = TICK_SECONDS,
                 timer_factory=threading.Timer, idle_timeout: Optional[float] = None,
                 clock=time.monotonic):
        self._lock = threading.RLock()
        self.idle_timeout = idle_timeout
        self._clock = clock
        self.last_touched = clock()
        self.playlist: Tuple[Song, ...] = tuple(playlist)
        self.state = IDLE
        self.ticker = Ticker(self.tick, period=period, timer_factory=timer_factory)

    def touch(self):
        self.last_touched = self._clock()

    @property
    def expired(self) -> bool:
        return (self.idle_timeout is not None
                and self._clock() - self.last_touched > self.idle_timeout)

    def _apply(self, new_state: PlaybackState) -> PlaybackState:
        old_state = self.state
        self.state = new_state
        song_changed = not (new_state.current_song is not None
                            and new_state.current_song.same_track(old_state.current_song)
                            and new_state.current_index == old_state.current_index)

        if not new_state.is_playing:
            self.ticker.cancel()
        elif not old_state.is_playing or song_changed:
            self.ticker.start()
        return new_state

    def select_song(self, index: int) -> PlaybackState:
        with self._lock:
            if not 0 <= index < len(self.playlist):
                raise IndexError(f"no song at index {index}")
            return self._apply(select_song(self.state, self.playlist[index], index))

    def toggle_play_pause(self) -> PlaybackState:
        with self._lock:
            return self._apply(toggle_play_pause(self.state, self.playlist))

    def next(self) -> PlaybackState:
        with self._lock:
            return self._apply(next_song(self.state, self.playlist))

    def prev(self) -> PlaybackState:
        with self._lock:
            return self._apply(prev_song(self.state, self.playlist))

    def tick(self) -> PlaybackState:
        with self._lock:
            if self.expired:
                # the page that owned this player is gone
                logger.info("stopping playback for an abandoned player")
                self.close()
                return self.state
            new_state = tick(self.state, self.playlist)
            if new_state.current_index != self.state.current_index:
                logger.info(f"auto-advancing to track {new_state.current_index}")
            # progress ticks keep the running timer; only stops and track changes touch it
            if new_state.is_playing and new_state.current_index == self.state.current_index:
                self.state = new_state
                return new_state
            return self._apply(new_state)

    def replace_playlist(self, playlist: Sequence[Song]) -> PlaybackState:
        with self._lock:
            self.playlist = tuple(playlist)
            return self._apply(replace_playlist(self.state))

    def close(self):
        with self._lock:
            self.ticker.cancel()
            self.state = self.state.model_copy(update={"is_playing": False})


class PlayerRegistry:
    """
    One PlaybackController per browser session, keyed by the session's user id.
    Controllers not touched for `idle_timeout` seconds are closed and dropped.
    """

    def __init__(self, period: float = TICK_SECONDS, idle_timeout: float = IDLE_TIMEOUT_SECONDS,
                 clock=time.monotonic):
        self.period = period
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._controllers: Dict[str, PlaybackController] = {}
        self._lock = threading.Lock()

    def _evict_expired(self):
        with self._lock:
            expired = [key for key, c in self._controllers.items() if c.expired]
            evicted = [self._controllers.pop(key) for key in expired]
        for controller in evicted:
            controller.close()
        if evicted:
            logger.info(f"evicted {len(evicted)} idle player(s)")

    def get(self, key: str, playlist: Sequence[Song]) -> PlaybackController:
        self._evict_expired()
        with self._lock:
            controller = self._controllers.get(key)
            if controller is None:
                controller = PlaybackController(playlist, period=self.period,
                                                idle_timeout=self.idle_timeout, clock=self._clock)
                self._controllers[key] = controller
            controller.touch()
        if controller.playlist != tuple(playlist):
            controller.replace_playlist(playlist)
        return controller

    def peek(self, key: str) -> Optional[PlaybackController]:
        """Like get(), but never creates a controller."""
        self._evict_expired()
        with self._lock:
            controller = self._controllers.get(key)
            if controller is not None:
                controller.touch()
        return controller

    def close(self, key: str) -> Optional[PlaybackState]:
        with self._lock:
            controller = self._controllers.pop(key, None)
        if controller is None:
            return None
        controller.close()
        return controller.state

    def close_all(self):
        with self._lock:
            controllers = list(self._controllers.values())
            self._controllers.clear()
        for controller in controllers:
            controller.close()

    def __len__(self):
        return len(self._controllers)


players = PlayerRegistry()
atexit.register(players.close_all)
