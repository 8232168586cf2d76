"""
Contracts for the host media player, plus a small in-process event dispatcher.

A host adapter (see bluos.py) subclasses MediaEvents and calls the emit_* methods
whenever it observes a track transition or a playback-state change.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol


class PlaybackState(enum.Enum):
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class Artist:
    name: str | None


class Album(Protocol):
    async def title(self) -> str | None: ...
    async def artist(self) -> Artist | None: ...


class PlayingItem(Protocol):
    """Accessors for the item the player is currently playing."""

    track_number: int | None
    duration: float | None  # seconds

    async def title(self) -> str | None: ...
    async def artist(self) -> Artist | None: ...
    async def album(self) -> Album | None: ...
    async def brainz_id(self) -> str | None: ...


TransitionCallback = Callable[[PlayingItem], None]
StateCallback = Callable[[PlaybackState], None]
Unsubscribe = Callable[[], None]


class MediaEvents:
    """Dispatches transition and playback-state events to subscribers, in order."""

    def __init__(self, context: Callable[[], Awaitable[PlayingItem | None]] | None = None):
        self._transition_cbs: list[TransitionCallback] = []
        self._state_cbs: list[StateCallback] = []
        self._context = context

    def on_track_transition(self, callback: TransitionCallback) -> Unsubscribe:
        self._transition_cbs.append(callback)
        return lambda: self._remove(self._transition_cbs, callback)

    def on_playback_state_change(self, callback: StateCallback) -> Unsubscribe:
        self._state_cbs.append(callback)
        return lambda: self._remove(self._state_cbs, callback)

    @staticmethod
    def _remove(cbs: list, callback) -> None:
        if callback in cbs:
            cbs.remove(callback)

    def emit_track_transition(self, item: PlayingItem) -> None:
        for cb in list(self._transition_cbs):
            cb(item)

    def emit_playback_state(self, state: PlaybackState) -> None:
        for cb in list(self._state_cbs):
            cb(state)

    async def current_item(self) -> PlayingItem | None:
        """The item active in the playback context right now, if any."""
        if self._context is None:
            return None
        return await self._context()
