"""
Event handlers that turn player events into Last.fm submissions.

All handlers are synchronous callbacks: accounting happens inline on the event
loop, network work is dispatched as detached tasks that only see snapshots.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Callable, Coroutine

from lastfm_client import LastFMAuthError, LastFMClient, LastFMError
from media import MediaEvents, PlaybackState, PlayingItem
from metadata import build_scrobble_payload
from notifier import Alerts
from state import RetiredListen, SessionAccumulator, monotonic_ms

log = logging.getLogger("scrobbler")


class _Detached:
    """Holds strong references to fire-and-forget tasks until they finish."""

    def __init__(self):
        self.tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task


class PauseResumeTracker:
    def __init__(self, accumulator: SessionAccumulator):
        self.accumulator = accumulator

    def on_playback_state_change(self, state: PlaybackState) -> None:
        if state is PlaybackState.PLAYING:
            self.accumulator.resume()
        else:
            # If we pause, add the time we just listened to the total
            self.accumulator.pause()


class TransitionHandler(_Detached):
    """Scrobbles the outgoing item when it qualifies, then starts a new listen."""

    def __init__(self, accumulator: SessionAccumulator, client: LastFMClient,
                 alerts: Alerts | None = None):
        super().__init__()
        self.accumulator = accumulator
        self.client = client
        self.alerts = alerts or Alerts()

    def on_track_transition(self, incoming: PlayingItem) -> RetiredListen | None:
        # Must stay synchronous up to the spawn: the reset happens before any await
        outgoing = self.accumulator.retire(incoming)
        if outgoing is None:
            return None

        if outgoing.eligible:
            self.spawn(self._submit(outgoing))
        else:
            log.debug("Not scrobbling listen %s: %sms listened, duration=%s, scrobbled=%s",
                      outgoing.listen_id, outgoing.cumulative_ms,
                      outgoing.item.duration, outgoing.scrobbled)
        return outgoing

    async def _submit(self, listen: RetiredListen) -> None:
        payload = await build_scrobble_payload(listen.item)
        try:
            await self.client.scrobble(payload)
        except LastFMError as e:
            # No retry: this scrobble is dropped
            if isinstance(e, LastFMAuthError):
                log.error("Scrobble failed (auth): %s — %s: %s",
                          payload.get("artist"), payload.get("track"), e)
                await self.alerts.send_async("ERROR", "Last.fm authentication failed", str(e), payload)
            else:
                log.warning("Failed to scrobble %s — %s: %s",
                            payload.get("artist"), payload.get("track"), e)
                await self.alerts.send_async("WARNING", "Last.fm scrobble error", str(e), payload)
            return

        # No-op on the event path: retire() already started the next listen,
        # and mark_scrobbled only flags the listen it is given.
        self.accumulator.mark_scrobbled(listen.listen_id)
        log.info("Scrobbled: %s — %s%s (%sms listened)",
                 payload.get("artist"), payload.get("track"),
                 f" [{payload['album']}]" if "album" in payload else "", listen.cumulative_ms)


class NowPlayingAnnouncer(_Detached):
    def __init__(self, client: LastFMClient):
        super().__init__()
        self.client = client

    def on_track_transition(self, incoming: PlayingItem) -> None:
        self.spawn(self._announce(incoming))

    async def _announce(self, item: PlayingItem) -> None:
        payload = await build_scrobble_payload(item)
        try:
            await self.client.update_now_playing(payload)
        except LastFMError as e:
            # NOW PLAYING failures aren't critical
            log.warning("Failed to update now playing for %s — %s: %s",
                        payload.get("artist"), payload.get("track"), e)
            return
        log.debug("Now playing: %s — %s", payload.get("artist"), payload.get("track"))


class ScrobbleSession:
    """Owns the accumulator and subscribes the handlers to a media event source."""

    def __init__(self, events: MediaEvents, client: LastFMClient,
                 alerts: Alerts | None = None, clock: Callable[[], int] = monotonic_ms):
        self.events = events
        self.accumulator = SessionAccumulator(clock)
        self.tracker = PauseResumeTracker(self.accumulator)
        self.transitions = TransitionHandler(self.accumulator, client, alerts)
        self.now_playing = NowPlayingAnnouncer(client)
        self._unloads: list[Callable[[], None]] = []

    async def start(self) -> None:
        self._unloads = [
            self.events.on_track_transition(self.now_playing.on_track_transition),
            self.events.on_playback_state_change(self.tracker.on_playback_state_change),
            self.events.on_track_transition(self.transitions.on_track_transition),
        ]
        item = await self.events.current_item()
        if self.accumulator.adopt(item):
            log.info("Tracking current item from playback context: %s",
                     "nothing playing" if item is None else "found")

    def close(self) -> None:
        """Stop receiving events. In-flight submissions are left to finish."""
        for unload in self._unloads:
            unload()
        self._unloads = []

    async def wait_pending(self) -> None:
        pending = self.transitions.tasks | self.now_playing.tasks
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
