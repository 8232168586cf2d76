import time
from dataclasses import dataclass
from typing import Callable

from media import PlayingItem

# Last.fm guideline: scrobble at halfway or 240s (4min), whichever comes first.
MIN_SCROBBLE_DURATION_MS = 240_000
MIN_SCROBBLE_PERCENTAGE = 0.5


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def is_scrobble_eligible(cumulative_ms: int, duration: float | None) -> bool:
    """Either threshold alone is enough; an unknown duration never qualifies."""
    if duration is None or duration <= 0:
        return False
    longer_than_4min = cumulative_ms >= MIN_SCROBBLE_DURATION_MS
    more_than_half = cumulative_ms >= duration * MIN_SCROBBLE_PERCENTAGE * 1000
    return longer_than_4min or more_than_half


# -------------------------
# Snapshot of a finished listen
# -------------------------
@dataclass(frozen=True)
class RetiredListen:
    listen_id: int
    item: PlayingItem
    cumulative_ms: int
    scrobbled: bool
    eligible: bool


class SessionAccumulator:
    """Listening time and scrobble status for the item currently playing.

    Mutated only from event callbacks on the event loop, never across an await.
    Every transition starts a new listen, including a loop restart of the same item.
    """

    def __init__(self, clock: Callable[[], int] = monotonic_ms):
        self._clock = clock
        self.current_item: PlayingItem | None = None
        self.segment_start: int | None = clock()
        self.cumulative_ms: int = 0
        self.scrobbled: bool = False
        self.listen_id: int = 0

    def _close_segment(self, now: int) -> None:
        if self.segment_start is not None:
            self.cumulative_ms += max(0, now - self.segment_start)
            self.segment_start = None

    def resume(self) -> None:
        # A second PLAYING while a segment is open keeps the original start
        if self.segment_start is None:
            self.segment_start = self._clock()

    def pause(self) -> None:
        self._close_segment(self._clock())

    def retire(self, incoming: PlayingItem | None) -> RetiredListen | None:
        """Close out the current listen and start a new one for ``incoming``.

        Returns the snapshot of the outgoing listen, or None when nothing was tracked.
        """
        now = self._clock()
        self._close_segment(now)

        outgoing = None
        if self.current_item is not None:
            eligible = (not self.scrobbled
                        and is_scrobble_eligible(self.cumulative_ms, self.current_item.duration))
            outgoing = RetiredListen(
                listen_id=self.listen_id,
                item=self.current_item,
                cumulative_ms=self.cumulative_ms,
                scrobbled=self.scrobbled,
                eligible=eligible,
            )

        # Reset state for the NEW item; playback is assumed live on transition
        self.current_item = incoming
        self.cumulative_ms = 0
        self.segment_start = now
        self.scrobbled = False
        self.listen_id += 1
        return outgoing

    def adopt(self, item: PlayingItem | None) -> bool:
        """Take over the startup playback context, unless a transition got there first."""
        if self.listen_id != 0 or self.current_item is not None:
            return False
        self.current_item = item
        return True

    def mark_scrobbled(self, listen_id: int) -> bool:
        if listen_id != self.listen_id:
            return False
        self.scrobbled = True
        return True
