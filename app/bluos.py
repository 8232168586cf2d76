import asyncio
import logging
import requests
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from media import Artist, MediaEvents, PlaybackState

log = logging.getLogger("bluos")

# Elapsed time going back by more than this means the track restarted (repeat-one)
RESTART_SLACK_SECS = 2

@dataclass(frozen=True)
class BluOSStatus:
    title: str | None
    artist: str | None
    album: str | None
    duration: int | None  # seconds
    secs: int | None      # elapsed seconds
    state: str | None     # 'play', 'stream', 'pause', 'stop', ...

    @property
    def identity(self) -> tuple:
        return (self.artist, self.title, self.album, self.duration)

    @property
    def playing(self) -> bool:
        return self.state in ("play", "stream")


@dataclass(frozen=True)
class BluOSAlbum:
    name: str | None

    async def title(self) -> str | None:
        return self.name

    async def artist(self) -> Artist | None:
        # /Status does not report an album artist
        return None


class BluOSItem:
    """Playing item backed by a single /Status snapshot."""

    track_number = None

    def __init__(self, status: BluOSStatus):
        self.status = status
        self.duration = status.duration

    async def title(self) -> str | None:
        return self.status.title

    async def artist(self) -> Artist | None:
        return Artist(self.status.artist) if self.status.artist else None

    async def album(self) -> BluOSAlbum | None:
        return BluOSAlbum(self.status.album) if self.status.album else None

    async def brainz_id(self) -> str | None:
        return None

    def __repr__(self):
        return f"BluOSItem({self.status.artist!r}, {self.status.title!r})"


class BluOSClient:
    """
    Minimal BluOS client that fetches and parses /Status (XML).
    Uses recursive lookup + tag fallbacks: name/title1, artist, album, secs, totlen, state.
    """
    def __init__(self, host: str, port: int = 11000, timeout: int = 5):
        self.base = f"http://{host}:{port}"
        self.timeout = timeout

    def _findtext_any(self, root: ET.Element, *tags: str):
        for t in tags:
            el = root.find(f".//{t}")
            if el is not None and el.text:
                return el.text.strip()
        return None

    def _to_int(self, s):
        if s is None: return None
        try:
            return int(float(s))
        except ValueError:
            return None

    def parse_status(self, text: str) -> BluOSStatus:
        root = ET.fromstring(text)

        # title appears as <name> and also as <title1>
        title  = self._findtext_any(root, "name", "title1", "title")
        artist = self._findtext_any(root, "artist", "title2")
        album  = self._findtext_any(root, "album", "title3")

        secs     = self._findtext_any(root, "secs", "elapsed", "position", "time")
        duration = self._findtext_any(root, "totlen", "duration", "total", "trackLength", "length")

        state = self._findtext_any(root, "state", "status", "mode")

        return BluOSStatus(
            title=title,
            artist=artist,
            album=album,
            duration=self._to_int(duration),
            secs=self._to_int(secs),
            state=state.lower() if state else None,
        )

    def get_status(self) -> BluOSStatus | None:
        try:
            resp = requests.get(f"{self.base}/Status", timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.warning("BluOS status fetch failed: %s", e)
            return None

        try:
            return self.parse_status(resp.text)
        except ET.ParseError as e:
            log.warning("BluOS status XML parse failed: %s", e)
            return None


class BluOSEventSource(MediaEvents):
    """Polls a BluOS player and turns status changes into media events.

    A transition fires when the track identity changes, or when the same track's
    elapsed time jumps backwards (loop restart).
    """

    def __init__(self, client: BluOSClient, poll_interval: float = 3):
        super().__init__(context=self._current_from_status)
        self.client = client
        self.poll_interval = poll_interval
        self.last: BluOSStatus | None = None

    async def _fetch(self) -> BluOSStatus | None:
        return await asyncio.to_thread(self.client.get_status)

    async def _current_from_status(self) -> BluOSItem | None:
        if self.last is None:
            status = await self._fetch()
            if status is not None:
                self.observe(status)
        status = self.last
        if status is None or not status.title:
            return None
        return BluOSItem(status)

    @staticmethod
    def _restarted(prev: BluOSStatus, status: BluOSStatus) -> bool:
        if prev.secs is None or status.secs is None:
            return False
        return status.secs + RESTART_SLACK_SECS < prev.secs

    def observe(self, status: BluOSStatus) -> None:
        """Compare a fresh status with the previous one and emit what changed."""
        prev = self.last
        self.last = status
        if prev is None:
            log.info("Parsed: state=%s artist=%s title=%s album=%s elapsed=%s duration=%s",
                     status.state, status.artist, status.title, status.album, status.secs, status.duration)
            # Covers a failed startup poll; otherwise the session already adopted this item
            if status.title:
                self.emit_track_transition(BluOSItem(status))
            # Listeners assume playback is live until told otherwise
            if not status.playing:
                self.emit_playback_state(PlaybackState.PAUSED)
            return

        changed = bool(status.title) and (
            status.identity != prev.identity or self._restarted(prev, status))
        if changed:
            log.info("Track changed: %s — %s", status.artist, status.title)
            self.emit_track_transition(BluOSItem(status))

        if changed and not status.playing:
            # e.g. skipped while paused
            self.emit_playback_state(PlaybackState.PAUSED)
        elif status.playing != prev.playing:
            self.emit_playback_state(PlaybackState.PLAYING if status.playing else PlaybackState.PAUSED)

    async def run(self) -> None:
        while True:
            status = await self._fetch()
            if status is not None:
                self.observe(status)
            else:
                log.debug("No status this round (unreachable or XML parse failed)")
            await asyncio.sleep(self.poll_interval)
