import pytest

from lastfm_client import LastFMNetworkError
from media import Artist


class FakeClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakeAlbum:
    def __init__(self, title=None, artist=None):
        self._title = title
        self._artist = artist

    async def title(self):
        return self._title

    async def artist(self):
        return Artist(self._artist) if self._artist else None


class FakeItem:
    def __init__(self, title="Song", artist="Artist", album=None, album_artist=None,
                 track_number=None, mbid=None, duration=300):
        self._title = title
        self._artist = artist
        self._album = album
        self._album_artist = album_artist
        self.track_number = track_number
        self._mbid = mbid
        self.duration = duration

    async def title(self):
        return self._title

    async def artist(self):
        return Artist(self._artist) if self._artist else None

    async def album(self):
        if self._album is None and self._album_artist is None:
            return None
        return FakeAlbum(self._album, self._album_artist)

    async def brainz_id(self):
        return self._mbid

    def __repr__(self):
        return f"FakeItem({self._title!r})"


class FakeLastFM:
    def __init__(self, fail_scrobble=None, fail_now_playing=None):
        self.scrobbles = []
        self.now_playing = []
        self.fail_scrobble = fail_scrobble
        self.fail_now_playing = fail_now_playing

    async def scrobble(self, payload):
        self.scrobbles.append(payload)
        if self.fail_scrobble is not None:
            raise self.fail_scrobble
        return True

    async def update_now_playing(self, payload):
        self.now_playing.append(payload)
        if self.fail_now_playing is not None:
            raise self.fail_now_playing


class RecordingAlerts:
    def __init__(self):
        self.sent = []

    async def send_async(self, level, title, message, extra=None):
        self.sent.append((level, title, message, extra))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lastfm():
    return FakeLastFM()


@pytest.fixture
def failing_lastfm():
    return FakeLastFM(fail_scrobble=LastFMNetworkError("connection reset"),
                      fail_now_playing=LastFMNetworkError("connection reset"))
