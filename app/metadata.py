"""
Build the Last.fm payload for a playing item.

Unknown fields are left out entirely; Last.fm treats an absent field differently
from an empty one.
"""

from __future__ import annotations
import logging
import time
from typing import Awaitable, Callable

from media import PlayingItem

log = logging.getLogger("metadata")


async def _resolve(label: str, getter: Callable[[], Awaitable]):
    try:
        return await getter()
    except Exception as e:
        log.debug("Could not resolve %s: %s", label, e)
        return None


async def _name_of(label: str, getter: Callable[[], Awaitable]) -> str | None:
    artist = await _resolve(label, getter)
    return getattr(artist, "name", None) if artist is not None else None


async def build_scrobble_payload(item: PlayingItem,
                                 now: Callable[[], float] = time.time) -> dict[str, str]:
    album = await _resolve("album", item.album)
    track_number = getattr(item, "track_number", None)

    payload = {
        "track": await _resolve("title", item.title),
        "artist": await _name_of("artist", item.artist),
        "album": await _resolve("album title", album.title) if album is not None else None,
        "albumArtist": await _name_of("album artist", album.artist) if album is not None else None,
        "trackNumber": str(track_number) if track_number is not None else None,
        "mbid": await _resolve("mbid", item.brainz_id),
        "timestamp": f"{now():.0f}",
    }
    return {k: str(v) for k, v in payload.items() if v is not None and v != ""}
