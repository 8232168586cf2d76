import asyncio
import logging

import pylast

log = logging.getLogger("lastfm")

# Custom error classes so callers can branch
class LastFMError(Exception): ...
class LastFMAuthError(LastFMError): ...
class LastFMRateLimitError(LastFMError): ...
class LastFMNetworkError(LastFMError): ...
class LastFMUnknownError(LastFMError): ...
class LastFMPayloadError(LastFMError): ...

# 9=Invalid session, 4=Auth failed, 14=Token expired
_AUTH_CODES = (4, 9, 14)
# 29=Rate limit exceeded
_RATE_LIMIT_CODES = (29,)


def _error_code(e: pylast.WSError) -> int | None:
    try:
        return int(e.get_id())
    except (TypeError, ValueError):
        return None


def _to_pylast_kwargs(payload: dict[str, str]) -> dict:
    """Map our payload keys onto pylast's keyword arguments."""
    if not payload.get("artist") or not payload.get("track"):
        raise LastFMPayloadError(f"Payload needs artist and track: {payload}")

    kwargs = {
        "artist": payload["artist"],
        "title": payload["track"],
        "album": payload.get("album"),
        "album_artist": payload.get("albumArtist"),
        "track_number": payload.get("trackNumber"),
        "mbid": payload.get("mbid"),
    }
    return {k: v for k, v in kwargs.items() if v is not None}


class LastFMClient:
    """Thin async wrapper over pylast for update-now-playing + scrobbling.

    pylast is blocking, so every call is pushed onto a worker thread.
    """

    def __init__(self, api_key: str, api_secret: str, session_key: str | None,
                 username: str | None, password_md5: str | None):
        if session_key:
            log.info("Using Last.fm session key auth")
            self.network = pylast.LastFMNetwork(
                api_key=api_key,
                api_secret=api_secret,
                session_key=session_key,
            )
        elif username and password_md5:
            log.info("Using Last.fm username + MD5 password auth")
            self.network = pylast.LastFMNetwork(
                api_key=api_key,
                api_secret=api_secret,
                username=username,
                password_hash=password_md5,
            )
        else:
            raise ValueError("Missing Last.fm credentials")

    async def _call(self, fn, **kwargs):
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except pylast.WSError as e:
            code = _error_code(e)
            msg = str(e)
            # Map common Last.fm error codes
            if code in _AUTH_CODES:
                raise LastFMAuthError(msg) from e
            elif code in _RATE_LIMIT_CODES:
                raise LastFMRateLimitError(msg) from e
            else:
                raise LastFMUnknownError(f"Last.fm API error {code}: {msg}") from e
        except Exception as e:
            raise LastFMNetworkError(str(e)) from e

    async def update_now_playing(self, payload: dict[str, str]) -> None:
        """Push a Now Playing update."""
        await self._call(self.network.update_now_playing, **_to_pylast_kwargs(payload))

    async def scrobble(self, payload: dict[str, str]) -> bool:
        """Submit a scrobble; the payload timestamp is unix seconds.

        Returns True once Last.fm has accepted the submission, raises LastFMError otherwise.
        """
        kwargs = _to_pylast_kwargs(payload)
        kwargs["timestamp"] = int(payload["timestamp"])
        await self._call(self.network.scrobble, **kwargs)
        return True
