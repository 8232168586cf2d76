import asyncio
import os
import logging

from bluos import BluOSClient, BluOSEventSource
from lastfm_client import LastFMClient
from notifier import from_env as alerts_from_env
from scrobbler import ScrobbleSession

# -------------------------
# Configuration via ENV VARS
# -------------------------
BLUOS_HOST = os.getenv("BLUOS_HOST", "127.0.0.1")
BLUOS_PORT = int(os.getenv("BLUOS_PORT", "11000"))
POLL_INTERVAL = max(1, int(os.getenv("POLL_INTERVAL", "3")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LASTFM_API_KEY = os.getenv("LASTFM_API_KEY")
LASTFM_API_SECRET = os.getenv("LASTFM_API_SECRET")
LASTFM_SESSION_KEY = os.getenv("LASTFM_SESSION_KEY")
LASTFM_USERNAME = os.getenv("LASTFM_USERNAME")
LASTFM_PASSWORD_MD5 = os.getenv("LASTFM_PASSWORD_MD5")

log = logging.getLogger("player-lastfm")


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,  # ensure our config is used even if libs pre-configure logging
    )


def check_config():
    # Validate Last.fm configuration up-front for clear errors
    if not LASTFM_API_KEY or not LASTFM_API_SECRET:
        raise SystemExit("LASTFM_API_KEY and LASTFM_API_SECRET are required")

    if not (LASTFM_SESSION_KEY or (LASTFM_USERNAME and LASTFM_PASSWORD_MD5)):
        raise SystemExit("Provide LASTFM_SESSION_KEY or LASTFM_USERNAME + LASTFM_PASSWORD_MD5")


async def run():
    lfm = LastFMClient(
        api_key=LASTFM_API_KEY,
        api_secret=LASTFM_API_SECRET,
        session_key=LASTFM_SESSION_KEY,
        username=LASTFM_USERNAME,
        password_md5=LASTFM_PASSWORD_MD5,
    )
    alerts = alerts_from_env()  # ok if no webhook / Gotify is configured
    events = BluOSEventSource(BluOSClient(BLUOS_HOST, BLUOS_PORT), POLL_INTERVAL)
    session = ScrobbleSession(events, lfm, alerts)

    log.info("Starting BluOS → Last.fm bridge. Poll interval: %ss", POLL_INTERVAL)
    log.info("BluOS device: %s:%s", BLUOS_HOST, BLUOS_PORT)
    await alerts.send_async("INFO", "Bridge started", f"Polling {BLUOS_HOST}:{BLUOS_PORT}.")

    await session.start()
    try:
        await events.run()
    finally:
        session.close()
        await session.wait_pending()


def main():
    setup_logging()
    check_config()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        log.info("Shutting down…")


if __name__ == "__main__":
    main()
