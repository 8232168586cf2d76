"""
Best-effort alerts for failed scrobbles.

- Webhook: POST with JSON body to NOTIFY_WEBHOOK_URL, gated by NOTIFY_MIN_LEVEL.
- Gotify: POST /message with an app token (GOTIFY_URL, GOTIFY_TOKEN, GOTIFY_PRIORITY,
  GOTIFY_MIN_LEVEL).
- Failures are logged at DEBUG and never raised; an unconfigured notifier is a no-op.
"""

from __future__ import annotations
import asyncio
import logging
import os

import requests

log = logging.getLogger("notifier")

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}
DEFAULT_APP_TAG = "Player→Last.fm"


def _level(name: str) -> int:
    return _LEVELS.get(name.upper(), 30)


class WebhookNotifier:
    def __init__(self, webhook_url: str | None, min_level: str = "WARNING", app_tag: str = DEFAULT_APP_TAG):
        self.webhook_url = webhook_url.strip() if webhook_url else None
        self.min_level = _level(min_level)
        self.app_tag = app_tag

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        if not self.webhook_url or _level(level) < self.min_level:
            return
        payload = {
            "level": level.upper(),
            "title": f"{self.app_tag}: {title}",
            "message": message,
            "extra": extra or {},
        }
        try:
            # Slack/Discord-compatible webhooks accept this JSON too.
            requests.post(self.webhook_url, json=payload, timeout=5)
        except requests.RequestException as e:
            log.debug("Webhook send failed: %s", e)


class GotifyNotifier:
    def __init__(self, url: str | None, token: str | None, min_level: str = "WARNING",
                 default_priority: int = 5, app_tag: str = DEFAULT_APP_TAG):
        self.url = url.rstrip("/") if url else None
        self.token = token.strip() if token else None
        self.min_level = _level(min_level)
        self.default_priority = default_priority
        self.app_tag = app_tag

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        if not self.url or not self.token or _level(level) < self.min_level:
            return
        body = {
            "title": f"{self.app_tag}: {title}",
            "message": message if not extra else f"{message}\n\n{extra}",
            "priority": self.default_priority,
        }
        try:
            requests.post(f"{self.url}/message", json=body,
                          headers={"X-Gotify-Key": self.token}, timeout=5)
        except requests.RequestException as e:
            log.debug("Gotify send failed: %s", e)


class Alerts:
    """Fans an alert out to every configured notifier."""

    def __init__(self, *notifiers):
        self.notifiers = notifiers

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        for n in self.notifiers:
            n.send(level, title, message, extra)

    async def send_async(self, level: str, title: str, message: str, extra: dict | None = None):
        if self.notifiers:
            await asyncio.to_thread(self.send, level, title, message, extra)


def from_env() -> Alerts:
    app_tag = os.getenv("APP_TAG", DEFAULT_APP_TAG)
    webhook = WebhookNotifier(
        webhook_url=os.getenv("NOTIFY_WEBHOOK_URL"),
        min_level=os.getenv("NOTIFY_MIN_LEVEL", "WARNING"),
        app_tag=app_tag,
    )
    gotify = GotifyNotifier(
        os.getenv("GOTIFY_URL"),
        os.getenv("GOTIFY_TOKEN"),
        min_level=os.getenv("GOTIFY_MIN_LEVEL", "WARNING"),
        default_priority=int(os.getenv("GOTIFY_PRIORITY", "5")),
        app_tag=app_tag,
    )
    return Alerts(webhook, gotify)
