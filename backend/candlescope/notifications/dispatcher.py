"""
Candlescope - Pattern Alert Dispatcher

Sends high-confidence pattern alerts to Discord (webhook) and Telegram
(bot API). Channels are auto-skipped when credentials are not configured.
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from candlescope.config import Settings, get_settings
from candlescope.models import PatternAlert, PatternType

log = structlog.get_logger(__name__)


# Discord embed colour palette
_TYPE_COLORS: dict[PatternType, int] = {
    PatternType.BULLISH: 0x22C55E,  # green
    PatternType.BEARISH: 0xEF4444,  # red
    PatternType.NEUTRAL: 0xEAB308,  # yellow
}


# ──────────────────────────────────────────────
# Channel Notifiers
# ──────────────────────────────────────────────


class DiscordNotifier:
    """Send rich embed messages via Discord webhook."""

    def __init__(self, webhook_url: str):
        self._url = webhook_url

    @property
    def configured(self) -> bool:
        return bool(self._url)

    async def send(self, alert: PatternAlert) -> bool:
        if not self.configured:
            return False

        signal = alert.signal
        payload = {
            "embeds": [
                {
                    "title": alert.title,
                    "description": alert.message,
                    "color": _TYPE_COLORS.get(signal.pattern_type, 0xEAB308),
                    "footer": {"text": f"Candlescope · {signal.id}"},
                }
            ]
        }

        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(self._url, json=payload)
                resp.raise_for_status()
            log.info("notification.discord.sent", signal_id=signal.id)
            return True
        except httpx.HTTPError as exc:
            log.error("notification.discord.failed", signal_id=signal.id, error=str(exc))
            return False


class TelegramNotifier:
    """Send messages via Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str):
        self._token = bot_token
        self._chat_id = chat_id

    @property
    def configured(self) -> bool:
        return bool(self._token and self._chat_id)

    async def send(self, alert: PatternAlert) -> bool:
        if not self.configured:
            return False

        url = f"https://api.telegram.org/bot{self._token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": f"*{alert.title}*\n\n{alert.message}",
            "parse_mode": "Markdown",
        }

        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
            log.info("notification.telegram.sent", signal_id=alert.signal.id)
            return True
        except httpx.HTTPError as exc:
            log.error("notification.telegram.failed", signal_id=alert.signal.id, error=str(exc))
            return False


# ──────────────────────────────────────────────
# Dispatcher
# ──────────────────────────────────────────────


class NotificationDispatcher:
    """Fan-out delivery of pattern alerts to all configured channels.

    Usage::

        dispatcher = get_dispatcher()
        results = await dispatcher.dispatch_pattern(alert)
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self._channels = [
            DiscordNotifier(settings.discord_webhook_url),
            TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id),
        ]

    async def dispatch_pattern(self, alert: PatternAlert) -> dict[str, bool]:
        """Send to all configured channels. Returns delivery status per channel."""
        results: dict[str, bool] = {}
        for channel in self._channels:
            name = type(channel).__name__
            if channel.configured:
                results[name] = await channel.send(alert)
            else:
                results[name] = False
        log.info(
            "notification.pattern_alert",
            signal_id=alert.signal.id,
            title=alert.title,
            delivered=[name for name, ok in results.items() if ok],
        )
        return results

    @property
    def active_channels(self) -> list[str]:
        return [type(c).__name__ for c in self._channels if c.configured]


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Singleton accessor for the notification dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
