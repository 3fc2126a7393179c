# Pattern alert notifications (Discord, Telegram)
from candlescope.notifications.dispatcher import (
    DiscordNotifier,
    NotificationDispatcher,
    TelegramNotifier,
    get_dispatcher,
)

__all__ = [
    "DiscordNotifier",
    "NotificationDispatcher",
    "TelegramNotifier",
    "get_dispatcher",
]
