"""
Alert notifications - pushes new alerts to Telegram chats
"""

import logging

from aiogram import Bot

from smarthouse.core.config import Settings
from smarthouse.models.alert import Alert

logger = logging.getLogger(__name__)


def format_alert_message(alert: Alert) -> str:
    icon = "🔺" if alert.type == "high_value" else "🔻"
    return (
        f"🚨 {icon} {alert.message}\n\n"
        f"📱 {alert.device_id}\n"
        f"⚠️ {alert.severity}"
    )


class AlertNotifier:
    """Sends one message per alert to every configured chat."""

    def __init__(self, bot: Bot, chat_ids: list[int]):
        self.bot = bot
        self.chat_ids = list(chat_ids)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlertNotifier | None":
        if not settings.notifications_enabled:
            return None
        return cls(Bot(token=settings.telegram_bot_token), settings.telegram_alert_chat_ids)

    async def notify(self, alert: Alert) -> int:
        """Returns the number of chats the alert was delivered to."""
        text = format_alert_message(alert)
        delivered = 0
        for chat_id in self.chat_ids:
            try:
                await self.bot.send_message(chat_id=chat_id, text=text)
                delivered += 1
            except Exception as e:
                logger.error(f"Failed to send alert to chat {chat_id}: {e}")
        return delivered

    async def close(self) -> None:
        await self.bot.session.close()
