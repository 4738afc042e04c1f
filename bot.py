"""Companion Telegram bot for the store's web app.

Updates arrive through the webhook route. Only two things are handled:
the ``/start`` command and ordered-item data posted back by the web app.
"""
import json
from typing import Any, Dict, Optional

import structlog

from notifications import NotificationError, TelegramClient

logger = structlog.get_logger()

GREETING = "Welcome to our store! Tap the button below to browse the catalogue."


class StoreBot:

    def __init__(self, client: TelegramClient, store_url: str):
        self._client = client
        self._store_url = store_url

    def store_keyboard(self) -> Dict[str, Any]:
        return {
            "keyboard": [[{"text": "Open store", "web_app": {"url": self._store_url}}]],
            "resize_keyboard": True,
        }

    def handle_update(self, update: Dict[str, Any]) -> Optional[str]:
        """Reply to a Telegram update. Returns the text sent, or None if ignored."""
        message = update.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None:
            return None

        words = (message.get("text") or "").split()
        if words and words[0].split("@")[0] == "/start":
            return self._send(chat_id, GREETING, self.store_keyboard())

        web_app_data = message.get("web_app_data")
        if web_app_data:
            reply = acknowledge_item(web_app_data.get("data"))
            if reply:
                return self._send(chat_id, reply)
        return None

    def _send(self, chat_id: Any, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Optional[str]:
        try:
            self._client.send_message(str(chat_id), text, reply_markup=reply_markup)
        except NotificationError as e:
            logger.warning("Bot reply failed", chat_id=chat_id, error=str(e))
            return None
        return text


def acknowledge_item(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.info("Ignoring malformed web app data", data=raw[:100])
        return None
    if not isinstance(data, dict) or not data.get("productName"):
        return None
    quantity = data.get("quantity", 1)
    return f"Thank you! We received your order: {data['productName']} x {quantity}."
