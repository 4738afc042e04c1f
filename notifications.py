"""Telegram delivery of order summaries."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import httpx
import structlog

from schemas import Order

logger = structlog.get_logger()

TELEGRAM_API_URL = "https://api.telegram.org"

PAYMENT_LABELS = {
    "card": "Card",
    "cash_on_delivery": "Cash on delivery",
}


class NotificationError(Exception):
    """A message could not be delivered to Telegram."""


class TelegramClient:
    """Minimal Bot API client: only ``sendMessage`` is needed."""

    def __init__(self, token: Optional[str], http: Optional[httpx.Client] = None, api_url: str = TELEGRAM_API_URL):
        self.token = token
        self._http = http or httpx.Client(timeout=10.0)
        self._api_url = api_url.rstrip("/")

    def send_message(self, chat_id: str, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.token:
            raise NotificationError("Telegram bot token is not configured")
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        url = f"{self._api_url}/bot{self.token}/sendMessage"
        try:
            response = self._http.post(url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Telegram request failed: {e}") from e
        if response.status_code >= 400:
            raise NotificationError(f"Telegram responded with {response.status_code}")
        body = response.json()
        if not body.get("ok"):
            raise NotificationError(body.get("description", "Telegram rejected the message"))
        return body

    def close(self) -> None:
        self._http.close()


def format_timestamp(value: datetime, tz_name: str) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name)).strftime("%d.%m.%Y %H:%M")


def format_order_summary(order: Order, order_id: str, tz_name: str = "Europe/Kyiv") -> str:
    lines = [
        f"New order #{order_id}",
        "",
        f"Customer: {order.first_name} {order.last_name}",
        f"Email: {order.email}",
        f"Phone: {order.phone_number}",
        f"Delivery: {order.city}, branch {order.post_office_branch}",
        "",
        "Items:",
    ]
    for n, item in enumerate(order.order_items, start=1):
        lines.append(f"{n}. {item.product_name} x {item.quantity}")
    lines += [
        "",
        f"Payment: {PAYMENT_LABELS.get(order.payment_method, order.payment_method)}",
        f"Paid: {'yes' if order.is_paid else 'no'}",
        f"Total: {order.total_price:.2f}",
        f"Created: {format_timestamp(order.created_at, tz_name)}",
    ]
    return "\n".join(lines)


class OrderNotifier:

    def __init__(self, client: TelegramClient, chat_id: Optional[str], tz_name: str = "Europe/Kyiv"):
        self._client = client
        self._chat_id = chat_id
        self._tz_name = tz_name

    def notify(self, order: Order, order_id: str) -> bool:
        """Send the order summary; return False when notifications are not configured.

        Raises NotificationError when Telegram cannot be reached or refuses
        the message.
        """
        if not self._client.token or not self._chat_id:
            logger.info("Order notification skipped (missing configuration)", order_id=order_id)
            return False
        self._client.send_message(self._chat_id, format_order_summary(order, order_id, self._tz_name))
        logger.info("Order notification sent", order_id=order_id)
        return True
