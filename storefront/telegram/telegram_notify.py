import logging
from datetime import datetime
from typing import List

import requests

from storefront import config

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Сообщения персоналу магазина в Telegram. Ошибки только логируются."""

    def __init__(self, token: str, chat_ids: List[str]):
        self.token = token
        self.chat_ids = chat_ids
        self.api_url = f"https://api.telegram.org/bot{self.token}/sendMessage"

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_ids)

    def send(self, message: str):
        """Отправить сообщение во все настроенные чаты"""
        if not self.enabled:
            return
        for chat_id in self.chat_ids:
            try:
                requests.post(self.api_url, data={
                    'chat_id': chat_id,
                    'text': message,
                    'parse_mode': 'HTML'
                }, timeout=10)
            except requests.RequestException as e:
                logger.warning("Telegram send to %s failed: %s", chat_id, e)

    def format_items(self, items):
        """Форматирование списка товаров"""
        lines = []
        total_sum = 0
        for item in items:
            subtotal = item["qty"] * item["price"]
            total_sum += subtotal
            lines.append(f"• {item['name']} × {item['qty']} = {subtotal}")
        lines.append(f"\n💰 Total: {total_sum} {config.EPAYCO_CURRENCY}")
        return "\n".join(lines)

    def notify_order_created(self, order_id, customer_name, phone, comment, items):
        date_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        msg = [
            f"🆕 <b>Pedido #{order_id}</b>",
            f"📅 {date_str}",
            f"👤 {customer_name or '—'}",
            f"📞 {phone or '—'}"
        ]
        if comment:
            msg.append(f"💬 {comment}")
        msg.append("\n📦\n" + self.format_items(items))
        self.send("\n".join(msg))

    def notify_order_status_changed(self, order_id, new_status, items):
        msg = [
            f"⚡ <b>Pedido #{order_id}</b>",
            f"📌 {new_status}",
            "\n📦\n" + self.format_items(items)
        ]
        self.send("\n".join(msg))

    def notify_payment(self, order_id, payment_status, reference):
        self.send(f"💳 <b>Pedido #{order_id}</b>\nePayco: {payment_status} (ref {reference or '—'})")


# глобальный экземпляр
notifier = TelegramNotifier(
    token=config.TELEGRAM_TOKEN,
    chat_ids=config.TELEGRAM_CHAT_IDS,
)
