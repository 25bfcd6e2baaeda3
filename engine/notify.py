import logging

import requests

from config.settings import TELEGRAM_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def telegram_notify(telegram, message):
    if not telegram or not message:
        return False
    bot_token = telegram.get("bot_token")
    chat_id = telegram.get("chat_id")
    if not bot_token or not chat_id:
        return False
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {"chat_id": chat_id, "text": message}
    try:
        resp = requests.post(url, json=payload, timeout=TELEGRAM_TIMEOUT_SECONDS)
        if resp.ok:
            return True
        logger.warning("Telegram notify failed: %s", resp.text)
    except requests.RequestException:
        logger.exception("Telegram notify failed")
    return False
