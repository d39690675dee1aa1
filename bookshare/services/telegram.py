import logging
from typing import Optional
import httpx
from bookshare.config import settings

logger = logging.getLogger(__name__)


class TelegramAPIError(Exception):
    """The Bot API answered with ``ok: false``."""


class TelegramClient:
    """Minimal synchronous Bot API client for the calls this service makes."""

    def __init__(
        self,
        bot_token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=f"{api_url.rstrip('/')}/bot{bot_token}",
            timeout=timeout,
            transport=transport,
        )

    def _call(self, method: str, payload: dict):
        response = self._client.post(f"/{method}", json=payload)
        data = response.json()
        if not data.get("ok"):
            raise TelegramAPIError(f"{method} failed: {data.get('description', response.status_code)}")
        return data["result"]

    def get_chat_member(self, chat_id: str, user_id: int) -> dict:
        return self._call("getChatMember", {"chat_id": chat_id, "user_id": user_id})

    def send_message(self, chat_id: int, text: str, reply_markup: Optional[dict] = None) -> dict:
        payload = {"chat_id": chat_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return self._call("sendMessage", payload)

    def close(self):
        self._client.close()


telegram_client = TelegramClient(
    settings.bot_token,
    api_url=settings.telegram_api_url,
    timeout=settings.telegram_timeout,
)


def get_telegram_client() -> TelegramClient:
    return telegram_client
