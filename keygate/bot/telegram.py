"""Minimal async client for the Telegram Bot API."""
from typing import Any

import httpx

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramAPIError(Exception):
    """Raised when the Bot API answers with ok=false."""
    def __init__(self, message: str, error_code: int | None = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class TelegramClient:
    """Calls Bot API methods over HTTPS.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        bot_token: str,
        poll_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = TELEGRAM_API_URL,
    ):
        self.poll_timeout = poll_timeout
        # Long polls hold the request open for poll_timeout seconds
        self._http = httpx.AsyncClient(
            base_url=f"{base_url}/bot{bot_token}/",
            timeout=httpx.Timeout(10.0, read=poll_timeout + 10.0),
            transport=transport,
        )

    async def _call(self, method: str, **params: Any) -> Any:
        response = await self._http.post(
            method, json={k: v for k, v in params.items() if v is not None}
        )
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramAPIError(f"{method}: non-JSON response")

        if not data.get("ok"):
            raise TelegramAPIError(
                data.get("description") or f"{method} failed",
                error_code=data.get("error_code"),
            )
        return data.get("result")

    async def get_updates(self, offset: int | None = None) -> list[dict]:
        return await self._call(
            "getUpdates",
            offset=offset,
            timeout=self.poll_timeout,
            allowed_updates=["message"],
        )

    async def get_chat_member(self, chat_id: str, user_id: int) -> dict:
        return await self._call("getChatMember", chat_id=chat_id, user_id=user_id)

    async def send_message(self, chat_id: int, text: str, parse_mode: str | None = None) -> dict:
        return await self._call("sendMessage", chat_id=chat_id, text=text, parse_mode=parse_mode)

    async def close(self) -> None:
        await self._http.aclose()
