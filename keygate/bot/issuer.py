"""Telegram bot that hands out keys to members of the required chat."""
import asyncio
import logging
import re

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keygate.bot.telegram import TelegramAPIError, TelegramClient
from keygate.common.exceptions import AppException
from keygate.usecase.token_usecase import TokenUsecase

logger = logging.getLogger(__name__)

GETKEY_PATTERN = re.compile(r"/getkey\b")

# getChatMember statuses that mean the user is not in the chat
NON_MEMBER_STATUSES = {"left", "kicked"}

NOT_A_MEMBER_MESSAGE = "❌ Join the required channel first, then send /getkey again."
ISSUE_FAILED_MESSAGE = "❌ Could not issue a key right now. Please try again later."
KEY_MESSAGE = (
    "Your key:\n\n<code>{token}</code>\n\n"
    "Copy and paste on Ws Checker Client to activate."
)


class KeyIssuerBot:
    """Answers /getkey with a fresh key once chat membership is confirmed."""

    def __init__(
        self,
        client: TelegramClient,
        session_maker: async_sessionmaker[AsyncSession],
        required_chat_id: str,
        scopes: list[str],
        retry_delay: float = 5.0,
    ):
        self.client = client
        self.session_maker = session_maker
        self.required_chat_id = required_chat_id
        self.scopes = scopes
        self.retry_delay = retry_delay
        self._offset: int | None = None

    async def run(self) -> None:
        """Long-poll for updates until cancelled."""
        logger.info("Key issuer bot polling started")
        while True:
            try:
                await self.poll_once()
            except (TelegramAPIError, httpx.HTTPError) as e:
                logger.warning(f"getUpdates failed: {e}; retrying in {self.retry_delay}s")
                await asyncio.sleep(self.retry_delay)
            except Exception:
                # CancelledError is a BaseException and still stops the loop
                logger.exception(f"Unexpected polling error; retrying in {self.retry_delay}s")
                await asyncio.sleep(self.retry_delay)

    async def poll_once(self) -> None:
        updates = await self.client.get_updates(offset=self._offset)
        for update in updates:
            self._offset = update["update_id"] + 1
            await self.handle_update(update)

    async def handle_update(self, update: dict) -> None:
        message = update.get("message") or {}
        text = message.get("text") or ""
        if not GETKEY_PATTERN.search(text):
            return

        sender = message.get("from")
        if not sender:
            return

        chat_id = message["chat"]["id"]
        user_id = sender["id"]
        try:
            await self.handle_getkey(chat_id, user_id)
        except (TelegramAPIError, httpx.HTTPError) as e:
            logger.error(f"Could not reply to /getkey from {user_id}: {e}")

    async def handle_getkey(self, chat_id: int, user_id: int) -> str | None:
        """Issue a key to ``user_id`` and reply in ``chat_id``.

        Returns:
            The issued key, or None if the user was refused or issuing failed
        """
        if not await self.is_member(user_id):
            await self.client.send_message(chat_id, NOT_A_MEMBER_MESSAGE)
            return None

        try:
            async with self.session_maker() as session:
                issued = await TokenUsecase(session).issue(str(user_id), self.scopes)
        except AppException as e:
            logger.error(f"issue err for {user_id}: {e.message}")
            await self.client.send_message(chat_id, ISSUE_FAILED_MESSAGE)
            return None

        await self.client.send_message(
            chat_id,
            KEY_MESSAGE.format(token=issued.token),
            parse_mode="HTML",
        )
        return issued.token

    async def is_member(self, user_id: int) -> bool:
        """A failed lookup counts as not a member."""
        try:
            member = await self.client.get_chat_member(self.required_chat_id, user_id)
        except (TelegramAPIError, httpx.HTTPError) as e:
            logger.info(f"getChatMember failed for {user_id}: {e}")
            return False
        return bool(member) and member.get("status") not in NON_MEMBER_STATUSES
