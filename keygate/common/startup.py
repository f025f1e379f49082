"""Application startup initialization."""
import asyncio
import contextlib
import logging
from dataclasses import dataclass

from keygate.bot.issuer import KeyIssuerBot
from keygate.bot.telegram import TelegramClient
from keygate.common.config import Settings
from keygate.common.database import Database

logger = logging.getLogger(__name__)


@dataclass
class BotHandle:
    """Running issuer bot and the client it owns."""

    bot: KeyIssuerBot
    client: TelegramClient
    task: asyncio.Task

    async def stop(self) -> None:
        """Cancel polling and close the client; never raises for a failed task."""
        self.task.cancel()
        try:
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
        except Exception:
            logger.exception("Key issuer bot task had failed")
        finally:
            await self.client.close()


def start_issuer_bot(settings: Settings, database: Database) -> BotHandle | None:
    """Start the key issuer bot if it is configured.

    Args:
        settings: Application settings
        database: Opened storage handle the bot issues keys into

    Returns:
        BotHandle, or None when the bot is disabled
    """
    if not settings.key_issuer_bot_token:
        logger.warning("KEY_ISSUER_BOT_TOKEN missing, bot disabled")
        return None

    if not settings.required_chat_id:
        logger.error("REQUIRED_CHAT_ID missing, bot disabled")
        return None

    client = TelegramClient(
        settings.key_issuer_bot_token,
        poll_timeout=settings.bot_poll_timeout,
    )
    bot = KeyIssuerBot(
        client=client,
        session_maker=database.session_maker,
        required_chat_id=settings.required_chat_id,
        scopes=settings.issuance_scopes,
        retry_delay=settings.bot_retry_delay,
    )
    task = asyncio.create_task(bot.run(), name="key-issuer-bot")
    return BotHandle(bot=bot, client=client, task=task)
