"""
Bridge outcome notifications.

Tells the user about bridge progress through the Telegram Bot API.
Delivery failures are logged and never affect the bridge itself.
"""

from typing import Protocol

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from app.utils.security import mask_tx_hash

from .trigger import BridgeRequest, BridgeResult


class BridgeNotifier(Protocol):
    """Receives bridge lifecycle events."""

    async def bridge_started(self, request: BridgeRequest) -> None:
        ...

    async def bridge_finished(self, request: BridgeRequest, result: BridgeResult) -> None:
        ...


def format_started(request: BridgeRequest, destination: str) -> str:
    return (
        f"🔔 Deposit detected on {request.source_chain}.\n"
        f"Bridging {request.amount} to {destination}..."
    )


def format_finished(request: BridgeRequest, result: BridgeResult, destination: str) -> str:
    if result.success:
        return (
            f"✅ Bridged {result.amount} from {request.source_chain} to {destination}.\n"
            f"Source tx: {mask_tx_hash(result.source_tx)}\n"
            f"Destination tx: {mask_tx_hash(result.destination_tx)}"
        )
    # Internal error detail stays in the logs
    return (
        f"❌ Bridging {result.amount} from {request.source_chain} to {destination} failed.\n"
        "Please try again later."
    )


class TelegramBridgeNotifier:
    """Send bridge updates to the user's Telegram chat."""

    def __init__(self, bot: Bot, destination: str) -> None:
        """
        Initialize notifier.

        Args:
            bot: aiogram Bot instance
            destination: Destination chain name for message text
        """
        self.bot = bot
        self.destination = destination

    async def _send(self, chat_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id=chat_id, text=text)
        except TelegramAPIError as e:
            logger.warning(f"Failed to notify user {chat_id}: {e}")

    async def bridge_started(self, request: BridgeRequest) -> None:
        await self._send(request.user_id, format_started(request, self.destination))

    async def bridge_finished(self, request: BridgeRequest, result: BridgeResult) -> None:
        await self._send(request.user_id, format_finished(request, result, self.destination))

    async def close(self) -> None:
        await self.bot.session.close()
