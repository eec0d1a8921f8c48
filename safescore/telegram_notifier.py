"""
Telegram notifier for delivering prediction slips and settlement summaries.

This module uses the python-telegram-bot library for message delivery.
Notification is optional: without a token and chat id every send returns
False and nothing is raised.
"""

import asyncio
import logging

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import NetworkError, TelegramError, TimedOut
from telegram.helpers import escape_markdown

from safescore.config import Config
from safescore.models import Prediction
from safescore.settlement import SettlementSummary

# Configure module logger
logger = logging.getLogger(__name__)

MAX_PREDICTIONS_PER_MESSAGE = 25


def _md(text: str) -> str:
    return escape_markdown(str(text), version=1)


def format_predictions(predictions: list[Prediction]) -> str:
    """
    Format predictions into a Telegram message.

    Args:
        predictions: Predictions in display order

    Returns:
        Markdown message string
    """
    if not predictions:
        return "🔍 No matches found."

    lines = [
        "⚽ *SafeScore Predictions*",
        f"{len(predictions)} matches\n",
    ]

    for idx, prediction in enumerate(predictions[:MAX_PREDICTIONS_PER_MESSAGE], 1):
        lines.append(f"*{idx}. {_md(prediction.team1)} vs {_md(prediction.team2)}*")
        lines.append(f"🏆 {_md(prediction.league)}")
        lines.append(f"🎯 {_md(prediction.bet_type.value)} ({prediction.confidence}%)")
        lines.append("")

    hidden = len(predictions) - MAX_PREDICTIONS_PER_MESSAGE
    if hidden > 0:
        lines.append(f"…and {hidden} more")

    return "\n".join(lines)


def format_settlement_summary(summary: SettlementSummary) -> str:
    lines = [
        "📋 *Settlement Update*",
        f"Checked: {summary.checked}",
        f"✅ Won: {summary.won}",
        f"❌ Lost: {summary.lost}",
        f"⏳ Pending: {summary.pending}",
    ]
    return "\n".join(lines)


async def _deliver(chat_id, message: str) -> None:
    async with Bot(token=Config.TELEGRAM_BOT_TOKEN) as bot:
        await bot.send_message(
            chat_id=chat_id,
            text=message,
            parse_mode=ParseMode.MARKDOWN,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
            read_timeout=Config.TELEGRAM_TIMEOUT,
            write_timeout=Config.TELEGRAM_TIMEOUT,
        )


def send_telegram_message(message: str) -> bool:
    """
    Send a message to Telegram safely with error handling.

    Handles network errors, timeouts, and other Telegram API errors.
    Returns False on any failure, True on success.

    Args:
        message: Message text to send (supports Markdown formatting)

    Returns:
        True if message sent successfully, False otherwise
    """
    if not Config.TELEGRAM_BOT_TOKEN or not Config.TELEGRAM_CHAT_ID:
        logger.debug("Telegram not configured (missing token or chat_id)")
        return False

    if not message or not message.strip():
        logger.warning("Empty message, not sending")
        return False

    # Parse chat_id (handle both string and int)
    try:
        chat_id = int(Config.TELEGRAM_CHAT_ID)
    except ValueError:
        chat_id = Config.TELEGRAM_CHAT_ID

    try:
        logger.debug(f"Sending message to Telegram chat {chat_id}")
        asyncio.run(_deliver(chat_id, message))
        logger.info("Telegram message sent successfully")
        return True

    except TimedOut:
        logger.error(f"Telegram API request timed out after {Config.TELEGRAM_TIMEOUT}s")
        return False

    except NetworkError as e:
        logger.error(f"Network error sending Telegram message: {e}")
        return False

    except TelegramError as e:
        logger.error(f"Telegram API error: {e}")
        return False


def send_predictions(predictions: list[Prediction]) -> bool:
    """
    Format and send a prediction slip to Telegram.

    Returns:
        True if sent successfully, False otherwise (including when there is nothing to send)
    """
    if not predictions:
        logger.debug("No predictions to send")
        return False

    return send_telegram_message(format_predictions(predictions))


def send_settlement_summary(summary: SettlementSummary) -> bool:
    """Send a settlement summary; runs that checked nothing are not sent."""
    if summary.checked == 0:
        logger.debug("Nothing settled, skipping notification")
        return False

    return send_telegram_message(format_settlement_summary(summary))
