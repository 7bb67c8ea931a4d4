"""
Bot module for the Crypto Info Bot.

Provides the Telegram command dispatcher and the live ticker sessions.
"""

from bot.telegram_bot import CryptoInfoBot, create_telegram_bot
from bot.ticker import EditError, SendError, TickerRegistry, TickerSession, TickerState

__all__ = [
    "CryptoInfoBot",
    "create_telegram_bot",
    "EditError",
    "SendError",
    "TickerRegistry",
    "TickerSession",
    "TickerState",
]
