"""
Telegram Bot for the Crypto Info Bot.

Provides:
- /<symbol> commands with a live-updating price message
- /rates paginated price listing with inline navigation
- /list of every tracked currency command
- /time live clock message
"""

import asyncio
import logging
import re
from typing import Any, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, LinkPreviewOptions, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from bot.ticker import TickerRegistry, TickerSession, clock_loader, currency_loader
from config import BotConfig, load_config
from connectors.price_fetcher import FetchError, PriceFetcher, build_symbol_index
from transforms.pagination import (
    NOOP_CALLBACK,
    compute_buttons,
    compute_window,
    turn_page,
)
from transforms.render import render_index, render_listing

logger = logging.getLogger(__name__)

RATES_NAMESPACE = "rates"
PAGE_ACTION_PATTERN = re.compile(r"^/rates/(\w+)$")

NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


# =============================================================================
# STATIC MESSAGES
# =============================================================================

HELP_MESSAGE = """*Crypto Info Bot*

Live cryptocurrency prices right in the chat.

*Commands:*
/rates - Prices page by page
/list - Every currency command I know
/btc, /eth, ... - Live price card, refreshed every few seconds
/time - Live clock
/help - This message

Price cards update in place while the market moves. A card that stops
updating keeps showing the last known price."""


# =============================================================================
# CRYPTO INFO BOT CLASS
# =============================================================================


class CryptoInfoBot:
    """
    Telegram bot serving live cryptocurrency prices.

    The symbol index (command -> API route) is built once on startup from
    the full currency listing and is read-only afterwards.
    """

    def __init__(
        self,
        config: BotConfig,
        fetcher: Optional[PriceFetcher] = None,
    ):
        """
        Initialize the Crypto Info Bot.

        Args:
            config: Runtime settings
            fetcher: Optional PriceFetcher (default: built from config)
        """
        self.config = config
        self.fetcher = fetcher or PriceFetcher(
            api_url=config.api_url,
            convert=config.convert,
            timeout=config.request_timeout,
        )
        self.index: dict[str, str] = {}
        self.sessions = TickerRegistry()

        # Application for handling commands (initialized lazily)
        self._application: Optional[Application] = None

        logger.info(
            f"CryptoInfoBot initialized: username={config.username}, "
            f"page_size={config.page_size}, refresh={config.refresh_interval}s"
        )

    @property
    def application(self) -> Application:
        """Get or create the Application instance."""
        if self._application is None:
            self._application = self._create_application()
        return self._application

    def _create_application(self) -> Application:
        """Create and configure the Telegram Application."""
        app = (
            Application.builder()
            .token(self.config.token)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        app.add_handler(CommandHandler(["start", "help"], self._handle_help))
        app.add_handler(CommandHandler("rates", self._handle_rates))
        app.add_handler(CommandHandler("list", self._handle_list))
        app.add_handler(CommandHandler("time", self._handle_time))
        app.add_handler(
            CallbackQueryHandler(self._handle_page_action, pattern=PAGE_ACTION_PATTERN)
        )
        app.add_handler(
            CallbackQueryHandler(self._handle_noop, pattern=f"^{NOOP_CALLBACK}$")
        )
        app.add_error_handler(self._handle_error)

        return app

    # =========================================================================
    # STARTUP
    # =========================================================================

    async def load_index(self) -> dict[str, str]:
        """
        Fetch the full listing and build the command index.

        Returns:
            The index; empty if the listing could not be fetched
        """
        try:
            snapshots = await asyncio.to_thread(self.fetcher.fetch_many)
        except FetchError as e:
            logger.error(f"Failed to load currency index: {e}")
            return {}

        self.index = build_symbol_index(snapshots)
        logger.info(f"Loaded {len(self.index)} currency commands")
        return self.index

    async def _post_init(self, application: Application) -> None:
        index = await self.load_index()
        if index:
            application.add_handler(CommandHandler(list(index), self._handle_currency))

    async def _post_shutdown(self, application: Application) -> None:
        stopped = self.sessions.stop_all()
        logger.info(f"Stopped {stopped} live ticker(s)")

    # =========================================================================
    # PAGINATION
    # =========================================================================

    def pagination_markup(self, namespace: str, page: int) -> InlineKeyboardMarkup:
        """Render the navigation row of a listing as an inline keyboard."""
        buttons = compute_buttons(namespace, page, len(self.index), self.config.page_size)
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton(b.text, callback_data=b.callback_data) for b in buttons]]
        )

    @staticmethod
    def _get_page(chat_data: dict, namespace: str) -> int:
        return chat_data.setdefault("pages", {}).get(namespace, 0)

    @staticmethod
    def _set_page(chat_data: dict, namespace: str, page: int) -> None:
        chat_data.setdefault("pages", {})[namespace] = page

    async def _fetch_page(self, page: int) -> list:
        window = compute_window(page, self.config.page_size, len(self.index))
        return await asyncio.to_thread(
            self.fetcher.fetch_many, window.start, self.config.page_size
        )

    # =========================================================================
    # COMMAND HANDLERS
    # =========================================================================

    async def _handle_help(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /start and /help commands."""
        await update.effective_message.reply_text(
            HELP_MESSAGE, parse_mode=ParseMode.MARKDOWN
        )

    async def _handle_currency(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /<symbol>: start a live price message for the currency."""
        text = update.effective_message.text
        command = text.split()[0].lstrip("/").split("@")[0].lower()
        route = self.index.get(command)
        if route is None:
            logger.debug(f"No route for command /{command}")
            return

        chat_id = update.effective_chat.id
        session = TickerSession(
            bot=context.bot,
            job_queue=context.job_queue,
            chat_id=chat_id,
            load=currency_loader(
                self.fetcher,
                route,
                precision=self.config.precision,
                convert=self.config.convert,
            ),
            interval=self.config.refresh_interval,
            name=f"ticker:{chat_id}:{command}",
        )
        if await session.start():
            self.sessions.add(session)

    async def _handle_rates(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /rates: show the current listing page."""
        page = self._get_page(context.chat_data, RATES_NAMESPACE)

        try:
            snapshots = await self._fetch_page(page)
            await update.effective_message.reply_text(
                render_listing(snapshots, convert=self.config.convert),
                parse_mode=ParseMode.MARKDOWN,
                reply_markup=self.pagination_markup(RATES_NAMESPACE, page),
                link_preview_options=NO_PREVIEW,
            )
        except FetchError as e:
            logger.warning(f"/rates failed to fetch page {page}: {e}")
        except TelegramError as e:
            logger.error(f"/rates failed to reply: {e}")

    async def _handle_list(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /list: show every currency command."""
        text = render_index(self.index) or "Currency list is not available yet."
        try:
            await update.effective_message.reply_text(text)
        except TelegramError as e:
            logger.error(f"/list failed to reply: {e}")

    async def _handle_time(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle /time: start a live clock message."""
        chat_id = update.effective_chat.id
        session = TickerSession(
            bot=context.bot,
            job_queue=context.job_queue,
            chat_id=chat_id,
            load=clock_loader(),
            interval=self.config.refresh_interval,
            name=f"clock:{chat_id}",
            stamp_updates=False,
        )
        if await session.start():
            self.sessions.add(session)

    # =========================================================================
    # CALLBACK HANDLERS
    # =========================================================================

    async def _handle_page_action(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle the prev/next buttons of the /rates listing."""
        query = update.callback_query
        match = PAGE_ACTION_PATTERN.match(query.data or "")
        action = match.group(1) if match else ""

        current = self._get_page(context.chat_data, RATES_NAMESPACE)
        page = turn_page(current, action, len(self.index), self.config.page_size)
        self._set_page(context.chat_data, RATES_NAMESPACE, page)

        try:
            snapshots = await self._fetch_page(page)
            await query.edit_message_text(
                render_listing(snapshots, convert=self.config.convert),
                parse_mode=ParseMode.MARKDOWN,
                reply_markup=self.pagination_markup(RATES_NAMESPACE, page),
                link_preview_options=NO_PREVIEW,
            )
        except FetchError as e:
            logger.warning(f"Page {action} failed to fetch page {page}: {e}")
        except TelegramError as e:
            logger.error(f"Page {action} failed to edit listing: {e}")
        finally:
            await query.answer()

    async def _handle_noop(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Acknowledge taps on placeholder and label buttons."""
        await update.callback_query.answer()

    async def _handle_error(
        self,
        update: Any,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Log errors that escaped a handler."""
        logger.error(f"Unhandled error while processing {update}: {context.error}")

    # =========================================================================
    # BOT LIFECYCLE
    # =========================================================================

    async def start_polling(self) -> None:
        """Start the bot in polling mode."""
        logger.info("Starting Telegram bot polling...")
        await self.application.initialize()
        # post_init only fires from run_polling()
        await self._post_init(self.application)
        await self.application.start()
        await self.application.updater.start_polling()

    async def stop(self) -> None:
        """Stop the bot and every live ticker."""
        logger.info("Stopping Telegram bot...")
        self.sessions.stop_all()
        if self._application is not None:
            await self._application.updater.stop()
            await self._application.stop()
            await self._application.shutdown()

    def run(self) -> None:
        """Run the bot (blocking)."""
        logger.info("Running Telegram bot...")
        self.application.run_polling()


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_telegram_bot(config: Optional[BotConfig] = None) -> CryptoInfoBot:
    """
    Factory function to create a CryptoInfoBot.

    Reads configuration from environment variables if not provided.

    Args:
        config: Optional BotConfig (default: load_config())

    Returns:
        Configured CryptoInfoBot instance
    """
    return CryptoInfoBot(config=config or load_config())
