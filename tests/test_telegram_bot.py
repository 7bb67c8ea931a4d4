"""
Tests for the Telegram command dispatcher.

Tests the following components:
1. Startup index loading and application wiring
2. Currency and clock commands
3. /rates, /list and pagination callbacks
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import InlineKeyboardMarkup
from telegram.error import BadRequest
from telegram.ext import CallbackQueryHandler, CommandHandler

from bot.telegram_bot import CryptoInfoBot, create_telegram_bot
from bot.ticker import TickerState
from config import BotConfig
from connectors.price_fetcher import FetchError
from tests.conftest import make_snapshot

TOKEN = "123456:TEST-TOKEN"


@pytest.fixture
def fetcher() -> MagicMock:
    return MagicMock()


@pytest.fixture
def crypto_bot(fetcher) -> CryptoInfoBot:
    bot = CryptoInfoBot(BotConfig(token=TOKEN, page_size=30), fetcher=fetcher)
    bot.index = {f"c{i}": f"coin-{i}" for i in range(95)}
    bot.index["btc"] = "bitcoin"
    return bot


@pytest.fixture
def context(telegram_bot, job_queue) -> MagicMock:
    ctx = MagicMock()
    ctx.bot = telegram_bot
    ctx.job_queue = job_queue
    ctx.chat_data = {}
    return ctx


def make_command_update(text: str, chat_id: int = 100, edited: bool = False) -> MagicMock:
    update = MagicMock()
    if edited:
        update.message = None
    update.effective_message.text = text
    update.effective_message.reply_text = AsyncMock()
    update.effective_chat.id = chat_id
    return update


def make_callback_update(data: str) -> MagicMock:
    update = MagicMock()
    update.callback_query.data = data
    update.callback_query.edit_message_text = AsyncMock()
    update.callback_query.answer = AsyncMock()
    return update


# =============================================================================
# TEST 1: Startup
# =============================================================================


class TestStartup:
    """Test index loading and handler registration."""

    @pytest.mark.asyncio
    async def test_load_index(self, fetcher):
        fetcher.fetch_many.return_value = [
            make_snapshot(),
            make_snapshot(id="ethereum", symbol="ETH", name="Ethereum"),
        ]
        bot = CryptoInfoBot(BotConfig(token=TOKEN), fetcher=fetcher)

        index = await bot.load_index()

        assert index == {"btc": "bitcoin", "eth": "ethereum"}
        assert bot.index is index
        fetcher.fetch_many.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_load_index_failure_leaves_empty_index(self, fetcher):
        fetcher.fetch_many.side_effect = FetchError("down")
        bot = CryptoInfoBot(BotConfig(token=TOKEN), fetcher=fetcher)

        assert await bot.load_index() == {}
        assert bot.index == {}

    @pytest.mark.asyncio
    async def test_post_init_registers_currency_commands(self, fetcher):
        fetcher.fetch_many.return_value = [make_snapshot()]
        bot = CryptoInfoBot(BotConfig(token=TOKEN), fetcher=fetcher)
        application = MagicMock()

        await bot._post_init(application)

        handler = application.add_handler.call_args.args[0]
        assert isinstance(handler, CommandHandler)
        assert handler.commands == frozenset({"btc"})

    @pytest.mark.asyncio
    async def test_post_init_without_index_adds_nothing(self, fetcher):
        fetcher.fetch_many.side_effect = FetchError("down")
        bot = CryptoInfoBot(BotConfig(token=TOKEN), fetcher=fetcher)
        application = MagicMock()

        await bot._post_init(application)

        application.add_handler.assert_not_called()

    def test_application_handlers(self, crypto_bot):
        """Built-in commands and callbacks are wired at build time."""
        handlers = crypto_bot.application.handlers[0]

        commands = set()
        for handler in handlers:
            if isinstance(handler, CommandHandler):
                commands |= handler.commands
        assert commands == {"start", "help", "rates", "list", "time"}
        assert sum(isinstance(h, CallbackQueryHandler) for h in handlers) == 2

    def test_factory_uses_given_config(self):
        bot = create_telegram_bot(BotConfig(token=TOKEN, convert="EUR"))
        assert bot.fetcher.convert == "EUR"


# =============================================================================
# TEST 2: Live Commands
# =============================================================================


class TestLiveCommands:
    """Test /<symbol> and /time."""

    @pytest.mark.asyncio
    async def test_currency_command_starts_ticker(
        self, crypto_bot, fetcher, context, telegram_bot
    ):
        fetcher.fetch_one.return_value = make_snapshot()
        update = make_command_update("/btc")

        await crypto_bot._handle_currency(update, context)

        fetcher.fetch_one.assert_called_once_with("bitcoin")
        text = telegram_bot.send_message.call_args.kwargs["text"]
        assert text.startswith("Bitcoin *(BTC)* /btc")
        assert "\nUpdated: " in text
        assert len(crypto_bot.sessions) == 1
        assert context.job_queue.run_repeating.call_args.kwargs["interval"] == 5.0

    @pytest.mark.asyncio
    async def test_command_with_bot_mention(self, crypto_bot, fetcher, context):
        fetcher.fetch_one.return_value = make_snapshot()

        await crypto_bot._handle_currency(make_command_update("/BTC@crypto_bot"), context)

        fetcher.fetch_one.assert_called_once_with("bitcoin")

    @pytest.mark.asyncio
    async def test_failed_start_is_not_tracked(self, crypto_bot, fetcher, context):
        fetcher.fetch_one.side_effect = FetchError("down")

        await crypto_bot._handle_currency(make_command_update("/btc"), context)

        assert len(crypto_bot.sessions) == 0
        context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command_is_ignored(self, crypto_bot, fetcher, context):
        await crypto_bot._handle_currency(make_command_update("/nope"), context)

        fetcher.fetch_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_time_command(self, crypto_bot, context, telegram_bot):
        await crypto_bot._handle_time(make_command_update("/time"), context)

        text = telegram_bot.send_message.call_args.kwargs["text"]
        assert "Updated" not in text
        assert len(crypto_bot.sessions) == 1

    @pytest.mark.asyncio
    async def test_stop_stops_sessions(self, crypto_bot, fetcher, context):
        fetcher.fetch_one.return_value = make_snapshot()
        await crypto_bot._handle_currency(make_command_update("/btc"), context)
        session = crypto_bot.sessions.live()[0]

        await crypto_bot._post_shutdown(MagicMock())

        assert session.state is TickerState.STOPPED
        context.job_queue.run_repeating.return_value.schedule_removal.assert_called_once()

    @pytest.mark.asyncio
    async def test_shutdown_after_job_queue_stopped(self, crypto_bot, fetcher, telegram_bot):
        """Live tickers stop cleanly when the scheduler has already shut down."""
        application = crypto_bot.application
        job_queue = application.job_queue
        await job_queue.start()
        fetcher.fetch_one.return_value = make_snapshot()
        context = MagicMock(bot=telegram_bot, job_queue=job_queue, chat_data={})
        await crypto_bot._handle_currency(make_command_update("/btc"), context)
        session = crypto_bot.sessions.live()[0]

        # run_polling stops the Application (and its JobQueue) before post_shutdown
        await job_queue.stop()
        await crypto_bot._post_shutdown(application)

        assert session.state is TickerState.STOPPED
        assert len(crypto_bot.sessions) == 0

    @pytest.mark.asyncio
    async def test_edited_command_starts_ticker(self, crypto_bot, fetcher, context):
        """Commands arriving as edited messages have no update.message."""
        fetcher.fetch_one.return_value = make_snapshot()

        await crypto_bot._handle_currency(make_command_update("/btc", edited=True), context)

        fetcher.fetch_one.assert_called_once_with("bitcoin")
        assert len(crypto_bot.sessions) == 1

    @pytest.mark.asyncio
    async def test_edited_help_command(self, crypto_bot, context):
        update = make_command_update("/help", edited=True)

        await crypto_bot._handle_help(update, context)

        update.effective_message.reply_text.assert_awaited_once()


# =============================================================================
# TEST 3: Listing Commands
# =============================================================================


class TestListing:
    """Test /rates, /list and page navigation."""

    def test_pagination_markup(self, crypto_bot):
        markup = crypto_bot.pagination_markup("rates", 1)

        assert isinstance(markup, InlineKeyboardMarkup)
        row = markup.inline_keyboard[0]
        assert [b.text for b in row] == ["< Prev 30", "30 - 60 (96)", "Next 30 >"]
        assert [b.callback_data for b in row] == ["/rates/prev", "/noop", "/rates/next"]

    @pytest.mark.asyncio
    async def test_rates_first_page(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]
        update = make_command_update("/rates")

        await crypto_bot._handle_rates(update, context)

        fetcher.fetch_many.assert_called_once_with(0, 30)
        args, kwargs = update.effective_message.reply_text.call_args
        assert "$ 50000 | ₽ 3500000" in args[0]
        assert kwargs["reply_markup"].inline_keyboard[0][0].text == "----------"

    @pytest.mark.asyncio
    async def test_rates_uses_stored_page(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]
        context.chat_data["pages"] = {"rates": 2}

        await crypto_bot._handle_rates(make_command_update("/rates"), context)

        fetcher.fetch_many.assert_called_once_with(60, 30)

    @pytest.mark.asyncio
    async def test_rates_fetch_failure_is_logged(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.side_effect = FetchError("down")
        update = make_command_update("/rates")

        await crypto_bot._handle_rates(update, context)

        update.effective_message.reply_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_command(self, crypto_bot, context):
        crypto_bot.index = {"btc": "bitcoin", "eth": "ethereum"}
        update = make_command_update("/list")

        await crypto_bot._handle_list(update, context)

        update.effective_message.reply_text.assert_awaited_once_with("\nbitcoin /btc\nethereum /eth")

    @pytest.mark.asyncio
    async def test_list_before_index_loaded(self, crypto_bot, context):
        crypto_bot.index = {}
        update = make_command_update("/list")

        await crypto_bot._handle_list(update, context)

        assert update.effective_message.reply_text.call_args.args[0]

    @pytest.mark.asyncio
    async def test_next_page(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]
        update = make_callback_update("/rates/next")

        await crypto_bot._handle_page_action(update, context)

        assert context.chat_data["pages"]["rates"] == 1
        fetcher.fetch_many.assert_called_once_with(30, 30)
        update.callback_query.edit_message_text.assert_awaited_once()
        update.callback_query.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_prev_page_clamps_at_zero(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]

        await crypto_bot._handle_page_action(make_callback_update("/rates/prev"), context)

        assert context.chat_data["pages"]["rates"] == 0
        fetcher.fetch_many.assert_called_once_with(0, 30)

    @pytest.mark.asyncio
    async def test_next_page_clamps_at_last(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]
        context.chat_data["pages"] = {"rates": 2}

        await crypto_bot._handle_page_action(make_callback_update("/rates/next"), context)

        assert context.chat_data["pages"]["rates"] == 2

    @pytest.mark.asyncio
    async def test_page_failure_still_answers(self, crypto_bot, fetcher, context):
        fetcher.fetch_many.return_value = [make_snapshot()]
        update = make_callback_update("/rates/next")
        update.callback_query.edit_message_text.side_effect = BadRequest(
            "Message is not modified"
        )

        await crypto_bot._handle_page_action(update, context)

        update.callback_query.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_noop_callback(self, crypto_bot, context):
        update = make_callback_update("/noop")

        await crypto_bot._handle_noop(update, context)

        update.callback_query.answer.assert_awaited_once()
