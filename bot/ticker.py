"""
Live-updating ticker messages for the Crypto Info Bot.

A TickerSession owns one chat message and one repeating job:

    STARTING --(loaded + sent)--> LIVE --(fetch/edit failure, stop())--> STOPPED
        \\--(fetch/send failure)----------------------------------------^

On every tick the session reloads its text and edits the message in place,
skipping the edit when the rendered text has not changed. Any failure stops
the session for good; the chat is not told, the message simply stops
updating.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from telegram.constants import ParseMode
from telegram.error import TelegramError

from connectors.price_fetcher import FetchError, PriceFetcher
from transforms.render import DEFAULT_PRECISION, render_date, render_full, with_updated_at

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0  # seconds

Loader = Callable[[], Awaitable[str]]


class TickerState(Enum):
    """Lifecycle states of a ticker session."""

    STARTING = "starting"
    LIVE = "live"
    STOPPED = "stopped"


class SendError(Exception):
    """The initial ticker message could not be delivered."""


class EditError(Exception):
    """An in-place update of the ticker message was rejected."""


# =============================================================================
# LOADERS
# =============================================================================


def currency_loader(
    fetcher: PriceFetcher,
    route: str,
    precision: int = DEFAULT_PRECISION,
    convert: str = "RUB",
) -> Loader:
    """
    Build a loader that fetches one currency and renders its full card.

    The blocking HTTP call runs in a worker thread so the event loop keeps
    serving other chats.
    """

    async def load() -> str:
        snapshot = await asyncio.to_thread(fetcher.fetch_one, route)
        return render_full(snapshot, precision=precision, convert=convert)

    return load


def clock_loader(clock: Callable[[], datetime] = datetime.now) -> Loader:
    """Build a loader that renders the current date and time."""

    async def load() -> str:
        return render_date(clock())

    return load


# =============================================================================
# TICKER SESSION
# =============================================================================


class TickerSession:
    """
    One live-updating message bound to a chat.

    Args:
        bot: telegram.Bot used to send and edit the message
        job_queue: telegram.ext.JobQueue that drives the refresh timer
        chat_id: Target chat
        load: Async callable returning the rendered text; raises FetchError
        interval: Refresh period in seconds
        name: Job name, for logs
        stamp_updates: Append the ``Updated: HH:MM:SS`` footer
        clock: Time source for the footer
    """

    def __init__(
        self,
        bot: Any,
        job_queue: Any,
        chat_id: int,
        load: Loader,
        interval: float = DEFAULT_INTERVAL,
        name: Optional[str] = None,
        stamp_updates: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.bot = bot
        self.job_queue = job_queue
        self.chat_id = chat_id
        self.load = load
        self.interval = interval
        self.name = name or f"ticker:{chat_id}"
        self.stamp_updates = stamp_updates
        self.clock = clock

        self.state = TickerState.STARTING
        self.text: Optional[str] = None
        self.message_id: Optional[int] = None
        self._job: Optional[Any] = None

    @property
    def is_live(self) -> bool:
        return self.state is TickerState.LIVE

    def _decorate(self, text: str) -> str:
        return with_updated_at(text, self.clock()) if self.stamp_updates else text

    async def start(self) -> bool:
        """
        Load, send the message and arm the refresh job.

        Returns:
            True if the session went live, False if it stopped on the way
        """
        if self.state is not TickerState.STARTING:
            return False

        try:
            text = await self.load()
            message = await self._send(text)
        except (FetchError, SendError) as e:
            logger.warning(f"{self.name} failed to start: {e}")
            self.stop()
            return False

        self.message_id = message.message_id
        self.text = text
        self.state = TickerState.LIVE
        self._job = self.job_queue.run_repeating(
            self._on_tick,
            interval=self.interval,
            first=self.interval,
            name=self.name,
            chat_id=self.chat_id,
        )
        logger.info(f"{self.name} live as message {self.message_id}")
        return True

    async def tick(self) -> bool:
        """
        Refresh the message once.

        Returns:
            True if an edit was issued and accepted
        """
        if self.state is not TickerState.LIVE:
            return False

        try:
            text = await self.load()
        except FetchError as e:
            logger.warning(f"{self.name} stopped, fetch failed: {e}")
            self.stop()
            return False

        # Stopped while the fetch was in flight: discard the result
        if self.state is not TickerState.LIVE:
            return False

        if text == self.text:
            return False

        try:
            await self._edit(text)
        except EditError as e:
            logger.warning(f"{self.name} stopped, edit failed: {e}")
            self.stop()
            return False

        self.text = text
        return True

    def stop(self) -> None:
        """Move to STOPPED and remove the refresh job. Safe to call twice."""
        if self.state is TickerState.STOPPED:
            return

        self.state = TickerState.STOPPED
        if self._job is not None:
            try:
                self._job.schedule_removal()
            except JobLookupError:
                # The scheduler already shut down and dropped its jobs
                logger.debug(f"{self.name} job already gone")
            self._job = None
        logger.debug(f"{self.name} stopped")

    async def _on_tick(self, context: Any) -> None:
        """JobQueue callback."""
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"{self.name} crashed during refresh: {e}")
            self.stop()

    async def _send(self, text: str) -> Any:
        try:
            return await self.bot.send_message(
                chat_id=self.chat_id,
                text=self._decorate(text),
                parse_mode=ParseMode.MARKDOWN,
            )
        except TelegramError as e:
            raise SendError(str(e)) from e

    async def _edit(self, text: str) -> Any:
        try:
            return await self.bot.edit_message_text(
                text=self._decorate(text),
                chat_id=self.chat_id,
                message_id=self.message_id,
                parse_mode=ParseMode.MARKDOWN,
            )
        except TelegramError as e:
            raise EditError(str(e)) from e


# =============================================================================
# REGISTRY
# =============================================================================


class TickerRegistry:
    """
    Tracks the sessions a bot has started so shutdown can stop them.

    Re-invoking a command in the same chat starts an independent session;
    the registry does not replace or cancel earlier ones.
    """

    def __init__(self):
        self._sessions: list[TickerSession] = []

    def add(self, session: TickerSession) -> None:
        self._prune()
        self._sessions.append(session)

    def live(self) -> list[TickerSession]:
        """Sessions that are still refreshing."""
        self._prune()
        return list(self._sessions)

    def stop_all(self) -> int:
        """Stop every live session, returning how many were stopped."""
        sessions = self.live()
        for session in sessions:
            session.stop()
        self._sessions.clear()
        return len(sessions)

    def _prune(self) -> None:
        self._sessions = [
            s for s in self._sessions if s.state is not TickerState.STOPPED
        ]

    def __len__(self) -> int:
        return len(self.live())
