"""
Price Data Fetcher for the Crypto Info Bot.

Wraps the CoinMarketCap-style ticker endpoint: one call for a single
currency route, one call for a window of the full listing. There is no
retry or caching here; callers decide what a failure means.
"""

import logging
import re
from typing import Any, Iterable

import requests

from schemas import PriceSnapshot

# =============================================================================
# LOGGING
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_API_URL = "https://api.coinmarketcap.com/v1/ticker/"
DEFAULT_CONVERT = "RUB"
DEFAULT_TIMEOUT = 10.0

# Telegram accepts only these characters in a command name
COMMAND_PATTERN = re.compile(r"^[a-z0-9_]{1,32}$")

# Commands owned by the bot itself, never shadowed by a currency symbol
RESERVED_COMMANDS = frozenset({"start", "help", "rates", "list", "time"})


class FetchError(Exception):
    """Raised on network failure, non-2xx response, or malformed payload."""


# =============================================================================
# PRICE FETCHER
# =============================================================================


class PriceFetcher:
    """
    Fetches price snapshots from the market-data API.

    Every request carries the fixed ``convert`` parameter so each snapshot
    holds both the USD price and the secondary currency price.

    Example:
        >>> fetcher = PriceFetcher("https://api.coinmarketcap.com/v1/ticker/")
        >>> snapshot = fetcher.fetch_one("bitcoin")
        >>> print(snapshot.price_primary)
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        convert: str = DEFAULT_CONVERT,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """
        Initialize the price fetcher.

        Args:
            api_url: Base ticker endpoint
            convert: Secondary currency code (e.g., "RUB")
            timeout: Per-request timeout in seconds
            session: Optional requests session; by default each call goes
                through requests.get, since tickers fetch from worker threads
        """
        self.api_url = api_url.rstrip("/")
        self.convert = convert.upper()
        self.timeout = timeout
        self.session = session

        logger.info(
            f"PriceFetcher initialized: api_url={self.api_url}, "
            f"convert={self.convert}, timeout={timeout}s"
        )

    def fetch_one(self, route: str) -> PriceSnapshot:
        """
        Fetch the snapshot of a single currency.

        Args:
            route: API id of the currency (e.g., "bitcoin")

        Returns:
            PriceSnapshot for the currency

        Raises:
            FetchError: On any network, HTTP or payload failure
        """
        url = f"{self.api_url}/{route.strip('/')}/"
        snapshots = self._get(url, {"convert": self.convert})
        return snapshots[0]

    def fetch_many(
        self,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[PriceSnapshot]:
        """
        Fetch an ordered window of the currency listing.

        Zero or missing offset/limit values are left out of the query
        instead of being sent as ``0``.

        Args:
            offset: Index of the first currency (``start`` parameter)
            limit: Number of currencies to return

        Returns:
            Snapshots in the order the API ranks them

        Raises:
            FetchError: On any network, HTTP or payload failure
        """
        params: dict[str, Any] = {"convert": self.convert}
        if limit:
            params["limit"] = limit
        if offset:
            params["start"] = offset

        return self._get(f"{self.api_url}/", params)

    def _get(self, url: str, params: dict[str, Any]) -> list[PriceSnapshot]:
        try:
            http = self.session if self.session is not None else requests
            response = http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning(f"API request failed for {url}: {e}")
            raise FetchError(f"request to {url} failed: {e}") from e
        except ValueError as e:
            logger.warning(f"API returned invalid JSON for {url}: {e}")
            raise FetchError(f"invalid JSON from {url}") from e

        if not isinstance(data, list) or not data:
            logger.warning(f"Unexpected payload from {url}: {str(data)[:200]}")
            raise FetchError(f"expected a non-empty array from {url}")

        try:
            snapshots = [
                PriceSnapshot.from_payload(item, convert=self.convert) for item in data
            ]
        except ValueError as e:
            logger.warning(f"Failed to parse API response for {url}: {e}")
            raise FetchError(f"malformed ticker object from {url}: {e}") from e

        logger.debug(f"Fetched {len(snapshots)} snapshot(s) from {url}")
        return snapshots


# =============================================================================
# SYMBOL INDEX
# =============================================================================


def build_symbol_index(snapshots: Iterable[PriceSnapshot]) -> dict[str, str]:
    """
    Map chat commands to API routes.

    The first snapshot wins when two currencies share a symbol. Symbols
    that Telegram cannot route as a command, or that would shadow one of
    the bot's own commands, are skipped.

    Args:
        snapshots: Full currency listing, in API order

    Returns:
        Dictionary of lower-cased symbol -> route, in listing order
    """
    index: dict[str, str] = {}
    for snapshot in snapshots:
        command = snapshot.command
        if not COMMAND_PATTERN.match(command) or command in RESERVED_COMMANDS:
            logger.debug(f"Skipping symbol {snapshot.symbol!r}: not a usable command")
            continue
        index.setdefault(command, snapshot.route)
    return index
