"""Shared fixtures for the Crypto Info Bot tests."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from schemas import PriceSnapshot

FIXED_NOW = datetime(2026, 10, 17, 9, 30, 0)


def make_payload(**overrides) -> dict:
    """A ticker object as the market-data API returns it."""
    payload = {
        "id": "bitcoin",
        "name": "Bitcoin",
        "symbol": "BTC",
        "price_usd": "50000",
        "price_rub": "3500000",
        "percent_change_1h": "0.1",
        "percent_change_24h": "2.0",
        "percent_change_7d": "-1.0",
    }
    payload.update(overrides)
    return payload


def make_snapshot(**overrides) -> PriceSnapshot:
    return PriceSnapshot.from_payload(make_payload(**overrides))


@pytest.fixture
def snapshot() -> PriceSnapshot:
    return make_snapshot()


@pytest.fixture
def telegram_bot() -> MagicMock:
    """Stand-in for telegram.Bot with async send/edit."""
    bot = MagicMock()
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=42))
    bot.edit_message_text = AsyncMock(return_value=MagicMock(message_id=42))
    return bot


@pytest.fixture
def job_queue() -> MagicMock:
    """Stand-in for telegram.ext.JobQueue; run_repeating returns a job."""
    queue = MagicMock()
    queue.run_repeating.return_value = MagicMock(name="job")
    return queue
