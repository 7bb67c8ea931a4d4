"""
Message rendering for the Crypto Info Bot.

Pure functions mapping price snapshots to Telegram Markdown text. Output
must be byte-stable for equal input: the ticker compares rendered text to
decide whether an edit is needed.
"""

from datetime import datetime
from typing import Iterable, Mapping

from schemas import PriceSnapshot

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_PRECISION = 3

RULE = "=" * 18
FENCE = "```"

CURRENCY_SIGNS = {
    "USD": "$",
    "RUB": "₽",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

# (snapshot attribute, horizon label)
HORIZONS = [
    ("percent_change_1h", "1h"),
    ("percent_change_24h", "24h"),
    ("percent_change_7d", "7d"),
]


# =============================================================================
# FORMATTING HELPERS
# =============================================================================


def currency_sign(code: str) -> str:
    """Display sign for a currency code, falling back to the code itself."""
    return CURRENCY_SIGNS.get(code.upper(), code.upper())


def format_percent(value: float | None, precision: int = DEFAULT_PRECISION) -> str:
    """
    Format a percent-change figure to a fixed number of decimals.

    Positive values get an explicit ``+``; zero has no sign; negative
    values keep their minus sign.

    Example:
        >>> format_percent(1.5, 3)
        '+1.500'
        >>> format_percent(0, 3)
        '0.000'
    """
    if value is None:
        return "n/a"
    if value == 0:
        value = 0.0  # drop the sign of -0.0
    text = f"{value:.{precision}f}"
    return f"+{text}" if value > 0 else text


def title_line(snapshot: PriceSnapshot) -> str:
    return f"{snapshot.name} *({snapshot.symbol})* /{snapshot.command}"


# =============================================================================
# SNAPSHOT TEMPLATES
# =============================================================================


def render_full(
    snapshot: PriceSnapshot,
    precision: int = DEFAULT_PRECISION,
    convert: str = "RUB",
) -> str:
    """
    Render the multi-line currency card used by the live ticker.

    Args:
        snapshot: Price snapshot to render
        precision: Decimal places for percent figures
        convert: Secondary currency code

    Returns:
        Markdown text with both prices and all three percent horizons
    """
    lines = [
        title_line(snapshot),
        FENCE,
        RULE,
        f"$ {snapshot.price_primary}",
        f"{currency_sign(convert)} {snapshot.price_secondary}",
        RULE,
    ]
    for attribute, label in HORIZONS:
        lines.append(f"{format_percent(getattr(snapshot, attribute), precision)}% / {label}")
    lines.append(FENCE)
    return "\n".join(lines)


def render_compact(snapshot: PriceSnapshot, convert: str = "RUB") -> str:
    """Render the single price line used in listings."""
    return (
        f"\n{title_line(snapshot)}\n"
        f"{FENCE}\n"
        f"$ {snapshot.price_primary} | {currency_sign(convert)} {snapshot.price_secondary}\n"
        f"{FENCE}"
    )


def render_listing(snapshots: Iterable[PriceSnapshot], convert: str = "RUB") -> str:
    """Concatenate compact renders for a page of the listing."""
    return "".join(render_compact(snapshot, convert) for snapshot in snapshots)


def render_index(index: Mapping[str, str]) -> str:
    """Render the command list: one ``route /command`` line per currency."""
    return "".join(f"\n{route} /{command}" for command, route in index.items())


# =============================================================================
# TIMESTAMPS
# =============================================================================


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def with_updated_at(text: str, moment: datetime) -> str:
    """Append the ``Updated: HH:MM:SS`` footer to a rendered message."""
    return f"{text}\nUpdated: {format_time(moment)}"


def render_date(moment: datetime) -> str:
    """Render the live clock message, e.g. ``Sat Oct 17 2026 09:30:00``."""
    return f"{moment.strftime('%a %b %d %Y')} {format_time(moment)}"
