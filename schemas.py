"""
Core data schemas for the Crypto Info Bot.

Defines the price snapshot value object produced by the market-data
connector, along with validation utilities for raw API payloads.
"""

from dataclasses import dataclass
from typing import Any

# =============================================================================
# VALIDATION
# =============================================================================

# Fields every ticker object must carry to be rendered
SNAPSHOT_REQUIRED_FIELDS = ["symbol", "name", "price_usd"]

# Percent-change horizons, in display order
PERCENT_FIELDS = ["percent_change_1h", "percent_change_24h", "percent_change_7d"]


@dataclass
class ValidationError:
    """Structured error for validation failures."""

    field: str
    error_type: str
    message: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.field,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    """Result of schema validation."""

    is_valid: bool
    errors: list[ValidationError]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"is_valid": self.is_valid, "errors": [e.to_dict() for e in self.errors]}


def validate_snapshot_payload(payload: Any) -> ValidationResult:
    """
    Validate one ticker object from the market-data API.

    Checks for:
    - Payload being a mapping
    - Required fields presence and non-empty values
    - Numeric percent-change fields (null is allowed)

    Args:
        payload: One element of the API response array

    Returns:
        ValidationResult with is_valid flag and list of errors
    """
    if not isinstance(payload, dict):
        return ValidationResult(
            is_valid=False,
            errors=[
                ValidationError(
                    field="*",
                    error_type="invalid_type",
                    message=f"Payload must be an object, got {type(payload).__name__}",
                )
            ],
        )

    errors: list[ValidationError] = []

    for field in SNAPSHOT_REQUIRED_FIELDS:
        value = payload.get(field)
        if value is None:
            errors.append(
                ValidationError(
                    field=field,
                    error_type="missing_field",
                    message=f"Required field '{field}' is missing",
                )
            )
        elif isinstance(value, str) and not value.strip():
            errors.append(
                ValidationError(
                    field=field,
                    error_type="empty_value",
                    message=f"Required field '{field}' cannot be empty",
                )
            )

    for field in PERCENT_FIELDS:
        value = payload.get(field)
        if value is not None and _to_float(value) is None:
            errors.append(
                ValidationError(
                    field=field,
                    error_type="invalid_type",
                    message=f"Field '{field}' must be numeric, got {value!r}",
                )
            )

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


# =============================================================================
# PRICE SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class PriceSnapshot:
    """
    One point-in-time price record for a currency.

    Prices are kept as the text the API delivered so that rendering never
    introduces float noise. Two snapshots are interchangeable when all of
    their fields match.
    """

    route: str
    symbol: str
    name: str
    price_primary: str
    price_secondary: str
    percent_change_1h: float | None = None
    percent_change_24h: float | None = None
    percent_change_7d: float | None = None

    @classmethod
    def from_payload(cls, payload: Any, convert: str = "RUB") -> "PriceSnapshot":
        """
        Build a snapshot from one ticker object.

        Args:
            payload: API object with name, symbol, price and percent fields
            convert: Secondary currency code requested from the API

        Returns:
            PriceSnapshot instance

        Raises:
            ValueError: If the payload fails validation
        """
        result = validate_snapshot_payload(payload)
        if not result.is_valid:
            raise ValueError("; ".join(e.message for e in result.errors))

        symbol = str(payload["symbol"])
        return cls(
            route=str(payload.get("id") or symbol.lower()),
            symbol=symbol,
            name=str(payload["name"]),
            price_primary=_price_text(payload["price_usd"]),
            price_secondary=_price_text(payload.get(f"price_{convert.lower()}")),
            percent_change_1h=_to_float(payload.get("percent_change_1h")),
            percent_change_24h=_to_float(payload.get("percent_change_24h")),
            percent_change_7d=_to_float(payload.get("percent_change_7d")),
        )

    @property
    def command(self) -> str:
        """Chat command that tracks this currency."""
        return self.symbol.lower()


def _price_text(value: Any) -> str:
    """Shortest text form of an API price value."""
    if value is None:
        return "n/a"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
