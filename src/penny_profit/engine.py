"""
Penny Profit - Calculation Engine
Pure position-sizing math: shares and capital needed to earn a target profit per 1¢ move.

Formula:
    shares_needed = profit_target / 0.01
    investment    = shares_needed * stock_price

No rounding happens here. Display rounding is done by the format_* helpers.
"""

import math
from numbers import Real
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from penny_profit.errors import PennyProfitError

# One cent, in dollars
PRICE_TICK = 0.01

# Relative tolerance used when comparing two investment figures
AGREEMENT_TOLERANCE = 1e-9


class InvalidInputError(PennyProfitError):
    """Raised when the engine receives a value the validator should have rejected."""

    user_message = "Invalid input"


class CalculationResult(BaseModel):
    """Outcome of a single position-sizing calculation."""
    model_config = ConfigDict(frozen=True)

    stock_price: float = Field(description="Price per share in dollars.")
    profit_target: float = Field(description="Desired profit in dollars per 1¢ price gain.")
    shares_needed: float = Field(description="Shares required (fractional shares allowed).")
    investment: float = Field(description="Total capital required in dollars.")


class WhatIfProjection(BaseModel):
    """Hypothetical outcome for a target price. Derived only, never stored."""
    model_config = ConfigDict(frozen=True)

    target_price: float
    delta: float = Field(description="Target price minus current stock price.")
    projected_value: float = Field(description="Value of the position at the target price.")
    profit_loss: float = Field(description="Gain (positive) or loss (negative) at the target price.")
    percent_change: float = Field(description="Price change relative to the current price, in percent.")


def _require_positive(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive finite number, got {value!r}")
    return value


def compute(stock_price: float, profit_target: float) -> CalculationResult:
    """
    Compute shares and investment for a stock price and a profit-per-cent target.

    Raises:
        InvalidInputError: If either value is non-numeric, non-finite or not positive.
    """
    stock_price = _require_positive("stock_price", stock_price)
    profit_target = _require_positive("profit_target", profit_target)

    shares_needed = profit_target / PRICE_TICK
    investment = shares_needed * stock_price

    return CalculationResult(
        stock_price=stock_price,
        profit_target=profit_target,
        shares_needed=shares_needed,
        investment=investment,
    )


def project(result: CalculationResult, stock_price: float, target_price: float) -> WhatIfProjection:
    """
    What-if projection: outcome of the calculated position if the price moves to target_price.

    Reuses result.shares_needed so the projection always describes the same position.
    """
    stock_price = _require_positive("stock_price", stock_price)
    target_price = _require_positive("target_price", target_price)

    delta = target_price - stock_price
    return WhatIfProjection(
        target_price=target_price,
        delta=delta,
        projected_value=result.shares_needed * target_price,
        profit_loss=result.shares_needed * delta,
        percent_change=delta / stock_price * 100,
    )


def results_agree(local_investment: float, remote_investment: float) -> bool:
    """True when two investment figures match within floating-point tolerance."""
    return math.isclose(local_investment, remote_investment, rel_tol=AGREEMENT_TOLERANCE, abs_tol=1e-9)


def format_currency(amount: float) -> str:
    """Format dollars for display, e.g. 30300.0 -> '$30,300.00'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_shares(shares: float) -> str:
    """Format a share count, dropping the fraction when it is whole."""
    if float(shares).is_integer():
        return f"{int(shares):,}"
    return f"{shares:,.2f}"
