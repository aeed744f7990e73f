"""
Penny Profit - Input Validator
Parses raw user input and classifies problems into user-facing messages.
Never raises for bad input; problems are reported in the ValidationOutcome.
"""

import math
from enum import Enum
from numbers import Real
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Preset profit-per-cent choices offered by the front-end
PRESET_PROFIT_TARGETS = (1, 10, 100)
DEFAULT_PROFIT_TARGET = 1

# Upper bounds keep the math far away from overflow and obvious typos
MAX_STOCK_PRICE = 1_000_000.0
MAX_PROFIT_TARGET = 1_000_000.0


class ValidationIssue(str, Enum):
    """The two kinds of input problems the user can be told about."""
    INVALID_STOCK_PRICE = "InvalidStockPrice"
    INVALID_PROFIT_TARGET = "InvalidProfitTarget"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ValidationIssue.INVALID_STOCK_PRICE: "Please enter a valid stock price",
    ValidationIssue.INVALID_PROFIT_TARGET: "Please enter a valid profit amount",
}


class CalculationInput(BaseModel):
    """Validated calculator input."""
    model_config = ConfigDict(frozen=True)

    stock_price: float = Field(gt=0, description="Price per share in dollars.")
    profit_target: float = Field(gt=0, description="Desired profit per 1¢ gain in dollars.")


class ValidationOutcome(BaseModel):
    """Either a parsed CalculationInput or the list of issues found."""
    model_config = ConfigDict(frozen=True)

    value: Optional[CalculationInput] = None
    issues: List[ValidationIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.issues

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]

    @property
    def error(self) -> str:
        """First message, the one a single-line error display shows."""
        return self.messages[0] if self.issues else ""


def parse_amount(raw: Any, upper_bound: float) -> Optional[float]:
    """
    Parse a dollar amount typed by a user.

    Accepts numbers, or text with optional whitespace, a leading '$' and ',' separators.
    Returns None for anything blank, non-numeric, non-finite, <= 0 or above upper_bound.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, Real):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if text.startswith("$"):
            text = text[1:].strip()
        text = text.replace(",", "")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(value) or value <= 0 or value > upper_bound:
        return None
    return value


def validate(raw_stock_price: Any, raw_profit: Any) -> ValidationOutcome:
    """Check both fields independently so each problem is reported on its own."""
    stock_price = parse_amount(raw_stock_price, MAX_STOCK_PRICE)
    profit_target = parse_amount(raw_profit, MAX_PROFIT_TARGET)

    issues = []
    if stock_price is None:
        issues.append(ValidationIssue.INVALID_STOCK_PRICE)
    if profit_target is None:
        issues.append(ValidationIssue.INVALID_PROFIT_TARGET)

    if issues:
        return ValidationOutcome(issues=issues)
    return ValidationOutcome(value=CalculationInput(stock_price=stock_price, profit_target=profit_target))


def resolve_profit_target(preset: Any, custom: Any, use_custom: bool) -> Any:
    """
    Pick the raw profit value the calculator should use.

    The custom entry wins only when it is selected and not blank; otherwise the preset applies.
    """
    if use_custom and custom is not None and str(custom).strip():
        return custom
    return preset
