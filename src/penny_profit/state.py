"""
Penny Profit - Application State
Immutable front-end state plus pure update functions.

Every user action maps to a function (state, input) -> new state. The calculation
result is never stored: derive() recomputes it from the current inputs on demand.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from penny_profit.engine import CalculationResult, WhatIfProjection, compute, project
from penny_profit.validator import (
    DEFAULT_PROFIT_TARGET,
    MAX_STOCK_PRICE,
    PRESET_PROFIT_TARGETS,
    ValidationOutcome,
    parse_amount,
    resolve_profit_target,
    validate,
)


class AppState(BaseModel):
    """Everything the front-end shows, as one value."""
    model_config = ConfigDict(frozen=True)

    stock_price_text: str = ""
    preset_profit: float = DEFAULT_PROFIT_TARGET
    custom_profit_text: str = ""
    use_custom_profit: bool = False
    target_price_text: str = ""
    remote_investment: Optional[float] = None
    error: str = ""
    chat_pending: bool = False
    chat_response: str = ""
    dark_mode: bool = False


class DerivedView(BaseModel):
    """Values computed from an AppState. Never persisted."""
    model_config = ConfigDict(frozen=True)

    outcome: ValidationOutcome
    result: Optional[CalculationResult] = None
    projection: Optional[WhatIfProjection] = None


def current_profit(state: AppState):
    """Raw profit value in effect: the custom entry when selected and filled, else the preset."""
    return resolve_profit_target(state.preset_profit, state.custom_profit_text, state.use_custom_profit)


def derive(state: AppState) -> DerivedView:
    outcome = validate(state.stock_price_text, current_profit(state))
    if not outcome.ok:
        return DerivedView(outcome=outcome)

    result = compute(outcome.value.stock_price, outcome.value.profit_target)

    projection = None
    target_price = parse_amount(state.target_price_text, MAX_STOCK_PRICE)
    if target_price is not None:
        projection = project(result, result.stock_price, target_price)

    return DerivedView(outcome=outcome, result=result, projection=projection)


# --- Input changes ---


def set_stock_price(state: AppState, text: str) -> AppState:
    return state.model_copy(update={"stock_price_text": text, "error": "", "remote_investment": None})


def select_preset(state: AppState, value: float) -> AppState:
    """
    Switch to one of the preset profit targets.

    Raises:
        ValueError: If value is not a preset.
    """
    if value not in PRESET_PROFIT_TARGETS:
        raise ValueError(f"Profit preset must be one of {PRESET_PROFIT_TARGETS}, got {value!r}")
    return state.model_copy(update={
        "preset_profit": value,
        "use_custom_profit": False,
        "error": "",
        "remote_investment": None,
    })


def set_custom_profit(state: AppState, text: str) -> AppState:
    return state.model_copy(update={
        "custom_profit_text": text,
        "use_custom_profit": True,
        "error": "",
        "remote_investment": None,
    })


def set_target_price(state: AppState, text: str) -> AppState:
    return state.model_copy(update={"target_price_text": text})


def toggle_dark_mode(state: AppState) -> AppState:
    return state.model_copy(update={"dark_mode": not state.dark_mode})


# --- Results and errors ---


def with_error(state: AppState, message: str) -> AppState:
    return state.model_copy(update={"error": message})


def with_remote_investment(state: AppState, investment: Optional[float]) -> AppState:
    """Record the server's figure. None means the call failed and the value is unset."""
    return state.model_copy(update={"remote_investment": investment})


# --- Chat ---


def begin_chat(state: AppState) -> AppState:
    return state.model_copy(update={"chat_pending": True, "chat_response": ""})


def finish_chat(state: AppState, response: str) -> AppState:
    return state.model_copy(update={"chat_pending": False, "chat_response": response})
