"""
Penny Profit - Chat Relay
Forwards a user's question plus the current calculation to a completion service via LiteLLM.
One request, one response: no conversation memory is kept between calls.
"""

import threading
from typing import Dict, List, Optional

from litellm import completion
from litellm.exceptions import APIConnectionError, AuthenticationError, NotFoundError
from loguru import logger
from pydantic import BaseModel, Field

from penny_profit.config import LLMConfig, get_config
from penny_profit.engine import CalculationResult, format_currency
from penny_profit.errors import PennyProfitError


class ChatRelayError(PennyProfitError):
    """Base class for relay failures. user_message is always safe to show."""


class EmptyQueryError(ChatRelayError):
    user_message = "Query is required"


class UpstreamConfigError(ChatRelayError):
    """The completion service is unreachable or misconfigured (e.g. missing credential)."""
    user_message = "The AI assistant is not configured properly. Please try again later."


class UpstreamError(ChatRelayError):
    user_message = "Failed to process your question. Please try again."


class ChatBusyError(ChatRelayError):
    user_message = "Still answering your previous question. Please wait."


# Upstream exceptions that point at configuration or connectivity rather than the request
_CONFIG_ERRORS = (AuthenticationError, NotFoundError, APIConnectionError)


class ChatContext(BaseModel):
    """Snapshot of the calculation a question refers to."""
    stock_price: Optional[float] = Field(default=None, description="Current stock price in dollars.")
    profit_target: Optional[float] = Field(default=None, description="Desired profit per 1¢ gain.")
    investment: Optional[float] = Field(default=None, description="Required investment in dollars.")

    @classmethod
    def from_result(cls, result: CalculationResult) -> "ChatContext":
        return cls(
            stock_price=result.stock_price,
            profit_target=result.profit_target,
            investment=result.investment,
        )

    def describe(self) -> str:
        if not self.stock_price or not self.investment:
            return "No current calculation available."
        profit = f"${self.profit_target:g}" if self.profit_target is not None else "unknown"
        return (
            f"Current calculation context: Stock price is ${self.stock_price:g}, "
            f"desired profit per 1¢ gain is {profit}, "
            f"and the required investment is {format_currency(self.investment)}."
        )


def build_system_prompt(context: Optional[ChatContext] = None) -> str:
    """Assistant instructions with the calculation context embedded."""
    context_line = (context or ChatContext()).describe()
    return (
        "You are an investment calculator assistant. Help users understand their investment "
        "calculations and provide financial insights. Be helpful, accurate, and concise.\n"
        "\n"
        f"{context_line}\n"
        "\n"
        "Key information about the calculator:\n"
        "- Formula: Investment = Stock Price × (Desired Profit ÷ 0.01)\n"
        "- The calculator determines how much to invest to earn a specific profit per 1-cent stock price increase\n"
        "- Users can choose to earn $1, $10, or $100 per 1-cent gain, or enter a custom amount\n"
        "\n"
        "Answer the user's question clearly and provide relevant financial insights when appropriate."
    )


class ChatRelay:
    """
    Stateless bridge to the completion service.
    Rejects a new question while a previous one is still in flight.
    """

    def __init__(self, llm_config: Optional[LLMConfig] = None):
        self.config = llm_config or get_config().llm
        self._in_flight = threading.Lock()

    @property
    def model_name(self) -> str:
        return self.config.model_name

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def ask(self, query: str, context: Optional[ChatContext] = None) -> str:
        """
        Send one question with its context and return the assistant's answer.

        Raises:
            EmptyQueryError: query is blank (no upstream call is made).
            ChatBusyError: another question is still being answered.
            UpstreamConfigError: missing credential, bad credential, unknown model or unreachable service.
            UpstreamError: any other upstream failure.
        """
        if query is None or not str(query).strip():
            raise EmptyQueryError("Chat query is blank")

        if not self._in_flight.acquire(blocking=False):
            raise ChatBusyError("A chat request is already in flight")

        try:
            messages = [
                {"role": "system", "content": build_system_prompt(context)},
                {"role": "user", "content": str(query).strip()},
            ]
            return self._call_provider(messages)
        finally:
            self._in_flight.release()

    def _call_provider(self, messages: List[Dict[str, str]]) -> str:
        """Internal helper to send messages to the provider via LiteLLM."""
        key_str = self.config.api_key.get_secret_value() if self.config.api_key else None
        if not key_str and not self.config.api_base:
            logger.error("Chat relay has no API key configured")
            raise UpstreamConfigError("Missing completion service credential")

        try:
            response = completion(
                model=self.config.model_name,
                messages=messages,
                api_key=key_str,
                base_url=self.config.api_base,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                timeout=self.config.timeout,
            )
        except _CONFIG_ERRORS as e:
            logger.error(f"Completion service misconfigured or unreachable: {type(e).__name__}: {self._redact(e)}")
            raise UpstreamConfigError(type(e).__name__) from e
        except Exception as e:
            logger.error(f"LLM Call Failed: {type(e).__name__}: {self._redact(e)}")
            raise UpstreamError(type(e).__name__) from e

        if not response.choices or not response.choices[0].message or not response.choices[0].message.content:
            logger.error("Empty response from completion service")
            raise UpstreamError("Empty response from provider")

        logger.info(f"Chat answered by {self.model_name}")
        return response.choices[0].message.content.strip()

    def _redact(self, error: Exception) -> str:
        text = str(error)
        if self.config.api_key:
            secret = self.config.api_key.get_secret_value()
            if secret:
                text = text.replace(secret, "**********")
        return text
