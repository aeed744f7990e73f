"""
Penny Profit - API Client
Thin requests-based client the interactive front-end uses to reach the HTTP API.
"""

from typing import Any, Dict, Optional

import requests
from loguru import logger

from penny_profit.config import ClientConfig, get_config
from penny_profit.errors import PennyProfitError
from penny_profit.relay import ChatContext


class TransportError(PennyProfitError):
    """The calculate endpoint could not be reached or answered with an error."""
    user_message = "Failed to calculate investment. Please try again."


class ChatUnavailableError(PennyProfitError):
    """The chat endpoint failed. user_message carries the server's safe message when present."""
    user_message = "Sorry, I couldn't process your question. Please try again."


class CalculatorClient:
    """Client for /api/calculate, /api/chat and /health."""

    def __init__(self, config: Optional[ClientConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config().client
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self.config.api_url.rstrip("/")

    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        return self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.config.timeout)

    def calculate(self, stock_price: float, desired_profit: float) -> float:
        """
        Ask the server for the investment figure.

        Raises:
            TransportError: On connection failure, non-2xx status or a malformed body.
        """
        try:
            resp = self._post("/api/calculate", {"stockPrice": stock_price, "desiredProfit": desired_profit})
        except requests.RequestException as e:
            logger.warning(f"Calculate request failed: {e}")
            raise TransportError(str(e)) from e

        if not resp.ok:
            logger.warning(f"Calculate request returned HTTP {resp.status_code}")
            raise TransportError(f"HTTP {resp.status_code}")

        try:
            return float(resp.json()["investment"])
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError(f"Malformed calculate response: {e}") from e

    def chat(self, query: str, context: Optional[ChatContext] = None) -> str:
        """
        Ask the assistant a question.

        Raises:
            ChatUnavailableError: On any failure; the server's error text is used when available.
        """
        context = context or ChatContext()
        payload = {
            "query": query,
            "stockPrice": context.stock_price,
            "desiredProfit": context.profit_target,
            "investment": context.investment,
        }

        try:
            resp = self._post("/api/chat", payload)
        except requests.RequestException as e:
            logger.warning(f"Chat request failed: {e}")
            raise ChatUnavailableError(str(e)) from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not resp.ok:
            message = data.get("error") if isinstance(data, dict) else None
            raise ChatUnavailableError(f"HTTP {resp.status_code}", user_message=message or None)

        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise ChatUnavailableError("Malformed chat response")
        return data["response"]

    def health(self) -> Dict[str, Any]:
        """Server status, or {"status": "offline"} when unreachable."""
        try:
            resp = self.session.get(f"{self.base_url}/health", timeout=self.config.timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Health check failed: {e}")
            return {"status": "offline"}
