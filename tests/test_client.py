"""
API Client Tests
requests-based client with the HTTP session mocked.
"""
from unittest.mock import MagicMock

import pytest
import requests

from penny_profit.client import CalculatorClient, ChatUnavailableError, TransportError
from penny_profit.config import ClientConfig
from penny_profit.relay import ChatContext


def _response(status_code=200, json_data=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api_client(session):
    return CalculatorClient(ClientConfig(api_url="http://calc.test:7778/", timeout=3), session=session)


class TestCalculate:
    """Test suite for CalculatorClient.calculate()."""

    def test_posts_payload_and_returns_investment(self, api_client, session):
        session.post.return_value = _response(json_data={"investment": 30300.0})

        assert api_client.calculate(3.03, 100) == 30300.0
        session.post.assert_called_once_with(
            "http://calc.test:7778/api/calculate",
            json={"stockPrice": 3.03, "desiredProfit": 100},
            timeout=3,
        )

    def test_connection_error(self, api_client, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            api_client.calculate(3.03, 100)
        assert exc_info.value.user_message == "Failed to calculate investment. Please try again."

    def test_http_error(self, api_client, session):
        session.post.return_value = _response(400, {"error": "Invalid input"})
        with pytest.raises(TransportError):
            api_client.calculate(3.03, 100)

    def test_malformed_body(self, api_client, session):
        session.post.return_value = _response(json_data={"unexpected": True})
        with pytest.raises(TransportError):
            api_client.calculate(3.03, 100)


class TestChat:
    """Test suite for CalculatorClient.chat()."""

    def test_sends_context(self, api_client, session):
        session.post.return_value = _response(json_data={"response": "Sure."})
        context = ChatContext(stock_price=5.0, profit_target=10, investment=5000)

        assert api_client.chat("Explain", context) == "Sure."
        payload = session.post.call_args[1]["json"]
        assert payload == {"query": "Explain", "stockPrice": 5.0, "desiredProfit": 10.0, "investment": 5000.0}

    def test_server_error_message_passed_through(self, api_client, session):
        session.post.return_value = _response(500, {"error": "Failed to process your question. Please try again."})

        with pytest.raises(ChatUnavailableError) as exc_info:
            api_client.chat("hello")
        assert exc_info.value.user_message == "Failed to process your question. Please try again."

    def test_error_without_body_uses_default_message(self, api_client, session):
        session.post.return_value = _response(502, json_error=True)

        with pytest.raises(ChatUnavailableError) as exc_info:
            api_client.chat("hello")
        assert exc_info.value.user_message == ChatUnavailableError.user_message

    def test_connection_error(self, api_client, session):
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(ChatUnavailableError):
            api_client.chat("hello")


class TestHealth:
    """Test suite for CalculatorClient.health()."""

    def test_online(self, api_client, session):
        resp = _response(json_data={"status": "ok"})
        session.get.return_value = resp
        assert api_client.health() == {"status": "ok"}

    def test_offline(self, api_client, session):
        session.get.side_effect = requests.ConnectionError("refused")
        assert api_client.health() == {"status": "offline"}
