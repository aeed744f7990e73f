"""
Chat Relay Tests
Prompt construction and error classification with LiteLLM mocked out.
"""
import threading
from unittest.mock import patch

import pytest
from litellm.exceptions import AuthenticationError

from penny_profit.config import LLMConfig
from penny_profit.engine import compute
from penny_profit.relay import (
    ChatBusyError,
    ChatContext,
    ChatRelay,
    EmptyQueryError,
    UpstreamConfigError,
    UpstreamError,
    build_system_prompt,
)


class TestChatContext:
    """Context sentence embedded in the system prompt."""

    def test_no_calculation(self):
        assert ChatContext().describe() == "No current calculation available."

    def test_from_result(self):
        context = ChatContext.from_result(compute(3.03, 100))
        text = context.describe()
        assert text.startswith("Current calculation context: Stock price is $3.03")
        assert "desired profit per 1¢ gain is $100" in text
        assert "$30,300.00" in text

    def test_requires_price_and_investment(self):
        assert ChatContext(stock_price=5.0).describe() == "No current calculation available."

    def test_system_prompt_contains_formula_and_context(self):
        prompt = build_system_prompt(ChatContext.from_result(compute(5.0, 10)))
        assert "investment calculator assistant" in prompt
        assert "Investment = Stock Price × (Desired Profit ÷ 0.01)" in prompt
        assert "Stock price is $5" in prompt


class TestChatRelay:
    """Test suite for ChatRelay.ask()."""

    def test_ask_returns_answer(self, llm_config, completion_response):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion") as mock_completion:
            mock_completion.return_value = completion_response("  Buy low, sell high.  ")
            answer = relay.ask("Is this a good idea?", ChatContext.from_result(compute(5.0, 10)))

        assert answer == "Buy low, sell high."
        call_kwargs = mock_completion.call_args[1]
        messages = call_kwargs["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]
        assert "Stock price is $5" in messages[0]["content"]
        assert messages[1]["content"] == "Is this a good idea?"
        assert call_kwargs["model"] == "gpt-3.5-turbo"
        assert call_kwargs["max_tokens"] == 300
        assert call_kwargs["temperature"] == 0.7
        assert call_kwargs["api_key"] == "sk-test-secret-123"

    def test_each_call_is_independent(self, llm_config, completion_response):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion") as mock_completion:
            mock_completion.return_value = completion_response("ok")
            relay.ask("first")
            relay.ask("second")

        second_messages = mock_completion.call_args_list[1][1]["messages"]
        assert len(second_messages) == 2
        assert "first" not in str(second_messages)

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_rejected_before_upstream(self, llm_config, query):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion") as mock_completion:
            with pytest.raises(EmptyQueryError):
                relay.ask(query)

        mock_completion.assert_not_called()

    def test_missing_credential_is_config_error(self):
        relay = ChatRelay(LLMConfig(api_key=None))

        with patch("penny_profit.relay.completion") as mock_completion:
            with pytest.raises(UpstreamConfigError) as exc_info:
                relay.ask("hello")

        mock_completion.assert_not_called()
        assert exc_info.value.user_message == UpstreamConfigError.user_message

    def test_local_model_needs_no_credential(self, completion_response):
        relay = ChatRelay(LLMConfig(model_name="ollama/llama3", api_base="http://localhost:11434"))

        with patch("penny_profit.relay.completion") as mock_completion:
            mock_completion.return_value = completion_response("hi")
            assert relay.ask("hello") == "hi"

        assert mock_completion.call_args[1]["base_url"] == "http://localhost:11434"

    def test_authentication_failure_is_config_error(self, llm_config):
        relay = ChatRelay(llm_config)
        error = AuthenticationError(
            message="Incorrect API key provided: sk-test-secret-123",
            llm_provider="openai",
            model="gpt-3.5-turbo",
        )

        with patch("penny_profit.relay.completion", side_effect=error):
            with pytest.raises(UpstreamConfigError) as exc_info:
                relay.ask("hello")

        assert "sk-test-secret-123" not in exc_info.value.user_message
        assert "sk-test-secret-123" not in str(exc_info.value)

    def test_other_failures_are_upstream_errors(self, llm_config):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion", side_effect=RuntimeError("boom sk-test-secret-123")):
            with pytest.raises(UpstreamError) as exc_info:
                relay.ask("hello")

        assert exc_info.value.user_message == "Failed to process your question. Please try again."
        assert "sk-test-secret-123" not in str(exc_info.value)

    def test_empty_completion_is_upstream_error(self, llm_config, completion_response):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion", return_value=completion_response("")):
            with pytest.raises(UpstreamError):
                relay.ask("hello")

    def test_concurrent_question_rejected(self, llm_config, completion_response):
        relay = ChatRelay(llm_config)
        started = threading.Event()
        release = threading.Event()
        errors = []

        def slow_completion(**kwargs):
            started.set()
            release.wait(timeout=5)
            return completion_response("done")

        with patch("penny_profit.relay.completion", side_effect=slow_completion):
            worker = threading.Thread(target=lambda: relay.ask("first"))
            worker.start()
            assert started.wait(timeout=5)
            assert relay.busy

            try:
                relay.ask("second")
            except ChatBusyError as e:
                errors.append(e)
            finally:
                release.set()
                worker.join(timeout=5)

        assert len(errors) == 1
        assert not relay.busy

    def test_lock_released_after_failure(self, llm_config, completion_response):
        relay = ChatRelay(llm_config)

        with patch("penny_profit.relay.completion", side_effect=RuntimeError("boom")):
            with pytest.raises(UpstreamError):
                relay.ask("hello")

        with patch("penny_profit.relay.completion", return_value=completion_response("fine")):
            assert relay.ask("again") == "fine"
