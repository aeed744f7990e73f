"""
Application State Tests
Pure update functions and derived values.
"""
import pytest

from penny_profit import state as st
from penny_profit.validator import ValidationIssue


class TestDerive:
    """Test suite for derive()."""

    def test_initial_state_is_invalid(self):
        view = st.derive(st.AppState())
        assert not view.outcome.ok
        assert view.outcome.issues == [ValidationIssue.INVALID_STOCK_PRICE]
        assert view.result is None

    def test_default_preset_applies(self):
        view = st.derive(st.set_stock_price(st.AppState(), "3.03"))
        assert view.result.profit_target == 1
        assert view.result.investment == pytest.approx(303.0)

    def test_custom_profit_wins_when_filled(self):
        state = st.set_custom_profit(st.set_stock_price(st.AppState(), "5"), "25")
        assert st.derive(state).result.investment == pytest.approx(12500.0)

    def test_blank_custom_falls_back_to_preset(self):
        state = st.select_preset(st.set_stock_price(st.AppState(), "5"), 10)
        state = st.set_custom_profit(state, "   ")
        assert st.current_profit(state) == 10
        assert st.derive(state).result.investment == pytest.approx(5000.0)

    def test_invalid_custom_profit(self):
        state = st.set_custom_profit(st.set_stock_price(st.AppState(), "5"), "abc")
        view = st.derive(state)
        assert view.outcome.issues == [ValidationIssue.INVALID_PROFIT_TARGET]
        assert view.outcome.error == "Please enter a valid profit amount"

    def test_projection(self):
        state = st.select_preset(st.set_stock_price(st.AppState(), "5"), 10)
        state = st.set_target_price(state, "5.50")

        projection = st.derive(state).projection
        assert projection.delta == pytest.approx(0.5)
        assert projection.projected_value == pytest.approx(5500.0)
        assert projection.profit_loss == pytest.approx(500.0)
        assert projection.percent_change == pytest.approx(10.0)

    def test_invalid_target_gives_no_projection(self):
        state = st.set_target_price(st.set_stock_price(st.AppState(), "5"), "soon")
        view = st.derive(state)
        assert view.result is not None
        assert view.projection is None


class TestUpdates:
    """Input changes, errors and chat flags."""

    def test_updates_do_not_mutate(self):
        original = st.AppState()
        updated = st.set_stock_price(original, "3.03")
        assert original.stock_price_text == ""
        assert updated.stock_price_text == "3.03"

    def test_input_change_resets_error_and_remote_value(self):
        state = st.with_remote_investment(st.with_error(st.AppState(), "boom"), 123.0)

        for updated in (
            st.set_stock_price(state, "4"),
            st.select_preset(state, 100),
            st.set_custom_profit(state, "7"),
        ):
            assert updated.error == ""
            assert updated.remote_investment is None

    def test_select_preset_rejects_other_values(self):
        with pytest.raises(ValueError):
            st.select_preset(st.AppState(), 5)

    def test_select_preset_leaves_custom_mode(self):
        state = st.set_custom_profit(st.AppState(), "7")
        state = st.select_preset(state, 100)
        assert state.use_custom_profit is False
        assert st.current_profit(state) == 100

    def test_toggle_dark_mode(self):
        state = st.toggle_dark_mode(st.AppState())
        assert state.dark_mode is True
        assert st.toggle_dark_mode(state).dark_mode is False

    def test_chat_cycle(self):
        state = st.begin_chat(st.finish_chat(st.AppState(), "old answer"))
        assert state.chat_pending is True
        assert state.chat_response == ""

        state = st.finish_chat(state, "new answer")
        assert state.chat_pending is False
        assert state.chat_response == "new answer"
