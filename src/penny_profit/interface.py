"""
Penny Profit - Interactive CLI Interface
Rich console front-end: price/profit inputs, live result, what-if panel, history and the assistant.
"""

from typing import Optional

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from penny_profit import state as st
from penny_profit.client import CalculatorClient, ChatUnavailableError, TransportError
from penny_profit.engine import format_currency, format_shares, results_agree
from penny_profit.history import HistoryStore
from penny_profit.relay import ChatContext, ChatRelay, ChatRelayError
from penny_profit.storage import LocalStore, StorageError
from penny_profit.validator import PRESET_PROFIT_TARGETS

DARK_MODE_KEY = "darkMode"

HELP_TEXT = """\
[bold]Commands[/bold]
  price <amount>      set the stock price, e.g. price 3.03
  profit <1|10|100>   pick a preset profit per 1¢ gain
  custom <amount>     use a custom profit per 1¢ gain
  target <amount>     what-if: outcome if the price moves to <amount>
  calc                recalculate and record the current inputs
  history             show recent calculations
  clear               clear the history
  export [path]       save the history as JSON
  ask <question>      ask the AI assistant about this calculation
  theme               toggle dark mode
  help                show this help
  quit                leave"""

_THEMES = {
    False: {"accent": "blue", "good": "green", "bad": "red", "dim": "dim"},
    True: {"accent": "magenta", "good": "bright_green", "bad": "bright_red", "dim": "grey50"},
}


class CLI:
    """Interactive command-line interface for the calculator."""

    def __init__(
        self,
        history: HistoryStore,
        store: LocalStore,
        client: Optional[CalculatorClient] = None,
        relay: Optional[ChatRelay] = None,
        console: Optional[Console] = None,
    ):
        self.console = console or Console()
        self.history = history
        self.store = store
        self.client = client
        self.relay = relay
        self.state = st.AppState(dark_mode=bool(store.get(DARK_MODE_KEY, False)))

        logger.info(f"CLI initialized (server: {client.base_url if client else 'offline'})")

    @property
    def theme(self) -> dict:
        return _THEMES[self.state.dark_mode]

    def start(self):
        """Start the interactive CLI loop."""
        self.console.print(f"\n[bold {self.theme['accent']}]💰 Penny Profit Calculator[/]")
        self.console.print(f"[{self.theme['dim']}]Type 'help' for commands, 'quit' to leave[/]\n")

        while True:
            try:
                user_input = Prompt.ask(f"[bold {self.theme['accent']}]calc >[/]").strip()
                if not user_input:
                    continue
                if not self.handle(user_input):
                    self.console.print("[yellow]Goodbye.[/yellow]")
                    break
            except (KeyboardInterrupt, EOFError):
                self.console.print("\n[yellow]Interrupted. Shutting down...[/yellow]")
                break
            except Exception as e:
                logger.error(f"CLI error: {e}")
                self.console.print(f"[{self.theme['bad']}]Error: {e}[/]")

    def handle(self, line: str) -> bool:
        """Run one command. Returns False when the user asked to quit."""
        command, _, arg = line.strip().partition(" ")
        command = command.lower()
        arg = arg.strip()

        if command in ("quit", "exit"):
            return False
        if command == "help":
            self.console.print(HELP_TEXT)
        elif command == "price":
            self.state = st.set_stock_price(self.state, arg)
            self._calculate()
        elif command == "profit":
            self._select_preset(arg)
        elif command == "custom":
            self.state = st.set_custom_profit(self.state, arg)
            if self.state.stock_price_text and arg:
                self._calculate()
        elif command == "target":
            self.state = st.set_target_price(self.state, arg)
            self._show_projection()
        elif command == "calc":
            self._calculate()
        elif command == "history":
            self._show_history()
        elif command == "clear":
            self.history.clear()
            self.console.print("[yellow]History cleared.[/yellow]")
        elif command == "export":
            self._export(arg)
        elif command == "ask":
            self._ask(arg)
        elif command == "theme":
            self._toggle_theme()
        else:
            self.console.print(f"[{self.theme['bad']}]Unknown command '{command}'. Type 'help'.[/]")
        return True

    def _select_preset(self, arg: str):
        try:
            value = float(arg)
            self.state = st.select_preset(self.state, value)
        except ValueError:
            presets = ", ".join(str(p) for p in PRESET_PROFIT_TARGETS)
            self.console.print(f"[{self.theme['bad']}]Choose one of: {presets} (or use 'custom')[/]")
            return
        if self.state.stock_price_text:
            self._calculate()

    def _calculate(self):
        """Recompute from the current inputs, cross-check with the server and record the result."""
        view = st.derive(self.state)
        if not view.outcome.ok:
            self.state = st.with_error(self.state, view.outcome.error)
            for message in view.outcome.messages:
                self.console.print(f"[{self.theme['bad']}]{message}[/]")
            return

        result = view.result

        if self.client:
            try:
                remote = self.client.calculate(result.stock_price, result.profit_target)
            except TransportError as e:
                self.state = st.with_remote_investment(st.with_error(self.state, e.user_message), None)
                self.console.print(f"[{self.theme['bad']}]{e.user_message}[/]")
                return

            if not results_agree(result.investment, remote):
                logger.error(f"Server investment {remote!r} disagrees with local {result.investment!r}")
            self.state = st.with_remote_investment(self.state, remote)

        self.history.record(result)

        body = (
            f"Shares needed:    [bold]{format_shares(result.shares_needed)}[/bold]\n"
            f"Total investment: [bold {self.theme['good']}]{format_currency(result.investment)}[/]\n"
            f"[{self.theme['dim']}]Each 1¢ rise earns {format_currency(result.profit_target)}[/]"
        )
        self.console.print(Panel(body, title="Investment Needed", border_style=self.theme["accent"]))

        if view.projection:
            self._show_projection()

    def _show_projection(self):
        view = st.derive(self.state)
        if view.result is None:
            self.console.print(f"[{self.theme['dim']}]Enter a valid price and profit first.[/]")
            return
        if view.projection is None:
            self.console.print(f"[{self.theme['bad']}]Please enter a valid target price[/]")
            return

        p = view.projection
        color = self.theme["good"] if p.profit_loss >= 0 else self.theme["bad"]
        body = (
            f"Target price:    {format_currency(p.target_price)} ({p.percent_change:+.2f}%)\n"
            f"Price change:    {format_currency(p.delta)}\n"
            f"Position value:  {format_currency(p.projected_value)}\n"
            f"Profit / loss:   [bold {color}]{format_currency(p.profit_loss)}[/]"
        )
        self.console.print(Panel(body, title="What If", border_style=self.theme["accent"]))

    def _show_history(self):
        entries = self.history.entries
        if not entries:
            self.console.print(f"[{self.theme['dim']}]No calculations yet.[/]")
            return

        table = Table(title="Recent Calculations", border_style=self.theme["accent"])
        table.add_column("When")
        table.add_column("Price", justify="right")
        table.add_column("Per 1¢", justify="right")
        table.add_column("Investment", justify="right")
        for entry in entries:
            table.add_row(
                entry.timestamp,
                format_currency(entry.stock_price),
                format_currency(entry.profit_target),
                format_currency(entry.investment),
            )
        self.console.print(table)

    def _export(self, arg: str):
        try:
            path = self.history.export_to(arg) if arg else self.history.export_to()
        except OSError as e:
            logger.error(f"Export failed: {e}")
            self.console.print(f"[{self.theme['bad']}]Export failed: {e}[/]")
            return
        self.console.print(f"[{self.theme['good']}]Exported {len(self.history)} calculation(s) to {path}[/]")

    def _ask(self, query: str):
        if self.state.chat_pending:
            self.console.print(f"[{self.theme['dim']}]Still waiting for the previous answer...[/]")
            return
        if not query:
            self.console.print(f"[{self.theme['bad']}]Type a question after 'ask'.[/]")
            return

        view = st.derive(self.state)
        context = ChatContext.from_result(view.result) if view.result else ChatContext()

        self.state = st.begin_chat(self.state)
        self.console.print(f"[{self.theme['dim']}]Thinking...[/]")
        answer = ""
        try:
            if self.client:
                answer = self.client.chat(query, context)
            elif self.relay:
                answer = self.relay.ask(query, context)
            else:
                answer = "The AI assistant is not available in offline mode."
        except (ChatUnavailableError, ChatRelayError) as e:
            answer = e.user_message
        finally:
            self.state = st.finish_chat(self.state, answer)

        self.console.print(Panel(self.state.chat_response, title="Assistant", border_style=self.theme["accent"]))

    def _toggle_theme(self):
        self.state = st.toggle_dark_mode(self.state)
        try:
            self.store.set(DARK_MODE_KEY, self.state.dark_mode)
        except StorageError as e:
            logger.error(f"Failed to save theme preference: {e}")
        self.console.print(f"[{self.theme['accent']}]Dark mode {'on' if self.state.dark_mode else 'off'}.[/]")
