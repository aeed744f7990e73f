"""
Penny Profit - Main Entry Point
`penny-profit` starts the interactive calculator, `penny-profit-server` starts the HTTP API.
"""

import sys
from pathlib import Path

import uvicorn
from loguru import logger

from penny_profit.api import create_app
from penny_profit.client import CalculatorClient
from penny_profit.config import CalculatorSettings, load_config
from penny_profit.history import HistoryStore
from penny_profit.interface import CLI
from penny_profit.relay import ChatRelay
from penny_profit.storage import LocalStore


def configure_logging(config: CalculatorSettings, console: bool = True) -> None:
    """Configure loguru logging with console output and daily file rotation."""
    # Remove default handler
    logger.remove()

    level = "DEBUG" if config.system.debug_mode else "INFO"

    if console:
        logger.add(
            sys.stderr,
            level=level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            colorize=True,
        )

    # Add file handler with rotation
    logger.add(
        str(Path(config.system.log_dir) / "penny_profit_{time:YYYY-MM-DD}.log"),
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="00:00",  # Rotate daily at midnight
        retention="7 days",
        compression="zip",
    )


def build_cli(config: CalculatorSettings) -> CLI:
    """Wire storage, history and the chosen backend (server or offline) into the CLI."""
    store = LocalStore(config.storage.path)
    history = HistoryStore(store, max_entries=config.storage.max_history)
    history.load()

    if config.client.offline:
        logger.info("Offline mode: calculating locally, assistant called directly")
        return CLI(history=history, store=store, relay=ChatRelay(config.llm))

    return CLI(history=history, store=store, client=CalculatorClient(config.client))


def main():
    """Interactive calculator."""
    config = load_config()
    # The prompt owns the terminal; logs go to file only
    configure_logging(config, console=False)
    logger.info(f"Penny Profit {config.system.version} starting")

    cli = build_cli(config)
    try:
        cli.start()
    finally:
        logger.info("Exiting Penny Profit")


def serve():
    """HTTP API server."""
    config = load_config()
    configure_logging(config)

    logger.info("=" * 60)
    logger.info(f"Penny Profit API {config.system.version} on http://{config.server.host}:{config.server.port}")
    logger.info(f"Chat model: {config.llm.model_name} (key configured: {config.llm.api_key is not None})")
    logger.info("=" * 60)

    app = create_app(ChatRelay(config.llm))
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="info")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "serve":
        serve()
    else:
        main()
