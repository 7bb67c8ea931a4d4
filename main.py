#!/usr/bin/env python
"""
Crypto Info Bot - Main Application

Starts the Telegram bot in polling mode.

Usage:
  python main.py                        # Run with settings from .env / environment
  python main.py --log-level DEBUG      # Override LOG_LEVEL
  python main.py --env-file prod.env    # Load a different env file

Environment:
  BOT_TOKEN          - Telegram bot token (required)
  BOT_USERNAME       - Bot username
  API_URL            - Ticker endpoint base URL
  PAGE_SIZE          - Currencies per /rates page
  FIXED_LENGTH       - Decimal places for percent changes
  REFRESH_INTERVAL   - Live ticker refresh period in milliseconds
  CONVERT_CURRENCY   - Secondary currency code
  REQUEST_TIMEOUT    - HTTP timeout in seconds
  LOG_LEVEL          - Logging level
  LOG_FILE           - Optional file to append log lines to
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

from bot.telegram_bot import create_telegram_bot
from config import load_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure root logging once for the process."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # httpx logs every Telegram API call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Crypto Info Bot")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    args = parser.parse_args()

    # Load environment variables
    load_dotenv(args.env_file)

    try:
        config = load_config()
    except ValueError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(args.log_level or config.log_level, config.log_file)

    try:
        bot = create_telegram_bot(config)
        logger.info("Starting Crypto Info Bot...")
        bot.run()
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Bot failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
