"""Bot entry point."""

import sys

import structlog

from tokenrelay.bot.app import build_application
from tokenrelay.config import get_settings
from tokenrelay.logging import ErrorType, configure_logging
from tokenrelay.services.error_logger import get_error_logger

logger = structlog.get_logger()


def main() -> None:
    """Load settings, configure logging and run the bot until interrupted."""
    settings = get_settings()
    configure_logging(json_output=settings.log_json)

    if not settings.telegram_bot_token:
        get_error_logger().log_system_error(
            ErrorType.CONFIGURATION_ERROR,
            "TELEGRAM_BOT_TOKEN is not set",
            component="main",
        )
        sys.exit(1)

    application = build_application(settings)
    logger.info("Starting Telegram polling")
    application.run_polling()


if __name__ == "__main__":
    main()
