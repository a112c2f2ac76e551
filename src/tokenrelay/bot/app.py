"""Telegram application wiring and lifecycle."""

import asyncio

import structlog
from telegram.ext import Application, ApplicationBuilder, CommandHandler

from tokenrelay.bot import handlers
from tokenrelay.config import Settings
from tokenrelay.services import SentTokenStore, SubscriberRegistry, TokenFeed, TokenNotifier

logger = structlog.get_logger()


async def _post_init(application: Application) -> None:
    """Start the notifier loop once the bot is initialized."""
    settings: Settings = application.bot_data[handlers.SETTINGS_KEY]

    notifier = TokenNotifier(
        store=application.bot_data[handlers.STORE_KEY],
        feed=application.bot_data[handlers.FEED_KEY],
        bot=application.bot,
        subscribers=application.bot_data[handlers.SUBSCRIBERS_KEY],
        max_alerts_per_cycle=settings.max_alerts_per_cycle,
    )
    application.bot_data[handlers.NOTIFIER_KEY] = notifier
    application.bot_data[handlers.NOTIFIER_TASK_KEY] = asyncio.create_task(
        notifier.run_forever(settings.notify_interval_seconds)
    )
    logger.info("Notifier scheduled", interval_seconds=settings.notify_interval_seconds)


async def _post_shutdown(application: Application) -> None:
    """Stop the notifier loop and release HTTP resources."""
    task = application.bot_data.pop(handlers.NOTIFIER_TASK_KEY, None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    feed = application.bot_data.get(handlers.FEED_KEY)
    if feed is not None:
        await feed.close()
    logger.info("Application shut down")


def build_application(settings: Settings) -> Application:
    """Build the Telegram application with services and handlers attached.

    Args:
        settings: Application settings (must include telegram_bot_token)

    Returns:
        Application ready for run_polling()
    """
    application = (
        ApplicationBuilder()
        .token(settings.telegram_bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )

    application.bot_data[handlers.SETTINGS_KEY] = settings
    application.bot_data[handlers.STORE_KEY] = SentTokenStore(settings)
    application.bot_data[handlers.SUBSCRIBERS_KEY] = SubscriberRegistry()
    application.bot_data[handlers.FEED_KEY] = TokenFeed(settings)

    application.add_handler(CommandHandler("start", handlers.start))
    application.add_handler(CommandHandler("stop", handlers.stop))
    application.add_handler(CommandHandler("rotate_sent_tokens", handlers.rotate_sent_tokens))

    logger.info(
        "Telegram application built",
        sent_tokens_dir=str(settings.sent_tokens_dir),
        admin_count=len(settings.admin_id_list),
    )
    return application
