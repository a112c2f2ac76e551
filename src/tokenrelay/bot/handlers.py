"""Telegram command handlers.

Process-scoped services are read from ``context.bot_data`` under the keys
defined here; build_application() puts them there at startup.
"""

import structlog
from telegram import Update
from telegram.ext import ContextTypes

from tokenrelay.exceptions import InvalidUserIdError, SentTokenStoreError

logger = structlog.get_logger()

SETTINGS_KEY = "settings"
STORE_KEY = "sent_token_store"
SUBSCRIBERS_KEY = "subscribers"
NOTIFIER_KEY = "notifier"
NOTIFIER_TASK_KEY = "notifier_task"
FEED_KEY = "token_feed"

ADMIN_ONLY_MESSAGE = "❌ This command is for developers only."


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Subscribe the chat to token alerts."""
    chat = update.effective_chat
    if chat is None or update.message is None:
        return

    subscribers = context.bot_data[SUBSCRIBERS_KEY]
    subscribers.add(chat.id)
    await update.message.reply_text(
        "👋 Welcome! You are now subscribed to token alerts. Send /stop to unsubscribe."
    )


async def stop(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Unsubscribe the chat from token alerts."""
    chat = update.effective_chat
    if chat is None or update.message is None:
        return

    subscribers = context.bot_data[SUBSCRIBERS_KEY]
    if subscribers.remove(chat.id):
        await update.message.reply_text("🔕 You will no longer receive token alerts.")
    else:
        await update.message.reply_text("You are not subscribed.")


async def rotate_sent_tokens(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Delete a user's sent-tokens file. Admins only.

    Usage: /rotate_sent_tokens [user_id] (defaults to the caller)
    """
    user = update.effective_user
    if user is None or update.message is None:
        return

    caller_id = str(user.id)
    settings = context.bot_data[SETTINGS_KEY]
    log = logger.bind(command="rotate_sent_tokens", caller_id=caller_id)

    if caller_id not in settings.admin_id_list:
        log.warning("Unauthorized admin command")
        await update.message.reply_text(ADMIN_ONLY_MESSAGE)
        return

    target_id = context.args[0] if context.args else caller_id
    store = context.bot_data[STORE_KEY]

    try:
        deleted = await store.delete_user_file(target_id)
    except InvalidUserIdError:
        await update.message.reply_text(f"❌ Invalid user id: {target_id}")
        return
    except SentTokenStoreError as e:
        await update.message.reply_text(f"❌ Failed to delete file: {e}")
        return

    if deleted:
        log.info("Sent tokens file deleted by admin", target_id=target_id)
        await update.message.reply_text(
            f"✅ sent_tokens file ({target_id}.json) deleted for user {target_id}."
        )
    else:
        await update.message.reply_text("No sent_tokens file to delete.")
