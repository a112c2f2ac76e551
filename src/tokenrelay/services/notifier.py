"""Token alert notifier.

Each cycle pulls the current token list and, for every subscribed chat,
sends alerts only for tokens the SentTokenStore has not seen for that chat.
A fingerprint is recorded after the alert is delivered, so a failed send is
retried on the next cycle.
"""

import asyncio
import html
from typing import Optional

import structlog
from telegram import Bot
from telegram.error import TelegramError

from tokenrelay.logging import ErrorType
from tokenrelay.models import TokenInfo
from tokenrelay.services.error_logger import get_error_logger
from tokenrelay.services.fingerprint import hash_token_address
from tokenrelay.services.sent_tokens import SentTokenStore
from tokenrelay.services.subscribers import SubscriberRegistry
from tokenrelay.services.token_feed import TokenFeed

logger = structlog.get_logger()


def format_token_message(token: TokenInfo) -> str:
    """Render a token alert as Telegram HTML."""
    name = html.escape(token.name or "Unknown")
    symbol = html.escape(token.symbol or "?")
    lines = [
        f"🪙 <b>{name}</b> ({symbol})",
        f"<code>{html.escape(token.address)}</code>",
    ]
    if token.price_usd:
        lines.append(f"💵 Price: ${html.escape(token.price_usd)}")
    if token.market_cap is not None:
        lines.append(f"🏦 Market cap: ${token.market_cap:,.0f}")
    if token.volume_24h is not None:
        lines.append(f"📈 Volume 24h: ${token.volume_24h:,.0f}")
    if token.liquidity_usd is not None:
        lines.append(f"💧 Liquidity: ${token.liquidity_usd:,.0f}")
    if token.url:
        lines.append(f'<a href="{html.escape(token.url)}">DexScreener</a>')
    return "\n".join(lines)


class TokenNotifier:
    """Sends deduplicated token alerts to subscribed chats."""

    def __init__(
        self,
        store: SentTokenStore,
        feed: TokenFeed,
        bot: Bot,
        subscribers: SubscriberRegistry,
        max_alerts_per_cycle: int = 5,
    ):
        """Initialize the notifier.

        Args:
            store: Sent-token store used for deduplication
            feed: Token feed to pull candidates from
            bot: Telegram bot used to deliver alerts
            subscribers: Chats to notify
            max_alerts_per_cycle: Per-chat alert limit per cycle (default: 5)
        """
        self._store = store
        self._feed = feed
        self._bot = bot
        self._subscribers = subscribers
        self._max_alerts = max_alerts_per_cycle
        self._log = logger.bind(service="notifier")

    async def notify_chat(self, chat_id: str, tokens: list[TokenInfo]) -> int:
        """Send alerts for unseen tokens to one chat.

        Args:
            chat_id: Telegram chat (and user) id
            tokens: Candidate tokens

        Returns:
            Number of alerts delivered
        """
        already_sent = await self._store.read_valid_hashes(chat_id)
        delivered = 0

        for token in tokens:
            if delivered >= self._max_alerts:
                break

            fingerprint = hash_token_address(token.address)
            if fingerprint in already_sent:
                continue

            try:
                await self._bot.send_message(
                    chat_id=chat_id,
                    text=format_token_message(token),
                    parse_mode="HTML",
                    disable_web_page_preview=True,
                )
            except TelegramError as e:
                get_error_logger().log_system_error(
                    ErrorType.ALERT_SEND_FAILED,
                    f"Failed to send token alert: {e}",
                    component="notifier",
                    exception=e,
                    context={"chat_id": chat_id, "token": token.address},
                )
                continue

            await self._store.append_hash(chat_id, fingerprint)
            already_sent.add(fingerprint)
            delivered += 1

        if delivered:
            self._log.info("Token alerts sent", chat_id=chat_id, count=delivered)
        return delivered

    async def run_cycle(self) -> int:
        """Run one notification pass over every subscribed chat.

        Returns:
            Total alerts delivered
        """
        chat_ids = self._subscribers.all()
        if not chat_ids:
            return 0

        tokens = await self._feed.get_tokens()
        if not tokens:
            return 0

        total = 0
        for chat_id in chat_ids:
            total += await self.notify_chat(chat_id, tokens)
        return total

    async def run_forever(self, interval_seconds: float, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run cycles until cancelled or ``stop_event`` is set.

        A failing cycle is logged and the loop continues.
        """
        self._log.info("Notifier started", interval_seconds=interval_seconds)
        while stop_event is None or not stop_event.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log.error("Notification cycle failed", error=str(e), error_type=type(e).__name__)

            if stop_event is None:
                await asyncio.sleep(interval_seconds)
            else:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
                except asyncio.TimeoutError:
                    pass
        self._log.info("Notifier stopped")
