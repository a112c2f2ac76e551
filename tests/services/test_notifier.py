"""Tests for TokenNotifier."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import TelegramError

from tokenrelay.models import TokenInfo
from tokenrelay.services.fingerprint import hash_token_address
from tokenrelay.services.notifier import TokenNotifier, format_token_message
from tokenrelay.services.subscribers import SubscriberRegistry


def _token(address, **kwargs):
    return TokenInfo(address=address, name=kwargs.pop("name", "Token"), symbol=kwargs.pop("symbol", "TKN"), **kwargs)


@pytest.fixture
def bot():
    mock_bot = MagicMock()
    mock_bot.send_message = AsyncMock()
    return mock_bot


@pytest.fixture
def feed():
    mock_feed = MagicMock()
    mock_feed.get_tokens = AsyncMock(return_value=[_token("MintA"), _token("MintB")])
    return mock_feed


@pytest.fixture
def subscribers():
    registry = SubscriberRegistry()
    registry.add(42)
    return registry


@pytest.fixture
def notifier(store, feed, bot, subscribers):
    return TokenNotifier(store, feed, bot, subscribers, max_alerts_per_cycle=5)


class TestNotifyChat:

    async def test_sends_and_records_new_tokens(self, notifier, store, bot):
        delivered = await notifier.notify_chat("42", [_token("MintA")])

        assert delivered == 1
        bot.send_message.assert_awaited_once()
        assert bot.send_message.call_args.kwargs["chat_id"] == "42"
        assert hash_token_address("MintA") in await store.read_valid_hashes("42")

    async def test_skips_remembered_tokens(self, notifier, store, bot):
        await store.append_hash("42", hash_token_address("minta"))

        delivered = await notifier.notify_chat("42", [_token("MintA"), _token("MintB")])

        assert delivered == 1
        assert "MintB" in bot.send_message.call_args.kwargs["text"]

    async def test_second_pass_sends_nothing(self, notifier, bot):
        tokens = [_token("MintA"), _token("MintB")]
        await notifier.notify_chat("42", tokens)
        bot.send_message.reset_mock()

        assert await notifier.notify_chat("42", tokens) == 0
        bot.send_message.assert_not_awaited()

    async def test_send_failure_not_recorded(self, notifier, store, bot):
        bot.send_message.side_effect = TelegramError("chat not found")

        delivered = await notifier.notify_chat("42", [_token("MintA")])

        assert delivered == 0
        assert await store.read_valid_hashes("42") == set()

    async def test_respects_alert_limit(self, store, feed, bot, subscribers):
        notifier = TokenNotifier(store, feed, bot, subscribers, max_alerts_per_cycle=2)
        tokens = [_token(f"Mint{i}") for i in range(5)]

        assert await notifier.notify_chat("42", tokens) == 2
        assert len(await store.read_valid_hashes("42")) == 2

    async def test_same_token_twice_in_list_sent_once(self, notifier, bot):
        await notifier.notify_chat("42", [_token("MintA"), _token(" minta ")])
        assert bot.send_message.await_count == 1


class TestRunCycle:

    async def test_notifies_every_subscriber(self, notifier, subscribers, bot):
        subscribers.add(43)
        assert await notifier.run_cycle() == 4
        chat_ids = {c.kwargs["chat_id"] for c in bot.send_message.call_args_list}
        assert chat_ids == {"42", "43"}

    async def test_no_subscribers_skips_feed(self, store, feed, bot):
        notifier = TokenNotifier(store, feed, bot, SubscriberRegistry())
        assert await notifier.run_cycle() == 0
        feed.get_tokens.assert_not_awaited()

    async def test_empty_feed(self, notifier, feed, bot):
        feed.get_tokens.return_value = []
        assert await notifier.run_cycle() == 0
        bot.send_message.assert_not_awaited()


class TestRunForever:

    async def test_stops_on_event(self, notifier, feed):
        stop_event = asyncio.Event()

        async def get_tokens():
            stop_event.set()
            return []

        feed.get_tokens.side_effect = get_tokens
        await asyncio.wait_for(notifier.run_forever(0.01, stop_event), timeout=1)
        assert feed.get_tokens.await_count == 1

    async def test_failed_cycle_does_not_stop_loop(self, notifier, feed):
        stop_event = asyncio.Event()
        calls = 0

        async def get_tokens():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("feed exploded")
            stop_event.set()
            return []

        feed.get_tokens.side_effect = get_tokens
        await asyncio.wait_for(notifier.run_forever(0.01, stop_event), timeout=1)
        assert calls == 2

    async def test_cancellation(self, notifier):
        task = asyncio.create_task(notifier.run_forever(10))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestFormatTokenMessage:

    def test_contains_core_fields(self):
        message = format_token_message(
            _token("MintA", name="Bonk", symbol="BONK", price_usd="0.00002", market_cap=1500000.0)
        )
        assert "<b>Bonk</b> (BONK)" in message
        assert "<code>MintA</code>" in message
        assert "$0.00002" in message
        assert "$1,500,000" in message

    def test_escapes_html(self):
        message = format_token_message(_token("MintA", name="<script>", symbol="A&B"))
        assert "&lt;script&gt;" in message
        assert "A&amp;B" in message

    def test_missing_optional_fields(self):
        message = format_token_message(TokenInfo(address="MintA"))
        assert "Unknown" in message
        assert "Price" not in message
