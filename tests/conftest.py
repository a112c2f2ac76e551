"""Shared pytest fixtures."""

import json
from pathlib import Path

import pytest

from tokenrelay.config import Settings
from tokenrelay.services.sent_tokens import SentTokenStore
from tokenrelay.utils import now_ms


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset settings and error logger singletons before each test."""
    import tokenrelay.config
    import tokenrelay.services.error_logger

    tokenrelay.config._settings_instance = None
    tokenrelay.services.error_logger._error_logger_instance = None
    yield
    tokenrelay.config._settings_instance = None
    tokenrelay.services.error_logger._error_logger_instance = None


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temp directory with fast lock timings."""
    return Settings(
        _env_file=None,
        telegram_bot_token="123456:test-token",
        admin_ids="1001,1002",
        sent_tokens_dir=tmp_path / "sent_tokens",
        lock_poll_seconds=0.001,
        lock_settle_seconds=0,
        write_retry_backoff_seconds=0,
        watched_tokens="MintA",
    )


@pytest.fixture
def store(settings: Settings) -> SentTokenStore:
    """Sent-token store backed by the temp directory."""
    return SentTokenStore(settings)


@pytest.fixture
def write_records():
    """Write raw records for a user straight to disk."""

    def _write(store: SentTokenStore, user_id: str, records: list) -> Path:
        path = store.user_file(user_id)
        path.write_text(json.dumps(records), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def read_records():
    """Read raw records for a user straight from disk."""

    def _read(store: SentTokenStore, user_id: str) -> list:
        return json.loads(store.user_file(user_id).read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def fresh_ts() -> int:
    """A timestamp comfortably inside the expiry window."""
    return now_ms() - 1000
