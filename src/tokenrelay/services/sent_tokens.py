"""Per-user sent-token store with expiry and rotation.

Remembers which tokens each user has already been alerted about so the
notifier does not repeat itself. Each user owns one JSON file holding an
array of ``{"hash", "ts"}`` records:

- records older than the expiry window are purged on every read and write
- a fingerprint is stored at most once
- once the array reaches the cleanup trigger, the oldest batch is dropped,
  then the array is trimmed to the hard cap (in that order)

Every read-modify-write runs under the user's SentTokenLock. Storage
failures are logged and absorbed: a missed dedup costs one duplicate
alert, a crash costs the whole notification cycle.
"""

import json
import logging
import os
import re
from pathlib import Path

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from tokenrelay.config import Settings
from tokenrelay.exceptions import InvalidUserIdError, SentTokenStoreError
from tokenrelay.logging import ErrorType
from tokenrelay.models import SentTokenRecord
from tokenrelay.services.error_logger import get_error_logger
from tokenrelay.services.file_lock import SentTokenLock
from tokenrelay.utils import now_ms

logger = structlog.get_logger()

# Standard logger for tenacity before_sleep_log (requires stdlib logger)
_tenacity_logger = logging.getLogger("tokenrelay.services.sent_tokens.retry")

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class SentTokenStore:
    """File-backed, lock-guarded, expiring set of fingerprints per user."""

    def __init__(self, settings: Settings, lock: SentTokenLock | None = None):
        """Initialize the store and make sure its directory exists.

        Args:
            settings: Application settings (directory, limits, lock and retry policy)
            lock: Lock to guard user files (built from settings if omitted)
        """
        self._settings = settings
        self.directory = Path(settings.sent_tokens_dir)
        self._lock = lock or SentTokenLock(
            stale_ms=settings.sent_token_lock_ms,
            poll_seconds=settings.lock_poll_seconds,
            settle_seconds=settings.lock_settle_seconds,
        )
        self._log = logger.bind(service="sent_tokens")

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            get_error_logger().log_storage_error(
                ErrorType.STORAGE_WRITE_FAILED,
                "Failed to create sent_tokens directory",
                path=str(self.directory),
                exception=e,
                level="error",
            )

    def user_file(self, user_id: str) -> Path:
        """Return the record-set file for ``user_id``.

        Raises:
            InvalidUserIdError: If the id is not a plain file-name token
        """
        user_id = str(user_id)
        if not _USER_ID_PATTERN.match(user_id):
            raise InvalidUserIdError(f"Invalid user id: {user_id!r}")
        return self.directory / f"{user_id}.json"

    async def read_valid_hashes(self, user_id: str) -> set[str]:
        """Return the fingerprints remembered for a user.

        Expired and malformed records are dropped; if anything was dropped
        the file is compacted before returning. Never raises: on storage
        errors the user is treated as having no remembered tokens.

        Args:
            user_id: Telegram user id

        Returns:
            Set of unexpired fingerprints
        """
        try:
            path = self.user_file(user_id)
        except InvalidUserIdError as e:
            self._log.warning("Rejected user id", error=str(e))
            return set()

        async with self._lock.hold(path):
            now = now_ms()
            loaded = self._load_records(user_id, path)
            if loaded is None:
                return set()

            records, stored_count = loaded
            valid = self._drop_expired(records, now)

            if len(valid) != stored_count:
                self._log.debug(
                    "Compacting sent tokens",
                    user_id=user_id,
                    before=stored_count,
                    after=len(valid),
                )
                await self._write_records(user_id, path, valid)

            return {record.hash for record in valid}

    async def append_hash(self, user_id: str, fingerprint: str) -> None:
        """Remember ``fingerprint`` for a user.

        A fingerprint that is already remembered leaves the file untouched.
        Otherwise the record is appended, rotation limits are applied and
        the file is written with bounded retries. Never raises.

        Args:
            user_id: Telegram user id
            fingerprint: Output of hash_token_address()
        """
        if not fingerprint:
            self._log.warning("Ignoring empty fingerprint", user_id=user_id)
            return

        try:
            path = self.user_file(user_id)
        except InvalidUserIdError as e:
            self._log.warning("Rejected user id", error=str(e))
            return

        async with self._lock.hold(path):
            now = now_ms()
            loaded = self._load_records(user_id, path)
            if loaded is None:
                return

            records = self._drop_expired(loaded[0], now)

            if any(record.hash == fingerprint for record in records):
                return

            records.append(SentTokenRecord(hash=fingerprint, ts=now))
            records = self._apply_limits(records)
            await self._write_records(user_id, path, records)

    async def delete_user_file(self, user_id: str) -> bool:
        """Delete a user's record set (administrative operation).

        Args:
            user_id: Telegram user id whose file should go

        Returns:
            True if a file was deleted, False if there was none

        Raises:
            InvalidUserIdError: If the id cannot name a file
            SentTokenStoreError: If the file exists but cannot be removed
        """
        path = self.user_file(user_id)

        async with self._lock.hold(path):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                get_error_logger().log_storage_error(
                    ErrorType.STORAGE_DELETE_FAILED,
                    "Failed to delete sent_tokens file",
                    user_id=user_id,
                    path=str(path),
                    exception=e,
                    level="error",
                )
                raise SentTokenStoreError(f"Failed to delete {path.name}: {e}") from e

        self._log.info("Sent tokens file deleted", user_id=user_id, path=str(path))
        return True

    def _load_records(self, user_id: str, path: Path) -> tuple[list[SentTokenRecord], int] | None:
        """Read a user's records.

        Returns:
            (valid records, number of entries stored in the file), or None
            if the file exists but could not be read. A missing or corrupt
            file loads as empty.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return [], 0
        except UnicodeDecodeError as e:
            self._report_corrupt(user_id, path, e)
            return [], 0
        except OSError as e:
            get_error_logger().log_storage_error(
                ErrorType.STORAGE_READ_FAILED,
                "Failed to read sent_tokens file",
                user_id=user_id,
                path=str(path),
                exception=e,
            )
            return None

        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            self._report_corrupt(user_id, path, e)
            return [], 0

        if not isinstance(data, list):
            self._report_corrupt(user_id, path, None)
            return [], 0

        records = []
        for item in data:
            try:
                records.append(SentTokenRecord.model_validate(item))
            except ValidationError:
                continue

        return records, len(data)

    def _drop_expired(self, records: list[SentTokenRecord], now: int) -> list[SentTokenRecord]:
        expiry = self._settings.sent_token_expiry_ms
        return [record for record in records if now - record.ts < expiry]

    def _apply_limits(self, records: list[SentTokenRecord]) -> list[SentTokenRecord]:
        """Apply trigger eviction, then the hard cap."""
        if len(records) >= self._settings.cleanup_trigger_count:
            records = records[self._settings.cleanup_batch_size:]

        cap = self._settings.max_hashes_per_user
        if len(records) > cap:
            records = records[-cap:]

        return records

    async def _write_records(self, user_id: str, path: Path, records: list[SentTokenRecord]) -> bool:
        """Persist records with linear backoff retries.

        Returns:
            True if written, False if every attempt failed (logged)
        """
        payload = json.dumps([record.model_dump() for record in records])
        attempts = self._settings.write_retry_attempts
        backoff = self._settings.write_retry_backoff_seconds

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_incrementing(start=backoff, increment=backoff),
                retry=retry_if_exception_type(OSError),
                reraise=True,
                before_sleep=before_sleep_log(_tenacity_logger, logging.WARNING),
            ):
                with attempt:
                    self._write_file(path, payload)
        except OSError as e:
            get_error_logger().log_storage_error(
                ErrorType.STORAGE_WRITE_FAILED,
                "Failed to write sent_tokens file after retries",
                user_id=user_id,
                path=str(path),
                exception=e,
                attempts=attempts,
            )
            return False

        return True

    @staticmethod
    def _write_file(path: Path, payload: str) -> None:
        """Write via temp file + os.replace so readers never see half a file."""
        tmp_path = path.with_name(path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)

    def _report_corrupt(self, user_id: str, path: Path, exception: Exception | None) -> None:
        get_error_logger().log_storage_error(
            ErrorType.STORAGE_CORRUPT,
            "Malformed sent_tokens file, treating as empty",
            user_id=user_id,
            path=str(path),
            exception=exception,
        )
