"""Advisory marker-file lock for per-user sent-token files.

A lock is a sibling ``<file>.lock`` whose content is the creation time in
epoch milliseconds. Acquirers poll until the marker is absent, then create
it atomically. A marker older than the staleness threshold is treated as
abandoned by a crashed holder and removed, so acquisition only ever waits,
it never fails.

Only callers that go through this lock are serialized; it does not stop a
writer that ignores it.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import structlog

from tokenrelay.logging import ErrorType
from tokenrelay.services.error_logger import get_error_logger
from tokenrelay.utils import now_ms

logger = structlog.get_logger()


class SentTokenLock:
    """Cooperative, time-boxed lock keyed by file path."""

    def __init__(
        self,
        stale_ms: int = 2000,
        poll_seconds: float = 0.02,
        settle_seconds: float = 0.01,
    ):
        """Initialize the lock policy.

        Args:
            stale_ms: Marker age after which it is reclaimed (default: 2000)
            poll_seconds: Delay between acquisition attempts (default: 0.02)
            settle_seconds: Delay after creating the marker (default: 0.01)
        """
        self.stale_ms = stale_ms
        self.poll_seconds = poll_seconds
        self.settle_seconds = settle_seconds
        self._log = logger.bind(service="sent_token_lock")

    @staticmethod
    def marker_path(path: Path) -> Path:
        """Return the lock marker path guarding ``path``."""
        return path.with_name(path.name + ".lock")

    async def acquire(self, path: Path) -> bool:
        """Wait until the marker for ``path`` can be created.

        Returns:
            True once the marker is held. False if the marker could not be
            written at all (e.g., permission error); the caller then runs
            unguarded rather than waiting forever.
        """
        marker = self.marker_path(path)

        while True:
            try:
                created = self._try_create(marker)
            except OSError as e:
                get_error_logger().log_storage_error(
                    ErrorType.STORAGE_WRITE_FAILED,
                    "Cannot create lock marker, proceeding without lock",
                    path=str(marker),
                    exception=e,
                )
                return False

            if created:
                if self.settle_seconds:
                    await asyncio.sleep(self.settle_seconds)
                return True

            self._reclaim_if_stale(marker)
            await asyncio.sleep(self.poll_seconds)

    def release(self, path: Path) -> None:
        """Remove the marker for ``path`` if present."""
        marker = self.marker_path(path)
        try:
            marker.unlink(missing_ok=True)
        except OSError as e:
            # A leftover marker is reclaimed once it goes stale
            self._log.warning("Failed to remove lock marker", path=str(marker), error=str(e))

    @asynccontextmanager
    async def hold(self, path: Path) -> AsyncIterator[None]:
        """Hold the lock for ``path`` for the duration of the block.

        Usage:
            async with lock.hold(user_file):
                ...read, modify, write...
        """
        held = await self.acquire(path)
        try:
            yield
        finally:
            if held:
                self.release(path)

    def _try_create(self, marker: Path) -> bool:
        """Atomically create the marker. Returns False if it already exists."""
        try:
            fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except FileNotFoundError:
            marker.parent.mkdir(parents=True, exist_ok=True)
            return False

        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(now_ms()))
        return True

    def _reclaim_if_stale(self, marker: Path) -> None:
        """Remove the marker if its holder has held it past the threshold."""
        try:
            raw = marker.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return
        except OSError as e:
            self._log.warning("Failed to read lock marker", path=str(marker), error=str(e))
            return

        try:
            created_at = int(raw)
        except ValueError:
            # Empty or garbled marker: fall back to the file's mtime
            try:
                created_at = int(marker.stat().st_mtime * 1000)
            except FileNotFoundError:
                return
            except OSError as e:
                self._log.warning("Failed to stat lock marker", path=str(marker), error=str(e))
                return

        age_ms = now_ms() - created_at
        if age_ms <= self.stale_ms:
            return

        try:
            marker.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            self._log.warning("Failed to remove stale lock marker", path=str(marker), error=str(e))
            return

        get_error_logger().log_storage_error(
            ErrorType.LOCK_RECLAIMED,
            "Reclaimed abandoned lock marker",
            path=str(marker),
        )
        self._log.info("Stale lock reclaimed", path=str(marker), age_ms=age_ms)
