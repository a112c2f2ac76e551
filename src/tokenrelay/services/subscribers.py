"""In-memory registry of chats subscribed to token alerts."""

import structlog

logger = structlog.get_logger()


class SubscriberRegistry:
    """Chats that asked for token alerts with /start."""

    def __init__(self) -> None:
        self._chat_ids: set[str] = set()
        self._log = logger.bind(service="subscribers")

    def __contains__(self, chat_id: object) -> bool:
        return str(chat_id) in self._chat_ids

    def __len__(self) -> int:
        return len(self._chat_ids)

    def add(self, chat_id: str | int) -> bool:
        """Subscribe a chat. Returns False if it was already subscribed."""
        key = str(chat_id)
        if key in self._chat_ids:
            return False
        self._chat_ids.add(key)
        self._log.info("Chat subscribed", chat_id=key, total=len(self._chat_ids))
        return True

    def remove(self, chat_id: str | int) -> bool:
        """Unsubscribe a chat. Returns False if it was not subscribed."""
        key = str(chat_id)
        if key not in self._chat_ids:
            return False
        self._chat_ids.discard(key)
        self._log.info("Chat unsubscribed", chat_id=key, total=len(self._chat_ids))
        return True

    def all(self) -> list[str]:
        """Snapshot of subscribed chat ids."""
        return sorted(self._chat_ids)
