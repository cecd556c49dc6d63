# activebreak/notifier.py
import logging
import time
from collections import deque

logger = logging.getLogger(__name__)


class LogNotifier:
    """Fire-and-forget notifier that only writes to the log."""

    def notify(self, title: str, body: str) -> None:
        logger.info("notification: %s - %s", title, body)


class QueueNotifier(LogNotifier):
    """
    Keeps notifications until the client collects them with drain().
    Old entries are dropped once `maxlen` is reached.
    """

    def __init__(self, maxlen: int = 20):
        self._pending = deque(maxlen=maxlen)

    def notify(self, title: str, body: str) -> None:
        super().notify(title, body)
        self._pending.append(
            {"title": title, "body": body, "created_at": int(time.time() * 1000)}
        )

    def drain(self):
        items = list(self._pending)
        self._pending.clear()
        return items
