"""Snapshot listener that drives the completion notifier.

For deployments without document-write triggers: keeps the last seen image
of every schedule so each change can be handed to the notifier as a
(before, after) pair.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from .notifier import NotificationResult, Skipped, handle_schedule_write
from .push import PushSender
from .store import FirestoreStore

logger = logging.getLogger(__name__)


class ScheduleWatcher:
    """Turns snapshot changes into notifier calls.

    The first snapshot only seeds the image cache: documents that were
    already complete before the watcher started are not notified.
    """

    def __init__(
        self,
        store: FirestoreStore,
        send: PushSender,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._store = store
        self._send = send
        self._clock = clock
        self._images: dict[str, dict[str, Any] | None] = {}
        self._seeded = False
        self._lock = threading.Lock()

    def on_snapshot(self, docs: list[Any], changes: list[Any], read_time: Any) -> None:
        """Callback for `watch_schedules`. Runs on the listener's thread."""
        with self._lock:
            if not self._seeded:
                for doc in docs:
                    self._images[doc.id] = doc.to_dict()
                self._seeded = True
                logger.info("Seeded %d schedules", len(self._images))
                return
            for change in changes:
                self.process_change(change)

    def process_change(self, change: Any) -> NotificationResult:
        doc = change.document
        before = self._images.get(doc.id)
        if change.type.name == "REMOVED":
            after = None
            self._images.pop(doc.id, None)
        else:
            after = doc.to_dict()
            self._images[doc.id] = after

        try:
            result = handle_schedule_write(
                self._store, self._send, doc.id, before, after, self._clock()
            )
        except Exception as e:
            # Keep the listener thread alive
            logger.exception("Error handling change to schedule %s", doc.id)
            return Skipped(f"error: {e}")
        logger.debug("Schedule %s %s: %s", doc.id, change.type.name, result)
        return result


def run_schedule_watch(
    store: FirestoreStore,
    send: PushSender,
    poll_seconds: float = 1.0,
) -> None:
    """Listen for schedule changes. Does not return unless interrupted."""
    watcher = ScheduleWatcher(store, send)
    watch = store.watch_schedules(watcher.on_snapshot)
    logger.info("Watching schedules for completed prep")
    try:
        while True:
            time.sleep(poll_seconds)
    except KeyboardInterrupt:
        logger.info("Schedule watch interrupted")
    finally:
        watch.unsubscribe()
