"""Track unsaved edits of a request and persist them after a quiet period."""

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from slingshot.store.base import Store
from slingshot.store.models import Request, RequestFields, changed_fields

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 1.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Wall-clock scheduler backed by ``threading.Timer``."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class DraftTracker:
    """Draft state of one request.

    Holds at most one pending persistence timer; every edit inside the
    quiet period replaces it, so a burst of edits is written once.
    """

    def __init__(
        self,
        request: Request,
        store: Store,
        scheduler: Scheduler | None = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
    ):
        self.request = request
        self.store = store
        self.scheduler = scheduler or ThreadingScheduler()
        self.quiet_period = quiet_period
        self._lock = threading.RLock()
        self._current: RequestFields | None = request.draft
        self._pending: TimerHandle | None = None
        self._persisted = request.draft is not None

    @property
    def current(self) -> RequestFields:
        """Fields as currently edited."""
        if self._current is not None:
            return self._current
        return self.request.saved_fields()

    def has_changes(self, current: RequestFields | None = None) -> bool:
        if current is None:
            current = self.current
        return bool(changed_fields(self.request.saved_fields(), current))

    def changed_fields(self) -> list[str]:
        return changed_fields(self.request.saved_fields(), self.current)

    def edit(self, current: RequestFields) -> bool:
        """Record the in-progress fields; returns whether they diverge from the saved ones."""
        changed = self.has_changes(current)
        with self._lock:
            self._current = current.model_copy(deep=True)
            if changed or self._persisted or self._pending is not None:
                self._schedule()
        return changed

    def _schedule(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.scheduler.call_later(self.quiet_period, self._persist)

    def _persist(self) -> None:
        with self._lock:
            self._pending = None
            overlay = self._current if self.has_changes(self._current) else None
            try:
                self.request = self.store.update_request(self.request.with_draft(overlay))
            except Exception:
                # Retried on the next edit-triggered cycle.
                logger.exception("Failed to persist draft for request %s", self.request.id)
                return
            self._persisted = overlay is not None
            logger.debug("Persisted draft for request %s (has edits: %s)", self.request.id, self._persisted)

    def flush(self) -> None:
        """Persist a pending draft now instead of waiting for the timer."""
        with self._lock:
            pending = self._pending
            if pending is None:
                return
            pending.cancel()
        self._persist()

    def apply(self) -> Request:
        """Commit the in-progress fields as the saved request."""
        with self._lock:
            self._cancel_pending()
            updated = self.request.with_draft(self.current).apply_draft()
            self.request = self.store.update_request(updated)
            self._current = None
            self._persisted = False
            return self.request

    def restore(self) -> Request:
        """Drop the in-progress fields and go back to the saved request."""
        with self._lock:
            self._cancel_pending()
            self.request = self.store.update_request(self.request.discard_draft())
            self._current = None
            self._persisted = False
            return self.request

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
