"""Linear undo/redo history over immutable design snapshots."""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

Listener = Callable[[], None]

logger = logging.getLogger(__name__)


class HistoryStore(Generic[T]):
    """Versioned state container with a cursor into a never-empty snapshot list.

    Snapshots are treated as immutable values. ``write`` compares with ``==`` so
    dataclass snapshots are matched structurally, never by identity.
    """

    def __init__(self, initial: T) -> None:
        self._entries: List[T] = [initial]
        self._cursor = 0
        self._listeners: List[Listener] = []

    # Queries ---------------------------------------------------------------
    @property
    def current(self) -> T:
        """Return the snapshot under the cursor."""
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._entries)

    # Mutations -------------------------------------------------------------
    def write(self, snapshot: T) -> bool:
        """Append a snapshot after the cursor, dropping any redo entries.

        Returns False when the snapshot equals the current one and nothing changed.
        """
        if snapshot == self.current:
            logger.debug("history write skipped: snapshot unchanged")
            return False
        del self._entries[self._cursor + 1 :]
        self._entries.append(snapshot)
        self._cursor = len(self._entries) - 1
        logger.debug("history write: %d entries, cursor=%d", len(self._entries), self._cursor)
        self._notify()
        return True

    def undo(self) -> bool:
        """Step the cursor back one entry."""
        if not self.can_undo:
            return False
        self._cursor -= 1
        self._notify()
        return True

    def redo(self) -> bool:
        """Step the cursor forward one entry."""
        if not self.can_redo:
            return False
        self._cursor += 1
        self._notify()
        return True

    def reset(self, snapshot: T) -> None:
        """Replace the whole history with a single snapshot."""
        self._entries = [snapshot]
        self._cursor = 0
        logger.debug("history reset")
        self._notify()

    # Observers -------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        # A failing listener must not leave the store half-notified.
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("history listener %r failed", listener)
