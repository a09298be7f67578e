"""Single-flight guard shared by every orchestrator entry point."""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional


class OperationKind(str, Enum):
    """User-triggered actions that talk to the generation service."""

    SINGLE = "single"
    VARIATIONS = "variations"
    ANALYZE = "analyze"
    REFINE = "refine"
    MOCKUP = "mockup"
    SUGGEST = "suggest"
    SUGGEST_PACKAGING = "suggest_packaging"


class GenerationStep(str, Enum):
    """Which part of the design an operation is producing."""

    LABEL = "label"
    MOCKUP = "mockup"
    REFINE_LABEL = "refineLabel"
    REFINE_MOCKUP = "refineMockup"


class OperationLock:
    """Idle, or running exactly one operation kind.

    Acquisition never waits: a caller that finds the lock held is expected to
    drop its request rather than queue it.
    """

    def __init__(self, on_change: Optional[Callable[[], None]] = None) -> None:
        self._running: Optional[OperationKind] = None
        self._on_change = on_change

    @property
    def running(self) -> Optional[OperationKind]:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._running is not None

    @contextmanager
    def hold(self, kind: OperationKind) -> Iterator[bool]:
        """Try to take the lock for ``kind``; yields False if already held."""
        if self._running is not None:
            yield False
            return
        self._running = kind
        try:
            self._changed()
            yield True
        finally:
            self._running = None
            self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
