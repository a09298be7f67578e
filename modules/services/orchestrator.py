"""Generation orchestrator: runs user intents against the generation service.

Every operation follows the same shape. It takes the single operation lock (or is
dropped if another operation holds it), publishes a progress label, awaits the
remote call(s), applies the result to the design history, and always releases
the lock and clears the progress label. Failures never escape: they become the
``last_error`` message and leave the history untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from config.settings import AppConfig, clamp_variation_count
from modules.errors import InputError, LabelStudioError, ServiceError
from modules.pipelines.gemini_service import GenerationService
from modules.services.design_state import EMPTY_DESIGN, DesignSnapshot, ImageData
from modules.services.form_state import FormState, MockupView, SuggestionField
from modules.services.history_service import HistoryStore
from modules.services.operation_lock import GenerationStep, OperationKind, OperationLock
from modules.utils.image_utils import read_reference_image

logger = logging.getLogger(__name__)

R = TypeVar("R")
Listener = Callable[[], None]

NO_REFINE_TARGET = "Please generate a label or select a single mockup view (Front or Back) to refine."
NO_LABEL_FOR_MOCKUP = "Please generate a label before creating a mockup."
EMPTY_REFINE_REQUEST = "Please describe the change you want to make."
UNREADABLE_IMAGE = "Could not read the provided image file."
UNREADABLE_LOGO = "Could not read logo file."
STALE_VARIATION = "That variation is no longer available."
STALE_SUGGESTION = "That suggestion is no longer available."
UNKNOWN_ERROR = "An unknown error occurred."


class RefineTarget(str, Enum):
    """History slot a refinement reads from and writes back to."""

    LABEL = "label"
    MOCKUP_FRONT = "mockup-front"
    MOCKUP_BACK = "mockup-back"


@dataclass(frozen=True, slots=True)
class Suggestions:
    """Transient candidate values for one label field."""

    field: SuggestionField
    values: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SessionView:
    """Everything the presentation layer renders."""

    is_busy: bool
    progress_label: str
    last_error: Optional[str]
    current_snapshot: DesignSnapshot
    variation_set: Tuple[ImageData, ...]
    can_undo: bool
    can_redo: bool
    active_operation: Optional[OperationKind]
    current_step: Optional[GenerationStep]
    suggestions: Optional[Suggestions]


class DesignOrchestrator:
    """Owns one design session: its history, form inputs and operation state."""

    def __init__(
        self,
        service: GenerationService,
        form: Optional[FormState] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.service = service
        self.form = form or FormState()
        self.history: HistoryStore[DesignSnapshot] = HistoryStore(EMPTY_DESIGN)
        self.progress_label = ""
        self.last_error: Optional[str] = None
        self.current_step: Optional[GenerationStep] = None
        self.suggestions: Optional[Suggestions] = None
        self._variations: Tuple[ImageData, ...] = ()
        self._listeners: List[Listener] = []
        self._lock = OperationLock(on_change=self._notify)
        self.history.subscribe(self._notify)

    # Observable state ----------------------------------------------------------
    @property
    def is_busy(self) -> bool:
        return self._lock.is_busy

    @property
    def active_operation(self) -> Optional[OperationKind]:
        return self._lock.running

    @property
    def current_snapshot(self) -> DesignSnapshot:
        return self.history.current

    @property
    def variation_set(self) -> Tuple[ImageData, ...]:
        return self._variations

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    @property
    def timeout(self) -> Optional[float]:
        timeout = self.config.request_timeout
        return timeout if timeout and timeout > 0 else None

    def view(self) -> SessionView:
        """Immutable copy of the observable fields."""
        return SessionView(
            is_busy=self.is_busy,
            progress_label=self.progress_label,
            last_error=self.last_error,
            current_snapshot=self.current_snapshot,
            variation_set=self._variations,
            can_undo=self.can_undo,
            can_redo=self.can_redo,
            active_operation=self.active_operation,
            current_step=self.current_step,
            suggestions=self.suggestions,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a re-render callback; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # Generation intents ----------------------------------------------------------
    async def generate_label(self) -> bool:
        """Generate one label and start a fresh history from it."""
        form = self.form

        async def _action() -> None:
            self._set_variations(())
            image = await self._call(
                self.service.generate_label(form.label, form.dimensions, form.logo)
            )
            self.history.reset(DesignSnapshot.from_label(image))

        return await self._run(
            OperationKind.SINGLE, "Designing your label...", _action, GenerationStep.LABEL
        )

    async def generate_variations(self, count: Optional[int] = None) -> bool:
        """Generate N candidate labels; nothing enters history until one is selected."""
        total = clamp_variation_count(count if count is not None else self.config.variation_count)
        form = self.form

        async def _action() -> None:
            self.history.reset(EMPTY_DESIGN)
            self._set_variations(())
            images = await self._gather(
                [
                    self.service.generate_label(form.label, form.dimensions, form.logo)
                    for _ in range(total)
                ]
            )
            self._set_variations(tuple(images))

        return await self._run(
            OperationKind.VARIATIONS, "Generating variations...", _action, GenerationStep.LABEL
        )

    async def analyze_image(self, file_bytes: bytes | str, mime_type: Optional[str] = None) -> bool:
        """Generate a label styled after an uploaded image, discarding prior history."""
        form = self.form

        async def _action() -> None:
            reference = read_reference_image(file_bytes, mime_type, error_message=UNREADABLE_IMAGE)
            self._set_variations(())
            image = await self._call(
                self.service.analyze_and_generate(reference, form.label, form.dimensions)
            )
            self.history.reset(DesignSnapshot.from_label(image))

        return await self._run(
            OperationKind.ANALYZE,
            "Analyzing image & generating design...",
            _action,
            GenerationStep.LABEL,
        )

    async def refine(self, request: str) -> bool:
        """Apply a free-text edit to the single image currently in view."""

        async def _action() -> None:
            if not request or not request.strip():
                raise InputError(EMPTY_REFINE_REQUEST)
            target, image = self.refine_target()
            self.current_step = (
                GenerationStep.REFINE_LABEL
                if target is RefineTarget.LABEL
                else GenerationStep.REFINE_MOCKUP
            )
            self._notify()
            result = await self._call(self.service.refine_image(image, request))
            current = self.history.current
            if target is RefineTarget.MOCKUP_FRONT:
                self.history.write(current.with_front(result))
            elif target is RefineTarget.MOCKUP_BACK:
                self.history.write(current.with_back(result))
            else:
                self.history.write(DesignSnapshot.from_label(result))

        return await self._run(OperationKind.REFINE, "Applying your changes...", _action)

    async def generate_mockup(self) -> bool:
        """Render the label onto the packaging for the current mockup view."""
        form = self.form

        async def _action() -> None:
            label_image = self.history.current.label_image
            if label_image is None:
                raise InputError(NO_LABEL_FOR_MOCKUP)
            packaging = form.packaging
            view = form.mockup_view
            if view is MockupView.FRONT:
                front = await self._call(
                    self.service.generate_mockup(label_image, packaging, MockupView.FRONT)
                )
                # A back render made from the previous front no longer matches.
                self.history.write(self.history.current.with_mockups(front, None))
            elif view is MockupView.BACK:
                context = self.history.current.mockup_images.front
                back = await self._call(
                    self.service.generate_mockup(label_image, packaging, MockupView.BACK, context)
                )
                self.history.write(self.history.current.with_back(back))
            else:
                front = await self._call(
                    self.service.generate_mockup(label_image, packaging, MockupView.FRONT)
                )
                back = await self._call(
                    self.service.generate_mockup(label_image, packaging, MockupView.BACK, front)
                )
                self.history.write(self.history.current.with_mockups(front, back))

        return await self._run(
            OperationKind.MOCKUP, "Rendering your mockup...", _action, GenerationStep.MOCKUP
        )

    # Suggestions ------------------------------------------------------------------
    async def suggest_field(self, target: SuggestionField | str) -> bool:
        """Fetch candidate values for one label field."""
        form = self.form

        async def _action() -> None:
            try:
                field = SuggestionField(target)
            except ValueError as exc:
                raise InputError(f"Suggestions are not available for '{target}'.") from exc
            self.suggestions = None
            values = await self._call(self.service.suggest_text(field, form.label))
            self.suggestions = Suggestions(field=field, values=tuple(values))

        return await self._run(OperationKind.SUGGEST, "Generating suggestions...", _action)

    async def suggest_packaging(self) -> bool:
        """Merge suggested packaging fields into the form; placement is kept."""
        form = self.form

        async def _action() -> None:
            suggestion = await self._call(self.service.suggest_packaging(form.label))
            form.update_packaging(**suggestion.as_changes())

        return await self._run(
            OperationKind.SUGGEST_PACKAGING, "Suggesting packaging...", _action
        )

    def select_suggestion(self, value: str) -> bool:
        """Apply one suggested value to its label field."""
        if self.is_busy:
            return False
        if self.suggestions is None or value not in self.suggestions.values:
            self._fail(STALE_SUGGESTION)
            return False
        self.form.update_label(**{self.suggestions.field.attribute: value})
        self.suggestions = None
        self._notify()
        return True

    def dismiss_suggestions(self) -> None:
        if self.suggestions is not None:
            self.suggestions = None
            self._notify()

    # Direct edits ---------------------------------------------------------------
    def select_variation(self, image: ImageData) -> bool:
        """Commit one candidate to history and drop the rest."""
        if self.is_busy:
            return False
        if image not in self._variations:
            self._fail(STALE_VARIATION)
            return False
        self.last_error = None
        self._variations = ()
        self.history.write(DesignSnapshot.from_label(image))
        self._notify()
        return True

    def undo(self) -> bool:
        if self.is_busy:
            return False
        return self.history.undo()

    def redo(self) -> bool:
        if self.is_busy:
            return False
        return self.history.redo()

    def set_logo(self, file_bytes: bytes | str, mime_type: Optional[str] = None) -> bool:
        """Attach a logo for label generation; the previous logo stays on failure."""
        try:
            self.form.logo = read_reference_image(file_bytes, mime_type, error_message=UNREADABLE_LOGO)
        except InputError as exc:
            self._fail(str(exc))
            return False
        self._notify()
        return True

    def clear_logo(self) -> None:
        self.form.logo = None
        self._notify()

    def set_mockup_view(self, view: MockupView | str) -> bool:
        try:
            self.form.set_mockup_view(view)
        except InputError as exc:
            self._fail(str(exc))
            return False
        self._notify()
        return True

    def refine_target(self) -> Tuple[RefineTarget, ImageData]:
        """Pick the image a refinement applies to, or raise InputError."""
        snapshot = self.history.current
        mockups = snapshot.mockup_images
        view = self.form.mockup_view
        if view is MockupView.FRONT and mockups.front is not None:
            return RefineTarget.MOCKUP_FRONT, mockups.front
        if view is MockupView.BACK and mockups.back is not None:
            return RefineTarget.MOCKUP_BACK, mockups.back
        if not mockups.any and snapshot.label_image is not None:
            return RefineTarget.LABEL, snapshot.label_image
        raise InputError(NO_REFINE_TARGET)

    # Internal helpers ---------------------------------------------------------
    async def _run(
        self,
        kind: OperationKind,
        progress: str,
        action: Callable[[], Awaitable[None]],
        step: Optional[GenerationStep] = None,
    ) -> bool:
        with self._lock.hold(kind) as acquired:
            if not acquired:
                logger.debug("dropped %s: %s already running", kind.value, self.active_operation)
                return False
            logger.info("starting %s", kind.value)
            try:
                self.last_error = None
                self.progress_label = progress
                self.current_step = step
                self._notify()
                await action()
                logger.info("%s finished", kind.value)
                return True
            except LabelStudioError as exc:
                logger.warning("%s failed: %s", kind.value, exc)
                self._fail(str(exc) or UNKNOWN_ERROR)
            except Exception as exc:  # noqa: BLE001
                logger.exception("%s failed unexpectedly", kind.value)
                self._fail(str(exc) or UNKNOWN_ERROR)
            finally:
                self.progress_label = ""
                self.current_step = None
        return False

    async def _call(self, awaitable: Awaitable[R]) -> R:
        """Await one remote call under the configured timeout."""
        timeout = self.timeout
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise ServiceError(f"The request timed out after {timeout:g} seconds.") from exc

    async def _gather(self, calls: Sequence[Awaitable[R]]) -> List[R]:
        """Run calls concurrently; the first failure fails the batch.

        Siblings still in flight when one fails are cancelled and their results
        discarded.
        """
        tasks = [asyncio.ensure_future(self._call(call)) for call in calls]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            raise

    def _set_variations(self, images: Tuple[ImageData, ...]) -> None:
        if images != self._variations:
            self._variations = images
            self._notify()

    def _fail(self, message: str) -> None:
        self.last_error = message
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001
                logger.exception("session listener %r failed", listener)
