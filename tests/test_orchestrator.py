"""DesignOrchestrator flow tests driven by a stub generation service."""

from __future__ import annotations

import asyncio
import io
from typing import Any, List, Optional

import pytest
from PIL import Image

from config.settings import AppConfig
from modules.errors import ServiceError, ValidationError
from modules.pipelines.schemas import PackagingSuggestion
from modules.services import orchestrator as orchestrator_module
from modules.services.design_state import EMPTY_DESIGN, DesignSnapshot, ImageData, MockupImages
from modules.services.form_state import (
    FormState,
    MockupView,
    PackagingPreset,
    SuggestionField,
)
from modules.services.operation_lock import GenerationStep, OperationKind
from modules.services.orchestrator import DesignOrchestrator, RefineTarget


def img(name: str) -> ImageData:
    return ImageData(name.encode())


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(0, 128, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


class DummyGenerationService:
    """Stub generation service that records every call."""

    def __init__(self) -> None:
        self.calls: List[tuple[str, Any]] = []
        self.label_count = 0
        self.fail_labels: set[int] = set()
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.started = False
        self.delay = 0.0
        self.cancelled = 0
        self.suggestions = ["Glow Up", "Pure Bloom"]
        self.packaging = PackagingSuggestion(PackagingPreset.GLASS_JAR, "matte", 3.0, 2.5)

    async def _enter(self) -> None:
        self.started = True
        if self.error is not None:
            raise self.error
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)

    async def generate_label(self, label, dimensions, logo) -> ImageData:
        self.label_count += 1
        number = self.label_count
        self.calls.append(("label", logo))
        if number in self.fail_labels:
            raise ServiceError(f"label {number} failed")
        try:
            await self._enter()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return img(f"IMG{number}")

    async def analyze_and_generate(self, reference, label, dimensions) -> ImageData:
        self.calls.append(("analyze", reference))
        await self._enter()
        return img("STYLED")

    async def generate_mockup(self, label_image, packaging, view, front_mockup=None) -> ImageData:
        self.calls.append(("mockup", (view, front_mockup)))
        await self._enter()
        return img(f"{view.value.upper()}-OF-{label_image.data.decode()}")

    async def refine_image(self, image, request) -> ImageData:
        self.calls.append(("refine", (image, request)))
        await self._enter()
        return img(f"{image.data.decode()}+{request}")

    async def suggest_text(self, target, label) -> List[str]:
        self.calls.append(("suggest", target))
        await self._enter()
        return list(self.suggestions)

    async def suggest_packaging(self, label) -> PackagingSuggestion:
        self.calls.append(("packaging", None))
        await self._enter()
        return self.packaging


@pytest.fixture()
def service() -> DummyGenerationService:
    return DummyGenerationService()


@pytest.fixture()
def session(service: DummyGenerationService) -> DesignOrchestrator:
    return DesignOrchestrator(service, form=FormState(), config=AppConfig(request_timeout=5))


def with_label(session: DesignOrchestrator, name: str = "LBL") -> ImageData:
    image = img(name)
    session.history.reset(DesignSnapshot.from_label(image))
    return image


def test_generate_label_resets_history(session, service):
    assert asyncio.run(session.generate_label()) is True

    assert session.current_snapshot == DesignSnapshot(label_image=img("IMG1"), mockup_images=MockupImages())
    assert session.can_undo is False
    assert session.can_redo is False
    assert session.last_error is None
    assert session.is_busy is False
    assert session.progress_label == ""


def test_generate_label_twice_still_single_entry(session):
    asyncio.run(session.generate_label())
    asyncio.run(session.generate_label())

    assert session.current_snapshot.label_image == img("IMG2")
    assert len(session.history) == 1


def test_progress_and_busy_are_published(session):
    seen: list[tuple[bool, str, Optional[GenerationStep]]] = []
    session.subscribe(lambda: seen.append((session.is_busy, session.progress_label, session.current_step)))

    asyncio.run(session.generate_label())

    assert (True, "Designing your label...", GenerationStep.LABEL) in seen
    assert seen[-1] == (False, "", None)


def test_second_operation_dropped_while_busy(session, service):
    async def scenario():
        service.gate = asyncio.Event()
        first = asyncio.create_task(session.generate_label())
        while not service.started:
            await asyncio.sleep(0)

        assert session.is_busy is True
        assert session.active_operation is OperationKind.SINGLE
        assert await session.generate_label() is False
        assert await session.generate_variations() is False
        assert await session.suggest_field("tagline") is False
        assert session.undo() is False
        assert session.redo() is False

        service.gate.set()
        return await first

    assert asyncio.run(scenario()) is True
    assert [name for name, _ in service.calls] == ["label"]
    assert session.is_busy is False


def test_failing_listener_does_not_wedge_session(session, service):
    calls = {"n": 0}

    def broken_render() -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("render failed")

    session.subscribe(broken_render)

    assert asyncio.run(session.generate_label()) is True
    assert session.is_busy is False
    assert session.active_operation is None
    assert session.progress_label == ""

    assert asyncio.run(session.generate_label()) is True
    assert [name for name, _ in service.calls] == ["label", "label"]
    assert session.current_snapshot.label_image == img("IMG2")


def test_always_failing_listener_still_releases_lock(session, service):
    def broken_render() -> None:
        raise RuntimeError("render failed")

    session.subscribe(broken_render)
    service.error = ServiceError("quota")

    assert asyncio.run(session.generate_label()) is False

    assert session.last_error == "quota"
    assert session.is_busy is False
    assert session.progress_label == ""
    assert session.current_step is None


def test_service_failure_keeps_state(session, service):
    label = with_label(session)
    service.error = ServiceError("Image request failed: quota")

    assert asyncio.run(session.generate_label()) is False

    assert session.last_error == "Image request failed: quota"
    assert session.current_snapshot.label_image == label
    assert session.is_busy is False
    assert session.progress_label == ""


def test_unexpected_error_surfaces_message(session, service):
    service.error = RuntimeError("socket closed")

    asyncio.run(session.generate_label())

    assert session.last_error == "socket closed"
    assert session.is_busy is False


def test_blank_error_uses_generic_message(session, service):
    service.error = RuntimeError()

    asyncio.run(session.generate_label())

    assert session.last_error == orchestrator_module.UNKNOWN_ERROR


def test_new_operation_clears_previous_error(session, service):
    service.error = ServiceError("first failure")
    asyncio.run(session.generate_label())
    service.error = None

    asyncio.run(session.generate_label())

    assert session.last_error is None


def test_request_timeout_becomes_error(service):
    session = DesignOrchestrator(service, config=AppConfig(request_timeout=0.01))
    service.delay = 1.0

    assert asyncio.run(session.generate_label()) is False

    assert session.last_error == "The request timed out after 0.01 seconds."
    assert session.current_snapshot == EMPTY_DESIGN


def test_zero_timeout_disables_limit(service):
    session = DesignOrchestrator(service, config=AppConfig(request_timeout=0))
    service.delay = 0.05

    assert session.timeout is None
    assert asyncio.run(session.generate_label()) is True
    assert session.last_error is None


def test_variations_populate_set_not_history(session, service):
    with_label(session)

    assert asyncio.run(session.generate_variations()) is True

    assert session.variation_set == (img("IMG1"), img("IMG2"), img("IMG3"))
    assert session.current_snapshot == EMPTY_DESIGN
    assert len(session.history) == 1


def test_variation_count_is_clamped(session, service):
    asyncio.run(session.generate_variations(count=20))
    assert len(session.variation_set) == 8

    asyncio.run(session.generate_variations(count=0))
    assert len(session.variation_set) == 1


def test_variations_fail_as_a_batch(session, service):
    errors: list[str] = []
    session.subscribe(lambda: errors.append(session.last_error) if session.last_error else None)
    service.fail_labels = {2}
    service.delay = 0.5

    assert asyncio.run(session.generate_variations(count=3)) is False

    assert session.last_error == "label 2 failed"
    assert set(errors) == {"label 2 failed"}
    assert session.variation_set == ()
    assert session.current_snapshot == EMPTY_DESIGN
    assert service.cancelled == 2


def test_select_variation_commits_and_clears(session):
    asyncio.run(session.generate_variations(count=2))
    chosen = session.variation_set[1]

    assert session.select_variation(chosen) is True

    assert session.current_snapshot == DesignSnapshot.from_label(chosen)
    assert session.variation_set == ()
    assert session.can_undo is True


def test_select_stale_variation_is_rejected(session):
    asyncio.run(session.generate_variations(count=2))

    assert session.select_variation(img("ELSEWHERE")) is False

    assert session.last_error == orchestrator_module.STALE_VARIATION
    assert len(session.variation_set) == 2
    assert session.current_snapshot == EMPTY_DESIGN


def test_generate_label_discards_pending_variations(session):
    asyncio.run(session.generate_variations(count=2))

    asyncio.run(session.generate_label())

    assert session.variation_set == ()


def test_analyze_image_uses_reference(session, service):
    with_label(session)
    raw = png_bytes()

    assert asyncio.run(session.analyze_image(raw, "image/png")) is True

    name, reference = service.calls[-1]
    assert name == "analyze"
    assert reference == ImageData(raw, "image/png")
    assert session.current_snapshot == DesignSnapshot.from_label(img("STYLED"))
    assert session.can_undo is False


def test_analyze_image_rejects_unreadable_file(session, service):
    label = with_label(session)

    assert asyncio.run(session.analyze_image(b"not an image", "image/png")) is False

    assert session.last_error == orchestrator_module.UNREADABLE_IMAGE
    assert service.calls == []
    assert session.current_snapshot.label_image == label


def test_refine_label_appends_history(session, service):
    with_label(session, "LBL")

    assert asyncio.run(session.refine("make it blue")) is True

    assert session.current_snapshot == DesignSnapshot.from_label(img("LBL+make it blue"))
    assert session.can_undo is True
    assert session.undo() is True
    assert session.current_snapshot.label_image == img("LBL")


def test_refine_label_only_snapshot_in_front_view(session, service):
    label = with_label(session, "LBL")
    session.set_mockup_view(MockupView.FRONT)

    assert asyncio.run(session.refine("softer edges")) is True

    assert service.calls == [("refine", (label, "softer edges"))]
    assert session.current_snapshot == DesignSnapshot.from_label(img("LBL+softer edges"))
    assert session.last_error is None


def test_refine_front_mockup_writes_back_to_front(session, service):
    label = with_label(session)
    back = img("BACK")
    session.history.write(session.current_snapshot.with_mockups(img("FRONT"), back))
    session.set_mockup_view(MockupView.FRONT)

    asyncio.run(session.refine("add shadow"))

    snapshot = session.current_snapshot
    assert snapshot.mockup_images.front == img("FRONT+add shadow")
    assert snapshot.mockup_images.back == back
    assert snapshot.label_image == label


def test_refine_front_mockup_without_label(session, service):
    front = img("F")
    session.history.write(DesignSnapshot(label_image=None, mockup_images=MockupImages(front=front)))

    assert asyncio.run(session.refine("tilt")) is True

    assert service.calls == [("refine", (front, "tilt"))]
    assert session.current_snapshot == DesignSnapshot(
        label_image=None, mockup_images=MockupImages(front=img("F+tilt"), back=None)
    )


def test_refine_back_mockup(session):
    label = with_label(session)
    session.history.write(session.current_snapshot.with_mockups(img("FRONT"), img("BACK")))
    session.set_mockup_view("back")

    asyncio.run(session.refine("brighter"))

    snapshot = session.current_snapshot
    assert snapshot.mockup_images == MockupImages(front=img("FRONT"), back=img("BACK+brighter"))
    assert snapshot.label_image == label


def test_refine_step_follows_target(session):
    steps: list[Optional[GenerationStep]] = []
    session.subscribe(lambda: steps.append(session.current_step))
    with_label(session)
    session.history.write(session.current_snapshot.with_front(img("FRONT")))

    asyncio.run(session.refine("warmer"))

    assert GenerationStep.REFINE_MOCKUP in steps
    assert GenerationStep.REFINE_LABEL not in steps


def test_refine_without_target_makes_no_call(session, service):
    assert asyncio.run(session.refine("anything")) is False

    assert session.last_error == orchestrator_module.NO_REFINE_TARGET
    assert service.calls == []
    assert session.is_busy is False


def test_refine_front_back_view_has_no_target(session, service):
    with_label(session)
    session.history.write(session.current_snapshot.with_mockups(img("FRONT"), img("BACK")))
    session.set_mockup_view(MockupView.FRONT_BACK)

    asyncio.run(session.refine("anything"))

    assert session.last_error == orchestrator_module.NO_REFINE_TARGET
    assert service.calls == []


def test_refine_requires_text(session, service):
    with_label(session)

    asyncio.run(session.refine("   "))

    assert session.last_error == orchestrator_module.EMPTY_REFINE_REQUEST
    assert service.calls == []


@pytest.mark.parametrize(
    "front, back, view, expected",
    [
        (None, None, MockupView.FRONT, RefineTarget.LABEL),
        ("F", None, MockupView.FRONT, RefineTarget.MOCKUP_FRONT),
        ("F", "B", MockupView.BACK, RefineTarget.MOCKUP_BACK),
    ],
)
def test_refine_target_priority(session, front, back, view, expected):
    with_label(session)
    session.history.write(
        session.current_snapshot.with_mockups(img(front) if front else None, img(back) if back else None)
    )
    session.set_mockup_view(view)

    target, _ = session.refine_target()

    assert target is expected


def test_mockup_requires_label(session, service):
    assert asyncio.run(session.generate_mockup()) is False

    assert session.last_error == orchestrator_module.NO_LABEL_FOR_MOCKUP
    assert service.calls == []


def test_front_mockup_clears_stale_back(session):
    label = with_label(session, "LBL")
    session.history.write(session.current_snapshot.with_mockups(img("OLD-F"), img("OLD-B")))

    asyncio.run(session.generate_mockup())

    snapshot = session.current_snapshot
    assert snapshot.label_image == label
    assert snapshot.mockup_images == MockupImages(front=img("FRONT-OF-LBL"), back=None)


def test_back_mockup_uses_front_as_context(session, service):
    with_label(session, "LBL")
    front = img("FRONT-OF-LBL")
    session.history.write(session.current_snapshot.with_front(front))
    session.set_mockup_view(MockupView.BACK)

    asyncio.run(session.generate_mockup())

    assert service.calls[-1] == ("mockup", (MockupView.BACK, front))
    assert session.current_snapshot.mockup_images.front == front
    assert session.current_snapshot.mockup_images.back == img("BACK-OF-LBL")


def test_front_back_mockup_is_one_history_entry(session, service):
    with_label(session, "LBL")
    session.set_mockup_view("front-back")

    assert asyncio.run(session.generate_mockup()) is True

    assert [call[1] for call in service.calls] == [
        (MockupView.FRONT, None),
        (MockupView.BACK, img("FRONT-OF-LBL")),
    ]
    assert len(session.history) == 2
    assert session.current_snapshot.mockup_images == MockupImages(
        front=img("FRONT-OF-LBL"), back=img("BACK-OF-LBL")
    )
    session.undo()
    assert session.current_snapshot.mockup_images.any is False


def test_suggest_field_then_select(session, service):
    assert asyncio.run(session.suggest_field("tagline")) is True

    assert session.suggestions.field is SuggestionField.TAGLINE
    assert session.suggestions.values == ("Glow Up", "Pure Bloom")

    assert session.select_suggestion("Pure Bloom") is True
    assert session.form.label.tagline == "Pure Bloom"
    assert session.suggestions is None


def test_suggest_unknown_field(session, service):
    asyncio.run(session.suggest_field("brandName"))

    assert session.last_error == "Suggestions are not available for 'brandName'."
    assert service.calls == []


def test_suggest_validation_failure(session, service):
    service.error = ValidationError("Could not generate suggestions. The AI failed to return a valid response.")

    asyncio.run(session.suggest_field(SuggestionField.AESTHETIC))

    assert session.suggestions is None
    assert session.last_error.startswith("Could not generate suggestions.")


def test_select_stale_suggestion(session):
    asyncio.run(session.suggest_field("productName"))
    before = session.form.label.product_name

    assert session.select_suggestion("Something else") is False

    assert session.last_error == orchestrator_module.STALE_SUGGESTION
    assert session.form.label.product_name == before


def test_dismiss_suggestions(session):
    asyncio.run(session.suggest_field("colorPalette"))

    session.dismiss_suggestions()

    assert session.suggestions is None


def test_suggest_packaging_merges_fields(session):
    session.form.update_placement(rotation=10, offset_y=5)

    assert asyncio.run(session.suggest_packaging()) is True

    packaging = session.form.packaging
    assert packaging.preset is PackagingPreset.GLASS_JAR
    assert packaging.finish == "matte"
    assert packaging.height == 3.0
    assert packaging.diameter == 2.5
    assert packaging.placement.rotation == 10.0
    assert packaging.placement.offset_y == 5.0
    assert session.current_snapshot == EMPTY_DESIGN


def test_set_logo_feeds_label_generation(session, service):
    assert session.set_logo(png_bytes(), "image/png") is True

    asyncio.run(session.generate_label())

    _, logo = service.calls[-1]
    assert logo == session.form.logo
    assert logo.mime_type == "image/png"


def test_set_logo_failure_keeps_previous(session):
    session.set_logo(png_bytes())
    previous = session.form.logo

    assert session.set_logo(b"garbage") is False

    assert session.last_error == orchestrator_module.UNREADABLE_LOGO
    assert session.form.logo == previous

    session.clear_logo()
    assert session.form.logo is None


def test_invalid_mockup_view_becomes_error(session):
    assert session.set_mockup_view("side") is False

    assert session.last_error == "Invalid value for mockup_view: 'side'"
    assert session.form.mockup_view is MockupView.FRONT

    assert session.set_mockup_view("back") is True
    assert session.form.mockup_view is MockupView.BACK


def test_view_reflects_state(session):
    asyncio.run(session.generate_label())

    view = session.view()

    assert view.is_busy is False
    assert view.current_snapshot.label_image == img("IMG1")
    assert view.variation_set == ()
    assert view.can_undo is False
    assert view.active_operation is None
