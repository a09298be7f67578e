"""Editable form inputs that feed the prompt templates.

These values are not versioned; the presentation layer edits them freely and the
orchestrator reads them at the moment an operation starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Type

from modules.errors import InputError
from modules.services.design_state import ImageData


class LabelShape(str, Enum):
    """Label die-cut shapes."""

    RECTANGULAR = "rectangular"
    CIRCULAR = "circular"
    OVAL = "oval"
    SQUARE = "square"


class PackagingPreset(str, Enum):
    """Containers the mockup renderer knows how to describe."""

    SHAMPOO_BOTTLE = "White Plastic Shampoo Bottle"
    DROPPER_BOTTLE = "Amber Glass Dropper Bottle"
    GLASS_JAR = "Clear Glass Jar with Lid"
    PILL_BOTTLE = "White Plastic Pill/Supplement Bottle"
    STAND_UP_POUCH = "Glossy Stand-up Pouch"
    CARDBOARD_BOX = "Matte Cardboard Box"
    SQUEEZE_TUBE = "Frosted Plastic Tube"


class MockupView(str, Enum):
    """Which mockup the preview is showing."""

    FRONT = "front"
    BACK = "back"
    FRONT_BACK = "front-back"


class SuggestionField(str, Enum):
    """Label fields the assistant can propose values for."""

    PRODUCT_NAME = "productName"
    TAGLINE = "tagline"
    AESTHETIC = "aesthetic"
    COLOR_PALETTE = "colorPalette"

    @property
    def attribute(self) -> str:
        """Name of the matching LabelFields attribute."""
        return _SUGGESTION_ATTRIBUTES[self]


_SUGGESTION_ATTRIBUTES = {
    SuggestionField.PRODUCT_NAME: "product_name",
    SuggestionField.TAGLINE: "tagline",
    SuggestionField.AESTHETIC: "aesthetic",
    SuggestionField.COLOR_PALETTE: "color_palette",
}


@dataclass(slots=True)
class LabelFields:
    """Text and style content printed on the label."""

    product_name: str = "Organic Hair Shampoo"
    brand_name: str = "SOUL ESSENCE HEALTH"
    tagline: str = "Nourish & Revitalize"
    ingredients: str = "Purple Onion, Clove, Garlic, Moringa, Vitamin E, Coconut Oil, Almond Oil"
    directions: str = (
        "Massage a generous amount of shampoo into wet hair and scalp. "
        "Leave for 5 minutes before rinsing thoroughly."
    )
    caution: str = "For external use only. Avoid contact with eyes."
    company_info: str = "123 Anywhere ST., Any City, ST 12345 | www.soulhealthessence.com"
    weight: str = "240ml"
    aesthetic: str = "Natural, botanical illustration, clean"
    color_palette: str = "Teal, white, with floral accents"


@dataclass(slots=True)
class Dimensions:
    """Physical label size in inches."""

    shape: LabelShape = LabelShape.RECTANGULAR
    width: float = 8.0
    height: float = 3.5


@dataclass(slots=True)
class LabelPlacement:
    """Rotation in degrees and offsets in percent from the container centre."""

    rotation: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def is_default(self) -> bool:
        return self.rotation == 0 and self.offset_x == 0 and self.offset_y == 0


@dataclass(slots=True)
class Packaging:
    """Container used for mockup renders."""

    preset: PackagingPreset = PackagingPreset.SHAMPOO_BOTTLE
    finish: str = "glossy"
    height: float = 7.0
    diameter: float = 2.5
    placement: LabelPlacement = field(default_factory=LabelPlacement)


@dataclass(slots=True)
class FormState:
    """All user inputs for one design session."""

    label: LabelFields = field(default_factory=LabelFields)
    dimensions: Dimensions = field(default_factory=Dimensions)
    packaging: Packaging = field(default_factory=Packaging)
    logo: Optional[ImageData] = None
    mockup_view: MockupView = MockupView.FRONT

    def update_label(self, **changes: Any) -> None:
        self.label = _apply(self.label, changes)

    def update_dimensions(self, **changes: Any) -> None:
        self.dimensions = _apply(self.dimensions, changes)

    def update_packaging(self, **changes: Any) -> None:
        self.packaging = _apply(self.packaging, changes, skip=("placement",))

    def update_placement(self, **changes: Any) -> None:
        self.packaging.placement = _apply(self.packaging.placement, changes)

    def set_mockup_view(self, view: MockupView | str) -> None:
        self.mockup_view = _coerce("mockup_view", MockupView, view)


def _coerce(name: str, expected: Type[Any], value: Any) -> Any:
    if isinstance(expected, type) and issubclass(expected, Enum):
        try:
            return expected(value)
        except ValueError as exc:
            raise InputError(f"Invalid value for {name}: {value!r}") from exc
    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InputError(f"{name} must be a number, got {value!r}")
        return float(value)
    if expected is str:
        if not isinstance(value, str):
            raise InputError(f"{name} must be text, got {value!r}")
        return value
    return value


_FIELD_TYPES: Dict[str, Type[Any]] = {
    "str": str,
    "float": float,
    "LabelShape": LabelShape,
    "PackagingPreset": PackagingPreset,
    "MockupView": MockupView,
}


def _apply(target: Any, changes: Dict[str, Any], skip: tuple[str, ...] = ()) -> Any:
    """Return a copy of ``target`` with type-checked field changes."""
    known = {item.name: item for item in fields(target)}
    coerced: Dict[str, Any] = {}
    for name, value in changes.items():
        if name not in known or name in skip:
            raise InputError(f"Unknown field '{name}' for {type(target).__name__}")
        # Annotations are strings under postponed evaluation.
        expected = _FIELD_TYPES.get(str(known[name].type), object)
        coerced[name] = _coerce(name, expected, value)
    return replace(target, **coerced)
