"""Snapshot types stored in the design history."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True, slots=True)
class ImageData:
    """Opaque image handle: raw bytes plus their MIME type."""

    data: bytes
    mime_type: str = "image/png"

    def __repr__(self) -> str:
        return f"ImageData(mime_type={self.mime_type!r}, size={len(self.data)})"


@dataclass(frozen=True, slots=True)
class MockupImages:
    """Front and back packaging renders."""

    front: Optional[ImageData] = None
    back: Optional[ImageData] = None

    @property
    def any(self) -> bool:
        return self.front is not None or self.back is not None


@dataclass(frozen=True, slots=True)
class DesignSnapshot:
    """One history entry: the flat label and any mockups derived from it."""

    label_image: Optional[ImageData] = None
    mockup_images: MockupImages = field(default_factory=MockupImages)

    @classmethod
    def from_label(cls, image: ImageData) -> "DesignSnapshot":
        """Fresh snapshot holding only a label; mockups cleared."""
        return cls(label_image=image, mockup_images=MockupImages())

    def with_front(self, image: Optional[ImageData]) -> "DesignSnapshot":
        return replace(self, mockup_images=replace(self.mockup_images, front=image))

    def with_back(self, image: Optional[ImageData]) -> "DesignSnapshot":
        return replace(self, mockup_images=replace(self.mockup_images, back=image))

    def with_mockups(self, front: Optional[ImageData], back: Optional[ImageData]) -> "DesignSnapshot":
        return replace(self, mockup_images=MockupImages(front=front, back=back))


EMPTY_DESIGN = DesignSnapshot()
