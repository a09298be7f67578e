"""One-off script for exercising a design session against the real Gemini API."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from app import create_session
from modules.services.design_state import ImageData


def _save(image: ImageData | None, path: Path) -> None:
    if image is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(image.data)
    print("saved", path)


async def run(output_dir: Path, with_mockup: bool, refine: str | None) -> None:
    # 1. Session wired from .env / environment
    session = create_session()
    session.subscribe(lambda: print("  ..", session.progress_label or "idle"))

    # 2. Label
    await session.generate_label()
    if session.last_error:
        print("[error]", session.last_error)
        return
    _save(session.current_snapshot.label_image, output_dir / "label.png")

    # 3. Optional refine and mockups
    if refine:
        await session.refine(refine)
        if session.last_error:
            print("[error]", session.last_error)
        _save(session.current_snapshot.label_image, output_dir / "label_refined.png")

    if with_mockup:
        session.set_mockup_view("front-back")
        await session.generate_mockup()
        if session.last_error:
            print("[error]", session.last_error)
            return
        mockups = session.current_snapshot.mockup_images
        _save(mockups.front, output_dir / "mockup_front.png")
        _save(mockups.back, output_dir / "mockup_back.png")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a label with the real API.")
    parser.add_argument("--output", type=Path, default=Path("outputs"))
    parser.add_argument("--mockup", action="store_true", help="also render front and back mockups")
    parser.add_argument("--refine", default=None, help="free-text refinement to apply to the label")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(run(args.output, args.mockup, args.refine))
