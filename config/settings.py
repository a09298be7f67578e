"""Configuration helpers for the label studio project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

MAX_VARIATIONS = 8


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    gemini_key: Optional[str] = None
    image_model: str = "gemini-2.5-flash-image-preview"
    text_model: str = "gemini-2.5-flash"
    swatch_model: str = "imagen-4.0-generate-001"
    use_palette_swatch: bool = True
    request_timeout: float = 120.0
    variation_count: int = 3
    log_dir: Path = Path("logs")
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _env_float(name: str, default: float) -> float:
    """Parse a non-negative float; ``0`` is kept so callers can read it as "no limit"."""
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def clamp_variation_count(count: int) -> int:
    """Keep the variation batch within 1..MAX_VARIATIONS."""
    return max(1, min(int(count), MAX_VARIATIONS))


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()
    metadata: dict[str, Any] = {}
    api_base_url = os.getenv("GEMINI_BASE_URL")
    if api_base_url:
        metadata["gemini_base_url"] = api_base_url

    return AppConfig(
        gemini_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        image_model=os.getenv("GEMINI_IMAGE_MODEL") or defaults.image_model,
        text_model=os.getenv("GEMINI_TEXT_MODEL") or defaults.text_model,
        swatch_model=os.getenv("GEMINI_SWATCH_MODEL") or defaults.swatch_model,
        use_palette_swatch=_env_flag("USE_PALETTE_SWATCH", defaults.use_palette_swatch),
        request_timeout=_env_float("REQUEST_TIMEOUT", defaults.request_timeout),
        variation_count=clamp_variation_count(_env_int("VARIATION_COUNT", defaults.variation_count)),
        log_dir=Path(os.getenv("LOG_DIR", "logs")).expanduser(),
        metadata=metadata,
    )
