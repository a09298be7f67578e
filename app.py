"""Application entry point for the label studio project."""

from __future__ import annotations

from typing import Optional

from config.settings import load_config
from modules.pipelines.gemini_service import GeminiGenerationService
from modules.services.form_state import FormState
from modules.services.orchestrator import DesignOrchestrator
from modules.utils.logging import setup_logging


def create_session(config_path: Optional[str] = None, form: Optional[FormState] = None) -> DesignOrchestrator:
    """Load configuration and return a fresh design session bound to Gemini."""
    config = load_config(config_path)
    logger = setup_logging(config)
    service = GeminiGenerationService(config)
    logger.info(
        "design session ready (image model=%s, text model=%s)", config.image_model, config.text_model
    )
    return DesignOrchestrator(service, form=form, config=config)


if __name__ == "__main__":
    session = create_session()
    print(session.view())
