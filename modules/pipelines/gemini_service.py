"""Generation service backed by the Google GenAI SDK."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config.settings import AppConfig
from modules.errors import ServiceError, ValidationError
from modules.optimization import prompt_templates
from modules.pipelines.schemas import (
    PACKAGING_SCHEMA,
    STRING_LIST_SCHEMA,
    OutputSchema,
    PackagingSuggestion,
    parse_packaging,
    parse_suggestions,
)
from modules.services.design_state import ImageData
from modules.services.form_state import (
    Dimensions,
    LabelFields,
    MockupView,
    Packaging,
    SuggestionField,
)
from modules.utils.image_utils import first_inline_image

logger = logging.getLogger(__name__)


class GenerationService(Protocol):
    """Calls the orchestrator makes against the remote models."""

    async def generate_label(
        self, label: LabelFields, dimensions: Dimensions, logo: Optional[ImageData]
    ) -> ImageData: ...

    async def analyze_and_generate(
        self, reference: ImageData, label: LabelFields, dimensions: Dimensions
    ) -> ImageData: ...

    async def generate_mockup(
        self,
        label_image: ImageData,
        packaging: Packaging,
        view: MockupView,
        front_mockup: Optional[ImageData] = None,
    ) -> ImageData: ...

    async def refine_image(self, image: ImageData, request: str) -> ImageData: ...

    async def suggest_text(self, target: SuggestionField, label: LabelFields) -> List[str]: ...

    async def suggest_packaging(self, label: LabelFields) -> PackagingSuggestion: ...


class GeminiGenerationService:
    """Facade around the Gemini image and text models.

    One attempt per call: no retry, backoff or caching. Timeouts are applied by
    the caller.
    """

    def __init__(self, config: AppConfig, client: Optional[Any] = None) -> None:
        self.config = config
        self._client = client or self._create_client()

    def _create_client(self) -> Any:
        if not self.config.gemini_key:
            raise ServiceError("GEMINI_API_KEY is not set")
        kwargs: dict[str, Any] = {"api_key": self.config.gemini_key}
        base_url = self.config.metadata.get("gemini_base_url")
        if base_url:
            kwargs["http_options"] = types.HttpOptions(base_url=base_url)
        return genai.Client(**kwargs)

    # Primitive calls ----------------------------------------------------------
    async def generate_image(
        self,
        prompt: str,
        references: Sequence[ImageData] = (),
        failure_message: str = "The AI did not return an image.",
    ) -> ImageData:
        """Send reference images plus prompt text; return the first image part."""
        parts = [types.Part.from_bytes(data=image.data, mime_type=image.mime_type) for image in references]
        parts.append(types.Part.from_text(text=prompt))
        try:
            response = await self._client.aio.models.generate_content(
                model=self.config.image_model,
                contents=types.Content(role="user", parts=parts),
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        except genai_errors.APIError as exc:
            raise ServiceError(f"Image request failed: {exc}") from exc

        image = first_inline_image(response)
        if image is None:
            raise ServiceError(failure_message)
        return image

    async def generate_structured(self, prompt: str, schema: OutputSchema) -> str:
        """Request JSON output declared by ``schema``; return the raw reply text."""
        try:
            response = await self._client.aio.models.generate_content(
                model=self.config.text_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema.to_genai(),
                ),
            )
        except genai_errors.APIError as exc:
            raise ServiceError(f"Text request failed: {exc}") from exc
        return response.text or ""

    async def palette_swatch(self, label: LabelFields) -> Optional[ImageData]:
        """Solid colour block used to steer the palette when no logo is given."""
        try:
            response = await self._client.aio.models.generate_images(
                model=self.config.swatch_model,
                prompt=prompt_templates.palette_swatch_prompt(label),
                config=types.GenerateImagesConfig(number_of_images=1),
            )
        except genai_errors.APIError as exc:
            logger.warning("palette swatch skipped: %s", exc)
            return None
        generated = getattr(response, "generated_images", None) or []
        if not generated or generated[0].image is None or not generated[0].image.image_bytes:
            logger.info("palette swatch skipped: no image returned")
            return None
        image = generated[0].image
        return ImageData(data=image.image_bytes, mime_type=image.mime_type or "image/png")

    # Label operations --------------------------------------------------------
    async def generate_label(
        self, label: LabelFields, dimensions: Dimensions, logo: Optional[ImageData]
    ) -> ImageData:
        references: List[ImageData] = []
        if logo is not None:
            references.append(logo)
        elif self.config.use_palette_swatch:
            swatch = await self.palette_swatch(label)
            if swatch is not None:
                references.append(swatch)
        return await self.generate_image(
            prompt_templates.label_prompt(label, dimensions, has_logo=logo is not None),
            references,
            failure_message="Could not generate label image. The AI did not return an image.",
        )

    async def analyze_and_generate(
        self, reference: ImageData, label: LabelFields, dimensions: Dimensions
    ) -> ImageData:
        return await self.generate_image(
            prompt_templates.style_conditioned_prompt(label, dimensions),
            [reference],
            failure_message="Could not generate a similar design. The AI did not return an image.",
        )

    async def generate_mockup(
        self,
        label_image: ImageData,
        packaging: Packaging,
        view: MockupView,
        front_mockup: Optional[ImageData] = None,
    ) -> ImageData:
        """Render one side of the container; ``view`` must be FRONT or BACK."""
        if view is MockupView.FRONT:
            prompt = prompt_templates.mockup_front_prompt(packaging)
            reference = label_image
        elif view is MockupView.BACK and front_mockup is not None:
            prompt = prompt_templates.mockup_back_with_context_prompt(packaging)
            reference = front_mockup
        elif view is MockupView.BACK:
            prompt = prompt_templates.mockup_back_prompt(packaging)
            reference = label_image
        else:
            raise ValueError(f"generate_mockup renders one side at a time, got {view.value!r}")
        return await self.generate_image(
            prompt,
            [reference],
            failure_message="Could not generate mockup image. The AI did not return an image.",
        )

    async def refine_image(self, image: ImageData, request: str) -> ImageData:
        return await self.generate_image(
            prompt_templates.refine_prompt(request),
            [image],
            failure_message="Could not refine image. The AI did not return an image.",
        )

    # Suggestions -------------------------------------------------------------
    async def suggest_text(self, target: SuggestionField, label: LabelFields) -> List[str]:
        text = await self.generate_structured(
            prompt_templates.suggestion_prompt(target, label), STRING_LIST_SCHEMA
        )
        try:
            return parse_suggestions(text)
        except ValidationError as exc:
            logger.warning("text suggestions rejected: %s", exc)
            raise ValidationError(
                "Could not generate suggestions. The AI failed to return a valid response."
            ) from exc

    async def suggest_packaging(self, label: LabelFields) -> PackagingSuggestion:
        text = await self.generate_structured(prompt_templates.packaging_prompt(label), PACKAGING_SCHEMA)
        try:
            return parse_packaging(text)
        except ValidationError as exc:
            logger.warning("packaging suggestion rejected: %s", exc)
            raise ValidationError(
                "Could not generate packaging suggestions. The AI failed to return a valid response."
            ) from exc
