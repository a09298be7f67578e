"""Structured-output schemas for JSON responses from the text model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from google.genai import types

from modules.errors import ValidationError
from modules.services.form_state import PackagingPreset

_GENAI_TYPES = {
    "string": types.Type.STRING,
    "number": types.Type.NUMBER,
}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One required key of an object schema."""

    name: str
    kind: str  # "string" or "number"
    description: str = ""


@dataclass(frozen=True, slots=True)
class OutputSchema:
    """Expected response shape: an array of strings, or an object of typed fields."""

    kind: str  # "string_array" or "object"
    fields: Tuple[FieldSpec, ...] = field(default_factory=tuple)

    def to_genai(self) -> types.Schema:
        """Translate into the schema declared on the request."""
        if self.kind == "string_array":
            return types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))
        return types.Schema(
            type=types.Type.OBJECT,
            properties={
                spec.name: types.Schema(type=_GENAI_TYPES[spec.kind], description=spec.description or None)
                for spec in self.fields
            },
            required=[spec.name for spec in self.fields],
        )

    def validate(self, data: Any) -> Any:
        """Return ``data`` if it matches, else raise ValidationError."""
        if self.kind == "string_array":
            if not isinstance(data, list):
                raise ValidationError("expected a JSON array of strings")
            if not all(isinstance(item, str) for item in data):
                raise ValidationError("array contains non-string items")
            return data

        if not isinstance(data, dict):
            raise ValidationError("expected a JSON object")
        for spec in self.fields:
            if spec.name not in data:
                raise ValidationError(f"missing required key '{spec.name}'")
            value = data[spec.name]
            if spec.kind == "string" and not isinstance(value, str):
                raise ValidationError(f"'{spec.name}' must be a string")
            if spec.kind == "number" and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValidationError(f"'{spec.name}' must be a number")
        return data

    def parse(self, text: Optional[str]) -> Any:
        """Decode model output text and validate it."""
        cleaned = strip_code_fence(text or "")
        if not cleaned:
            raise ValidationError("empty response")
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"response is not valid JSON: {exc.msg}") from exc
        return self.validate(data)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned
    lines = cleaned.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


STRING_LIST_SCHEMA = OutputSchema(kind="string_array")

PACKAGING_SCHEMA = OutputSchema(
    kind="object",
    fields=(
        FieldSpec("preset", "string", "The type of packaging container."),
        FieldSpec("finish", "string", "The surface finish of the container."),
        FieldSpec("height", "number", "The height of the container in inches."),
        FieldSpec("diameter", "number", "The diameter of the container in inches."),
    ),
)


@dataclass(slots=True)
class PackagingSuggestion:
    """Validated packaging fields proposed by the text model."""

    preset: PackagingPreset
    finish: str
    height: float
    diameter: float

    def as_changes(self) -> Dict[str, Any]:
        return {
            "preset": self.preset,
            "finish": self.finish,
            "height": self.height,
            "diameter": self.diameter,
        }


def parse_suggestions(text: Optional[str]) -> List[str]:
    """Parse an array-of-strings response."""
    return list(STRING_LIST_SCHEMA.parse(text))


def parse_packaging(text: Optional[str]) -> PackagingSuggestion:
    """Parse a packaging object response, including the preset literal check."""
    data = PACKAGING_SCHEMA.parse(text)
    try:
        preset = PackagingPreset(data["preset"])
    except ValueError as exc:
        raise ValidationError(f"unknown packaging preset {data['preset']!r}") from exc
    return PackagingSuggestion(
        preset=preset,
        finish=data["finish"],
        height=float(data["height"]),
        diameter=float(data["diameter"]),
    )
