"""Label analysis service using vision LLMs."""

import base64
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from slop_spot.domain.errors import InferenceError, InputContractViolation
from slop_spot.domain.scans import LabelAnalysis

LABEL_PROMPT = (
    "Analyze this food/beverage/product label. "
    "Extract the product name and all ingredients. "
    "For each ingredient, rate it from 0-100 based on health impact "
    "(100 = excellent, 0 = very harmful). "
    "Provide a brief explanation of health impact and, where available, "
    "citations from sources such as FDA, NIH, WHO or PubMed. "
    "Then calculate an overall score (average of all ingredient ratings)."
)

_CITATION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "url": {"type": "string"},
        "source": {"type": "string"},
    },
    "required": ["title", "url", "source"],
    "additionalProperties": False,
}

LABEL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "product_name": {"type": "string"},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "rating": {"type": "number", "minimum": 0, "maximum": 100},
                    "health_impact": {"type": "string"},
                    "explanation": {"type": "string"},
                    "citations": {"type": "array", "items": _CITATION_SCHEMA},
                },
                "required": [
                    "name",
                    "rating",
                    "health_impact",
                    "explanation",
                    "citations",
                ],
                "additionalProperties": False,
            },
        },
        "overall_score": {"type": "number", "minimum": 0, "maximum": 100},
    },
    "required": ["product_name", "ingredients", "overall_score"],
    "additionalProperties": False,
}

_RANGE_ERRORS = {"greater_than_equal", "less_than_equal"}


class LabelAnalysisClient(Protocol):
    """Interface for LLM label analysis."""

    async def analyze(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured label analysis data."""


@dataclass
class LabelAnalysisService:
    """Service that prepares label prompts and validates results."""

    client: LabelAnalysisClient
    model: str
    reasoning_effort: str | None

    async def analyze(self, image_bytes: bytes) -> LabelAnalysis:
        """Extract and rate the ingredients on a product label image."""
        raw = await self.client.analyze(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            image_data_url=to_data_url(image_bytes),
            schema=LABEL_SCHEMA,
            prompt=LABEL_PROMPT,
        )
        return parse_analysis(raw)


def parse_analysis(raw: dict[str, object]) -> LabelAnalysis:
    """Validate raw model output.

    Out-of-range ratings are a contract violation and are never clamped;
    any other shape problem means the response is unusable.
    """
    try:
        return LabelAnalysis.model_validate(raw)
    except ValidationError as exc:
        if any(error["type"] in _RANGE_ERRORS for error in exc.errors()):
            raise InputContractViolation(
                f"Analysis rating out of bounds: {exc}"
            ) from exc
        raise InferenceError(f"Malformed analysis response: {exc}") from exc


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
