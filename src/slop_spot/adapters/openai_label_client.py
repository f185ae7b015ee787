"""OpenAI Responses API client for label analysis."""

import json
from dataclasses import dataclass

from openai import APIError, AsyncOpenAI

from slop_spot.domain.errors import InferenceError
from slop_spot.services.analysis import LabelAnalysisClient


@dataclass
class OpenAILabelAnalysisClient(LabelAnalysisClient):
    """Label analysis client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAILabelAnalysisClient":
        """Create an OpenAI label analysis client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def analyze(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_image", "image_url": image_data_url},
                        {"type": "input_text", "text": prompt},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "label_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": False,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except APIError as exc:
            raise InferenceError(f"OpenAI request failed: {exc}") from exc
        output_text = response.output_text
        if not output_text:
            raise InferenceError("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise InferenceError("OpenAI returned invalid JSON") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
