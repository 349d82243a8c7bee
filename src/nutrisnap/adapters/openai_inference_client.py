"""OpenAI Responses API client for multimodal inference."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from nutrisnap.domain.errors import InferenceUnavailable, MalformedInferenceResponse
from nutrisnap.services.interpreter import InferenceClient


@dataclass
class OpenAIInferenceClient(InferenceClient):
    """Inference client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    store: bool = False
    reasoning_effort: str | None = None

    @classmethod
    def create(
        cls, api_key: str, store: bool = False, reasoning_effort: str | None = None
    ) -> "OpenAIInferenceClient":
        """Create an OpenAI inference client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            store=store,
            reasoning_effort=reasoning_effort,
        )

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str | None,
        max_output_tokens: int,
        temperature: float,
    ) -> str:
        """Call OpenAI Responses API and return the output text."""
        content: list[dict[str, object]] = [{"type": "input_text", "text": prompt}]
        if image_data_url is not None:
            content.append({"type": "input_image", "image_url": image_data_url})
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "max_output_tokens": max_output_tokens,
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}
        else:
            request_payload["temperature"] = temperature

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.RateLimitError as exc:
            raise InferenceUnavailable("API quota exceeded") from exc
        except openai.APITimeoutError as exc:
            raise InferenceUnavailable("Analysis timed out") from exc
        except openai.APIError as exc:
            raise InferenceUnavailable(f"Inference request failed: {exc}") from exc
        output_text = response.output_text
        if not output_text:
            raise MalformedInferenceResponse("OpenAI returned an empty response")
        return output_text
