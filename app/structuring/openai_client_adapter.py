import httpx
import openai

from app.logging.logger import Log
from app.structuring.client_base import BaseStructuringClient, ChatRequest
from app.structuring.exceptions import StructuringError, StructuringNetworkError


class OpenAIClientAdapter(BaseStructuringClient):
    """Chat client for OpenAI and OpenAI-compatible endpoints (Ollama, vLLM, Azure)."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        # the job queue owns retries
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def complete(self, request: ChatRequest) -> str:
        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": request.schema_name,
                "strict": True,
                "schema": request.json_schema,
            },
        }
        try:
            response = self._client.chat.completions.create(
                model=request.model,
                temperature=request.temperature,
                response_format=response_format,
                messages=[
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_prompt},
                ],
            )
        except openai.AuthenticationError as exc:
            raise StructuringNetworkError(f"Model provider rejected the API key: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise StructuringNetworkError(f"Model provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise StructuringNetworkError(f"Model provider API error: {exc}") from exc

        if response.usage is not None:
            Log.debug(
                "Model usage",
                model=request.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        if not response.choices:
            raise StructuringError("Model returned no choices")
        choice = response.choices[0]
        if choice.finish_reason == "length":
            raise StructuringError("Model response was truncated")
        if choice.message.content is None:
            raise StructuringError("Model returned an empty response")
        return choice.message.content
