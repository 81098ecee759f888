"""Language-model receipt structurer."""

import json
from pathlib import Path

from app.logging.logger import Log
from app.ocr.models import ReceiptData
from app.structuring.base import BaseReceiptStructurer
from app.structuring.client_base import BaseStructuringClient, ChatRequest
from app.structuring.exceptions import StructuringError
from app.structuring.prompt_loader import load_json_schema, load_prompt_template
from app.structuring.validator import validate_and_build

_DEFAULT_SYSTEM_PROMPT = "You extract structured purchase data from receipts. Answer with JSON only."


class ReceiptStructurer(BaseReceiptStructurer):
    """Structures noisy receipt text into ReceiptData with a chat model."""

    def __init__(
        self,
        *,
        client: BaseStructuringClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = _DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        self._json_schema = load_json_schema(json_schema_path)
        self._json_schema_dict = json.loads(self._json_schema)

    def structure(self, text: str) -> ReceiptData:
        prompt = self._prompt_template.format(
            receipt_text=text,
            json_schema=self._json_schema,
        )
        Log.debug(f"Structuring prompt:\n{prompt}")

        raw_response = self._client.complete(
            ChatRequest(
                model=self._model,
                system_prompt=self._system_prompt,
                user_prompt=prompt,
                json_schema=self._json_schema_dict,
                temperature=self._temperature,
            )
        )
        Log.debug(f"Model raw response:\n{raw_response}")

        receipt = validate_and_build(self._parse_json(raw_response))
        Log.info(f"Structuring complete: {len(receipt.line_items)} line items")
        return receipt

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise StructuringError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise StructuringError("JSON response must be an object")
        return parsed
