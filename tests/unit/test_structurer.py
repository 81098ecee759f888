import json
from datetime import date
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from app.structuring.client_base import BaseStructuringClient
from app.structuring.example_client_adapter import ExampleClientAdapter
from app.structuring.exceptions import StructuringError, StructuringValidationError
from app.structuring.factory import StructurerFactory
from app.structuring.structurer import ReceiptStructurer
from app.structuring.validator import validate_and_build


def _valid_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = json.loads(json.dumps(ExampleClientAdapter.DEFAULT_RESPONSE))
    payload.update(overrides)
    return payload


def _make_structurer(response: str, temperature: float = 0.0) -> tuple[ReceiptStructurer, MagicMock]:
    client = MagicMock(spec=BaseStructuringClient)
    client.complete.return_value = response
    structurer = ReceiptStructurer(client=client, model="gpt-4o-mini", temperature=temperature)
    return structurer, client


class TestReceiptStructurer:
    def test_structures_model_json(self) -> None:
        structurer, client = _make_structurer(json.dumps(_valid_payload()))

        receipt = structurer.structure("CARREFOUR MARKET\nLAIT 1,29")

        assert receipt.merchant_name == "CARREFOUR MARKET"
        assert [item.description for item in receipt.line_items] == ["LAIT DEMI ECREME 1L", "BAGUETTE"]
        request = client.complete.call_args.args[0]
        assert "CARREFOUR MARKET\nLAIT 1,29" in request.user_prompt
        assert request.json_schema["type"] == "object"
        assert request.model == "gpt-4o-mini"

    @pytest.mark.parametrize(("requested", "used"), [(0.7, 0.2), (-1.0, 0.0), (0.1, 0.1)])
    def test_temperature_is_kept_low(self, requested: float, used: float) -> None:
        structurer, client = _make_structurer(json.dumps(_valid_payload()), temperature=requested)

        structurer.structure("text")

        assert client.complete.call_args.args[0].temperature == used

    def test_strips_markdown_fences(self) -> None:
        fenced = "```json\n" + json.dumps(_valid_payload()) + "\n```"
        structurer, _client = _make_structurer(fenced)

        assert structurer.structure("text").total_amount == 2.79

    def test_invalid_json(self) -> None:
        structurer, _client = _make_structurer("not json")

        with pytest.raises(StructuringError, match="Invalid JSON response"):
            structurer.structure("text")

    def test_json_must_be_object(self) -> None:
        structurer, _client = _make_structurer("[1, 2]")

        with pytest.raises(StructuringError, match="must be an object"):
            structurer.structure("text")


class TestValidateAndBuild:
    @pytest.mark.parametrize("field", ["merchant_name", "total_amount", "line_items"])
    def test_required_fields(self, field: str) -> None:
        payload = _valid_payload()
        del payload[field]

        with pytest.raises(StructuringValidationError, match=f"Missing required top-level field: {field}"):
            validate_and_build(payload)

    def test_parses_iso_date_and_defaults_currency(self) -> None:
        receipt = validate_and_build(_valid_payload(purchase_date="2025-03-14T18:42:00", currency=None))

        assert receipt.purchase_date == date(2025, 3, 14)
        assert receipt.currency == "EUR"

    def test_unparseable_date_is_dropped(self) -> None:
        assert validate_and_build(_valid_payload(purchase_date="14 mars")).purchase_date is None

    def test_confidence_is_clamped(self) -> None:
        assert validate_and_build(_valid_payload(confidence=3)).confidence == 1.0

    def test_boolean_amount_rejected(self) -> None:
        with pytest.raises(StructuringValidationError, match="'total_amount' must be a number"):
            validate_and_build(_valid_payload(total_amount=True))

    def test_line_item_needs_description(self) -> None:
        payload = _valid_payload(line_items=[{"description": "", "confidence": 0.5}])

        with pytest.raises(StructuringValidationError, match="index 0: 'description'"):
            validate_and_build(payload)

    def test_line_item_must_be_object(self) -> None:
        with pytest.raises(StructuringValidationError, match="must be an object"):
            validate_and_build(_valid_payload(line_items=["LAIT"]))

    def test_too_many_line_items(self) -> None:
        items = [{"description": f"item {i}", "confidence": 0.5} for i in range(201)]

        with pytest.raises(StructuringValidationError, match="Too many line items"):
            validate_and_build(_valid_payload(line_items=items))

    def test_keeps_raw_payload(self) -> None:
        payload = _valid_payload()

        assert validate_and_build(payload).raw_provider_payload == payload


def _settings(**overrides: Any) -> MagicMock:
    values: dict[str, Any] = {
        "llm_provider": "openai",
        "llm_api_key": "sk-test",
        "llm_model_name": "gpt-4o-mini",
        "llm_base_url": "",
        "llm_timeout_seconds": 30,
        "llm_temperature": 0.0,
    }
    values.update(overrides)
    return MagicMock(**values)


class TestStructurerFactory:
    def test_example_provider_needs_no_configuration(self) -> None:
        settings = _settings(llm_provider="example", llm_api_key="", llm_model_name="")

        assert StructurerFactory.is_configured(settings)
        assert isinstance(StructurerFactory.create(settings), ReceiptStructurer)

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, True),
            ({"llm_api_key": ""}, False),
            ({"llm_model_name": ""}, False),
            ({"llm_provider": "ollama", "llm_api_key": ""}, True),
            ({"llm_provider": "openai_compatible"}, False),
            ({"llm_provider": "openai_compatible", "llm_base_url": "http://llm:8000/v1"}, True),
            ({"llm_provider": "mystery"}, False),
        ],
    )
    def test_is_configured(self, overrides: dict[str, Any], expected: bool) -> None:
        assert StructurerFactory.is_configured(_settings(**overrides)) is expected

    @patch("app.structuring.factory.OpenAIClientAdapter")
    def test_openai_uses_default_endpoint(self, mock_adapter: MagicMock) -> None:
        StructurerFactory.create(_settings())

        assert mock_adapter.call_args.kwargs["base_url"] is None
        assert mock_adapter.call_args.kwargs["api_key"] == "sk-test"

    @patch("app.structuring.factory.OpenAIClientAdapter")
    def test_known_compatible_provider_url(self, mock_adapter: MagicMock) -> None:
        StructurerFactory.create(_settings(llm_provider="Groq"))

        assert mock_adapter.call_args.kwargs["base_url"] == "https://api.groq.com/openai/v1"

    @patch("app.structuring.factory.OpenAIClientAdapter")
    def test_unknown_provider(self, _mock_adapter: MagicMock) -> None:
        with pytest.raises(ValueError, match="Unknown LLM provider 'mystery'"):
            StructurerFactory.create(_settings(llm_provider="mystery"))

    @patch("app.structuring.factory.OpenAIClientAdapter")
    def test_openai_compatible_requires_base_url(self, _mock_adapter: MagicMock) -> None:
        with pytest.raises(ValueError, match="llm_base_url is required"):
            StructurerFactory.create(_settings(llm_provider="openai_compatible"))

    def test_supported_providers(self) -> None:
        providers = StructurerFactory.supported_providers()

        assert providers[:3] == ["example", "openai", "openai_compatible"]
        assert "ollama" in providers
