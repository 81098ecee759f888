from typing import ClassVar

from app.config.settings import Settings
from app.structuring.base import BaseReceiptStructurer
from app.structuring.example_client_adapter import ExampleClientAdapter
from app.structuring.openai_client_adapter import OpenAIClientAdapter
from app.structuring.structurer import ReceiptStructurer


class StructurerFactory:
    """Creates the configured receipt structurer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def supported_providers(cls) -> list[str]:
        return ["example", "openai", "openai_compatible", *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS)]

    @classmethod
    def is_configured(cls, settings: Settings) -> bool:
        """True when the provider can be built without contacting it."""
        provider = settings.llm_provider.lower()
        if provider == "example":
            return True
        if provider not in cls.supported_providers() or not settings.llm_model_name:
            return False
        if provider == "ollama":
            return True
        if provider == "openai_compatible" and not settings.llm_base_url.strip():
            return False
        return bool(settings.llm_api_key)

    @classmethod
    def create(cls, settings: Settings) -> BaseReceiptStructurer:
        provider = settings.llm_provider.lower()
        if provider == "example":
            return ReceiptStructurer(client=ExampleClientAdapter(), model="example")
        client = OpenAIClientAdapter(
            api_key=settings.llm_api_key or "not-needed",
            timeout_seconds=settings.llm_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return ReceiptStructurer(
            client=client,
            model=settings.llm_model_name,
            temperature=settings.llm_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.llm_base_url.strip()
            if not url:
                raise ValueError("llm_base_url is required for llm_provider=openai_compatible")
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        raise ValueError(
            f"Unknown LLM provider '{provider}'. Choose from: {cls.supported_providers()}"
        )
