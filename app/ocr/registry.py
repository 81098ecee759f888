from dataclasses import dataclass

from app.logging.logger import Log
from app.ocr.base import BaseOcrProvider
from app.ocr.exceptions import (
    OcrInfrastructureError,
    ProviderUnavailableError,
    UnsupportedDocumentTypeError,
)
from app.ocr.models import DocumentType, OcrProcessingResult


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    available: bool
    supported_types: list[DocumentType]


class OcrProviderRegistry:
    """Holds the OCR providers and picks one per document.

    Selection: the default provider when it is available and supports the
    document type, otherwise the first registered provider that does. With
    fallback enabled, an unsuccessful result (or an infrastructure error from a
    provider that is not the last candidate) moves on to the next candidate.
    """

    def __init__(
        self,
        providers: list[BaseOcrProvider],
        *,
        default_provider: str,
        enable_fallback: bool = False,
    ) -> None:
        self._providers = {provider.name: provider for provider in providers}
        self._default_provider = default_provider
        self._enable_fallback = enable_fallback

    @property
    def default_provider(self) -> str:
        return self._default_provider

    def get(self, name: str) -> BaseOcrProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderUnavailableError(
                f"OCR provider '{name}' not found. Registered: {list(self._providers)}"
            )
        return provider

    def candidates(self, document_type: DocumentType) -> list[BaseOcrProvider]:
        """Available providers supporting ``document_type``, default first."""
        ordered = sorted(
            self._providers.values(),
            key=lambda provider: provider.name != self._default_provider,
        )
        return [
            provider
            for provider in ordered
            if provider.is_available() and provider.supports_document_type(document_type)
        ]

    def select(self, document_type: DocumentType) -> BaseOcrProvider:
        candidates = self.candidates(document_type)
        if not candidates:
            raise UnsupportedDocumentTypeError(
                f"No available OCR provider supports {document_type.value}"
            )
        return candidates[0]

    def process_document(self, data: bytes, document_type: DocumentType) -> OcrProcessingResult:
        """Run the selected provider, then the remaining candidates when fallback is on.

        Empty input and a document type no provider supports come back as
        ``success=False``. Only an infrastructure error from the last candidate raises.
        """
        if not data:
            return self._rejected(self._default_provider, document_type, "Empty document")

        candidates = self.candidates(document_type)
        if not candidates:
            return self._rejected(
                self._default_provider,
                document_type,
                f"No available OCR provider supports {document_type.value}",
            )
        if not self._enable_fallback:
            candidates = candidates[:1]

        *fallbacks, last = candidates
        for provider in fallbacks:
            try:
                result = provider.process_document(data, document_type)
            except OcrInfrastructureError as exc:
                Log.warning(f"OCR provider '{provider.name}' failed, trying next: {exc}")
                continue
            if result.success:
                return result
            Log.warning(
                f"OCR provider '{provider.name}' unsuccessful, trying next: {result.error}"
            )
        return last.process_document(data, document_type)

    def process_with_provider(
        self, data: bytes, document_type: DocumentType, name: str
    ) -> OcrProcessingResult:
        """Run one named provider, bypassing selection and fallback."""
        provider = self.get(name)
        if not provider.is_available():
            raise ProviderUnavailableError(f"OCR provider '{name}' is not configured")
        if not data:
            return self._rejected(name, document_type, "Empty document")
        return provider.process_document(data, document_type)

    @staticmethod
    def _rejected(
        provider_name: str, document_type: DocumentType, error: str
    ) -> OcrProcessingResult:
        Log.warning(f"OCR rejected document: {error}", document_type=document_type.value)
        return OcrProcessingResult(
            success=False,
            provider_name=provider_name,
            document_type=document_type,
            error=error,
        )

    def providers_info(self) -> list[ProviderInfo]:
        return [
            ProviderInfo(
                name=provider.name,
                available=provider.is_available(),
                supported_types=[t for t in DocumentType if provider.supports_document_type(t)],
            )
            for provider in self._providers.values()
        ]
