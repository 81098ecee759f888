from app.config.settings import Settings
from app.extraction.factory import TextExtractorFactory
from app.ocr.base import BaseOcrProvider
from app.ocr.image_reader import TesseractImageReader
from app.ocr.invoice_text_provider import InvoiceTextProvider
from app.ocr.llm_provider import LlmOcrProvider
from app.ocr.registry import OcrProviderRegistry
from app.ocr.tesseract_provider import TesseractOcrProvider
from app.structuring.factory import StructurerFactory


class OcrRegistryFactory:
    """Builds the provider registry from settings."""

    PROVIDER_NAMES = (
        TesseractOcrProvider.name,
        InvoiceTextProvider.name,
        LlmOcrProvider.name,
    )

    @classmethod
    def create(cls, settings: Settings) -> OcrProviderRegistry:
        default = settings.ocr_default_provider.lower()
        if default not in cls.PROVIDER_NAMES:
            raise ValueError(
                f"Unknown OCR provider '{default}'. Choose from: {list(cls.PROVIDER_NAMES)}"
            )
        image_reader = TesseractImageReader(
            tesseract_cmd=settings.tesseract_cmd,
            lang=settings.tesseract_lang,
            timeout_seconds=settings.tesseract_timeout_seconds,
        )
        extractors = TextExtractorFactory.create_all(settings)
        providers: list[BaseOcrProvider] = [
            TesseractOcrProvider(image_reader),
            InvoiceTextProvider(extractors),
        ]
        if StructurerFactory.is_configured(settings):
            providers.append(
                LlmOcrProvider(
                    structurer=StructurerFactory.create(settings),
                    image_reader=image_reader,
                    extractors=extractors,
                    configured=True,
                )
            )
        return OcrProviderRegistry(
            providers,
            default_provider=default,
            enable_fallback=settings.ocr_enable_fallback,
        )
