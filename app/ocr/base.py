import time
from abc import ABC, abstractmethod
from typing import ClassVar

from app.logging.logger import Log
from app.ocr.exceptions import OcrDocumentError, UnsupportedDocumentTypeError
from app.ocr.models import DocumentType, OcrProcessingResult, ReceiptData


class BaseOcrProvider(ABC):
    """Contract for all OCR providers.

    Subclasses implement ``_extract``. Known document problems are raised as
    ``OcrDocumentError`` and reported as an unsuccessful result; infrastructure
    failures (``OcrInfrastructureError``) propagate to the caller so the job can
    be retried.
    """

    name: ClassVar[str]
    supported_types: ClassVar[frozenset[DocumentType]]

    def process_document(
        self, data: bytes, document_type: DocumentType
    ) -> OcrProcessingResult:
        started = time.monotonic()
        try:
            if not self.supports_document_type(document_type):
                raise UnsupportedDocumentTypeError(
                    f"Provider '{self.name}' does not support {document_type.value}"
                )
            receipt = self._extract(data, document_type)
        except (OcrDocumentError, UnsupportedDocumentTypeError) as exc:
            elapsed = self._elapsed_ms(started)
            Log.warning(
                f"OCR provider '{self.name}' could not read document: {exc}",
                document_type=document_type.value,
            )
            return OcrProcessingResult(
                success=False,
                provider_name=self.name,
                document_type=document_type,
                processing_time_ms=elapsed,
                error=str(exc),
            )

        elapsed = self._elapsed_ms(started)
        Log.info(
            f"OCR provider '{self.name}' extracted {len(receipt.line_items)} line items",
            document_type=document_type.value,
            confidence=round(receipt.confidence, 2),
            elapsed_ms=elapsed,
        )
        return OcrProcessingResult(
            success=True,
            provider_name=self.name,
            document_type=document_type,
            processing_time_ms=elapsed,
            data=receipt,
        )

    def supports_document_type(self, document_type: DocumentType) -> bool:
        return document_type in self.supported_types

    @abstractmethod
    def is_available(self) -> bool:
        """Return True when the provider is configured for use.

        This is a configuration check only; it does not contact remote services.
        """

    @abstractmethod
    def _extract(self, data: bytes, document_type: DocumentType) -> ReceiptData:
        """Turn raw document bytes into structured receipt data.

        Raises:
            OcrDocumentError: the document cannot be read.
            OcrInfrastructureError: the underlying engine or service failed.
        """

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
