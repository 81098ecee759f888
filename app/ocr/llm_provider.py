from dataclasses import replace
from typing import ClassVar

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError
from app.ocr.base import BaseOcrProvider
from app.ocr.exceptions import OcrDocumentError, OcrInfrastructureError
from app.ocr.image_reader import TesseractImageReader
from app.ocr.models import DocumentType, ReceiptData
from app.structuring.base import BaseReceiptStructurer
from app.structuring.exceptions import StructuringError, StructuringNetworkError


class LlmOcrProvider(BaseOcrProvider):
    """Raw text from tesseract or the invoice extractors, structured by a chat model."""

    name: ClassVar[str] = "llm"
    supported_types: ClassVar[frozenset[DocumentType]] = frozenset(DocumentType)

    def __init__(
        self,
        *,
        structurer: BaseReceiptStructurer,
        image_reader: TesseractImageReader,
        extractors: dict[DocumentType, BaseTextExtractor],
        configured: bool,
    ) -> None:
        self._structurer = structurer
        self._image_reader = image_reader
        self._extractors = extractors
        self._configured = configured

    def is_available(self) -> bool:
        return self._configured

    def supports_document_type(self, document_type: DocumentType) -> bool:
        if document_type is DocumentType.RECEIPT_IMAGE:
            return self._image_reader.is_available()
        return document_type in self._extractors

    def _extract(self, data: bytes, document_type: DocumentType) -> ReceiptData:
        text = self._read_text(data, document_type)
        if not text.strip():
            raise OcrDocumentError("No text found in document")
        try:
            receipt = self._structurer.structure(text)
        except StructuringNetworkError as exc:
            raise OcrInfrastructureError(str(exc)) from exc
        except StructuringError as exc:
            raise OcrDocumentError(f"Model output rejected: {exc}") from exc
        payload = dict(receipt.raw_provider_payload or {})
        payload["extracted_text"] = text
        return replace(receipt, raw_provider_payload=payload)

    def _read_text(self, data: bytes, document_type: DocumentType) -> str:
        if document_type is DocumentType.RECEIPT_IMAGE:
            return self._image_reader.read(data)
        try:
            return self._extractors[document_type].extract(data)
        except TextExtractionError as exc:
            raise OcrDocumentError(str(exc)) from exc
