from typing import ClassVar

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError
from app.ocr.base import BaseOcrProvider
from app.ocr.exceptions import OcrDocumentError
from app.ocr.models import DocumentType, ReceiptData
from app.ocr.text_parser import parse_receipt_text


class InvoiceTextProvider(BaseOcrProvider):
    """Reads born-digital PDF and HTML invoices from their embedded text."""

    name: ClassVar[str] = "pdf-text"
    supported_types: ClassVar[frozenset[DocumentType]] = frozenset(
        {DocumentType.INVOICE_PDF, DocumentType.INVOICE_HTML}
    )

    ITEM_CONFIDENCE = 0.8

    def __init__(self, extractors: dict[DocumentType, BaseTextExtractor]) -> None:
        self._extractors = extractors

    def is_available(self) -> bool:
        return bool(self._extractors)

    def supports_document_type(self, document_type: DocumentType) -> bool:
        return document_type in self.supported_types and document_type in self._extractors

    def _extract(self, data: bytes, document_type: DocumentType) -> ReceiptData:
        try:
            text = self._extractors[document_type].extract(data)
        except TextExtractionError as exc:
            raise OcrDocumentError(str(exc)) from exc
        if not text:
            raise OcrDocumentError("Document contains no extractable text")
        return parse_receipt_text(text, item_confidence=self.ITEM_CONFIDENCE, invoice=True)
