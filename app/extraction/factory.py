from app.config.settings import Settings
from app.extraction.base import BaseTextExtractor
from app.extraction.html_adapter import HtmlTextAdapter
from app.extraction.pdfplumber_adapter import PdfPlumberAdapter
from app.extraction.pymupdf_adapter import PyMuPdfAdapter
from app.ocr.models import DocumentType


class TextExtractorFactory:
    """Creates the text extractor for an invoice document type."""

    PDF_ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings, document_type: DocumentType) -> BaseTextExtractor:
        if document_type is DocumentType.INVOICE_HTML:
            return HtmlTextAdapter()
        if document_type is not DocumentType.INVOICE_PDF:
            raise ValueError(f"No text extractor for document type {document_type.value}")
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.PDF_ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ADAPTERS)}"
            )
        return adapter_cls()

    @classmethod
    def create_all(cls, settings: Settings) -> dict[DocumentType, BaseTextExtractor]:
        """Build one extractor per invoice document type."""
        return {
            DocumentType.INVOICE_PDF: cls.create(settings, DocumentType.INVOICE_PDF),
            DocumentType.INVOICE_HTML: cls.create(settings, DocumentType.INVOICE_HTML),
        }
