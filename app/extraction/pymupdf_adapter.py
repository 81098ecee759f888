import pymupdf

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError


class PyMuPdfAdapter(BaseTextExtractor):
    """Extracts invoice text from PDF using PyMuPDF, sorted in reading order."""

    def extract(self, document_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=document_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text("text", sort=True) for page in doc]
        except Exception as exc:
            raise TextExtractionError(f"pymupdf extraction failed: {exc}") from exc
        return "\n".join(pages).strip()
