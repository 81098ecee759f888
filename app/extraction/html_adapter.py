from html.parser import HTMLParser

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError

_BLOCK_TAGS = frozenset(
    {"br", "p", "div", "tr", "li", "h1", "h2", "h3", "h4", "h5", "h6", "table", "section"}
)
_CELL_TAGS = frozenset({"td", "th"})
_SKIPPED_TAGS = frozenset({"script", "style", "head", "title", "noscript"})


class _InvoiceHtmlParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._lines: list[list[str]] = [[]]
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in _BLOCK_TAGS:
            self._new_line()

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _BLOCK_TAGS:
            self._new_line()
        elif tag in _CELL_TAGS:
            self._lines[-1].append(" ")

    def handle_data(self, data: str) -> None:
        if self._skip_depth == 0:
            self._lines[-1].append(data)

    def _new_line(self) -> None:
        if self._lines[-1]:
            self._lines.append([])

    def text(self) -> str:
        rendered = (" ".join("".join(parts).split()) for parts in self._lines)
        return "\n".join(line for line in rendered if line)


class HtmlTextAdapter(BaseTextExtractor):
    """Extracts visible text from e-mailed HTML invoices, one table row per line."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def extract(self, document_bytes: bytes) -> str:
        try:
            markup = document_bytes.decode(self._encoding, errors="replace")
            parser = _InvoiceHtmlParser()
            parser.feed(markup)
            parser.close()
        except Exception as exc:
            raise TextExtractionError(f"HTML extraction failed: {exc}") from exc
        return parser.text()
