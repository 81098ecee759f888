"""Merchant name patterns used to classify the kind of shop."""

import re

from app.analysis.models import DocumentFormat

_FLAGS = re.IGNORECASE

# Checked in this order; the first family with a hit wins.
MERCHANT_PATTERNS: tuple[tuple[DocumentFormat, tuple[re.Pattern[str], ...]], ...] = (
    (
        DocumentFormat.SUPERMARKET,
        tuple(
            re.compile(p, _FLAGS)
            for p in (
                r"carrefour",
                r"leclerc",
                r"auchan",
                r"intermarch[ée]",
                r"super\s*u\b",
                r"hyper\s*u\b",
                r"syst[èe]me\s*u",
                r"casino",
                r"monoprix",
                r"franprix",
                r"\blidl\b",
                r"\baldi\b",
                r"cora\b",
            )
        ),
    ),
    (
        DocumentFormat.GROCERY,
        tuple(
            re.compile(p, _FLAGS)
            for p in (
                r"[ée]picerie",
                r"alimentation",
                r"primeur",
                r"bio\s*c",
                r"naturalia",
                r"biocoop",
            )
        ),
    ),
    (
        DocumentFormat.RESTAURANT,
        tuple(
            re.compile(p, _FLAGS)
            for p in (
                r"restaurant",
                r"brasserie",
                r"caf[ée]\b",
                r"bistrot",
                r"mcdonald",
                r"\bkfc\b",
                r"burger\s*king",
            )
        ),
    ),
)


def detect_document_format(merchant_name: str | None) -> DocumentFormat:
    if not merchant_name:
        return DocumentFormat.UNKNOWN
    for document_format, patterns in MERCHANT_PATTERNS:
        if any(pattern.search(merchant_name) for pattern in patterns):
            return document_format
    return DocumentFormat.UNKNOWN
