import re

STOP_WORDS: frozenset[str] = frozenset(
    {
        "le", "la", "les", "un", "une", "des", "du", "de", "et", "ou",
        "avec", "sans", "bio", "frais", "surgelé", "surgelée", "surgele",
        "kg", "g", "l", "ml", "cl", "pièce", "piece", "pc", "unité", "unite",
        "lot", "pack", "x",
    }
)

_NON_WORD = re.compile(r"[^\w]")
_DIGITS = re.compile(r"^\d+$")


def extract_keywords(text: str) -> list[str]:
    """Significant words of ``text``, in order: at least 3 characters, no stop words, no numbers."""
    keywords: list[str] = []
    for word in text.lower().split():
        word = _NON_WORD.sub("", word)
        if len(word) < 3 or word in STOP_WORDS or _DIGITS.match(word):
            continue
        keywords.append(word)
    return keywords
