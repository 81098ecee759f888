"""String similarity helpers used to compare receipt lines with catalog names."""

import math
import re
import unicodedata
from collections import Counter

_COMBINING_MARKS = re.compile(r"[̀-ͯ]")
_PUNCTUATION = re.compile(r"[^\w\s]")
_LIGATURES = str.maketrans({"œ": "oe", "æ": "ae"})
_WHITESPACE = re.compile(r"\s+")

# Ordered: multi-letter groups must be rewritten before their single letters.
_FRENCH_PHONETIC_GROUPS: tuple[tuple[str, str], ...] = (
    ("ph", "f"),
    ("ch", "k"),
    ("qu", "k"),
    ("gu", "g"),
    ("eau", "o"),
    ("au", "o"),
    ("ou", "u"),
    ("ai", "e"),
    ("ei", "e"),
)
_FRENCH_PHONETIC_CODES: tuple[tuple[str, str], ...] = (
    ("aeiouy", "0"),
    ("bpfv", "1"),
    ("cgjkqxz", "2"),
    ("dt", "3"),
    ("l", "4"),
    ("mn", "5"),
    ("rs", "6"),
)


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions or substitutions."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Edit-distance similarity in [0, 1]; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def normalize(text: str) -> str:
    """Lowercase, fold accents and ligatures, turn punctuation into spaces, collapse whitespace."""
    decomposed = unicodedata.normalize("NFD", text.lower().translate(_LIGATURES))
    without_marks = _COMBINING_MARKS.sub("", decomposed)
    without_punctuation = _PUNCTUATION.sub(" ", without_marks)
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def _words(text: str) -> list[str]:
    normalized = normalize(text)
    return normalized.split(" ") if normalized else []


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set overlap of the normalized strings."""
    words_a = set(_words(a))
    words_b = set(_words(b))
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)


def cosine_similarity(a: str, b: str) -> float:
    """Cosine of the word-frequency vectors of the normalized strings."""
    freq_a = Counter(_words(a))
    freq_b = Counter(_words(b))
    norm_a = math.sqrt(sum(count * count for count in freq_a.values()))
    norm_b = math.sqrt(sum(count * count for count in freq_b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    dot = sum(count * freq_b[word] for word, count in freq_a.items())
    return dot / (norm_a * norm_b)


def composite_similarity(a: str, b: str) -> float:
    """Weighted blend: 0.4 edit distance, 0.3 Jaccard, 0.3 cosine."""
    return (
        0.4 * similarity(normalize(a), normalize(b))
        + 0.3 * jaccard_similarity(a, b)
        + 0.3 * cosine_similarity(a, b)
    )


def fuzzy_contains(haystack: str, needle: str, tolerance: float = 0.8) -> bool:
    """True when some window of ``haystack`` resembles ``needle`` within ``tolerance``."""
    text = normalize(haystack)
    target = normalize(needle)
    if not target:
        return True
    if target in text:
        return True
    if len(target) > len(text):
        return similarity(text, target) >= tolerance
    for start in range(len(text) - len(target) + 1):
        window = text[start : start + len(target)]
        if similarity(window, target) >= tolerance:
            return True
    return False


def common_substrings(a: str, b: str, min_length: int = 2) -> list[str]:
    """Distinct substrings of the normalized inputs shared by both, longest first."""
    left = normalize(a)
    right = normalize(b)
    found: set[str] = set()
    for start in range(len(left)):
        for end in range(start + min_length, len(left) + 1):
            candidate = left[start:end]
            if candidate.strip() != candidate:
                continue
            if candidate in right:
                found.add(candidate)
    return sorted(found, key=lambda s: (-len(s), s))


def french_soundex(text: str) -> str:
    """Four-character phonetic key tuned for French spelling (e.g. "P100")."""
    normalized = normalize(text).replace(" ", "")
    if not normalized:
        return ""

    first = normalized[0].upper()
    encoded = normalized
    for group, replacement in _FRENCH_PHONETIC_GROUPS:
        encoded = encoded.replace(group, replacement)

    codes: list[str] = []
    for ch in encoded:
        if ch == "h":
            continue
        code = next((c for letters, c in _FRENCH_PHONETIC_CODES if ch in letters), ch)
        if codes and codes[-1] == code:
            continue
        codes.append(code)

    signature = "".join(c for c in codes[1:] if c.isdigit())[:3]
    return first + signature.ljust(3, "0")


def phonetic_match(a: str, b: str) -> bool:
    key_a = french_soundex(a)
    return bool(key_a) and key_a == french_soundex(b)
