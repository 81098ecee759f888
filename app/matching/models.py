from dataclasses import dataclass, field
from enum import Enum

from app.ocr.models import LineItem


class MatchType(str, Enum):
    EXACT_BARCODE = "EXACT_BARCODE"
    EXACT_NAME = "EXACT_NAME"
    FUZZY_NAME = "FUZZY_NAME"
    KEYWORD = "KEYWORD"

    @property
    def priority(self) -> int:
        """Lower is stronger; breaks score ties."""
        return list(MatchType).index(self)


class MatchStatus(str, Enum):
    EXACT_MATCH = "EXACT_MATCH"
    GOOD_MATCH = "GOOD_MATCH"
    POSSIBLE_MATCH = "POSSIBLE_MATCH"
    NO_MATCH = "NO_MATCH"


@dataclass(frozen=True)
class CatalogProduct:
    """Catalog row as seen by the matcher."""

    id: str
    name: str
    brand: str | None = None
    barcode: str | None = None
    category_id: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class MatchDetails:
    matched_text: str | None = None
    edit_distance: int | None = None
    matched_keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProductMatch:
    product: CatalogProduct
    score: float
    match_type: MatchType
    details: MatchDetails = field(default_factory=MatchDetails)

    @property
    def candidate_product_id(self) -> str:
        return self.product.id


@dataclass(frozen=True)
class MatchingConfig:
    min_score: float = 0.3
    good_match_threshold: float = 0.7
    exact_match_threshold: float = 0.95
    max_edit_distance: int = 3
    max_results: int = 10


@dataclass(frozen=True)
class ProductMatchResult:
    original_item: LineItem
    status: MatchStatus
    matches: list[ProductMatch] = field(default_factory=list)
    best_match: ProductMatch | None = None
    suggested_category: str | None = None
