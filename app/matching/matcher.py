"""Matches receipt lines against the product catalog."""

from app.logging.logger import Log
from app.matching.catalog import BaseProductCatalog
from app.matching.categories import category_from_description
from app.matching.keywords import extract_keywords
from app.matching.models import (
    MatchDetails,
    MatchingConfig,
    MatchStatus,
    MatchType,
    ProductMatch,
    ProductMatchResult,
)
from app.matching.policy import LINK_PRODUCT_THRESHOLD
from app.ocr.models import LineItem
from app.similarity.string_similarity import levenshtein_distance, normalize

BARCODE_SCORE = 1.0
EXACT_NAME_SCORE = 0.98
FUZZY_SCORE_CAP = 0.95
FUZZY_KEYWORD_BONUS = 0.3
KEYWORD_SCORE_CAP = 0.9
KEYWORD_SCORE_WEIGHT = 0.8


class ProductMatcher:
    """Runs the barcode, exact name, fuzzy name and keyword strategies for each line.

    Lines are matched independently: a catalog failure on one line yields a
    NO_MATCH result for that line and does not stop the batch.
    """

    def __init__(self, catalog: BaseProductCatalog, config: MatchingConfig | None = None) -> None:
        self._catalog = catalog
        self._config = config or MatchingConfig()

    def match_items(self, items: list[LineItem]) -> list[ProductMatchResult]:
        Log.info(f"Matching {len(items)} line items against the catalog")
        return [self.match_item(item) for item in items]

    def match_item(self, item: LineItem) -> ProductMatchResult:
        try:
            candidates = [
                *self._by_barcode(item),
                *self._by_exact_name(item.description),
                *self._by_fuzzy_name(item.description),
                *self._by_keywords(item.description),
            ]
            matches = self._rank(candidates)
            best = matches[0] if matches else None
            return ProductMatchResult(
                original_item=item,
                status=self._status(best),
                matches=matches,
                best_match=best,
                suggested_category=self._suggest_category(item.description, best),
            )
        except Exception as exc:
            Log.error(f"Matching failed for line '{item.description}': {exc}")
            return ProductMatchResult(original_item=item, status=MatchStatus.NO_MATCH)

    def _by_barcode(self, item: LineItem) -> list[ProductMatch]:
        if not item.product_code:
            return []
        return [
            ProductMatch(
                product=product,
                score=BARCODE_SCORE,
                match_type=MatchType.EXACT_BARCODE,
                details=MatchDetails(matched_text=item.product_code),
            )
            for product in self._catalog.find_by_barcode(item.product_code)
        ]

    def _by_exact_name(self, description: str) -> list[ProductMatch]:
        names = list(dict.fromkeys(n for n in (normalize(description), description.strip()) if n))
        if not names:
            return []
        return [
            ProductMatch(
                product=product,
                score=EXACT_NAME_SCORE,
                match_type=MatchType.EXACT_NAME,
                details=MatchDetails(matched_text=description),
            )
            for product in self._catalog.find_by_name_exact(names)
        ]

    def _by_fuzzy_name(self, description: str) -> list[ProductMatch]:
        normalized = normalize(description)
        keywords = extract_keywords(normalized)
        if not keywords:
            return []

        matches: list[ProductMatch] = []
        for product in self._catalog.find_by_name_containing_any(keywords):
            product_name = normalize(product.name)
            distance = levenshtein_distance(normalized, product_name)
            longest = max(len(normalized), len(product_name), 1)
            product_keywords = extract_keywords(product_name)
            common = [k for k in keywords if k in product_keywords]
            bonus = len(common) / len(keywords) * FUZZY_KEYWORD_BONUS
            score = min(FUZZY_SCORE_CAP, 1 - distance / longest + bonus)
            if score >= self._config.min_score and distance <= self._config.max_edit_distance:
                matches.append(
                    ProductMatch(
                        product=product,
                        score=score,
                        match_type=MatchType.FUZZY_NAME,
                        details=MatchDetails(
                            matched_text=product.name,
                            edit_distance=distance,
                            matched_keywords=common,
                        ),
                    )
                )
        return matches

    def _by_keywords(self, description: str) -> list[ProductMatch]:
        keywords = extract_keywords(normalize(description))
        if not keywords:
            return []

        matches: list[ProductMatch] = []
        for product in self._catalog.find_by_name_or_brand_containing_any(keywords):
            product_text = normalize(f"{product.name} {product.brand or ''}")
            matched = [k for k in keywords if k in product_text]
            if not matched:
                continue
            matches.append(
                ProductMatch(
                    product=product,
                    score=min(KEYWORD_SCORE_CAP, len(matched) / len(keywords) * KEYWORD_SCORE_WEIGHT),
                    match_type=MatchType.KEYWORD,
                    details=MatchDetails(matched_keywords=matched),
                )
            )
        return matches

    def _rank(self, candidates: list[ProductMatch]) -> list[ProductMatch]:
        best_by_product: dict[str, ProductMatch] = {}
        for match in candidates:
            current = best_by_product.get(match.candidate_product_id)
            if current is None or _sort_key(match) < _sort_key(current):
                best_by_product[match.candidate_product_id] = match
        kept = [m for m in best_by_product.values() if m.score >= self._config.min_score]
        kept.sort(key=_sort_key)
        return kept[: self._config.max_results]

    def _status(self, best: ProductMatch | None) -> MatchStatus:
        if best is None:
            return MatchStatus.NO_MATCH
        if best.score >= self._config.exact_match_threshold:
            return MatchStatus.EXACT_MATCH
        if best.score >= self._config.good_match_threshold:
            return MatchStatus.GOOD_MATCH
        return MatchStatus.POSSIBLE_MATCH

    def _suggest_category(self, description: str, best: ProductMatch | None) -> str | None:
        if best is not None and best.score > LINK_PRODUCT_THRESHOLD and best.product.category_id:
            try:
                name = self._catalog.find_category_name(best.product.category_id)
            except Exception as exc:
                Log.warning(f"Category lookup failed for product {best.candidate_product_id}: {exc}")
                name = None
            if name:
                return name
        return category_from_description(description)


def _sort_key(match: ProductMatch) -> tuple[float, int, str]:
    return (-match.score, match.match_type.priority, match.candidate_product_id)


def matching_stats(results: list[ProductMatchResult]) -> dict[str, object]:
    """Counts per status, match rate and mean best score of a batch."""
    by_status = {status: 0 for status in MatchStatus}
    for result in results:
        by_status[result.status] += 1
    scored = [r.best_match.score for r in results if r.best_match is not None]
    total = len(results)
    confident = by_status[MatchStatus.EXACT_MATCH] + by_status[MatchStatus.GOOD_MATCH]
    return {
        "total_items": total,
        "exact_matches": by_status[MatchStatus.EXACT_MATCH],
        "good_matches": by_status[MatchStatus.GOOD_MATCH],
        "possible_matches": by_status[MatchStatus.POSSIBLE_MATCH],
        "no_matches": by_status[MatchStatus.NO_MATCH],
        "match_rate": confident / total if total else 0.0,
        "avg_score": sum(scored) / len(scored) if scored else 0.0,
    }
