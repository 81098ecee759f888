"""Score thresholds that decide what the worker does with a best match."""

LINK_PRODUCT_THRESHOLD = 0.7
AUTO_VALIDATE_THRESHOLD = 0.9


def should_link_product(score: float) -> bool:
    """Attach the matched catalog product to the receipt line."""
    return score > LINK_PRODUCT_THRESHOLD


def should_auto_validate(score: float) -> bool:
    """Mark the receipt line validated without user review."""
    return score > AUTO_VALIDATE_THRESHOLD
