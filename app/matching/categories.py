"""Category guesses for receipt lines that matched no catalog product."""

import re

# First hit wins. Names match the seeded catalog categories.
CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Fruits et légumes", re.compile(r"pomme|banane|tomate|carotte|salade|légume|legume|fruit")),
    ("Viande et poisson", re.compile(r"viande|porc|bœuf|boeuf|poulet|poisson|saumon|jambon")),
    ("Produits laitiers", re.compile(r"lait|fromage|yaourt|beurre|crème|creme|dairy")),
    ("Pain et pâtisserie", re.compile(r"pain|baguette|croissant|pâtisserie|patisserie|brioche")),
    ("Boissons", re.compile(r"eau|jus|soda|bière|biere|vin|boisson")),
    ("Surgelés", re.compile(r"surgelé|surgele|congelé|congele|frozen")),
    ("Épicerie", re.compile(r"riz|pâtes|pates|conserve|sauce|huile")),
)


def category_from_description(description: str) -> str | None:
    text = description.lower()
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return None
