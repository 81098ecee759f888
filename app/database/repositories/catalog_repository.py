from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.matching.catalog import BaseProductCatalog
from app.matching.models import CatalogProduct

_PRODUCT_COLUMNS = "id, name, brand, barcode, category_id, image_url"
_MAX_CANDIDATES = 200


class CatalogRepository(BaseProductCatalog):
    """Product and category access backed by the products and categories tables.

    Matcher lookups open their own connection; the write helpers take the
    caller's connection so they join its transaction.
    """

    def find_by_barcode(self, barcode: str) -> list[CatalogProduct]:
        return self._select_products("barcode = %s", (barcode,))

    def find_by_name_exact(self, names: list[str]) -> list[CatalogProduct]:
        lowered = [name.lower() for name in names]
        return self._select_products("LOWER(name) = ANY(%s)", (lowered,))

    def find_by_name_containing_any(self, keywords: list[str]) -> list[CatalogProduct]:
        patterns = [f"%{_escape_like(k)}%" for k in keywords]
        return self._select_products("unaccent(name) ILIKE ANY(%s)", (patterns,))

    def find_by_name_or_brand_containing_any(self, keywords: list[str]) -> list[CatalogProduct]:
        patterns = [f"%{_escape_like(k)}%" for k in keywords]
        return self._select_products(
            "(unaccent(name) ILIKE ANY(%s) OR unaccent(COALESCE(brand, '')) ILIKE ANY(%s))",
            (patterns, patterns),
        )

    def find_category_name(self, category_id: str) -> str | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT name FROM categories WHERE id = %s", (category_id,))
                row = cur.fetchone()
        return row[0] if row else None

    def find_by_id(self, conn: psycopg.Connection[Any], product_id: str) -> CatalogProduct | None:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = %s", (product_id,))
            row = cur.fetchone()
        return CatalogProduct(**row) if row else None

    def find_category_id_by_slug(self, conn: psycopg.Connection[Any], slug: str) -> str | None:
        with conn.cursor() as cur:
            cur.execute("SELECT id FROM categories WHERE slug = %s", (slug,))
            row = cur.fetchone()
        return row[0] if row else None

    def create_product(
        self,
        conn: psycopg.Connection[Any],
        *,
        name: str,
        category_id: str,
        unit_type: str,
        brand: str | None = None,
        barcode: str | None = None,
        image_url: str | None = None,
    ) -> CatalogProduct:
        """Insert a product created from a receipt; it stays unverified until reviewed."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO products (name, brand, barcode, category_id, unit_type, image_url, is_verified)
                VALUES (%s, %s, %s, %s, %s, %s, FALSE)
                RETURNING {_PRODUCT_COLUMNS}
                """,
                (name, brand, barcode, category_id, unit_type, image_url),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("Product insert returned no row")
        return CatalogProduct(**row)

    def _select_products(self, where: str, params: tuple[Any, ...]) -> list[CatalogProduct]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_PRODUCT_COLUMNS}
                    FROM products
                    WHERE {where}
                    ORDER BY id
                    LIMIT {_MAX_CANDIDATES}
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [CatalogProduct(**row) for row in rows]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
