"""
Maps parsed CSV rows onto canonical product records
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.exceptions import RowParseError
from app.schemas.products import ProductRecord
from app.services.csv_parser import CsvRow

ID_COLUMNS = ("id", "product-id", "product_id")
NAME_COLUMNS = ("product-name", "product_name", "name")
CONSOLE_COLUMNS = ("console-name", "console_name", "console")

PRICE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "loose_price": ("loose-price",),
    "cib_price": ("cib-price",),
    "new_price": ("new-price",),
    "graded_price": ("graded-price",),
    "box_price": ("box-only-price", "box-price"),
    "manual_price": ("manual-only-price", "manual-price"),
}

# Optional currency code or symbol around a plain decimal amount
_PRICE_PATTERN = re.compile(
    r"^(?:[A-Za-z]{3}\s*)?[$£€]?\s*(-?\d+(?:\.\d+)?)\s*(?:[A-Za-z]{3})?$"
)

# Matches the Numeric(12, 2) and String(100) product columns
MAX_PRICE = Decimal("1e10")
MAX_PRODUCT_ID_LENGTH = 100


def _spellings(name: str) -> Iterable[str]:
    yield name
    if "-" in name:
        yield name.replace("-", "_")
    elif "_" in name:
        yield name.replace("_", "-")


def first_present(row: Dict[str, Any], candidates: Iterable[str]) -> Optional[str]:
    """Return the first non-blank value among header spellings"""
    for candidate in candidates:
        for key in _spellings(candidate):
            value = row.get(key)
            if value is None:
                continue
            value = str(value).strip()
            if value:
                return value
    return None


def parse_price(value: Optional[str]) -> Optional[Decimal]:
    """Parse a currency string such as "$1,234.50"

    Anything other than a plain non-negative amount below MAX_PRICE is None
    so that "not reported" is never confused with a real zero price.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None

    match = _PRICE_PATTERN.match(text.replace(",", ""))
    if not match:
        return None
    price = Decimal(match.group(1))
    if price < 0 or price >= MAX_PRICE:
        return None
    return price


def normalize_row(row: CsvRow, category: str, downloaded_at: datetime) -> ProductRecord:
    """Build a ProductRecord from one CSV row or raise RowParseError"""
    product_name = first_present(row.values, NAME_COLUMNS)
    if not product_name:
        raise RowParseError(row.line_number, "missing product name")

    product_id = first_present(row.values, ID_COLUMNS)
    if not product_id:
        raise RowParseError(row.line_number, "missing product id")
    if len(product_id) > MAX_PRODUCT_ID_LENGTH:
        raise RowParseError(row.line_number, f"product id longer than {MAX_PRODUCT_ID_LENGTH} characters")

    prices = {
        field: parse_price(first_present(row.values, columns))
        for field, columns in PRICE_COLUMNS.items()
    }

    return ProductRecord(
        category=category,
        product_id=product_id,
        product_name=product_name,
        console_name=first_present(row.values, CONSOLE_COLUMNS),
        raw_data=dict(row.values),
        downloaded_at=downloaded_at,
        **prices,
    )


def normalize_rows(
    rows: Iterable[CsvRow],
    category: str,
    downloaded_at: datetime,
) -> Tuple[List[ProductRecord], List[RowParseError]]:
    """Normalize rows, keeping valid products and parse errors apart"""
    products: List[ProductRecord] = []
    errors: List[RowParseError] = []
    for row in rows:
        try:
            products.append(normalize_row(row, category, downloaded_at))
        except RowParseError as e:
            errors.append(e)
    return products, errors
