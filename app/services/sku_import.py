"""
SKU CSV parsing.
Turns an uploaded CSV into SKU rows and hierarchy column names.
"""

from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import List, Tuple

import pandas as pd

from app.schemas.session import SkuDataIn

SKU_CODE_COLUMN = "sku_code"
UNIT_PRICE_COLUMN = "unitprice"

COLUMN_ALIASES = {
    "sku_code": SKU_CODE_COLUMN,
    "sku code": SKU_CODE_COLUMN,
    "skucode": SKU_CODE_COLUMN,
    "unitprice": UNIT_PRICE_COLUMN,
    "unit_price": UNIT_PRICE_COLUMN,
    "unit price": UNIT_PRICE_COLUMN,
}


class SkuImportError(ValueError):
    """Raised when an uploaded file cannot be read as an SKU import."""


def decode_csv(content: bytes) -> str:
    """Decode upload bytes: UTF-8 (with or without BOM), falling back to latin-1."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def parse_unit_price(value: str) -> int:
    """
    Parse a unit price cell, truncating decimals ("1,200.50" -> 1200).

    Raises:
        ValueError: If the cell is not numeric
    """
    try:
        return int(Decimal(value.replace(",", "")))
    except (InvalidOperation, ValueError):
        raise ValueError(f"unitprice '{value}' is not a number")


def parse_sku_csv(text: str, max_rows: int) -> Tuple[List[SkuDataIn], List[str], List[dict], int]:
    """
    Parse CSV text into SKU rows.

    Every column other than sku_code and unitprice is a hierarchy column, in
    file order. Cells are read as text so codes such as "00123" survive.

    Args:
        text: Decoded CSV content
        max_rows: Maximum number of data rows accepted

    Returns:
        (sku rows, hierarchy column names, row errors, skipped row count)

    Raises:
        SkuImportError: If the file is empty, too long or lacks required columns
    """
    try:
        df = pd.read_csv(StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise SkuImportError("CSV file is empty")

    if df.empty:
        raise SkuImportError("CSV file has no data rows")
    if len(df) > max_rows:
        raise SkuImportError(f"CSV contains {len(df)} rows. Maximum allowed is {max_rows:,} rows.")

    column_mapping = {}
    for col in df.columns:
        stripped = str(col).strip()
        column_mapping[col] = COLUMN_ALIASES.get(stripped.lower(), stripped)
    df.rename(columns=column_mapping, inplace=True)

    missing_columns = [c for c in (SKU_CODE_COLUMN, UNIT_PRICE_COLUMN) if c not in df.columns]
    if missing_columns:
        raise SkuImportError(f"Missing required columns: {', '.join(missing_columns)}")

    hierarchy_columns = [c for c in df.columns if c not in (SKU_CODE_COLUMN, UNIT_PRICE_COLUMN)]

    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()

    sku_rows: List[SkuDataIn] = []
    errors: List[dict] = []
    seen_codes = set()
    skipped_count = 0

    for idx, row in df.iterrows():
        sku_code = row[SKU_CODE_COLUMN]
        unit_price_text = row[UNIT_PRICE_COLUMN]

        # Rows without a code or price are not SKUs
        if not sku_code or not unit_price_text:
            skipped_count += 1
            continue

        line = idx + 2  # header + 0-indexing
        if sku_code in seen_codes:
            errors.append({"row": line, "error": f"Duplicate sku_code '{sku_code}'"})
            continue

        try:
            unit_price = parse_unit_price(unit_price_text)
            sku_rows.append(SkuDataIn(
                sku_code=sku_code,
                unit_price=unit_price,
                hierarchy_values={col: row[col] for col in hierarchy_columns if row[col]},
            ))
            seen_codes.add(sku_code)
        except ValueError as e:
            errors.append({"row": line, "error": f"Validation error: {str(e)}"})

    return sku_rows, hierarchy_columns, errors, skipped_count
