"""
Export composition.

Each SKU's final amount is recomputed from the raw percentages along its
path rather than from stored per-node amounts, so the export does not depend
on propagation having run.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from io import StringIO
from typing import Dict, List, Optional, Sequence

import pandas as pd

from app.schemas.allocation import AllocationRecord, ExportRow, HierarchyColumn, SkuRecord
from app.services.hierarchy_tree import PATH_SEPARATOR, sku_path, sorted_columns

EXPORT_COLUMNS = ["sku_code", "cumulative_percentage", "unitprice", "amount", "quantity"]
BYTE_ORDER_MARK = "\ufeff"


def cumulative_fraction(path: str, allocation_by_path: Dict[str, AllocationRecord]) -> Optional[Decimal]:
    """
    Product of percentage / 100 over every prefix of `path`, path included.

    Returns None when any prefix has no allocation or a 0% one.
    """
    segments = path.split(PATH_SEPARATOR)
    fraction = Decimal(1)
    for depth in range(1, len(segments) + 1):
        record = allocation_by_path.get(PATH_SEPARATOR.join(segments[:depth]))
        if record is None or record.percentage == 0:
            return None
        fraction *= Decimal(str(record.percentage)) / 100
    return fraction


def export_rows(
    skus: Sequence[SkuRecord],
    column_defs: Sequence[HierarchyColumn],
    allocations: Sequence[AllocationRecord],
    total_budget: int,
) -> List[ExportRow]:
    """Build one export row per SKU, in SKU order."""
    columns = sorted_columns(column_defs)
    allocation_by_path = {a.hierarchy_path: a for a in allocations}
    rows = []

    for sku in skus:
        row = ExportRow(
            hierarchy_values=[sku.hierarchy_values.get(c.column_name) or "" for c in columns],
            sku_code=sku.sku_code,
            unit_price=sku.unit_price,
        )
        fraction = cumulative_fraction(sku_path(sku, columns), allocation_by_path)
        if fraction is not None:
            final_amount = int((Decimal(total_budget) * fraction).to_integral_value(rounding=ROUND_FLOOR))
            final_quantity = final_amount // sku.unit_price if sku.unit_price > 0 else 0
            percentage = (fraction * 100).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
            row.cumulative_percentage = f"{percentage:f}"
            row.final_amount = str(final_amount)
            row.final_quantity = str(final_quantity)
        rows.append(row)

    return rows


def rows_to_csv(rows: Sequence[ExportRow], column_defs: Sequence[HierarchyColumn]) -> str:
    """Serialize export rows as CSV text with a leading byte-order mark."""
    header = [c.column_name for c in sorted_columns(column_defs)] + EXPORT_COLUMNS
    data = [
        row.hierarchy_values + [
            row.sku_code,
            row.cumulative_percentage,
            str(row.unit_price),
            row.final_amount,
            row.final_quantity,
        ]
        for row in rows
    ]
    df = pd.DataFrame(data, columns=header, dtype=str)
    output = StringIO()
    df.to_csv(output, index=False, lineterminator="\r\n")
    return BYTE_ORDER_MARK + output.getvalue()
