"""
Hierarchical proportional allocation engine.

A node's amount is floor(parent_amount * percentage / 100), where the parent
amount is the nearest ancestor allocation's amount (or the total budget when
no ancestor has one). Quantity is floor(amount / total unit price of the SKUs
under the node). Every operation returns a new allocation list; inputs are
never mutated.

The engine does not validate: out-of-range percentages and odd prices are
computed through as given.
"""

import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, Iterable, List, Optional, Sequence

from app.schemas.allocation import AllocationRecord, HierarchyColumn, SkuRecord
from app.services.hierarchy_tree import (
    ancestor_paths,
    path_depth,
    sku_path,
    sorted_columns,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class AllocationContext:
    """
    Everything an engine call needs besides the allocation list itself.

    Args:
        total_budget: Budget distributed over the level-1 nodes
        column_defs: Hierarchy columns of the session
        skus: SKU records of the session
        period: Scenario written onto produced records (None = default)
    """

    def __init__(
        self,
        total_budget: int,
        column_defs: Sequence[HierarchyColumn],
        skus: Sequence[SkuRecord],
        period: Optional[str] = None,
    ):
        self.total_budget = total_budget
        self.column_defs = sorted_columns(column_defs)
        self.skus = list(skus)
        self.period = period
        # Summed unit price per path prefix, so a node sees every SKU below it
        self._unit_price_totals: Dict[str, int] = {}
        for sku in self.skus:
            path = sku_path(sku, self.column_defs)
            for prefix in [path] + ancestor_paths(path):
                self._unit_price_totals[prefix] = self._unit_price_totals.get(prefix, 0) + sku.unit_price

    def total_unit_price(self, path: str) -> int:
        """Summed unit price of the SKUs under `path` (0 for an unknown path)."""
        return self._unit_price_totals.get(path, 0)

    def for_period(self, period: Optional[str]) -> "AllocationContext":
        return AllocationContext(self.total_budget, self.column_defs, self.skus, period)


def _percent(value: float) -> Decimal:
    return Decimal(str(value))


def compute_amount(parent_amount: int, percentage: float) -> int:
    """floor(parent_amount * percentage / 100), computed exactly."""
    amount = Decimal(parent_amount) * _percent(percentage) / HUNDRED
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))


def compute_quantity(amount: int, total_unit_price: int) -> int:
    if total_unit_price <= 0:
        return 0
    return amount // total_unit_price


def index_allocations(allocations: Iterable[AllocationRecord]) -> Dict[str, AllocationRecord]:
    """Path -> record, keeping list order (a later duplicate path wins)."""
    return {record.hierarchy_path: record for record in allocations}


def resolve_parent_amount(path: str, index: Dict[str, AllocationRecord], total_budget: int) -> int:
    """Amount of the nearest ancestor that has an allocation, else the total budget."""
    for ancestor in ancestor_paths(path):
        record = index.get(ancestor)
        if record is not None:
            return record.amount
    return total_budget


def derive_allocation(
    path: str,
    percentage: float,
    index: Dict[str, AllocationRecord],
    ctx: AllocationContext,
) -> AllocationRecord:
    """Build the record for `path` at `percentage` against the current index."""
    parent_amount = resolve_parent_amount(path, index, ctx.total_budget)
    amount = compute_amount(parent_amount, percentage)
    return AllocationRecord(
        hierarchy_path=path,
        level=path_depth(path),
        percentage=percentage,
        amount=amount,
        quantity=compute_quantity(amount, ctx.total_unit_price(path)),
        period=ctx.period,
    )


def _sweep(index: Dict[str, AllocationRecord], paths: List[str], ctx: AllocationContext) -> int:
    """
    Recompute amount/quantity of `paths` from their own percentages.

    Paths are visited shallowest first, so one pass settles everything; the
    loop is bounded by the deepest path and ends at the first pass that
    changes nothing. Returns the number of passes that changed a record.
    """
    ordered = sorted(paths, key=path_depth)
    max_passes = max((path_depth(p) for p in ordered), default=0) + 1
    changed_passes = 0

    for _ in range(max_passes):
        changed = False
        for path in ordered:
            record = index[path]
            amount = compute_amount(
                resolve_parent_amount(path, index, ctx.total_budget),
                record.percentage,
            )
            quantity = compute_quantity(amount, ctx.total_unit_price(path))
            if amount != record.amount or quantity != record.quantity:
                index[path] = record.model_copy(update={"amount": amount, "quantity": quantity})
                changed = True
        if not changed:
            break
        changed_passes += 1

    return changed_passes


def propagate(
    allocations: Sequence[AllocationRecord],
    changed_paths: Iterable[str],
    ctx: AllocationContext,
) -> List[AllocationRecord]:
    """
    Recompute every allocation lying below any of `changed_paths`.

    Descendants keep their stored percentages; only amounts and quantities
    move.
    """
    index = index_allocations(allocations)
    roots = set(changed_paths)
    descendants = [p for p in index if any(a in roots for a in ancestor_paths(p))]
    if descendants:
        _sweep(index, descendants, ctx)
        logger.debug(f"Propagated {len(descendants)} descendant allocations below {len(roots)} edited paths")
    return list(index.values())


def recompute_all(allocations: Sequence[AllocationRecord], ctx: AllocationContext) -> List[AllocationRecord]:
    """Re-derive every amount and quantity from the stored percentages."""
    index = index_allocations(allocations)
    _sweep(index, list(index), ctx)
    return list(index.values())


def set_percentage(
    path: str,
    percentage: float,
    allocations: Sequence[AllocationRecord],
    ctx: AllocationContext,
) -> List[AllocationRecord]:
    """
    Set the percentage of one node and cascade the new amount downwards.

    Args:
        path: Node path being edited
        percentage: New share of the parent amount
        allocations: Current allocation list of one period
        ctx: Budget, columns, SKUs and period

    Returns:
        New allocation list; the edited record replaces any existing one
        for the same path, otherwise it is appended
    """
    index = index_allocations(allocations)
    index[path] = derive_allocation(path, percentage, index, ctx)
    logger.debug(f"Set {path} to {percentage}% -> amount {index[path].amount}")
    return propagate(list(index.values()), [path], ctx)
