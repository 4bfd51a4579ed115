"""
Allocation rules layered on the engine: equal distribution across siblings,
single-child auto-fill, and sibling-sum advisories.
"""

import logging
from collections import deque
from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional, Sequence, Tuple

from app.schemas.allocation import AllocationRecord, HierarchyNode, SiblingWarning
from app.services.allocation_engine import (
    AllocationContext,
    derive_allocation,
    index_allocations,
    propagate,
)
from app.services.hierarchy_tree import build_tree, find_node

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def equal_shares(count: int) -> List[Decimal]:
    """
    Split 100 into `count` two-decimal shares summing to exactly 100.

    The rounding remainder goes to the first share: 3 -> [33.34, 33.33, 33.33].
    """
    if count <= 0:
        return []
    share = (HUNDRED / count).quantize(CENT, rounding=ROUND_FLOOR)
    remainder = HUNDRED - share * count
    return [share + remainder] + [share] * (count - 1)


def distribute_equally(
    parent_path: Optional[str],
    level: Optional[int],
    roots: Sequence[HierarchyNode],
    allocations: Sequence[AllocationRecord],
    ctx: AllocationContext,
) -> List[AllocationRecord]:
    """
    Give every target node an equal share of 100%.

    Targets are the root nodes when `parent_path` is None, otherwise the
    children of that node (restricted to `level` when given). An unknown
    parent or an empty target set leaves the allocations unchanged.
    """
    if parent_path is None:
        targets = list(roots)
    else:
        parent = find_node(roots, parent_path)
        children = parent.children if parent else []
        targets = [c for c in children if level is None or c.level == level]

    if not targets:
        return list(allocations)

    index = index_allocations(allocations)
    for node, share in zip(targets, equal_shares(len(targets))):
        index[node.path] = derive_allocation(node.path, float(share), index, ctx)

    logger.debug(f"Distributed 100% over {len(targets)} nodes under {parent_path or '<root>'}")
    return propagate(list(index.values()), [node.path for node in targets], ctx)


def apply_single_child_rule(
    roots: Sequence[HierarchyNode],
    allocations: Sequence[AllocationRecord],
    ctx: AllocationContext,
) -> List[AllocationRecord]:
    """
    Give 100% to every only-child that has no allocation or a 0% one.

    Parents are visited breadth-first so a shallower fill is in place before
    the level below it is evaluated. Each node is visited once; fills are
    written into one index and their descendants are swept once at the end.
    """
    index = index_allocations(allocations)
    filled = []
    queue = deque(roots)

    while queue:
        node = queue.popleft()
        queue.extend(node.children)
        if len(node.children) != 1:
            continue
        child = node.children[0]
        current = index.get(child.path)
        if current is None or current.percentage == 0:
            index[child.path] = derive_allocation(child.path, 100.0, index, ctx)
            filled.append(child.path)

    if not filled:
        return list(allocations)
    logger.debug(f"Auto-filled {len(filled)} single-child nodes")
    return propagate(list(index.values()), filled, ctx)


def reconcile(
    allocations: Sequence[AllocationRecord],
    ctx: AllocationContext,
) -> Tuple[List[HierarchyNode], List[AllocationRecord]]:
    """Apply the single-child rule and rebuild the tree from the result."""
    skeleton = build_tree(ctx.skus, ctx.column_defs, allocations)
    reconciled = apply_single_child_rule(skeleton, allocations, ctx)
    return build_tree(ctx.skus, ctx.column_defs, reconciled), reconciled


def _group_warning(parent: Optional[HierarchyNode], children: Sequence[HierarchyNode]) -> Optional[SiblingWarning]:
    total = sum((Decimal(str(c.percentage)) for c in children), Decimal(0))
    if total == 0 or total == HUNDRED:
        return None
    return SiblingWarning(
        parent_path=parent.path if parent else None,
        level=children[0].level,
        total_percentage=float(total),
        child_count=len(children),
    )


def sibling_warnings(roots: Sequence[HierarchyNode]) -> List[SiblingWarning]:
    """
    Sibling groups whose percentages are partly set but do not total 100.

    Untouched groups (all 0%) are not reported.
    """
    warnings = []
    groups = deque([(None, list(roots))])
    while groups:
        parent, children = groups.popleft()
        if not children:
            continue
        warning = _group_warning(parent, children)
        if warning:
            warnings.append(warning)
        groups.extend((child, child.children) for child in children)
    return warnings
