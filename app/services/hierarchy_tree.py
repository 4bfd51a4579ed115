"""
Hierarchy path and tree building.

SKUs are grouped into a tree by shared attribute-value prefixes. A node is
identified only by its path string: the non-empty attribute values for
levels 1..depth joined with "/". One extra level below the last attribute
holds the SKUs themselves, keyed by "<attribute path>/<sku code>".
"""

from typing import Dict, Iterator, List, Optional, Sequence

from app.schemas.allocation import AllocationRecord, HierarchyColumn, HierarchyNode, SkuRecord

PATH_SEPARATOR = "/"


def build_path(sku: SkuRecord, column_defs: Sequence[HierarchyColumn], depth: int) -> str:
    """
    Build the hierarchy path of a SKU at the given depth.

    Missing or empty attribute values are skipped rather than treated as an
    error, so a SKU lacking an intermediate value collapses onto a shallower
    path.

    Args:
        sku: SKU record
        column_defs: Hierarchy columns ordered by level
        depth: Number of hierarchy levels to include

    Returns:
        "/"-joined path, or "" when depth is 0 or every value is empty
    """
    parts = []
    for column in column_defs[:max(depth, 0)]:
        value = sku.hierarchy_values.get(column.column_name)
        if value:
            parts.append(value)
    return PATH_SEPARATOR.join(parts)


def sku_path(sku: SkuRecord, column_defs: Sequence[HierarchyColumn]) -> str:
    """Full SKU-level path: the attribute path with the SKU code appended."""
    attribute_path = build_path(sku, column_defs, len(column_defs))
    if not attribute_path:
        return sku.sku_code
    return f"{attribute_path}{PATH_SEPARATOR}{sku.sku_code}"


def path_depth(path: str) -> int:
    """Number of segments in a path (0 for the empty path)."""
    if not path:
        return 0
    return len(path.split(PATH_SEPARATOR))


def parent_path(path: str) -> Optional[str]:
    """Path with the last segment removed, or None for a single-segment path."""
    if PATH_SEPARATOR not in path:
        return None
    return path.rsplit(PATH_SEPARATOR, 1)[0]


def ancestor_paths(path: str) -> List[str]:
    """All proper ancestors of a path, nearest first."""
    ancestors = []
    current = parent_path(path)
    while current is not None:
        ancestors.append(current)
        current = parent_path(current)
    return ancestors


def sorted_columns(column_defs: Sequence[HierarchyColumn]) -> List[HierarchyColumn]:
    return sorted(column_defs, key=lambda c: c.level)


def _new_node(path: str, level: int, allocation: Optional[AllocationRecord], unit_price: Optional[int] = None) -> HierarchyNode:
    return HierarchyNode(
        path=path,
        name=path.rsplit(PATH_SEPARATOR, 1)[-1],
        level=level,
        percentage=allocation.percentage if allocation else 0.0,
        amount=allocation.amount if allocation else 0,
        quantity=allocation.quantity if allocation else 0,
        unit_price=unit_price,
    )


def build_tree(
    skus: Sequence[SkuRecord],
    column_defs: Sequence[HierarchyColumn],
    allocations: Sequence[AllocationRecord],
) -> List[HierarchyNode]:
    """
    Assemble SKUs into a tree of HierarchyNodes.

    Nodes keep first-seen order. Stored allocations are merged onto the node
    with the same path; nodes without one are zeroed. Runs in O(N * L).

    Args:
        skus: SKU records in import order
        column_defs: Hierarchy columns (any order; sorted by level here)
        allocations: Allocation records of a single period

    Returns:
        Root nodes (distinct level-1 values)
    """
    columns = sorted_columns(column_defs)
    allocation_by_path: Dict[str, AllocationRecord] = {a.hierarchy_path: a for a in allocations}
    node_map: Dict[str, HierarchyNode] = {}
    roots: List[HierarchyNode] = []

    def attach(node: HierarchyNode) -> None:
        node_map[node.path] = node
        parent = node_map.get(parent_path(node.path) or "")
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)

    for sku in skus:
        for level in range(1, len(columns) + 1):
            path = build_path(sku, columns, level)
            if not path or path in node_map:
                continue
            attach(_new_node(path, level, allocation_by_path.get(path)))

        path = sku_path(sku, columns)
        if path not in node_map:
            attach(_new_node(path, len(columns) + 1, allocation_by_path.get(path), unit_price=sku.unit_price))

    return roots


def iter_nodes(roots: Sequence[HierarchyNode]) -> Iterator[HierarchyNode]:
    """Depth-first pre-order traversal."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(roots: Sequence[HierarchyNode], path: str) -> Optional[HierarchyNode]:
    for node in iter_nodes(roots):
        if node.path == path:
            return node
    return None
