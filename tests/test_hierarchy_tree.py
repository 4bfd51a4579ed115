from app.schemas.allocation import AllocationRecord, HierarchyColumn, SkuRecord
from app.services.hierarchy_tree import (
    ancestor_paths,
    build_path,
    build_tree,
    find_node,
    iter_nodes,
    parent_path,
    path_depth,
    sku_path,
)


def test_build_path_joins_values_in_column_order(columns, skus):
    assert build_path(skus[0], columns, 1) == "A"
    assert build_path(skus[0], columns, 2) == "A/X"


def test_build_path_depth_zero_and_beyond_columns(columns, skus):
    assert build_path(skus[0], columns, 0) == ""
    assert build_path(skus[0], columns, 5) == "A/X"


def test_build_path_skips_missing_intermediate_value(columns):
    cols = columns + [HierarchyColumn(level=3, column_name="year")]
    sku = SkuRecord(sku_code="S9", unit_price=10, hierarchy_values={"category": "A", "material": "", "year": "2024"})
    assert build_path(sku, cols, 2) == "A"
    assert build_path(sku, cols, 3) == "A/2024"


def test_sku_path_appends_code(columns, skus):
    assert sku_path(skus[1], columns) == "A/Y/S2"
    bare = SkuRecord(sku_code="LOOSE", unit_price=1, hierarchy_values={})
    assert sku_path(bare, columns) == "LOOSE"


def test_path_helpers():
    assert path_depth("") == 0
    assert path_depth("A/X/S1") == 3
    assert parent_path("A/X/S1") == "A/X"
    assert parent_path("A") is None
    assert ancestor_paths("A/X/S1") == ["A/X", "A"]


def test_build_tree_groups_skus_and_adds_sku_level(columns, skus):
    roots = build_tree(skus, columns, [])

    assert [r.path for r in roots] == ["A"]
    assert [c.path for c in roots[0].children] == ["A/X", "A/Y"]

    sku_node = roots[0].children[0].children[0]
    assert sku_node.path == "A/X/S1"
    assert sku_node.name == "S1"
    assert sku_node.level == 3
    assert sku_node.unit_price == 100
    assert roots[0].unit_price is None


def test_build_tree_fans_in_shared_prefixes(columns):
    skus = [
        SkuRecord(sku_code=f"S{i}", unit_price=10, hierarchy_values={"category": "A", "material": "X"})
        for i in range(3)
    ] + [SkuRecord(sku_code="B1", unit_price=10, hierarchy_values={"category": "B", "material": "X"})]

    roots = build_tree(skus, columns, [])

    assert [r.name for r in roots] == ["A", "B"]
    assert len(roots[0].children) == 1
    assert [n.name for n in roots[0].children[0].children] == ["S0", "S1", "S2"]


def test_build_tree_merges_allocations(columns, skus):
    allocations = [AllocationRecord(hierarchy_path="A/X", level=2, percentage=40, amount=4000, quantity=40)]

    roots = build_tree(skus, columns, allocations)

    node = find_node(roots, "A/X")
    assert (node.percentage, node.amount, node.quantity) == (40, 4000, 40)
    untouched = find_node(roots, "A/Y")
    assert (untouched.percentage, untouched.amount, untouched.quantity) == (0, 0, 0)


def test_build_tree_collapses_missing_intermediate_attribute(columns):
    cols = columns + [HierarchyColumn(level=3, column_name="year")]
    skus = [SkuRecord(sku_code="S1", unit_price=10, hierarchy_values={"category": "A", "year": "2024"})]

    roots = build_tree(skus, cols, [])

    assert [n.path for n in iter_nodes(roots)] == ["A", "A/2024", "A/2024/S1"]
    assert find_node(roots, "A/2024").level == 3
    assert find_node(roots, "A/2024/S1").level == 4


def test_find_node_unknown_path(columns, skus):
    assert find_node(build_tree(skus, columns, []), "Z") is None
