from decimal import Decimal

from app.schemas.allocation import AllocationRecord, HierarchyColumn, SkuRecord
from app.services.allocation_engine import AllocationContext, set_percentage
from app.services.allocation_rules import (
    apply_single_child_rule,
    distribute_equally,
    equal_shares,
    reconcile,
    sibling_warnings,
)
from app.services.hierarchy_tree import build_tree


def by_path(allocations):
    return {a.hierarchy_path: a for a in allocations}


def exact_sum(values):
    return sum((Decimal(str(v)) for v in values), Decimal(0))


def three_root_context():
    columns = [HierarchyColumn(level=1, column_name="category")]
    skus = [
        SkuRecord(sku_code=f"{cat}1", unit_price=10, hierarchy_values={"category": cat})
        for cat in ("A", "B", "C")
    ]
    return AllocationContext(total_budget=10000, column_defs=columns, skus=skus)


def test_equal_shares_put_remainder_on_first():
    assert equal_shares(3) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
    assert equal_shares(1) == [Decimal("100")]
    assert equal_shares(0) == []


def test_equal_shares_always_total_exactly_100():
    for count in range(1, 40):
        assert sum(equal_shares(count)) == Decimal("100.00"), count


def test_distribute_across_roots():
    ctx = three_root_context()
    roots = build_tree(ctx.skus, ctx.column_defs, [])

    allocations = distribute_equally(None, None, roots, [], ctx)

    assert [a.percentage for a in allocations] == [33.34, 33.33, 33.33]
    assert exact_sum(a.percentage for a in allocations) == Decimal(100)
    assert [a.amount for a in allocations] == [3334, 3333, 3333]


def test_distribute_under_parent_uses_parent_amount(ctx):
    allocations = set_percentage("A", 50, [], ctx)
    roots = build_tree(ctx.skus, ctx.column_defs, allocations)

    allocations = distribute_equally("A", 2, roots, allocations, ctx)

    result = by_path(allocations)
    assert (result["A/X"].percentage, result["A/X"].amount, result["A/X"].quantity) == (50, 2500, 25)
    assert (result["A/Y"].percentage, result["A/Y"].amount, result["A/Y"].quantity) == (50, 2500, 12)
    assert result["A"].percentage == 50


def test_distribute_level_filter_and_unknown_parent(ctx):
    roots = build_tree(ctx.skus, ctx.column_defs, [])
    existing = [AllocationRecord(hierarchy_path="A", level=1, percentage=100, amount=10000)]

    assert distribute_equally("A", 3, roots, existing, ctx) == existing
    assert distribute_equally("Z", None, roots, existing, ctx) == existing


def test_distribute_propagates_to_existing_descendants(ctx):
    allocations = set_percentage("A", 100, [], ctx)
    allocations = set_percentage("A/X/S1", 100, allocations, ctx)
    roots = build_tree(ctx.skus, ctx.column_defs, allocations)

    allocations = distribute_equally("A", None, roots, allocations, ctx)

    assert by_path(allocations)["A/X/S1"].amount == 5000


def test_single_child_gets_full_parent_amount(ctx):
    allocations = set_percentage("A", 50, [], ctx)

    roots, reconciled = reconcile(allocations, ctx)

    result = by_path(reconciled)
    # A has two children, so only the SKU-level only-children are filled
    assert "A/X" not in result
    assert (result["A/X/S1"].percentage, result["A/X/S1"].amount, result["A/X/S1"].quantity) == (100, 5000, 50)
    assert (result["A/Y/S2"].percentage, result["A/Y/S2"].amount) == (100, 5000)
    assert roots[0].children[0].children[0].percentage == 100


def test_single_child_chain_fills_top_down():
    columns = [HierarchyColumn(level=1, column_name="cat"), HierarchyColumn(level=2, column_name="mat")]
    skus = [SkuRecord(sku_code="S1", unit_price=250, hierarchy_values={"cat": "A", "mat": "X"})]
    ctx = AllocationContext(total_budget=10000, column_defs=columns, skus=skus)
    allocations = set_percentage("A", 30, [], ctx)

    roots, reconciled = reconcile(allocations, ctx)

    result = by_path(reconciled)
    assert (result["A/X"].percentage, result["A/X"].amount) == (100, 3000)
    assert (result["A/X/S1"].percentage, result["A/X/S1"].amount, result["A/X/S1"].quantity) == (100, 3000, 12)


def test_single_child_rule_is_idempotent(ctx):
    allocations = set_percentage("A", 50, [], ctx)
    _, first = reconcile(allocations, ctx)
    _, second = reconcile(first, ctx)
    assert second == first


def test_single_child_rule_keeps_explicit_percentage(ctx):
    allocations = set_percentage("A", 100, [], ctx)
    allocations = set_percentage("A/X/S1", 80, allocations, ctx)
    roots = build_tree(ctx.skus, ctx.column_defs, allocations)

    result = by_path(apply_single_child_rule(roots, allocations, ctx))

    assert result["A/X/S1"].percentage == 80
    assert result["A/Y/S2"].percentage == 100


def test_single_child_rule_fills_zero_percentage(ctx):
    allocations = [AllocationRecord(hierarchy_path="A/Y/S2", level=3, percentage=0)]
    roots = build_tree(ctx.skus, ctx.column_defs, allocations)

    result = by_path(apply_single_child_rule(roots, allocations, ctx))

    assert result["A/Y/S2"].percentage == 100
    assert result["A/Y/S2"].amount == 10000


def test_sibling_warnings(ctx):
    allocations = set_percentage("A", 100, [], ctx)
    allocations = set_percentage("A/X", 40, allocations, ctx)
    allocations = set_percentage("A/Y", 50, allocations, ctx)

    warnings = sibling_warnings(build_tree(ctx.skus, ctx.column_defs, allocations))

    assert len(warnings) == 1
    assert warnings[0].parent_path == "A"
    assert warnings[0].total_percentage == 90
    assert warnings[0].child_count == 2


def test_no_warning_for_complete_or_untouched_groups():
    ctx = three_root_context()
    assert sibling_warnings(build_tree(ctx.skus, ctx.column_defs, [])) == []

    roots = build_tree(ctx.skus, ctx.column_defs, [])
    allocations = distribute_equally(None, None, roots, [], ctx)
    assert sibling_warnings(build_tree(ctx.skus, ctx.column_defs, allocations)) == []


def test_single_child_rule_handles_many_groups():
    columns = [HierarchyColumn(level=1, column_name="category"), HierarchyColumn(level=2, column_name="material")]
    skus = [
        SkuRecord(sku_code=f"S{i}", unit_price=10, hierarchy_values={"category": f"C{i}", "material": "M"})
        for i in range(3000)
    ]
    ctx = AllocationContext(total_budget=10000, column_defs=columns, skus=skus)
    allocations = set_percentage("C0", 50, [], ctx)

    roots, reconciled = reconcile(allocations, ctx)

    result = by_path(reconciled)
    assert len(reconciled) == 1 + 2 * 3000
    assert result["C0/M"].amount == 5000
    assert result["C0/M/S0"].amount == 5000
    assert result["C0/M/S0"].quantity == 500
    assert result["C2999/M/S2999"].percentage == 100
    assert len(roots) == 3000
