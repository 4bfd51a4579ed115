from app.schemas.allocation import AllocationRecord, HierarchyColumn, SkuRecord
from app.services.allocation_engine import set_percentage
from app.services.export_composer import cumulative_fraction, export_rows, rows_to_csv


def allocation(path, percentage, amount=0):
    return AllocationRecord(hierarchy_path=path, level=path.count("/") + 1, percentage=percentage, amount=amount)


def test_round_trip_export(ctx, columns, skus):
    allocations = set_percentage("A", 100, [], ctx)
    allocations = set_percentage("A/X", 40, allocations, ctx)
    allocations = set_percentage("A/Y", 60, allocations, ctx)

    unset = export_rows(skus, columns, allocations, 10000)
    assert [(r.cumulative_percentage, r.final_amount, r.final_quantity) for r in unset] == [("", "", ""), ("", "", "")]

    allocations = set_percentage("A/X/S1", 100, allocations, ctx)
    allocations = set_percentage("A/Y/S2", 100, allocations, ctx)
    rows = export_rows(skus, columns, allocations, 10000)

    assert rows[0].hierarchy_values == ["A", "X"]
    assert (rows[0].sku_code, rows[0].cumulative_percentage, rows[0].final_amount, rows[0].final_quantity) == (
        "S1", "40.0000", "4000", "40")
    assert (rows[1].sku_code, rows[1].cumulative_percentage, rows[1].final_amount, rows[1].final_quantity) == (
        "S2", "60.0000", "6000", "30")


def test_zero_or_missing_ancestor_blanks_the_row(columns, skus):
    allocations = [allocation("A", 100), allocation("A/X", 0), allocation("A/X/S1", 100), allocation("A/Y/S2", 100)]

    rows = export_rows(skus, columns, allocations, 10000)

    assert rows[0].cumulative_percentage == ""
    assert rows[1].final_amount == ""  # A/Y has no allocation


def test_export_ignores_stored_amounts(columns, skus):
    allocations = [allocation("A", 50, amount=1), allocation("A/X", 50, amount=1), allocation("A/X/S1", 33.34, amount=1)]

    row = export_rows(skus, columns, allocations, 10000)[0]

    assert row.cumulative_percentage == "8.3350"
    assert row.final_amount == "833"
    assert row.final_quantity == "8"


def test_cumulative_fraction():
    index = {"A": allocation("A", 50), "A/X": allocation("A/X", 20)}
    assert float(cumulative_fraction("A/X", index)) == 0.1
    assert cumulative_fraction("A/Y", index) is None


def test_missing_attribute_values_export_blank_cells(columns):
    skus = [SkuRecord(sku_code="S7", unit_price=50, hierarchy_values={"category": "A"})]
    allocations = [allocation("A", 100), allocation("A/S7", 25)]

    row = export_rows(skus, columns, allocations, 10000)[0]

    assert row.hierarchy_values == ["A", ""]
    assert (row.cumulative_percentage, row.final_amount, row.final_quantity) == ("25.0000", "2500", "50")


def test_rows_to_csv_layout():
    columns = [HierarchyColumn(level=1, column_name="category"), HierarchyColumn(level=2, column_name="material")]
    skus = [
        SkuRecord(sku_code="S1", unit_price=100, hierarchy_values={"category": "A", "material": "X"}),
        SkuRecord(sku_code="S2", unit_price=200, hierarchy_values={"category": "Tops, Knit", "material": "Y"}),
    ]
    allocations = [allocation("A", 100), allocation("A/X", 40), allocation("A/X/S1", 100)]

    text = rows_to_csv(export_rows(skus, columns, allocations, 10000), columns)

    assert text.startswith("\ufeff")
    lines = text[1:].split("\r\n")
    assert lines[0] == "category,material,sku_code,cumulative_percentage,unitprice,amount,quantity"
    assert lines[1] == "A,X,S1,40.0000,100,4000,40"
    assert lines[2] == '"Tops, Knit",Y,S2,,200,,'
