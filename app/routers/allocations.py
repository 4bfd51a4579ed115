"""
Allocation API endpoints.

Every endpoint works on one period of a session (the `period` query
parameter; omitted or blank = default scenario). Edits run through the
allocation engine and the result is saved as a full replacement set.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.session import BudgetSession
from app.schemas.allocation import (
    AllocationBulkUpdate,
    AllocationRecord,
    AllocationSaveResponse,
    AllocationTreeResponse,
    DistributeRequest,
    HierarchyNode,
    PercentageUpdate,
)
from app.services.allocation_engine import AllocationContext, recompute_all, set_percentage
from app.services.allocation_repository import AllocationRepository, normalize_period
from app.services.allocation_rules import distribute_equally, reconcile, sibling_warnings
from app.services.export_composer import export_rows, rows_to_csv
from app.services.hierarchy_tree import build_tree, find_node, path_depth
from app.services.session_repository import SessionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}", tags=["Allocations"])

PERIOD_QUERY = Query(None, description="Allocation period (omit for the default scenario)")


def _tree_response(
    db_session: BudgetSession,
    ctx: AllocationContext,
    roots: List[HierarchyNode],
    allocations: List[AllocationRecord],
) -> AllocationTreeResponse:
    return AllocationTreeResponse(
        period=ctx.period,
        total_budget=db_session.total_budget,
        roots=roots,
        allocations=allocations,
        warnings=sibling_warnings(roots),
    )


def _save_reconciled(
    db: Session,
    db_session: BudgetSession,
    ctx: AllocationContext,
    allocations: List[AllocationRecord],
) -> AllocationTreeResponse:
    roots, reconciled = reconcile(allocations, ctx)
    AllocationRepository.replace(db, db_session.id, ctx.period, reconciled)
    return _tree_response(db_session, ctx, roots, reconciled)


# ============================================================================
# READ ENDPOINTS
# ============================================================================

@router.get("/allocations", response_model=List[AllocationRecord])
def get_allocations(session_id: int, period: Optional[str] = PERIOD_QUERY, db: Session = Depends(get_db)):
    """Get the stored allocations of a period, ordered by level then path."""
    SessionRepository.get_or_404(db, session_id)
    return AllocationRepository.get_records(db, session_id, normalize_period(period))


@router.get("/tree", response_model=AllocationTreeResponse)
def get_allocation_tree(session_id: int, period: Optional[str] = PERIOD_QUERY, db: Session = Depends(get_db)):
    """
    Get the hierarchy tree of a period.

    Single-child nodes without a percentage are shown auto-filled to 100%;
    that result is persisted with the next edit. `warnings` lists sibling
    groups whose percentages do not add up to 100.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    ctx = SessionRepository.build_context(db, db_session, normalize_period(period))
    roots, allocations = reconcile(AllocationRepository.get_records(db, session_id, ctx.period), ctx)
    return _tree_response(db_session, ctx, roots, allocations)


# ============================================================================
# WRITE ENDPOINTS
# ============================================================================

@router.put("/allocations", response_model=AllocationSaveResponse)
def replace_allocations(
    session_id: int,
    update: AllocationBulkUpdate,
    period: Optional[str] = PERIOD_QUERY,
    db: Session = Depends(get_db),
):
    """
    Replace every allocation of a period.

    Levels are derived from the paths and amounts and quantities are
    recomputed from the submitted percentages. Single-child nodes left
    without a percentage are auto-filled before saving, as for any edit.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    ctx = SessionRepository.build_context(db, db_session, normalize_period(period))

    records = [
        AllocationRecord(
            **entry.model_dump(exclude={"level"}),
            level=path_depth(entry.hierarchy_path),
            period=ctx.period,
        )
        for entry in update.allocations
    ]
    _, reconciled = reconcile(recompute_all(records, ctx), ctx)
    updated = AllocationRepository.replace(db, session_id, ctx.period, reconciled)
    return AllocationSaveResponse(success=True, updated=updated)


@router.post("/allocations/percentage", response_model=AllocationTreeResponse)
def update_percentage(
    session_id: int,
    update: PercentageUpdate,
    period: Optional[str] = PERIOD_QUERY,
    db: Session = Depends(get_db),
):
    """
    Set the percentage of one hierarchy node.

    The node's amount becomes floor(parent amount * percentage / 100) and
    every descendant allocation is recomputed from its own percentage.

    Raises:
        HTTPException 404: If the path is not a node of the session hierarchy
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    ctx = SessionRepository.build_context(db, db_session, normalize_period(period))

    if find_node(build_tree(ctx.skus, ctx.column_defs, []), update.hierarchy_path) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Hierarchy path '{update.hierarchy_path}' not found"
        )

    current = AllocationRepository.get_records(db, session_id, ctx.period)
    allocations = set_percentage(update.hierarchy_path, update.percentage, current, ctx)
    return _save_reconciled(db, db_session, ctx, allocations)


@router.post("/allocations/distribute", response_model=AllocationTreeResponse)
def distribute_allocation(
    session_id: int,
    request: DistributeRequest,
    period: Optional[str] = PERIOD_QUERY,
    db: Session = Depends(get_db),
):
    """
    Split 100% evenly across the root nodes (no parent_path) or across the
    children of parent_path. Any rounding remainder goes to the first node.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    ctx = SessionRepository.build_context(db, db_session, normalize_period(period))
    current = AllocationRepository.get_records(db, session_id, ctx.period)
    roots = build_tree(ctx.skus, ctx.column_defs, current)

    if request.parent_path is not None and find_node(roots, request.parent_path) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Hierarchy path '{request.parent_path}' not found"
        )

    allocations = distribute_equally(request.parent_path, request.level, roots, current, ctx)
    return _save_reconciled(db, db_session, ctx, allocations)


# ============================================================================
# EXPORT
# ============================================================================

@router.get("/export")
def export_allocations(session_id: int, period: Optional[str] = PERIOD_QUERY, db: Session = Depends(get_db)):
    """
    Download the per-SKU allocation as CSV.

    Each SKU's percentage is the product of the percentages along its path;
    SKUs with an unset or 0% level anywhere on the path get blank cells.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    ctx = SessionRepository.build_context(db, db_session, normalize_period(period))
    allocations = AllocationRepository.get_records(db, session_id, ctx.period)

    rows = export_rows(ctx.skus, ctx.column_defs, allocations, ctx.total_budget)
    content = rows_to_csv(rows, ctx.column_defs)
    logger.info(f"Exported {len(rows)} SKU rows for session {session_id} (period={ctx.period!r})")

    filename = f"budget-allocation-{session_id}.csv"
    return StreamingResponse(
        iter([content.encode("utf-8")]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
