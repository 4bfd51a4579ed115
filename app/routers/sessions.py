"""
Budget session API endpoints.

CRUD for sessions plus SKU import (JSON or CSV upload).
"""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.schemas.session import (
    ImportRequest,
    ImportResponse,
    SessionCreate,
    SessionDetailResponse,
    SessionResponse,
    SessionUpdate,
    SkuDataResponse,
)
from app.services.allocation_engine import recompute_all
from app.services.allocation_repository import AllocationRepository
from app.services.session_repository import SessionRepository
from app.services.sku_import import SkuImportError, decode_csv, parse_sku_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


# ============================================================================
# SESSION CRUD
# ============================================================================

@router.post("/", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(session_data: SessionCreate, db: Session = Depends(get_db)):
    """
    Create a new budget session.

    **Required fields:**
    - name: Session name (1-200 characters)
    - total_budget: Budget to distribute, in whole currency units
    """
    return SessionRepository.create(db, session_data)


@router.get("/", response_model=List[SessionResponse])
def get_all_sessions(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    db: Session = Depends(get_db),
):
    """Get all sessions with pagination, newest first."""
    sessions, _ = SessionRepository.get_all(db, skip, limit)
    return sessions


@router.get("/{session_id}", response_model=SessionDetailResponse)
def get_session(session_id: int, db: Session = Depends(get_db)):
    """
    Get a session with its hierarchy definitions (ordered by level).

    Raises:
        HTTPException 404: If session not found
    """
    return SessionRepository.get_or_404(db, session_id)


@router.put("/{session_id}", response_model=SessionResponse)
def update_session(session_id: int, session_data: SessionUpdate, db: Session = Depends(get_db)):
    """
    Update a session's name, total budget or status.

    Changing the total budget recomputes the amounts and quantities of every
    period from the stored percentages.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    previous_budget = db_session.total_budget

    db_session = SessionRepository.update(db, db_session, session_data)

    if db_session.total_budget != previous_budget:
        ctx = SessionRepository.build_context(db, db_session)
        for period in AllocationRepository.list_periods(db, session_id):
            records = AllocationRepository.get_records(db, session_id, period)
            AllocationRepository.replace(db, session_id, period, recompute_all(records, ctx.for_period(period)))
        logger.info(f"Recomputed allocations of session {session_id} for budget {previous_budget} -> {db_session.total_budget}")

    return db_session


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: int, db: Session = Depends(get_db)):
    """Delete a session together with its SKUs, hierarchy and allocations."""
    db_session = SessionRepository.get_or_404(db, session_id)
    SessionRepository.delete(db, db_session)
    return None


# ============================================================================
# SKU IMPORT
# ============================================================================

@router.post("/{session_id}/import", response_model=ImportResponse)
def import_sku_data(session_id: int, import_data: ImportRequest, db: Session = Depends(get_db)):
    """
    Replace the SKU set and hierarchy columns of a session.

    All existing allocations (every period) are deleted.
    """
    db_session = SessionRepository.get_or_404(db, session_id)
    imported = SessionRepository.replace_import(db, db_session, import_data.hierarchy_columns, import_data.sku_data)
    return ImportResponse(
        success=True,
        imported=imported,
        hierarchy_levels=len(import_data.hierarchy_columns),
    )


@router.post("/{session_id}/import/csv", response_model=ImportResponse)
async def import_sku_csv(
    session_id: int,
    file: UploadFile = File(..., description="CSV with sku_code, unitprice and hierarchy columns"),
    db: Session = Depends(get_db),
):
    """
    Upload a CSV to replace the SKU set of a session.

    **CSV Format:**
    Required headers: sku_code, unitprice. Every other column is treated as a
    hierarchy level, outermost first, in file order.

    **Example CSV:**
    ```csv
    category,material,sku_code,unitprice
    Tops,Cotton,TS-001,1200
    Tops,Linen,TS-002,1800
    ```
    """
    start_time = time.time()
    db_session = SessionRepository.get_or_404(db, session_id)

    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be a CSV file (.csv extension)"
        )

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit"
        )

    try:
        sku_rows, hierarchy_columns, errors, skipped_count = parse_sku_csv(
            decode_csv(content), settings.MAX_UPLOAD_ROWS
        )
    except SkuImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not sku_rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV contains no valid SKU rows"
        )

    imported = SessionRepository.replace_import(db, db_session, hierarchy_columns, sku_rows)
    logger.info(f"CSV import for session {session_id} took {time.time() - start_time:.2f}s")

    return ImportResponse(
        success=len(errors) == 0,
        imported=imported,
        hierarchy_levels=len(hierarchy_columns),
        skipped_count=skipped_count,
        errors=errors,
    )


@router.get("/{session_id}/sku-data", response_model=List[SkuDataResponse])
def get_sku_data(session_id: int, db: Session = Depends(get_db)):
    """Get the SKU rows of a session in import order."""
    SessionRepository.get_or_404(db, session_id)
    return SessionRepository.get_sku_data(db, session_id)
