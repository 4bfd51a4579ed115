"""
Allocation period API endpoints.

A period is a named allocation scenario. Periods exist only through their
allocation rows; the default scenario has no name.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.allocation import PeriodCreate, PeriodCreateResponse, PeriodListResponse
from app.services.allocation_repository import AllocationRepository, normalize_period
from app.services.session_repository import SessionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}/periods", tags=["Periods"])


@router.get("", response_model=PeriodListResponse)
def get_periods(session_id: int, db: Session = Depends(get_db)):
    """List the periods of a session; the default scenario (null) comes first."""
    SessionRepository.get_or_404(db, session_id)
    return PeriodListResponse(periods=AllocationRepository.list_periods(db, session_id))


@router.post("", response_model=PeriodCreateResponse)
def create_period(session_id: int, period_data: PeriodCreate, db: Session = Depends(get_db)):
    """
    Add a period, optionally copying the allocations of an existing one.

    Without copy_from nothing is stored; the period appears in the list once
    its first allocation is saved.

    Raises:
        HTTPException 400: If the period name is blank
        HTTPException 409: If the period already has allocations
    """
    SessionRepository.get_or_404(db, session_id)

    period = normalize_period(period_data.period)
    if period is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Period name is required"
        )

    if AllocationRepository.period_exists(db, session_id, period):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Period already exists"
        )

    copied = 0
    if period_data.copy_from:
        copied = AllocationRepository.copy_period(db, session_id, period_data.copy_from, period)

    logger.info(f"Created period {period!r} in session {session_id} ({copied} allocations copied)")
    return PeriodCreateResponse(success=True, period=period, copied=copied)
