"""
Repository for allocation rows.
Allocations are saved per (session, period) as a full replacement set.
"""

import logging
from typing import List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.allocation import Allocation
from app.schemas.allocation import AllocationRecord

logger = logging.getLogger(__name__)


def normalize_period(period: Optional[str]) -> Optional[str]:
    """Blank period names mean the default scenario."""
    if period is None:
        return None
    period = period.strip()
    return period or None


def _period_filter(period: Optional[str]):
    if period is None:
        return Allocation.period.is_(None)
    return Allocation.period == period


class AllocationRepository:
    """Repository for Allocation operations"""

    @staticmethod
    def get_records(db: Session, session_id: int, period: Optional[str] = None) -> List[AllocationRecord]:
        """Allocations of one period, ordered by level then path"""
        rows = db.query(Allocation).filter(
            Allocation.session_id == session_id,
            _period_filter(period),
        ).order_by(Allocation.level.asc(), Allocation.hierarchy_path.asc()).all()
        return [AllocationRecord.model_validate(row) for row in rows]

    @staticmethod
    def replace(
        db: Session,
        session_id: int,
        period: Optional[str],
        records: Sequence[AllocationRecord],
    ) -> int:
        """Delete the period's allocations and insert `records` in one transaction"""
        try:
            db.query(Allocation).filter(
                Allocation.session_id == session_id,
                _period_filter(period),
            ).delete(synchronize_session=False)

            db.add_all([
                Allocation(
                    session_id=session_id,
                    hierarchy_path=record.hierarchy_path,
                    level=record.level,
                    percentage=record.percentage,
                    amount=record.amount,
                    quantity=record.quantity,
                    period=period,
                )
                for record in records
            ])
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )

        logger.info(f"Saved {len(records)} allocations for session {session_id} (period={period!r})")
        return len(records)

    # ============================================================================
    # Period Methods
    # ============================================================================

    @staticmethod
    def list_periods(db: Session, session_id: int) -> List[Optional[str]]:
        """Distinct periods; the default (None) first, then ascending"""
        rows = db.query(Allocation.period).filter(Allocation.session_id == session_id).distinct().all()
        periods = {row[0] for row in rows}
        named = sorted(p for p in periods if p is not None)
        return ([None] if None in periods else []) + named

    @staticmethod
    def period_exists(db: Session, session_id: int, period: str) -> bool:
        return db.query(Allocation.id).filter(
            Allocation.session_id == session_id,
            Allocation.period == period,
        ).first() is not None

    @staticmethod
    def copy_period(db: Session, session_id: int, source: Optional[str], target: str) -> int:
        """Copy every allocation of `source` under the period name `target`"""
        records = AllocationRepository.get_records(db, session_id, source)
        if not records:
            return 0
        copied = AllocationRepository.replace(db, session_id, target, records)
        logger.info(f"Copied {copied} allocations from period {source!r} to {target!r} in session {session_id}")
        return copied
