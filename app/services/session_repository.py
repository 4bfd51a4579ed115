"""
Repository for budget sessions, hierarchy definitions and SKU data.
"""

import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.allocation import Allocation
from app.models.session import BudgetSession, HierarchyDefinition, SkuData
from app.schemas.allocation import HierarchyColumn, SkuRecord
from app.schemas.session import SessionCreate, SessionUpdate, SkuDataIn
from app.services.allocation_engine import AllocationContext

logger = logging.getLogger(__name__)


class SessionRepository:
    """Repository for BudgetSession operations"""

    @staticmethod
    def create(db: Session, session_data: SessionCreate) -> BudgetSession:
        """Create a new budget session"""
        db_session = BudgetSession(
            name=session_data.name,
            total_budget=session_data.total_budget,
            status="draft",
        )
        db.add(db_session)
        db.commit()
        db.refresh(db_session)
        logger.info(f"Created session {db_session.id} with budget {db_session.total_budget}")
        return db_session

    @staticmethod
    def get_by_id(db: Session, session_id: int) -> Optional[BudgetSession]:
        return db.query(BudgetSession).filter(BudgetSession.id == session_id).first()

    @staticmethod
    def get_or_404(db: Session, session_id: int) -> BudgetSession:
        """Get a session or raise 404"""
        db_session = SessionRepository.get_by_id(db, session_id)
        if not db_session:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session with ID {session_id} not found"
            )
        return db_session

    @staticmethod
    def get_all(db: Session, skip: int = 0, limit: int = 100) -> Tuple[List[BudgetSession], int]:
        """
        Get sessions, newest first.
        Returns: (list of sessions, total count)
        """
        query = db.query(BudgetSession)
        total = query.count()
        sessions = query.order_by(BudgetSession.id.desc()).offset(skip).limit(limit).all()
        return sessions, total

    @staticmethod
    def update(db: Session, db_session: BudgetSession, session_update: SessionUpdate) -> BudgetSession:
        """Update name, budget or status"""
        update_data = session_update.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in update_data:
            update_data["status"] = update_data["status"].value
        for field, value in update_data.items():
            setattr(db_session, field, value)

        db.commit()
        db.refresh(db_session)
        return db_session

    @staticmethod
    def delete(db: Session, db_session: BudgetSession) -> None:
        db.delete(db_session)
        db.commit()
        logger.info(f"Deleted session {db_session.id}")

    # ============================================================================
    # Import
    # ============================================================================

    @staticmethod
    def replace_import(
        db: Session,
        db_session: BudgetSession,
        hierarchy_columns: List[str],
        sku_rows: List[SkuDataIn],
    ) -> int:
        """
        Replace the hierarchy columns and SKUs of a session.

        Every allocation of every period is discarded in the same transaction,
        since existing paths no longer describe the new SKU set.
        """
        session_id = db_session.id
        try:
            db.query(Allocation).filter(Allocation.session_id == session_id).delete(synchronize_session=False)
            db.query(SkuData).filter(SkuData.session_id == session_id).delete(synchronize_session=False)
            db.query(HierarchyDefinition).filter(
                HierarchyDefinition.session_id == session_id
            ).delete(synchronize_session=False)

            db.add_all([
                HierarchyDefinition(
                    session_id=session_id,
                    level=index + 1,
                    column_name=column,
                    display_order=index + 1,
                )
                for index, column in enumerate(hierarchy_columns)
            ])
            db.add_all([
                SkuData(
                    session_id=session_id,
                    sku_code=sku.sku_code,
                    unit_price=sku.unit_price,
                    hierarchy_values=dict(sku.hierarchy_values),
                )
                for sku in sku_rows
            ])
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )

        logger.info(f"Imported {len(sku_rows)} SKUs with {len(hierarchy_columns)} hierarchy levels into session {session_id}")
        return len(sku_rows)

    # ============================================================================
    # Engine Inputs
    # ============================================================================

    @staticmethod
    def get_sku_data(db: Session, session_id: int) -> List[SkuData]:
        """SKU rows in import order"""
        return db.query(SkuData).filter(SkuData.session_id == session_id).order_by(SkuData.id.asc()).all()

    @staticmethod
    def get_columns(db: Session, session_id: int) -> List[HierarchyColumn]:
        definitions = db.query(HierarchyDefinition).filter(
            HierarchyDefinition.session_id == session_id
        ).order_by(HierarchyDefinition.level.asc()).all()
        return [HierarchyColumn.model_validate(d) for d in definitions]

    @staticmethod
    def build_context(db: Session, db_session: BudgetSession, period: Optional[str] = None) -> AllocationContext:
        """Load everything the allocation engine needs for a session period"""
        skus = [SkuRecord.model_validate(s) for s in SessionRepository.get_sku_data(db, db_session.id)]
        return AllocationContext(
            total_budget=db_session.total_budget,
            column_defs=SessionRepository.get_columns(db, db_session.id),
            skus=skus,
            period=period,
        )
