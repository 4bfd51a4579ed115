"""
Allocation model.
One row per (session, hierarchy path, period); the hierarchy tree is derived from these rows.
"""

from sqlalchemy import Column, Integer, BigInteger, Float, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Allocation(Base):
    """Percentage/amount/quantity assigned to one hierarchy node"""
    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("budget_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    hierarchy_path = Column(String(1024), nullable=False)  # e.g. "Tops/Cotton/SKU-001"
    level = Column(Integer, nullable=False)  # Path segment count
    percentage = Column(Float, nullable=False, default=0.0)
    amount = Column(BigInteger, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    period = Column(String(100), nullable=True, index=True)  # NULL = default scenario
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    session = relationship("BudgetSession", back_populates="allocations")

    __table_args__ = (
        UniqueConstraint('session_id', 'hierarchy_path', 'period', name='uq_allocation_session_path_period'),
    )

    def __repr__(self):
        return f"<Allocation(session_id={self.session_id}, path='{self.hierarchy_path}', period={self.period!r})>"
