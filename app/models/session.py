"""
Budget session, hierarchy definition and SKU data models.
A session owns one imported SKU set and the hierarchy columns used to group it.
"""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class BudgetSession(Base):
    """Budget session - a total budget to be distributed over an SKU set"""
    __tablename__ = "budget_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    total_budget = Column(BigInteger, nullable=False)  # Whole currency units
    status = Column(String(20), nullable=False, default="draft", index=True)  # draft, confirmed, archived
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    hierarchy_definitions = relationship(
        "HierarchyDefinition",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="HierarchyDefinition.level",
    )
    sku_data = relationship(
        "SkuData",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SkuData.id",
    )
    allocations = relationship("Allocation", back_populates="session", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<BudgetSession(id={self.id}, name='{self.name}', total_budget={self.total_budget})>"


class HierarchyDefinition(Base):
    """One hierarchy column of a session (level 1 = outermost grouping)"""
    __tablename__ = "hierarchy_definitions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("budget_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    level = Column(Integer, nullable=False)
    column_name = Column(String(255), nullable=False)
    display_order = Column(Integer, nullable=False)

    session = relationship("BudgetSession", back_populates="hierarchy_definitions")

    __table_args__ = (
        UniqueConstraint('session_id', 'level', name='uq_hierarchy_session_level'),
    )

    def __repr__(self):
        return f"<HierarchyDefinition(session_id={self.session_id}, level={self.level}, column='{self.column_name}')>"


class SkuData(Base):
    """Imported SKU row with its hierarchy attribute values"""
    __tablename__ = "sku_data"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("budget_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    sku_code = Column(String(255), nullable=False)
    unit_price = Column(Integer, nullable=False)
    hierarchy_values = Column(JSON, nullable=False, default=dict)  # column name -> value
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    session = relationship("BudgetSession", back_populates="sku_data")

    __table_args__ = (
        UniqueConstraint('session_id', 'sku_code', name='uq_sku_session_code'),
    )

    def __repr__(self):
        return f"<SkuData(session_id={self.session_id}, sku_code='{self.sku_code}')>"
