"""
Database models for the application.
"""

from app.core.database import Base
from app.models.session import BudgetSession, HierarchyDefinition, SkuData
from app.models.allocation import Allocation

__all__ = [
    "Base",
    "BudgetSession",
    "HierarchyDefinition",
    "SkuData",
    "Allocation",
]
