"""
Pydantic schemas for hierarchy allocation.

The record types (HierarchyColumn, SkuRecord, AllocationRecord, HierarchyNode,
ExportRow) are what the allocation engine consumes and produces. They carry
no range constraints; validation of user input happens on the request
schemas further down.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


# ============================================================================
# Engine Records
# ============================================================================

class HierarchyColumn(BaseModel):
    """One hierarchy column definition (1-based level)"""
    level: int = Field(..., description="1-based hierarchy level")
    column_name: str = Field(..., description="Attribute key in SKU hierarchy values")

    class Config:
        from_attributes = True


class SkuRecord(BaseModel):
    """An imported SKU with its hierarchy attribute values"""
    sku_code: str = Field(..., description="Unique SKU code")
    unit_price: int = Field(..., description="Unit price in whole currency units")
    hierarchy_values: Dict[str, str] = Field(default_factory=dict, description="Column name -> attribute value")

    class Config:
        from_attributes = True


class AllocationRecord(BaseModel):
    """Allocation stored against one hierarchy path"""
    hierarchy_path: str
    level: int = Field(..., description="Path segment count")
    percentage: float = 0.0
    amount: int = 0
    quantity: int = 0
    period: Optional[str] = Field(None, description="Scenario name (None = default)")

    class Config:
        from_attributes = True


class HierarchyNode(BaseModel):
    """Derived tree node, rebuilt from SKUs and allocations on every change"""
    path: str
    name: str
    level: int
    percentage: float = 0.0
    amount: int = 0
    quantity: int = 0
    unit_price: Optional[int] = None  # SKU level only
    children: List["HierarchyNode"] = Field(default_factory=list)


class ExportRow(BaseModel):
    """One export line per SKU. Blank strings mean "not yet allocated"."""
    hierarchy_values: List[str] = Field(..., description="Attribute values in column order")
    sku_code: str
    cumulative_percentage: str = ""
    unit_price: int
    final_amount: str = ""
    final_quantity: str = ""


# ============================================================================
# Request Schemas
# ============================================================================

class AllocationIn(BaseModel):
    """Allocation row submitted for a full replacement save"""
    hierarchy_path: str = Field(..., min_length=1)
    level: int = Field(..., ge=1)
    percentage: float = Field(..., ge=0, le=100)
    amount: int = Field(0, ge=0)
    quantity: int = Field(0, ge=0)


class AllocationBulkUpdate(BaseModel):
    """Schema for replacing every allocation of a session period"""
    allocations: List[AllocationIn] = Field(..., description="Complete allocation set")


class PercentageUpdate(BaseModel):
    """Set the percentage of a single hierarchy node"""
    hierarchy_path: str = Field(..., min_length=1, description="Node path, e.g. 'Tops/Cotton'")
    percentage: float = Field(..., ge=0, le=100, description="Share of the parent amount")


class DistributeRequest(BaseModel):
    """Split 100% evenly across the children of a node (or across the roots)"""
    parent_path: Optional[str] = Field(None, description="Parent node path; omit for root nodes")
    level: Optional[int] = Field(None, ge=1, description="Only split across children at this level")


class PeriodCreate(BaseModel):
    """Schema for adding a period"""
    period: str = Field(..., description="New period name")
    copy_from: Optional[str] = Field(None, description="Existing period to copy allocations from")


# ============================================================================
# Response Schemas
# ============================================================================

class SiblingWarning(BaseModel):
    """Advisory: a sibling group whose percentages do not add up to 100"""
    parent_path: Optional[str] = Field(None, description="Parent path (None for the root group)")
    level: int
    total_percentage: float
    child_count: int


class AllocationTreeResponse(BaseModel):
    """Reconciled hierarchy view of a session period"""
    period: Optional[str] = None
    total_budget: int
    roots: List[HierarchyNode]
    allocations: List[AllocationRecord]
    warnings: List[SiblingWarning] = []


class AllocationSaveResponse(BaseModel):
    """Response for a full replacement save"""
    success: bool = True
    updated: int


class PeriodListResponse(BaseModel):
    """Distinct periods of a session, default scenario first"""
    periods: List[Optional[str]]


class PeriodCreateResponse(BaseModel):
    """Response for period creation"""
    success: bool = True
    period: str
    copied: int = 0
