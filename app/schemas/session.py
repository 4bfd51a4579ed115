"""
Pydantic schemas for budget sessions and SKU import.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class SessionStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    ARCHIVED = "archived"


# ============================================================================
# Session Schemas
# ============================================================================

class SessionBase(BaseModel):
    """Base schema for BudgetSession"""
    name: str = Field(..., min_length=1, max_length=200, description="Session name")
    total_budget: int = Field(..., gt=0, description="Total budget in whole currency units")


class SessionCreate(SessionBase):
    """Schema for creating a session"""
    pass


class SessionUpdate(BaseModel):
    """Schema for updating a session (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    total_budget: Optional[int] = Field(None, gt=0)
    status: Optional[SessionStatus] = None


class HierarchyDefinitionResponse(BaseModel):
    """Hierarchy column of a session"""
    level: int
    column_name: str
    display_order: int

    class Config:
        from_attributes = True


class SessionResponse(SessionBase):
    """Schema for session response"""
    id: int
    status: SessionStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SessionDetailResponse(SessionResponse):
    """Session with its ordered hierarchy definitions"""
    hierarchy_definitions: List[HierarchyDefinitionResponse] = []


# ============================================================================
# SKU Import Schemas
# ============================================================================

class SkuDataIn(BaseModel):
    """One SKU row of an import"""
    sku_code: str = Field(..., min_length=1, description="Unique SKU code")
    unit_price: int = Field(..., gt=0, description="Unit price in whole currency units")
    hierarchy_values: Dict[str, str] = Field(default_factory=dict, description="Column name -> attribute value")

    # "/" separates hierarchy path segments
    @field_validator('sku_code')
    @classmethod
    def sku_code_without_separator(cls, v):
        if '/' in v:
            raise ValueError(f"sku_code '{v}' must not contain '/'")
        return v

    @field_validator('hierarchy_values')
    @classmethod
    def values_without_separator(cls, v):
        for column, value in v.items():
            if '/' in value:
                raise ValueError(f"{column} value '{value}' must not contain '/'")
        return v


class ImportRequest(BaseModel):
    """Full SKU import: replaces SKUs, hierarchy columns and allocations"""
    sku_data: List[SkuDataIn]
    hierarchy_columns: List[str] = Field(..., description="Hierarchy column names, outermost first")

    @field_validator('hierarchy_columns')
    @classmethod
    def columns_must_be_unique(cls, v):
        if len(set(v)) != len(v):
            raise ValueError('hierarchy columns must be unique')
        if any(not c.strip() for c in v):
            raise ValueError('hierarchy column names must not be blank')
        return v

    @field_validator('sku_data')
    @classmethod
    def sku_codes_must_be_unique(cls, v):
        seen = set()
        for sku in v:
            if sku.sku_code in seen:
                raise ValueError(f"duplicate sku_code '{sku.sku_code}'")
            seen.add(sku.sku_code)
        return v


class ImportResponse(BaseModel):
    """Result of a SKU import"""
    success: bool = True
    imported: int
    hierarchy_levels: int
    skipped_count: int = 0
    errors: List[dict] = []


class SkuDataResponse(BaseModel):
    """Schema for SKU row response"""
    id: int
    sku_code: str
    unit_price: int
    hierarchy_values: Dict[str, str]

    class Config:
        from_attributes = True
