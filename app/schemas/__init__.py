"""
Schemas for the application.

This module exports all Pydantic models and schemas used for request/response validation.
"""

from app.schemas.session import (
    SessionStatus,
    SessionBase,
    SessionCreate,
    SessionUpdate,
    SessionResponse,
    SessionDetailResponse,
    HierarchyDefinitionResponse,
    SkuDataIn,
    ImportRequest,
    ImportResponse,
    SkuDataResponse,
)

from app.schemas.allocation import (
    # Engine records
    HierarchyColumn,
    SkuRecord,
    AllocationRecord,
    HierarchyNode,
    ExportRow,
    # Requests
    AllocationIn,
    AllocationBulkUpdate,
    PercentageUpdate,
    DistributeRequest,
    PeriodCreate,
    # Responses
    SiblingWarning,
    AllocationTreeResponse,
    AllocationSaveResponse,
    PeriodListResponse,
    PeriodCreateResponse,
)

__all__ = [
    # Session schemas
    "SessionStatus",
    "SessionBase",
    "SessionCreate",
    "SessionUpdate",
    "SessionResponse",
    "SessionDetailResponse",
    "HierarchyDefinitionResponse",
    "SkuDataIn",
    "ImportRequest",
    "ImportResponse",
    "SkuDataResponse",

    # Engine records
    "HierarchyColumn",
    "SkuRecord",
    "AllocationRecord",
    "HierarchyNode",
    "ExportRow",

    # Allocation requests/responses
    "AllocationIn",
    "AllocationBulkUpdate",
    "PercentageUpdate",
    "DistributeRequest",
    "PeriodCreate",
    "SiblingWarning",
    "AllocationTreeResponse",
    "AllocationSaveResponse",
    "PeriodListResponse",
    "PeriodCreateResponse",
]
