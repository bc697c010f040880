"""
CSV import schemas for API validation.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from ..services.reconciliation import CommitMode, MatchStrategy
from ..services.target_schema import STATUS_OPTIONS


class TargetField(BaseModel):
    """An importable catalog field."""
    key: str
    label: str
    required: bool
    type: str
    options: Optional[List[str]] = None
    default: Optional[Any] = None


class ImportStats(BaseModel):
    """Row counts for a staged import."""
    total_rows: int
    total_parsed: int
    valid_rows: int
    invalid_rows: int
    truncated: bool


class RowErrors(BaseModel):
    """Validation errors of one row."""
    row_index: int
    errors: List[Dict[str, str]]


class StageResponse(BaseModel):
    """Response for the stage endpoint."""
    import_id: str
    csv_headers: List[str]
    suggested_mappings: Dict[str, Optional[str]]
    stats: ImportStats
    validation_errors: List[RowErrors]
    preview_rows: List[Dict[str, Any]]
    target_fields: List[TargetField]


class RemapRequest(BaseModel):
    """User-adjusted column mapping for a staged import."""
    import_id: str
    mappings: Dict[str, Optional[str]]


class RemapResponse(BaseModel):
    """Response for the remap endpoint."""
    import_id: str
    stats: ImportStats
    validation_errors: List[RowErrors]
    preview_rows: List[Dict[str, Any]]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RowsResponse(BaseModel):
    """A page of staged rows."""
    rows: List[Dict[str, Any]]
    pagination: Pagination


class RowUpdateResponse(BaseModel):
    """Edited row and refreshed stats."""
    row: Dict[str, Any]
    stats: ImportStats


class CommitRequest(BaseModel):
    """Request to commit a staged import."""
    import_id: str
    mode: CommitMode = CommitMode.UPSERT
    match_strategy: MatchStrategy = MatchStrategy.SKU
    default_status: str = Field("draft", pattern="^(" + "|".join(STATUS_OPTIONS) + ")$")
    vendor_id: Optional[int] = None
    user_id: Optional[str] = None


class CommitFailure(BaseModel):
    row_index: Optional[int] = None
    title: Optional[str] = None
    error: str
    scope: str


class CommitResponse(BaseModel):
    """Final outcome of a commit."""
    import_id: str
    status: str
    created_count: int
    updated_count: int
    skipped_count: int
    failed_count: int
    total_processed: int
    failures: List[CommitFailure]
    created_ids: List[str]
    completed_at: str
    meta: Dict[str, Any]
