"""
Pydantic schemas for request/response validation.
"""
from .csv_import import (
    TargetField, ImportStats, RowErrors, StageResponse, RemapRequest, RemapResponse,
    Pagination, RowsResponse, RowUpdateResponse, CommitRequest, CommitFailure, CommitResponse,
)

__all__ = [
    "TargetField", "ImportStats", "RowErrors", "StageResponse",
    "RemapRequest", "RemapResponse", "Pagination", "RowsResponse", "RowUpdateResponse",
    "CommitRequest", "CommitFailure", "CommitResponse",
]
