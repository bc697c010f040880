"""
CSV import router: upload, review, remap, edit and commit catalog imports.
Supports CSV (.csv) and Excel (.xlsx) uploads.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response

from ..dependencies import get_catalog, get_service
from ..schemas.csv_import import (
    CommitRequest,
    CommitResponse,
    RemapRequest,
    RemapResponse,
    RowsResponse,
    RowUpdateResponse,
    StageResponse,
    TargetField,
)
from ..services.catalog_store import SqlCatalogStore
from ..services.csv_import_service import ImportService
from ..services.reconciliation import CommitOptions
from ..services.row_parser import ALLOWED_EXTENSIONS

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/import", tags=["csv-import"])

ROLES = ("vendor", "admin")


@router.get("/fields", response_model=List[TargetField])
def get_target_fields(service: ImportService = Depends(get_service)):
    """List the catalog fields a column can be mapped to."""
    return service.target_fields()


@router.post("/stage", response_model=StageResponse)
async def stage_import(
    file: Optional[UploadFile] = File(None),
    csv_content: Optional[str] = Form(None),
    vendor_id: Optional[int] = Form(None),
    user_id: Optional[str] = Form(None),
    role: str = Form("vendor"),
    service: ImportService = Depends(get_service),
):
    """
    Upload a CSV or Excel file and stage it for review.
    Returns the detected column mapping, validation stats and sample rows.
    """
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"role must be one of {', '.join(ROLES)}")
    if role == "vendor" and vendor_id is None:
        raise HTTPException(status_code=400, detail="vendor_id is required for vendor imports")

    if file is not None:
        if file.filename and not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise HTTPException(
                status_code=400,
                detail="File must be a CSV or Excel file (.csv, .txt, .xlsx)",
            )
        content = await file.read()
        file_name = file.filename or "import.csv"
    elif csv_content:
        content = csv_content
        file_name = "import.csv"
    else:
        raise HTTPException(status_code=400, detail="CSV file is required")

    return service.stage(
        content,
        {"file_name": file_name, "vendor_id": vendor_id, "user_id": user_id, "role": role},
    )


@router.post("/remap", response_model=RemapResponse)
def remap_import(request: RemapRequest, service: ImportService = Depends(get_service)):
    """Apply a user-adjusted column mapping to a staged import."""
    return service.remap(request.import_id, request.mappings)


@router.get("/{import_id}/rows", response_model=RowsResponse)
def get_rows(
    import_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    row_filter: str = Query("all", alias="filter", pattern="^(all|valid|invalid)$"),
    service: ImportService = Depends(get_service),
):
    """Page through staged rows."""
    return service.get_rows(import_id, page=page, limit=limit, filter=row_filter)


@router.patch("/{import_id}/rows/{row_index}", response_model=RowUpdateResponse)
def update_row(
    import_id: str,
    row_index: int,
    updates: Dict[str, Any] = Body(...),
    service: ImportService = Depends(get_service),
):
    """Edit a single staged row and re-validate it."""
    return service.update_row(import_id, row_index, updates)


@router.get("/{import_id}/status")
def get_import_status(import_id: str, service: ImportService = Depends(get_service)):
    """Session status, or the commit result once the session has expired."""
    return service.get_status(import_id)


@router.post("/commit", response_model=CommitResponse)
def commit_import(
    request: CommitRequest,
    service: ImportService = Depends(get_service),
    catalog: SqlCatalogStore = Depends(get_catalog),
):
    """Commit the valid rows of a staged import into the catalog."""
    options = CommitOptions(
        mode=request.mode,
        match_strategy=request.match_strategy,
        default_status=request.default_status,
        vendor_id=request.vendor_id,
        user_id=request.user_id,
    )
    return service.commit(request.import_id, options, catalog)


@router.get("/{import_id}/errors.csv")
def download_error_csv(import_id: str, service: ImportService = Depends(get_service)):
    """Download the invalid rows with their errors as CSV."""
    content = service.error_report(import_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="import-errors-{import_id}.csv"'},
    )
