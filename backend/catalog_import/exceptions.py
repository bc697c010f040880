"""
Exception classes for the catalog import engine.

Per-row validation problems are not exceptions: they are attached to rows as
field errors. Everything here is terminal for the call that raised it.
"""
from datetime import datetime
from typing import Any, Dict, Optional


class CatalogImportError(Exception):
    """
    Base exception for import errors.

    Attributes:
        code: Error code (e.g., "IMPORT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp,
            }
        }


class ParseError(CatalogImportError):
    """Uploaded file is empty or could not be read. The user must re-upload."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_PARSE_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class SessionNotFoundError(CatalogImportError):
    """Staging session never existed or has expired. Not retryable."""

    def __init__(self, import_id: str, message: str = "Import session not found or expired"):
        super().__init__(
            code="IMPORT_NOT_FOUND",
            message=message,
            status_code=404,
            details={"import_id": import_id},
        )


class AlreadyCommittedError(CatalogImportError):
    """Staging session was already committed."""

    def __init__(self, import_id: str):
        super().__init__(
            code="IMPORT_ALREADY_COMMITTED",
            message="Import has already been committed",
            status_code=409,
            details={"import_id": import_id},
        )


class InvalidMappingError(CatalogImportError):
    """User-supplied column mapping breaks the mapping rules."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="IMPORT_INVALID_MAPPING",
            message=message,
            status_code=400,
            details=details,
        )


class InvalidFieldError(CatalogImportError):
    """Row edit names a field that is not in the target schema."""

    def __init__(self, field: str):
        super().__init__(
            code="IMPORT_INVALID_FIELD",
            message=f"Unknown target field: {field}",
            status_code=400,
            details={"field": field},
        )


class RowNotFoundError(CatalogImportError):
    """Row index is not part of the staging session."""

    def __init__(self, import_id: str, row_index: int):
        super().__init__(
            code="IMPORT_ROW_NOT_FOUND",
            message="Row not found",
            status_code=404,
            details={"import_id": import_id, "row_index": row_index},
        )


class ImportForbiddenError(CatalogImportError):
    """Caller does not own the staging session."""

    def __init__(self, import_id: str):
        super().__init__(
            code="IMPORT_FORBIDDEN",
            message="Not authorized for this import",
            status_code=403,
            details={"import_id": import_id},
        )
