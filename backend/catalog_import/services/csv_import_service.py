"""
CSV import service: stage, remap, review, edit and commit catalog imports.

A vendor upload is parsed, auto-mapped, normalized and validated into a staging
session. The session can be remapped and edited any number of times, then
committed once into the catalog.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config import get_settings
from ..exceptions import (
    AlreadyCommittedError,
    CatalogImportError,
    ImportForbiddenError,
    InvalidFieldError,
    InvalidMappingError,
    RowNotFoundError,
    SessionNotFoundError,
)
from .column_mapping import IGNORE, mapped_targets, propose_mappings
from .error_report import generate_error_csv
from .normalization import (
    ROW_INDEX_KEY,
    apply_mappings,
    collect_errors,
    compute_stats,
    is_valid,
    normalize_edit_value,
    validate_row,
    validate_rows,
    with_errors,
)
from .reconciliation import CommitEngine, CommitMode, CommitOptions, MatchStrategy
from .row_parser import parse_upload
from .staging_store import StagingStore, generate_import_id, get_staging_store
from .target_schema import get_field, list_fields

logger = logging.getLogger(__name__)

STATUS_STAGED = "staged"
STATUS_COMMITTED = "committed"

ROW_FILTERS = ("all", "valid", "invalid")


class ImportService:
    """Import workflow over an injected staging store."""

    def __init__(
        self,
        store: StagingStore,
        max_rows: int = 5000,
        batch_size: int = 100,
        preview_rows: int = 100,
    ):
        self.store = store
        self.max_rows = max_rows
        self.batch_size = batch_size
        self.preview_rows = preview_rows

    # ===== HELPERS =====

    def _load(self, import_id: str) -> Dict[str, Any]:
        staging = self.store.get(import_id)
        if staging is None:
            raise SessionNotFoundError(import_id)
        return staging

    def _preview(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return rows[: self.preview_rows]

    def _validate_mappings(self, staging: Dict[str, Any], mappings: Mapping[str, Optional[str]]) -> None:
        headers = set(staging["csv_headers"])
        seen: Dict[str, str] = {}
        for column, target in mappings.items():
            if column not in headers:
                raise InvalidMappingError(
                    f"Unknown source column: {column}", details={"column": column}
                )
            if not target or target == IGNORE:
                continue
            if get_field(target) is None:
                raise InvalidMappingError(
                    f"Unknown target field: {target}", details={"column": column, "target": target}
                )
            if target in seen:
                raise InvalidMappingError(
                    f"Target field '{target}' is mapped more than once",
                    details={"target": target, "columns": [seen[target], column]},
                )
            seen[target] = column

    # ===== OPERATIONS =====

    def target_fields(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in list_fields()]

    def stage(self, content: Union[bytes, str], meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Parse an upload and store it as a new staging session.

        Args:
            content: Raw file content (bytes or text)
            meta: file_name, vendor_id, user_id, role

        Returns:
            import_id, headers, suggested mapping, stats, validation errors,
            preview rows and the target field list

        Raises:
            ParseError: If the file is empty or unreadable
        """
        meta = dict(meta or {})
        file_name = meta.get("file_name") or "import.csv"
        parsed = parse_upload(file_name, content, self.max_rows)

        import_id = generate_import_id()
        suggested = propose_mappings(parsed.headers)
        validation = validate_rows(apply_mappings(parsed.rows, suggested))
        stats = compute_stats(
            validation.rows,
            total_rows=len(parsed.rows),
            total_parsed=parsed.total_parsed,
            truncated=parsed.total_parsed > self.max_rows,
        )

        staging = {
            "import_id": import_id,
            "csv_headers": parsed.headers,
            "suggested_mappings": suggested,
            "current_mappings": dict(suggested),
            "raw_rows": parsed.rows,
            "normalized_rows": validation.rows,
            "validation_errors": validation.errors,
            "stats": stats,
            "meta": {
                "file_name": file_name,
                "uploaded_at": datetime.utcnow().isoformat(),
                "vendor_id": meta.get("vendor_id"),
                "user_id": meta.get("user_id"),
                "role": meta.get("role") or "vendor",
            },
            "status": STATUS_STAGED,
        }
        self.store.create(import_id, staging)

        logger.info(
            f"Staged import {import_id} ({file_name}): {stats['total_rows']} rows, "
            f"{stats['valid_rows']} valid, {stats['invalid_rows']} invalid"
        )

        return {
            "import_id": import_id,
            "csv_headers": parsed.headers,
            "suggested_mappings": suggested,
            "stats": stats,
            "validation_errors": validation.errors,
            "preview_rows": self._preview(validation.rows),
            "target_fields": self.target_fields(),
        }

    def remap(self, import_id: str, mappings: Mapping[str, Optional[str]]) -> Dict[str, Any]:
        """Re-normalize and re-validate the stored raw rows under a new mapping."""
        staging = self._load(import_id)
        if staging["status"] == STATUS_COMMITTED:
            raise AlreadyCommittedError(import_id)
        self._validate_mappings(staging, mappings)

        validation = validate_rows(apply_mappings(staging["raw_rows"], mappings))
        stats = compute_stats(
            validation.rows,
            total_rows=len(staging["raw_rows"]),
            total_parsed=staging["stats"]["total_parsed"],
            truncated=staging["stats"]["truncated"],
        )

        staging["current_mappings"] = dict(mappings)
        staging["normalized_rows"] = validation.rows
        staging["validation_errors"] = validation.errors
        staging["stats"] = stats
        self.store.put(import_id, staging)

        logger.info(
            f"Remapped import {import_id}: {stats['valid_rows']} valid, {stats['invalid_rows']} invalid"
        )

        return {
            "import_id": import_id,
            "stats": stats,
            "validation_errors": validation.errors,
            "preview_rows": self._preview(validation.rows),
        }

    def get_rows(self, import_id: str, page: int = 1, limit: int = 50, filter: str = "all") -> Dict[str, Any]:
        """Paginated normalized rows, optionally only valid or invalid ones."""
        staging = self._load(import_id)
        rows = staging["normalized_rows"]

        if filter == "valid":
            rows = [r for r in rows if is_valid(r)]
        elif filter == "invalid":
            rows = [r for r in rows if not is_valid(r)]

        page = max(1, page)
        limit = max(1, limit)
        total = len(rows)
        offset = (page - 1) * limit

        return {
            "rows": rows[offset:offset + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    def update_row(self, import_id: str, row_index: int, updates: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Edit one staged row and re-validate it.

        Values go through the field's normalizer (see normalize_edit_value);
        keys starting with "_" are ignored.
        """
        staging = self._load(import_id)
        if staging["status"] == STATUS_COMMITTED:
            raise AlreadyCommittedError(import_id)

        rows = staging["normalized_rows"]
        position = next(
            (i for i, r in enumerate(rows) if r.get(ROW_INDEX_KEY) == row_index), None
        )
        if position is None:
            raise RowNotFoundError(import_id, row_index)

        changes = {k: v for k, v in updates.items() if not k.startswith("_")}
        for key in changes:
            if get_field(key) is None:
                raise InvalidFieldError(key)

        row = dict(rows[position])
        for key, value in changes.items():
            row[key] = normalize_edit_value(value, get_field(key))

        rows[position] = with_errors(row, validate_row(row))
        staging["stats"] = compute_stats(
            rows,
            total_rows=staging["stats"]["total_rows"],
            total_parsed=staging["stats"]["total_parsed"],
            truncated=staging["stats"]["truncated"],
        )
        staging["validation_errors"] = collect_errors(rows)
        self.store.put(import_id, staging)

        return {"row": rows[position], "stats": staging["stats"]}

    def get_status(self, import_id: str) -> Dict[str, Any]:
        """Session status while it lives, otherwise the stored commit result."""
        staging = self.store.get(import_id)
        if staging is not None:
            return {
                "import_id": import_id,
                "status": staging["status"],
                "stats": staging["stats"],
                "meta": staging["meta"],
            }

        result = self.store.get_result(import_id)
        if result is not None:
            return result

        raise SessionNotFoundError(import_id, message="Import not found")

    def commit(self, import_id: str, options: CommitOptions, catalog) -> Dict[str, Any]:
        """
        Write the session's valid rows to the catalog.

        Args:
            import_id: Staging session id
            options: Mode, match strategy, default status, vendor and user
            catalog: Catalog store for this request

        Returns:
            The commit result (also stored for later status lookups)

        Raises:
            SessionNotFoundError: Session missing or expired
            AlreadyCommittedError: Session committed, or a commit is in progress
            ImportForbiddenError: Vendor session committed for another vendor
        """
        staging = self._load(import_id)
        if staging["status"] == STATUS_COMMITTED:
            raise AlreadyCommittedError(import_id)

        meta = staging["meta"]
        if options.vendor_id is None:
            options.vendor_id = meta.get("vendor_id")
        if options.vendor_id is None:
            raise CatalogImportError(
                code="IMPORT_VENDOR_REQUIRED",
                message="vendor_id is required to commit an import",
                status_code=400,
                details={"import_id": import_id},
            )
        if meta.get("role") == "vendor" and meta.get("vendor_id") not in (None, options.vendor_id):
            raise ImportForbiddenError(import_id)

        if not self.store.claim_commit(import_id):
            raise AlreadyCommittedError(import_id)

        mode = CommitMode(options.mode)
        strategy = MatchStrategy(options.match_strategy)
        options.mode, options.match_strategy = mode, strategy

        try:
            rows = [r for r in staging["normalized_rows"] if is_valid(r)]
            status_mapped = "status" in mapped_targets(staging["current_mappings"])
            logger.info(
                f"Committing import {import_id}: {len(rows)} valid rows, "
                f"mode={mode.value}, match={strategy.value}, vendor={options.vendor_id}"
            )

            outcome = CommitEngine(catalog, self.batch_size).run(rows, options, status_mapped)

            result = {
                "import_id": import_id,
                "status": "completed",
                "created_count": outcome.created_count,
                "updated_count": outcome.updated_count,
                "skipped_count": outcome.skipped_count,
                "failed_count": outcome.failed_count,
                "total_processed": outcome.total_processed,
                "failures": [f.to_dict() for f in outcome.failures],
                "created_ids": outcome.created_ids,
                "completed_at": datetime.utcnow().isoformat(),
                "meta": {
                    **meta,
                    "user_id": options.user_id,
                    "vendor_id": options.vendor_id,
                    "mode": mode.value,
                    "match_strategy": strategy.value,
                    "default_status": options.default_status,
                },
            }
            self.store.store_result(import_id, result)

            staging["status"] = STATUS_COMMITTED
            self.store.put(import_id, staging)
        except Exception:
            self.store.release_commit(import_id)
            raise

        logger.info(
            f"Import {import_id} committed: {outcome.created_count} created, "
            f"{outcome.updated_count} updated, {outcome.skipped_count} skipped, "
            f"{outcome.failed_count} failed"
        )
        return result

    def error_report(self, import_id: str) -> str:
        """CSV of the session's invalid rows with their errors."""
        staging = self._load(import_id)
        return generate_error_csv(staging["normalized_rows"])


def get_import_service() -> ImportService:
    """Import service wired to the configured staging store."""
    settings = get_settings()
    return ImportService(
        get_staging_store(),
        max_rows=settings.import_max_rows,
        batch_size=settings.import_batch_size,
        preview_rows=settings.import_preview_rows,
    )
