"""
Reconciliation of staged rows against the catalog.

Rows are written in fixed-size batches, one transaction per batch. A row that
fails inside a batch is recorded and its siblings carry on. If the batch
transaction itself fails, the whole batch is rolled back and every row in it is
recorded as failed, because individual outcomes inside an aborted transaction
are unknown.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .normalization import ROW_INDEX_KEY

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class CommitMode(str, Enum):
    """Whether a commit may create listings, update them, or both."""
    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"


class MatchStrategy(str, Enum):
    """How a staged row is matched to an existing listing of the vendor."""
    ISBN = "isbn"
    SKU = "sku"
    TITLE_AUTHOR = "title_author"
    WP_POST_ID = "wp_post_id"
    NONE = "none"


class RowAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class CommitOptions:
    mode: CommitMode = CommitMode.UPSERT
    match_strategy: MatchStrategy = MatchStrategy.SKU
    default_status: str = "draft"
    vendor_id: Optional[int] = None
    user_id: Optional[str] = None


def decide_action(mode: CommitMode, has_match: bool) -> RowAction:
    """Outcome for a row given the commit mode and whether a listing matched."""
    if has_match:
        return RowAction.SKIP if mode == CommitMode.CREATE else RowAction.UPDATE
    return RowAction.SKIP if mode == CommitMode.UPDATE else RowAction.CREATE


# ---------------------------------------------------------------------------
# Failure records
# ---------------------------------------------------------------------------

@dataclass
class RowCommitFailure:
    """A single row's catalog write failed; other rows were unaffected."""
    row_index: int
    title: Optional[str]
    error: str
    scope: str = field(default="row", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "title": self.title,
            "error": self.error,
            "scope": self.scope,
        }


@dataclass
class BatchCommitFailure(RowCommitFailure):
    """The row's batch transaction failed, so the row was rolled back."""
    scope: str = field(default="batch", init=False)


@dataclass
class CommitOutcome:
    created_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    failures: List[RowCommitFailure] = field(default_factory=list)
    created_ids: List[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def total_processed(self) -> int:
        return self.created_count + self.updated_count + self.skipped_count + self.failed_count

    def merge(self, other: "CommitOutcome") -> None:
        self.created_count += other.created_count
        self.updated_count += other.updated_count
        self.skipped_count += other.skipped_count
        self.failures.extend(other.failures)
        self.created_ids.extend(other.created_ids)


# ---------------------------------------------------------------------------
# Row → catalog record
# ---------------------------------------------------------------------------

def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def build_book_data(
    row: Dict[str, Any],
    options: CommitOptions,
    status_mapped: bool = True,
) -> Dict[str, Any]:
    """
    Catalog column values for a staged row.

    The listing status comes from the row only when the file had a status
    column; otherwise the commit's default status is used.
    """
    quantity = row.get("quantity")
    status = row.get("status") if status_mapped else None

    data: Dict[str, Any] = {
        "vendor_id": options.vendor_id,
        "title": row.get("title"),
        "author": row.get("author"),
        "isbn": row.get("isbn") or None,
        "description": row.get("description") or None,
        "short_description": row.get("short_description") or None,
        "price": row.get("price"),
        "quantity": int(quantity) if quantity is not None else 1,
        "condition": row.get("condition") or "good",
        "category": row.get("category") or None,
        "status": status or options.default_status,
        "language": row.get("language") or "English",
    }

    # Optional fields only overwrite when present in the file
    sid = row.get("sku") or row.get("sid")
    if sid:
        data["sid"] = sid
    for key in ("publisher", "edition", "binding", "keywords"):
        if row.get(key):
            data[key] = row[key]
    if row.get("publication_year"):
        data["publication_year"] = int(row["publication_year"])
    if row.get("is_signed") is not None:
        data["is_signed"] = bool(row["is_signed"])
    if row.get("weight"):
        data["weight"] = row["weight"]
    if row.get("wp_post_id"):
        data["wp_post_id"] = _int_or_none(row["wp_post_id"])

    return data


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class CommitEngine:
    """Applies valid staged rows to the catalog in transactional batches."""

    def __init__(self, catalog, batch_size: int = DEFAULT_BATCH_SIZE):
        self.catalog = catalog
        self.batch_size = max(1, batch_size)

    def run(
        self,
        rows: List[Dict[str, Any]],
        options: CommitOptions,
        status_mapped: bool = True,
    ) -> CommitOutcome:
        """
        Commit rows (already filtered to valid ones) and report the outcome.

        Args:
            rows: Valid normalized rows
            options: Mode, match strategy, default status and owner
            status_mapped: Whether the import's mapping used the status field

        Returns:
            CommitOutcome with counts, created ids, and row/batch failures
        """
        ordered = sorted(rows, key=lambda r: r.get(ROW_INDEX_KEY) or 0)
        outcome = CommitOutcome()

        for start in range(0, len(ordered), self.batch_size):
            batch = ordered[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            tentative = CommitOutcome()
            try:
                with self.catalog.batch():
                    for row in batch:
                        self._commit_row(row, options, status_mapped, tentative)
            except Exception as e:
                logger.error(f"Batch {batch_number} rolled back ({len(batch)} rows): {e}")
                for row in batch:
                    outcome.failures.append(BatchCommitFailure(
                        row_index=row.get(ROW_INDEX_KEY),
                        title=row.get("title"),
                        error=f"Batch error: {e}",
                    ))
                continue
            outcome.merge(tentative)

        return outcome

    def _commit_row(
        self,
        row: Dict[str, Any],
        options: CommitOptions,
        status_mapped: bool,
        outcome: CommitOutcome,
    ) -> None:
        try:
            with self.catalog.row():
                existing = None
                if options.mode != CommitMode.CREATE and options.match_strategy != MatchStrategy.NONE:
                    existing = self.catalog.find_match(
                        options.vendor_id, options.match_strategy.value, row
                    )

                action = decide_action(options.mode, existing is not None)
                if action == RowAction.SKIP:
                    outcome.skipped_count += 1
                    return

                data = build_book_data(row, options, status_mapped)
                images = row.get("images") or []

                if action == RowAction.UPDATE:
                    self.catalog.update_book(existing, data)
                    if images:
                        self.catalog.replace_media(existing, images)
                    outcome.updated_count += 1
                else:
                    data["views"] = 0
                    book = self.catalog.create_book(data)
                    if images:
                        self.catalog.add_media(book, images)
                    outcome.created_count += 1
                    outcome.created_ids.append(book.id)
        except Exception as e:
            logger.warning(f"Row {row.get(ROW_INDEX_KEY)} failed: {e}")
            outcome.failures.append(RowCommitFailure(
                row_index=row.get(ROW_INDEX_KEY),
                title=row.get("title"),
                error=str(e),
            ))
