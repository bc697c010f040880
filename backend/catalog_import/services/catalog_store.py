"""
Catalog repository used by the commit engine.

Wraps a SQLAlchemy session: lookups for existing listings, writes for books
and their media, one transaction per batch and a savepoint per row.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Book, BookMedia

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class SqlCatalogStore:
    """Catalog store over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ===== TRANSACTIONS =====

    @contextmanager
    def batch(self) -> Iterator[None]:
        """One storage transaction; rolled back if anything escapes the block."""
        try:
            yield
            self.commit()
        except Exception:
            self.db.rollback()
            raise

    @contextmanager
    def row(self) -> Iterator[None]:
        """Savepoint so one row's failure leaves its batch siblings intact."""
        with self.db.begin_nested():
            yield

    def commit(self) -> None:
        self.db.commit()

    # ===== LOOKUPS =====

    def find_match(self, vendor_id: Optional[int], strategy: str, row: Dict[str, Any]) -> Optional[Book]:
        """
        First existing book for the row under a match strategy.

        Returns None without querying when the row lacks the identifier the
        strategy needs.
        """
        query = self.db.query(Book).filter(Book.vendor_id == vendor_id)

        if strategy == "isbn":
            isbn = _text(row.get("isbn"))
            if not isbn:
                return None
            query = query.filter(Book.isbn == isbn)
        elif strategy == "sku":
            sku = _text(row.get("sku"))
            if not sku:
                return None
            query = query.filter(Book.sid == sku)
        elif strategy == "title_author":
            title = _text(row.get("title"))
            author = _text(row.get("author"))
            if not title or not author:
                return None
            query = query.filter(
                func.lower(Book.title) == title.lower(),
                func.lower(Book.author) == author.lower(),
            )
        elif strategy == "wp_post_id":
            wp_post_id = row.get("wp_post_id")
            if wp_post_id is None or wp_post_id == "":
                return None
            query = query.filter(Book.wp_post_id == int(wp_post_id))
        else:
            return None

        return query.order_by(Book.created_at, Book.id).first()

    # ===== WRITES =====

    def create_book(self, data: Dict[str, Any]) -> Book:
        book = Book(**data)
        self.db.add(book)
        self.db.flush()
        return book

    def update_book(self, book: Book, data: Dict[str, Any]) -> Book:
        for key, value in data.items():
            setattr(book, key, value)
        self.db.flush()
        return book

    def add_media(self, book: Book, urls: List[str]) -> None:
        """Attach images in order; the first one is primary."""
        self.db.add_all([
            BookMedia(
                book_id=book.id,
                image_url=url.strip(),
                thumbnail_url=url.strip(),
                display_order=idx,
                is_primary=idx == 0,
            )
            for idx, url in enumerate(urls)
        ])
        self.db.flush()

    def replace_media(self, book: Book, urls: List[str]) -> None:
        """Delete the book's media and attach the given images."""
        self.db.query(BookMedia).filter(BookMedia.book_id == book.id).delete(
            synchronize_session=False
        )
        self.db.expire(book, ["media"])
        self.add_media(book, urls)
