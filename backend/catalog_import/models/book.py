"""
Book model - a catalog listing owned by a vendor.
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, Float, Numeric,
    ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base


class BookStatus(str, Enum):
    """Listing status for books."""
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    SOLD = "sold"
    ARCHIVED = "archived"


class Book(Base):
    """Catalog entry for a single book listing."""

    __tablename__ = "books"
    __table_args__ = (
        # A vendor's internal id identifies one listing
        UniqueConstraint("vendor_id", "sid", name="uq_books_vendor_sid"),
    )

    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Ownership
    vendor_id = Column(Integer, nullable=False, index=True)

    # Bibliographic info
    title = Column(String(500), nullable=False)
    author = Column(String(255), nullable=True)
    isbn = Column(String(20), nullable=True, index=True)
    publisher = Column(String(255), nullable=True)
    publication_year = Column(Integer, nullable=True)
    edition = Column(String(100), nullable=True)
    language = Column(String(50), default="English")
    binding = Column(String(100), nullable=True)
    is_signed = Column(Boolean, default=False)

    # Listing info
    description = Column(Text, nullable=True)
    short_description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity = Column(Integer, default=1)
    condition = Column(String(20), default="good")
    category = Column(String(255), nullable=True)
    keywords = Column(Text, nullable=True)
    status = Column(String(20), default=BookStatus.DRAFT.value)
    weight = Column(Float, nullable=True)
    views = Column(Integer, default=0)

    # External identifiers
    sid = Column(String(100), nullable=True, index=True)  # vendor SKU / internal id
    wp_post_id = Column(Integer, nullable=True, index=True)

    media = relationship(
        "BookMedia",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookMedia.display_order",
    )

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Book {self.title} - vendor {self.vendor_id}>"


class BookMedia(Base):
    """Image attached to a book listing."""

    __tablename__ = "book_media"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(1000), nullable=False)
    thumbnail_url = Column(String(1000), nullable=True)
    display_order = Column(Integer, default=0)
    is_primary = Column(Boolean, default=False)

    book = relationship("Book", back_populates="media")

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<BookMedia {self.image_url}>"
