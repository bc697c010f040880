"""
SQLAlchemy models for the catalog.
"""
from .book import Book, BookMedia, BookStatus

__all__ = [
    "Book",
    "BookMedia",
    "BookStatus",
]
