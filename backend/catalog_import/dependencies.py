"""
FastAPI dependencies for the import endpoints.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .services.catalog_store import SqlCatalogStore
from .services.csv_import_service import ImportService, get_import_service


def get_service() -> ImportService:
    """Import service bound to the process staging store."""
    return get_import_service()


def get_catalog(db: Session = Depends(get_db)) -> SqlCatalogStore:
    """Catalog store bound to the request's database session."""
    return SqlCatalogStore(db)
