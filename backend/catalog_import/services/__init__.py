"""
Import engine services.
"""
from .csv_import_service import ImportService, get_import_service
from .catalog_store import SqlCatalogStore
from .reconciliation import CommitEngine, CommitMode, CommitOptions, MatchStrategy
from .staging_store import InMemoryStagingStore, RedisStagingStore, StagingStore, get_staging_store

__all__ = [
    "ImportService",
    "get_import_service",
    "SqlCatalogStore",
    "CommitEngine",
    "CommitMode",
    "CommitOptions",
    "MatchStrategy",
    "StagingStore",
    "InMemoryStagingStore",
    "RedisStagingStore",
    "get_staging_store",
]
