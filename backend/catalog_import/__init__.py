"""
Bulk catalog import engine for the marketplace backend.
"""
__version__ = "1.0.0"
