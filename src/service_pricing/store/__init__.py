"""Store subpackage - catalog store interface and implementations."""
from .base import CatalogStore, DuplicateOverrideError, LineItemFilter, StoreError
from .memory_store import InMemoryCatalogStore
from .csv_store import CsvCatalogStore

__all__ = [
    'CatalogStore',
    'DuplicateOverrideError',
    'LineItemFilter',
    'StoreError',
    'InMemoryCatalogStore',
    'CsvCatalogStore',
]
