"""
Shared engine instance for the API.

The engine is built lazily from settings so importing the app does not
require catalog files; tests replace ``get_engine`` via dependency
overrides.
"""
from typing import Optional

from ..config.settings import get_settings
from ..engine import ServicePricingEngine
from ..store import CsvCatalogStore

_engine: Optional[ServicePricingEngine] = None


def get_engine() -> ServicePricingEngine:
    """Get the global engine instance backed by the CSV catalog."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = ServicePricingEngine(CsvCatalogStore(settings.data_dir, settings.overrides_path))
    return _engine


def reset_engine():
    """Drop the cached engine so the next request reloads the catalog."""
    global _engine
    _engine = None
