"""
Catalog Store interface.

The engine reads line items, base options and packages, and reads/writes
organization overrides. Base catalog records are read-only to the engine.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..engine.models import CustomizationOverride, LineItem, ServiceOption, ServicePackage


class StoreError(Exception):
    """A store read or write failed."""


class DuplicateOverrideError(StoreError):
    """Insert hit the (option, organization) uniqueness constraint."""

    def __init__(self, option_id: str, organization_id: str):
        super().__init__(f"Override for option '{option_id}' and organization '{organization_id}' already exists")
        self.option_id = option_id
        self.organization_id = organization_id


@dataclass
class LineItemFilter:
    """Filter for catalog line item reads. Empty filter matches everything."""
    ids: Optional[set[str]] = None
    category: Optional[str] = None
    search: Optional[str] = None

    def matches(self, item: LineItem) -> bool:
        if self.ids is not None and item.id not in self.ids:
            return False
        if self.category and item.category != self.category.strip().lower():
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{item.name} {item.description or ''}".lower()
            if needle not in haystack:
                return False
        return True


class CatalogStore(Protocol):
    """What the engine needs from catalog persistence."""

    def fetch_line_items(self, filter: Optional[LineItemFilter] = None) -> list[LineItem]:
        ...

    def fetch_line_item(self, line_item_id: str) -> Optional[LineItem]:
        ...

    def fetch_base_option(self, option_id: str) -> Optional[ServiceOption]:
        ...

    def fetch_package(self, package_id: str) -> Optional[ServicePackage]:
        ...

    def fetch_override(self, option_id: str, organization_id: str) -> Optional[CustomizationOverride]:
        ...

    def insert_override(self, override: CustomizationOverride) -> CustomizationOverride:
        """Insert a new override; raises DuplicateOverrideError if the key exists."""
        ...

    def update_override(self, override: CustomizationOverride) -> CustomizationOverride:
        """Replace an existing override; raises StoreError if it does not exist."""
        ...

    def delete_override(self, option_id: str, organization_id: str) -> bool:
        ...
