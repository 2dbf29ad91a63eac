"""
In-memory catalog store.

Backs tests and callers that load the catalog themselves. Overrides are
copied on the way in and out so stored state only changes through
insert/update/delete.
"""
import copy
import threading
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from ..engine.models import CustomizationOverride, LineItem, ServiceOption, ServicePackage
from .base import DuplicateOverrideError, LineItemFilter, StoreError


class InMemoryCatalogStore:
    """Dict-backed CatalogStore."""

    def __init__(
        self,
        line_items: Iterable[LineItem] = (),
        options: Iterable[ServiceOption] = (),
        packages: Iterable[ServicePackage] = (),
        overrides: Iterable[CustomizationOverride] = (),
    ):
        self.line_items: dict[str, LineItem] = {li.id: li for li in line_items}
        self.options: dict[str, ServiceOption] = {o.id: o for o in options}
        self.packages: dict[str, ServicePackage] = {p.id: p for p in packages}
        self._overrides: dict[tuple[str, str], CustomizationOverride] = {}
        self._lock = threading.Lock()
        for override in overrides:
            self._overrides[override.key] = copy.deepcopy(override)

    # Catalog reads (records are frozen dataclasses)

    def fetch_line_items(self, filter: Optional[LineItemFilter] = None) -> list[LineItem]:
        items = list(self.line_items.values())
        if filter is None:
            return items
        return [li for li in items if filter.matches(li)]

    def fetch_line_item(self, line_item_id: str) -> Optional[LineItem]:
        return self.line_items.get(line_item_id)

    def fetch_base_option(self, option_id: str) -> Optional[ServiceOption]:
        return self.options.get(option_id)

    def fetch_package(self, package_id: str) -> Optional[ServicePackage]:
        return self.packages.get(package_id)

    # Overrides

    def fetch_override(self, option_id: str, organization_id: str) -> Optional[CustomizationOverride]:
        override = self._overrides.get((option_id, organization_id))
        return copy.deepcopy(override) if override else None

    def list_overrides(self, organization_id: Optional[str] = None) -> list[CustomizationOverride]:
        return [
            copy.deepcopy(o) for o in self._overrides.values()
            if organization_id is None or o.organization_id == organization_id
        ]

    def insert_override(self, override: CustomizationOverride) -> CustomizationOverride:
        with self._lock:
            if override.key in self._overrides:
                raise DuplicateOverrideError(*override.key)
            saved = _stamped(override)
            self._write(override.key, saved)
        return copy.deepcopy(saved)

    def update_override(self, override: CustomizationOverride) -> CustomizationOverride:
        with self._lock:
            if override.key not in self._overrides:
                raise StoreError(f"No override to update for {override.key}")
            saved = _stamped(override)
            self._write(override.key, saved)
        return copy.deepcopy(saved)

    def delete_override(self, option_id: str, organization_id: str) -> bool:
        key = (option_id, organization_id)
        with self._lock:
            if key not in self._overrides:
                return False
            self._write(key, None)
        return True

    def _write(self, key: tuple[str, str], override: Optional[CustomizationOverride]):
        """Apply one change and persist it; restore ``key`` if persisting fails. Caller holds the lock."""
        previous = self._overrides.get(key)
        if override is None:
            del self._overrides[key]
        else:
            self._overrides[key] = override
        try:
            self._persist()
        except OSError:
            if previous is None:
                self._overrides.pop(key, None)
            else:
                self._overrides[key] = previous
            raise

    def _persist(self):
        """Flush overrides to backing storage. Nothing to do in memory."""


def _stamped(override: CustomizationOverride) -> CustomizationOverride:
    return copy.deepcopy(replace(override, updated_at=datetime.now().isoformat(timespec='seconds')))
