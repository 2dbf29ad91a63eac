"""
CSV-backed catalog store.

Loads the catalog exports from a data directory with pandas:

    line_items.csv          id, name, price, unit, category, description
    service_options.csv     id, name, unit, service_id
    option_components.csv   id, option_id, line_item_id, quantity,
                            calculation_type, coverage_amount, coverage_unit,
                            display_order
    packages.csv            id, name, level, organization_id        (optional)
    package_items.csv       package_id, service_option_id, quantity,
                            is_optional, is_upgrade, display_order, notes (optional)

Organization overrides are kept in a JSON file next to the catalog and
rewritten in full on every change.
"""
import json
import logging
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.models import (
    CalculationStrategy,
    CustomizationOverride,
    LineItem,
    ServiceOption,
    ServiceOptionComponent,
    ServicePackage,
    ServicePackageItem,
    to_decimal,
)
from .memory_store import InMemoryCatalogStore

logger = logging.getLogger(__name__)

REQUIRED_FILES = ('line_items.csv', 'service_options.csv', 'option_components.csv')


def _read_csv(path: Path) -> pd.DataFrame:
    """Read a catalog CSV as strings with whitespace stripped and blanks as ''."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def _flag(value: str) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'y')


def _int(value: str, default: int = 0) -> int:
    return int(value) if str(value).strip() else default


def _quantity(value: str) -> Decimal:
    quantity = to_decimal(value)
    return Decimal(1) if quantity is None else quantity


class CsvCatalogStore(InMemoryCatalogStore):
    """
    Catalog store loaded from CSV exports, with overrides persisted to JSON.

    Catalog rows are read once at construction (``reload_data`` re-reads
    them); override writes go straight to disk.
    """

    def __init__(self, data_dir: Path, overrides_path: Optional[Path] = None):
        self.data_dir = Path(data_dir)
        self.overrides_path = Path(overrides_path) if overrides_path else self.data_dir / 'overrides.json'
        super().__init__()
        self._load()

    def reload_data(self):
        """Reload catalog CSVs and overrides from disk."""
        with self._lock:
            self._overrides = {}
            self._load()

    def _load(self):
        for name in REQUIRED_FILES:
            if not (self.data_dir / name).exists():
                raise FileNotFoundError(
                    f"{name} not found at {self.data_dir / name}. "
                    "Export the catalog before starting the engine."
                )

        self.line_items = self._load_line_items()
        self.options = self._load_options()
        self.packages = self._load_packages()

        for override in self._load_overrides():
            self._overrides[override.key] = override

        logger.info(
            "Loaded catalog from %s: %d line items, %d options, %d packages, %d overrides",
            self.data_dir, len(self.line_items), len(self.options), len(self.packages), len(self._overrides),
        )

    def _load_line_items(self) -> dict[str, LineItem]:
        df = _read_csv(self.data_dir / 'line_items.csv')
        items = {}
        for row in df.to_dict(orient='records'):
            price = to_decimal(row.get('price'))
            if price is None:
                raise ValueError(f"Line item '{row['id']}' has no price")
            items[row['id']] = LineItem(
                id=row['id'],
                name=row.get('name', ''),
                price=price,
                unit=row.get('unit', ''),
                category_tag=row.get('category') or None,
                description=row.get('description') or None,
            )
        return items

    def _load_options(self) -> dict[str, ServiceOption]:
        options_df = _read_csv(self.data_dir / 'service_options.csv')
        components_df = _read_csv(self.data_dir / 'option_components.csv')

        components: dict[str, list[ServiceOptionComponent]] = {}
        for row in components_df.to_dict(orient='records'):
            components.setdefault(row['option_id'], []).append(ServiceOptionComponent(
                id=row['id'],
                line_item_ref=row['line_item_id'],
                quantity=to_decimal(row.get('quantity')),
                strategy=CalculationStrategy.parse(row.get('calculation_type')),
                coverage_amount=to_decimal(row.get('coverage_amount')),
                coverage_unit=row.get('coverage_unit') or None,
                display_order=_int(row.get('display_order', '')),
            ))

        options = {}
        for row in options_df.to_dict(orient='records'):
            options[row['id']] = ServiceOption(
                id=row['id'],
                name=row.get('name', ''),
                unit=row.get('unit', ''),
                base_components=tuple(sorted(components.get(row['id'], []), key=lambda c: c.display_order)),
                service_id=row.get('service_id') or None,
            )
        orphans = set(components) - set(options)
        if orphans:
            logger.warning("Components reference unknown options: %s", ", ".join(sorted(orphans)))
        return options

    def _load_packages(self) -> dict[str, ServicePackage]:
        packages_path = self.data_dir / 'packages.csv'
        if not packages_path.exists():
            return {}

        items: dict[str, list[ServicePackageItem]] = {}
        items_path = self.data_dir / 'package_items.csv'
        if items_path.exists():
            for row in _read_csv(items_path).to_dict(orient='records'):
                items.setdefault(row['package_id'], []).append(ServicePackageItem(
                    service_option_ref=row['service_option_id'],
                    quantity=_quantity(row.get('quantity', '')),
                    is_optional=_flag(row.get('is_optional', '')),
                    is_upgrade=_flag(row.get('is_upgrade', '')),
                    display_order=_int(row.get('display_order', '')),
                    notes=row.get('notes') or None,
                ))

        packages = {}
        for row in _read_csv(packages_path).to_dict(orient='records'):
            packages[row['id']] = ServicePackage(
                id=row['id'],
                name=row.get('name', ''),
                items=tuple(items.get(row['id'], [])),
                level=row.get('level') or 'essentials',
                organization_id=row.get('organization_id') or None,
            )
        return packages

    def _load_overrides(self) -> list[CustomizationOverride]:
        if not self.overrides_path.exists():
            return []
        with open(self.overrides_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return [CustomizationOverride.from_dict(o) for o in data.get('overrides', [])]

    def _persist(self):
        """Write all overrides to JSON via a temp file in the same directory."""
        payload = {'overrides': [o.to_dict() for o in self._overrides.values()]}
        self.overrides_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.overrides_path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.overrides_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
