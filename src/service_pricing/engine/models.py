"""
Data models for the service pricing engine.

Uses dataclasses for structured, type-safe data representation. Money and
quantities are ``Decimal`` throughout; rounding happens only in ``money()``
when a value is shown.
"""
import math
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional

from .errors import IndeterminateCalculation


# Category display order; anything else is grouped as uncategorized
CATEGORY_ORDER = ('labor', 'material', 'equipment', 'service', 'subcontractor')
UNCATEGORIZED = 'uncategorized'

CATEGORY_LABELS = {
    'labor': 'Labor',
    'material': 'Materials',
    'equipment': 'Equipment',
    'service': 'Services',
    'subcontractor': 'Subcontractors',
    UNCATEGORIZED: 'Other',
}

PACKAGE_LEVELS = ('essentials', 'complete', 'deluxe')


def to_decimal(value: Any) -> Optional[Decimal]:
    """Coerce catalog values (str, int, float, NaN, None) to Decimal or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return Decimal(str(value))
    text = str(value).strip()
    if not text or text.lower() in ('nan', 'none', 'null'):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def money(value: Decimal, places: int = 2) -> Decimal:
    """Round a money value for display (half-up, like the invoice totals)."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def normalize_category(tag: Optional[str]) -> str:
    """Map a line item's category tag to a display bucket."""
    if not tag:
        return UNCATEGORIZED
    tag = str(tag).strip().lower()
    return tag if tag in CATEGORY_ORDER else UNCATEGORIZED


class CalculationStrategy(str, Enum):
    """How a component's price contribution scales with the service quantity."""
    MULTIPLY = 'multiply'    # included amount scaling with order size
    PER_UNIT = 'per_unit'    # ratio required per base unit
    FIXED = 'fixed'          # one-time inclusion
    COVERAGE = 'coverage'    # one line item unit covers N service units

    @classmethod
    def parse(cls, value: Any) -> 'CalculationStrategy':
        """Parse a stored calculation type; blank defaults to multiply."""
        if isinstance(value, cls):
            return value
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return cls.MULTIPLY
        text = str(value).strip().lower().replace('-', '_')
        if not text:
            return cls.MULTIPLY
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"Unknown calculation strategy '{value}' "
                f"(expected one of: {', '.join(s.value for s in cls)})"
            )


@dataclass
class TraceStep:
    """A single step in a pricing trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    """Atomic priced catalog entry (material, labor hour, equipment, service)."""
    id: str
    name: str
    price: Decimal
    unit: str
    category_tag: Optional[str] = None
    description: Optional[str] = None

    @property
    def category(self) -> str:
        return normalize_category(self.category_tag)


@dataclass(frozen=True)
class ServiceOptionComponent:
    """One priced ingredient of a service option."""
    id: str
    line_item_ref: str
    quantity: Optional[Decimal]
    strategy: CalculationStrategy = CalculationStrategy.MULTIPLY
    coverage_amount: Optional[Decimal] = None
    coverage_unit: Optional[str] = None
    display_order: int = 0

    def with_line_item(self, line_item_ref: str) -> 'ServiceOptionComponent':
        """Copy of this component pointing at another line item."""
        return replace(self, line_item_ref=line_item_ref)

    def with_id(self, component_id: str) -> 'ServiceOptionComponent':
        return replace(self, id=component_id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'line_item_ref': self.line_item_ref,
            'quantity': None if self.quantity is None else str(self.quantity),
            'strategy': self.strategy.value,
            'coverage_amount': None if self.coverage_amount is None else str(self.coverage_amount),
            'coverage_unit': self.coverage_unit,
            'display_order': self.display_order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ServiceOptionComponent':
        return cls(
            id=str(data.get('id') or ''),
            line_item_ref=str(data['line_item_ref']),
            quantity=to_decimal(data.get('quantity')),
            strategy=CalculationStrategy.parse(data.get('strategy')),
            coverage_amount=to_decimal(data.get('coverage_amount')),
            coverage_unit=data.get('coverage_unit') or None,
            display_order=int(data.get('display_order') or 0),
        )


@dataclass(frozen=True)
class ServiceOption:
    """Shared base bundle of components. Never mutated by the engine."""
    id: str
    name: str
    unit: str
    base_components: tuple[ServiceOptionComponent, ...] = ()
    service_id: Optional[str] = None


@dataclass
class CustomizationOverride:
    """
    One organization's non-destructive patch over a base service option.

    At most one exists per (base_option_id, organization_id); saving again
    replaces it.
    """
    base_option_id: str
    organization_id: str
    swapped_components: dict[str, str] = field(default_factory=dict)
    removed_component_ids: frozenset[str] = frozenset()
    added_components: list[ServiceOptionComponent] = field(default_factory=list)
    price_override: Optional[Decimal] = None
    name: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.base_option_id, self.organization_id)

    def to_dict(self) -> dict:
        """Convert to JSON-friendly dict for persistence."""
        return {
            'base_option_id': self.base_option_id,
            'organization_id': self.organization_id,
            'swapped_components': dict(self.swapped_components),
            'removed_component_ids': sorted(self.removed_component_ids),
            'added_components': [c.to_dict() for c in self.added_components],
            'price_override': None if self.price_override is None else str(self.price_override),
            'name': self.name,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CustomizationOverride':
        """Create an override from its persisted dict."""
        return cls(
            base_option_id=str(data['base_option_id']),
            organization_id=str(data['organization_id']),
            swapped_components={str(k): str(v) for k, v in (data.get('swapped_components') or {}).items()},
            removed_component_ids=frozenset(str(i) for i in data.get('removed_component_ids') or []),
            added_components=[
                ServiceOptionComponent.from_dict(c) for c in data.get('added_components') or []
            ],
            price_override=to_decimal(data.get('price_override')),
            name=data.get('name') or None,
            updated_at=data.get('updated_at'),
        )


@dataclass
class OverrideDelta:
    """A customization submitted by an organization's workflow."""
    swapped_components: dict[str, str] = field(default_factory=dict)
    removed_component_ids: set[str] = field(default_factory=set)
    added_components: list[ServiceOptionComponent] = field(default_factory=list)
    price_override: Optional[Decimal] = None
    name: Optional[str] = None

    def to_override(self, option_id: str, organization_id: str) -> CustomizationOverride:
        return CustomizationOverride(
            base_option_id=option_id,
            organization_id=organization_id,
            swapped_components=dict(self.swapped_components),
            removed_component_ids=frozenset(self.removed_component_ids),
            added_components=list(self.added_components),
            price_override=self.price_override,
            name=self.name,
        )


@dataclass(frozen=True)
class ServicePackageItem:
    """A service option inside a package, flagged required, optional or upgrade."""
    service_option_ref: str
    quantity: Decimal = Decimal(1)
    is_optional: bool = False
    is_upgrade: bool = False
    display_order: int = 0
    notes: Optional[str] = None


@dataclass(frozen=True)
class ServicePackage:
    """A bundle of service options sold as one tier (essentials/complete/deluxe)."""
    id: str
    name: str
    items: tuple[ServicePackageItem, ...] = ()
    level: str = 'essentials'
    organization_id: Optional[str] = None


@dataclass
class ResolvedQuantity:
    """Priced contribution of one component at a given service quantity."""
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    indeterminate: bool = False
    reason: Optional[str] = None


@dataclass
class PricedLine:
    """A single priced component in a service option breakdown."""
    component_id: str
    line_item_id: str
    name: str
    category: str
    strategy: CalculationStrategy
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    indeterminate: bool = False
    quantity_display: str = ''
    source: str = 'base'  # "base", "swapped" or "added"
    trace: list[TraceStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this line."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this line."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class PricedBreakdown:
    """Complete priced composition of a service option."""
    option_id: str
    organization_id: Optional[str]
    service_quantity: Decimal
    display_name: str
    unit: str
    lines: list[PricedLine] = field(default_factory=list)
    category_subtotals: dict[str, Decimal] = field(default_factory=dict)
    items_total: Decimal = Decimal(0)
    total: Decimal = Decimal(0)
    price_override: Optional[Decimal] = None
    has_override: bool = False
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def has_indeterminate(self) -> bool:
        return any(line.indeterminate for line in self.lines)

    @property
    def indeterminate_lines(self) -> list[PricedLine]:
        return [line for line in self.lines if line.indeterminate]

    def lines_by_category(self) -> dict[str, list[PricedLine]]:
        """Lines grouped in the same order as ``category_subtotals``."""
        grouped = {category: [] for category in self.category_subtotals}
        for line in self.lines:
            grouped.setdefault(line.category, []).append(line)
        return grouped

    def raise_if_indeterminate(self):
        """Raise IndeterminateCalculation for callers that cannot accept flagged lines."""
        for line in self.lines:
            if line.indeterminate:
                raise IndeterminateCalculation(line.component_id, "; ".join(line.warnings) or "data missing")

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the breakdown-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a breakdown-level warning."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable breakdown trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class PackageLineValue:
    """Value of one package item."""
    service_option_id: str
    name: str
    quantity: Decimal
    is_optional: bool
    is_upgrade: bool
    unit_value: Decimal
    item_value: Decimal
    indeterminate: bool = False


@dataclass
class PackageTotals:
    """Required/optional/upgrade roll-up of a service package."""
    package_id: str
    name: str
    level: str
    required_total: Decimal = Decimal(0)
    optional_value: Decimal = Decimal(0)
    upgrade_value: Decimal = Decimal(0)
    required_item_count: int = 0
    optional_item_count: int = 0
    upgrade_item_count: int = 0
    lines: list[PackageLineValue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_potential_value(self) -> Decimal:
        """Required total plus every optional upsell."""
        return self.required_total + self.optional_value

    @property
    def has_indeterminate(self) -> bool:
        return any(line.indeterminate for line in self.lines)


@dataclass
class PriceSummary:
    """Single-unit price range across a set of service options."""
    option_count: int
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    avg_price: Optional[Decimal] = None
