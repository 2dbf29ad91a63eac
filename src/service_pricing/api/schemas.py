"""
Pydantic request/response models for the API.

Money and quantities are Decimal; pydantic serializes them as strings so
no precision is lost in JSON.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..engine.models import (
    CalculationStrategy,
    CustomizationOverride,
    LineItem,
    OverrideDelta,
    PackageTotals,
    PricedBreakdown,
    ServiceOptionComponent,
    money,
)


class ComponentIn(BaseModel):
    """A component added by a customization."""
    line_item_id: str
    quantity: Optional[Decimal] = None
    calculation_type: CalculationStrategy = CalculationStrategy.MULTIPLY
    coverage_amount: Optional[Decimal] = None
    coverage_unit: Optional[str] = None
    display_order: int = 0

    def to_component(self) -> ServiceOptionComponent:
        return ServiceOptionComponent(
            id='',
            line_item_ref=self.line_item_id,
            quantity=self.quantity,
            strategy=self.calculation_type,
            coverage_amount=self.coverage_amount,
            coverage_unit=self.coverage_unit,
            display_order=self.display_order,
        )


class OverrideIn(BaseModel):
    """Request model for saving or previewing a customization."""
    swapped_components: dict[str, str] = Field(default_factory=dict)
    removed_component_ids: list[str] = Field(default_factory=list)
    added_components: list[ComponentIn] = Field(default_factory=list)
    price_override: Optional[Decimal] = None
    name: Optional[str] = None

    def to_delta(self) -> OverrideDelta:
        return OverrideDelta(
            swapped_components=dict(self.swapped_components),
            removed_component_ids=set(self.removed_component_ids),
            added_components=[c.to_component() for c in self.added_components],
            price_override=self.price_override,
            name=self.name,
        )


class ComponentOut(BaseModel):
    id: str
    line_item_id: str
    quantity: Optional[Decimal]
    calculation_type: CalculationStrategy
    coverage_amount: Optional[Decimal]
    coverage_unit: Optional[str]

    @classmethod
    def from_component(cls, component: ServiceOptionComponent) -> 'ComponentOut':
        return cls(
            id=component.id,
            line_item_id=component.line_item_ref,
            quantity=component.quantity,
            calculation_type=component.strategy,
            coverage_amount=component.coverage_amount,
            coverage_unit=component.coverage_unit,
        )


class OverrideOut(BaseModel):
    """Response model for a stored customization."""
    option_id: str
    organization_id: str
    swapped_components: dict[str, str]
    removed_component_ids: list[str]
    added_components: list[ComponentOut]
    price_override: Optional[Decimal]
    name: Optional[str]
    updated_at: Optional[str]
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_override(cls, override: CustomizationOverride, warnings: Optional[list[str]] = None) -> 'OverrideOut':
        return cls(
            option_id=override.base_option_id,
            organization_id=override.organization_id,
            swapped_components=dict(override.swapped_components),
            removed_component_ids=sorted(override.removed_component_ids),
            added_components=[ComponentOut.from_component(c) for c in override.added_components],
            price_override=override.price_override,
            name=override.name,
            updated_at=override.updated_at,
            warnings=warnings or [],
        )


class PricedLineOut(BaseModel):
    component_id: str
    line_item_id: str
    name: str
    category: str
    calculation_type: CalculationStrategy
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    display_total: Decimal
    indeterminate: bool
    quantity_display: str
    source: str
    warnings: list[str]


class BreakdownOut(BaseModel):
    """Response model for a composed service option."""
    option_id: str
    organization_id: Optional[str]
    name: str
    unit: str
    service_quantity: Decimal
    lines: list[PricedLineOut]
    category_subtotals: dict[str, Decimal]
    items_total: Decimal
    total: Decimal
    display_total: Decimal
    price_override: Optional[Decimal]
    has_override: bool
    has_indeterminate: bool
    warnings: list[str]

    @classmethod
    def from_breakdown(cls, breakdown: PricedBreakdown, places: int = 2) -> 'BreakdownOut':
        return cls(
            option_id=breakdown.option_id,
            organization_id=breakdown.organization_id,
            name=breakdown.display_name,
            unit=breakdown.unit,
            service_quantity=breakdown.service_quantity,
            lines=[
                PricedLineOut(
                    component_id=line.component_id,
                    line_item_id=line.line_item_id,
                    name=line.name,
                    category=line.category,
                    calculation_type=line.strategy,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total=line.total,
                    display_total=money(line.total, places),
                    indeterminate=line.indeterminate,
                    quantity_display=line.quantity_display,
                    source=line.source,
                    warnings=line.warnings,
                )
                for line in breakdown.lines
            ],
            category_subtotals={k: money(v, places) for k, v in breakdown.category_subtotals.items()},
            items_total=breakdown.items_total,
            total=breakdown.total,
            display_total=money(breakdown.total, places),
            price_override=breakdown.price_override,
            has_override=breakdown.has_override,
            has_indeterminate=breakdown.has_indeterminate,
            warnings=breakdown.warnings,
        )


class PackageLineOut(BaseModel):
    service_option_id: str
    name: str
    quantity: Decimal
    is_optional: bool
    is_upgrade: bool
    unit_value: Decimal
    item_value: Decimal
    indeterminate: bool


class PackageTotalsOut(BaseModel):
    """Response model for package totals."""
    package_id: str
    name: str
    level: str
    required_total: Decimal
    optional_value: Decimal
    upgrade_value: Decimal
    total_potential_value: Decimal
    required_item_count: int
    optional_item_count: int
    upgrade_item_count: int
    has_indeterminate: bool
    lines: list[PackageLineOut]
    warnings: list[str]

    @classmethod
    def from_totals(cls, totals: PackageTotals, places: int = 2) -> 'PackageTotalsOut':
        return cls(
            package_id=totals.package_id,
            name=totals.name,
            level=totals.level,
            required_total=money(totals.required_total, places),
            optional_value=money(totals.optional_value, places),
            upgrade_value=money(totals.upgrade_value, places),
            total_potential_value=money(totals.total_potential_value, places),
            required_item_count=totals.required_item_count,
            optional_item_count=totals.optional_item_count,
            upgrade_item_count=totals.upgrade_item_count,
            has_indeterminate=totals.has_indeterminate,
            lines=[PackageLineOut(**line.__dict__) for line in totals.lines],
            warnings=totals.warnings,
        )


class LineItemOut(BaseModel):
    id: str
    name: str
    price: Decimal
    unit: str
    category: str
    description: Optional[str]

    @classmethod
    def from_line_item(cls, item: LineItem) -> 'LineItemOut':
        return cls(
            id=item.id,
            name=item.name,
            price=item.price,
            unit=item.unit,
            category=item.category,
            description=item.description,
        )
