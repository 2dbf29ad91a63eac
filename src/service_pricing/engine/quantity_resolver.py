"""
Quantity Resolver - turns one component and a service quantity into a
priced contribution.

Strategies:
- multiply / per_unit: quantity = component.quantity × service quantity
- fixed: quantity = component.quantity (not scaled)
- coverage: unit price = line item price / coverage amount, priced per
  service unit; component.quantity is not used

Missing strategy data never raises: the contribution is flagged
indeterminate and priced at zero so the rest of the option still prices.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from .errors import InvalidReference
from .models import CalculationStrategy, LineItem, ResolvedQuantity, ServiceOptionComponent

logger = logging.getLogger(__name__)

ZERO = Decimal(0)

# Coverage units that read as "per N sqft" on a breakdown
_AREA_COVERAGE_UNITS = {'sqft_per_gallon': 'sqft'}


def lookup_line_item(component: ServiceOptionComponent, line_items: Mapping[str, LineItem]) -> LineItem:
    """Find the component's line item or raise InvalidReference."""
    line_item = line_items.get(component.line_item_ref)
    if line_item is None:
        raise InvalidReference(
            f"Component '{component.id}' references unknown line item '{component.line_item_ref}'",
            refs=[component.line_item_ref],
        )
    return line_item


def _indeterminate(component: ServiceOptionComponent, reason: str) -> ResolvedQuantity:
    logger.warning("Indeterminate component %s (%s): %s", component.id, component.strategy.value, reason)
    return ResolvedQuantity(quantity=ZERO, unit_price=ZERO, total=ZERO, indeterminate=True, reason=reason)


def resolve(
    component: ServiceOptionComponent,
    service_quantity: Decimal,
    line_items: Mapping[str, LineItem],
) -> ResolvedQuantity:
    """
    Price one component for a requested service quantity.

    Args:
        component: The component to price
        service_quantity: Requested amount of the service (sqft, each, ...)
        line_items: Catalog line items by id

    Returns:
        ResolvedQuantity with quantity, unit price, total and indeterminate flag

    Raises:
        InvalidReference: component's line item is not in the catalog
    """
    line_item = lookup_line_item(component, line_items)
    price = line_item.price
    strategy = component.strategy

    if strategy in (CalculationStrategy.MULTIPLY, CalculationStrategy.PER_UNIT):
        if component.quantity is None:
            return _indeterminate(component, "quantity per unit is missing")
        quantity = component.quantity * service_quantity
        result = ResolvedQuantity(quantity=quantity, unit_price=price, total=quantity * price)

    elif strategy == CalculationStrategy.FIXED:
        if component.quantity is None:
            return _indeterminate(component, "fixed quantity is missing")
        quantity = component.quantity
        result = ResolvedQuantity(quantity=quantity, unit_price=price, total=quantity * price)

    elif strategy == CalculationStrategy.COVERAGE:
        coverage = component.coverage_amount
        if coverage is None or coverage <= 0:
            return _indeterminate(component, "coverage amount is missing or not positive")
        unit_price = price / coverage
        result = ResolvedQuantity(
            quantity=service_quantity,
            unit_price=unit_price,
            total=unit_price * service_quantity,
        )

    else:
        raise ValueError(f"Unhandled calculation strategy: {strategy!r}")

    logger.debug(
        "Resolved component %s (%s) x %s: qty=%s unit=%s total=%s",
        component.id, strategy.value, service_quantity, result.quantity, result.unit_price, result.total,
    )
    return result


def _fmt(value: Decimal) -> str:
    """Compact decimal text: 0.050 -> 0.05, 1.0 -> 1."""
    text = format(value.normalize(), 'f')
    return text


def describe_quantity(component: ServiceOptionComponent, line_item: LineItem, option_unit: str) -> str:
    """Short human-readable explanation of how a component scales."""
    strategy = component.strategy

    if strategy == CalculationStrategy.COVERAGE:
        coverage = component.coverage_amount
        if coverage is None or coverage <= 0:
            return "data missing"
        coverage_unit = component.coverage_unit
        if coverage_unit == 'sqft_per_each':
            return f"1 per {_fmt(coverage)} sqft"
        if coverage_unit in _AREA_COVERAGE_UNITS:
            return f"1 {line_item.unit} per {_fmt(coverage)} {_AREA_COVERAGE_UNITS[coverage_unit]}"
        if coverage_unit:
            return f"{_fmt(coverage)} {coverage_unit}"
        return f"1 {line_item.unit} per {_fmt(coverage)} units"

    if component.quantity is None:
        return "data missing"
    qty = component.quantity

    if strategy == CalculationStrategy.PER_UNIT:
        if line_item.unit == 'hour':
            minutes = (qty * 60).quantize(Decimal(1), rounding=ROUND_HALF_UP)
            if minutes < 1:
                return f"{_fmt((qty * 6000).quantize(Decimal(1), rounding=ROUND_HALF_UP))} min per 100 {option_unit}"
            return f"{_fmt(minutes)} min per {option_unit}"
        return f"{_fmt(qty)} {line_item.unit} per {option_unit}"

    if strategy == CalculationStrategy.FIXED:
        return f"{_fmt(qty)} {line_item.unit} total"

    # multiply
    if line_item.unit == option_unit and qty != 1:
        waste = ((qty - 1) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return f"+{_fmt(waste)}% waste"
    return f"{_fmt(qty)} {line_item.unit} per {option_unit}"
