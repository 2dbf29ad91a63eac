"""
Option Composer - assembles the priced breakdown of a service option.

The effective components (base, or base plus the organization's override)
are priced one by one, grouped into category buckets and summed. When the
override carries an explicit price, that price becomes the total while the
category subtotals stay item-derived.
"""
import logging
from decimal import Decimal
from typing import Mapping, Optional

from .models import (
    CATEGORY_ORDER,
    UNCATEGORIZED,
    CustomizationOverride,
    LineItem,
    PricedBreakdown,
    PricedLine,
    ServiceOption,
    money,
    to_decimal,
)
from .override_resolver import OverrideResolution, resolve_override
from .quantity_resolver import describe_quantity, lookup_line_item, resolve

logger = logging.getLogger(__name__)


def _ordered_subtotals(subtotals: dict[str, Decimal]) -> dict[str, Decimal]:
    """Known categories in display order, then uncategorized."""
    ordered = {c: subtotals[c] for c in CATEGORY_ORDER if c in subtotals}
    if UNCATEGORIZED in subtotals:
        ordered[UNCATEGORIZED] = subtotals[UNCATEGORIZED]
    return ordered


def coerce_service_quantity(service_quantity) -> Decimal:
    """Validate and convert a requested service quantity."""
    quantity = to_decimal(service_quantity)
    if quantity is None:
        raise ValueError("Service quantity is required")
    if quantity < 0:
        raise ValueError(f"Service quantity must not be negative (got {quantity})")
    return quantity


def compose(
    option: ServiceOption,
    service_quantity,
    line_items: Mapping[str, LineItem],
    override: Optional[CustomizationOverride] = None,
    organization_id: Optional[str] = None,
    resolution: Optional[OverrideResolution] = None,
) -> PricedBreakdown:
    """
    Compose the priced breakdown of ``option`` at ``service_quantity``.

    Args:
        option: Base service option
        service_quantity: Requested amount of the service
        line_items: Catalog line items by id (must cover every effective component)
        override: The organization's customization, if any
        organization_id: Organization the breakdown is for
        resolution: Precomputed override resolution (skips resolve_override)

    Returns:
        PricedBreakdown with lines, category subtotals and total

    Raises:
        InvalidReference: an effective component's line item is not in the catalog
        ValueError: negative or missing service quantity
    """
    quantity = coerce_service_quantity(service_quantity)
    if resolution is None:
        resolution = resolve_override(option, override)

    breakdown = PricedBreakdown(
        option_id=option.id,
        organization_id=organization_id or (override.organization_id if override else None),
        service_quantity=quantity,
        display_name=(override.name if override and override.name else option.name),
        unit=option.unit,
        has_override=override is not None,
    )
    breakdown.add_trace("Option", f"Composing '{option.name}'", option.id)
    breakdown.add_trace("Quantity", f"Service quantity in {option.unit}", str(quantity))
    if override is not None:
        breakdown.add_trace(
            "Customization",
            f"Organization override applied ({len(override.removed_component_ids)} removed, "
            f"{len(override.swapped_components)} swapped, {len(override.added_components)} added)",
            override.organization_id,
        )
    for warning in resolution.warnings:
        breakdown.add_warning(warning)

    subtotals: dict[str, Decimal] = {}
    items_total = Decimal(0)

    for component in sorted(resolution.components, key=lambda c: c.display_order):
        line_item = lookup_line_item(component, line_items)
        resolved = resolve(component, quantity, line_items)

        line = PricedLine(
            component_id=component.id,
            line_item_id=line_item.id,
            name=line_item.name,
            category=line_item.category,
            strategy=component.strategy,
            quantity=resolved.quantity,
            unit_price=resolved.unit_price,
            total=resolved.total,
            indeterminate=resolved.indeterminate,
            quantity_display=describe_quantity(component, line_item, option.unit),
            source=resolution.source_of(component.id),
        )
        line.add_trace("Line Item", f"{line_item.name} @ ${line_item.price} per {line_item.unit}", line_item.id)
        if resolved.indeterminate:
            line.add_warning(f"{line_item.name}: {resolved.reason}")
            line.add_trace("Strategy", f"{component.strategy.value} - data missing", "$0.00")
            breakdown.add_warning(f"Data missing for '{line_item.name}' ({component.id}): {resolved.reason}")
        else:
            line.add_trace(
                "Strategy",
                f"{component.strategy.value}: {resolved.quantity} × ${resolved.unit_price}",
                f"${money(resolved.total)}",
            )

        breakdown.lines.append(line)
        subtotals[line.category] = subtotals.get(line.category, Decimal(0)) + resolved.total
        items_total += resolved.total

    breakdown.category_subtotals = _ordered_subtotals(subtotals)
    breakdown.items_total = items_total
    breakdown.total = items_total
    breakdown.add_trace("Items Total", f"{len(breakdown.lines)} components", f"${money(items_total)}")

    if override is not None and override.price_override is not None:
        breakdown.price_override = override.price_override
        breakdown.total = override.price_override
        breakdown.add_trace("Price Override", "Organization price replaces item total", f"${money(override.price_override)}")
        if override.price_override != items_total:
            breakdown.add_warning(
                f"Price override ${money(override.price_override)} differs from item total ${money(items_total)}"
            )

    logger.debug(
        "Composed option %s x %s for org %s: total=%s (%d lines, %d indeterminate)",
        option.id, quantity, breakdown.organization_id, breakdown.total,
        len(breakdown.lines), len(breakdown.indeterminate_lines),
    )
    return breakdown
