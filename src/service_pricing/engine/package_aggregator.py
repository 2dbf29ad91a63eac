"""
Package Aggregator - rolls service option prices up into package totals.

Each item is valued at its option's single-unit total times the item
quantity. Required items sum into the package price; optional items are
upsell value kept out of it; upgrade items are reported separately. An
item that is both optional and upgrade counts toward both upsell figures
and never toward the required total.
"""
import logging
from decimal import Decimal
from typing import Callable, Iterable, Optional

from .models import (
    PACKAGE_LEVELS,
    PackageLineValue,
    PackageTotals,
    PricedBreakdown,
    PriceSummary,
    ServicePackage,
)

logger = logging.getLogger(__name__)

# compose(option_id, service_quantity, organization_id) -> PricedBreakdown
ComposeFn = Callable[[str, Decimal, Optional[str]], PricedBreakdown]

# Options are valued per single unit; the package item quantity scales them
PACKAGE_SERVICE_QUANTITY = Decimal(1)


def aggregate(package: ServicePackage, compose: ComposeFn, organization_id: Optional[str] = None) -> PackageTotals:
    """
    Aggregate a package's items.

    Args:
        package: The package to price
        compose: Option composer bound to the catalog
        organization_id: Organization whose customizations apply
            (defaults to the package's own organization)

    Returns:
        PackageTotals with required/optional/upgrade figures and per-item values
    """
    org = organization_id if organization_id is not None else package.organization_id
    totals = PackageTotals(package_id=package.id, name=package.name, level=package.level)

    for item in sorted(package.items, key=lambda i: i.display_order):
        breakdown = compose(item.service_option_ref, PACKAGE_SERVICE_QUANTITY, org)
        item_value = breakdown.total * item.quantity

        totals.lines.append(PackageLineValue(
            service_option_id=item.service_option_ref,
            name=breakdown.display_name,
            quantity=item.quantity,
            is_optional=item.is_optional,
            is_upgrade=item.is_upgrade,
            unit_value=breakdown.total,
            item_value=item_value,
            indeterminate=breakdown.has_indeterminate,
        ))
        if breakdown.has_indeterminate:
            totals.warnings.append(f"Option '{breakdown.display_name}' has components with missing data")

        if item.is_optional:
            totals.optional_value += item_value
            totals.optional_item_count += 1
        else:
            totals.required_total += item_value
            totals.required_item_count += 1

        if item.is_upgrade:
            totals.upgrade_value += item_value
            totals.upgrade_item_count += 1

    logger.debug(
        "Aggregated package %s: required=%s optional=%s upgrade=%s",
        package.id, totals.required_total, totals.optional_value, totals.upgrade_value,
    )
    return totals


def level_rank(level: str) -> int:
    """Sort key for package levels; unknown levels sort last."""
    try:
        return PACKAGE_LEVELS.index(level)
    except ValueError:
        return len(PACKAGE_LEVELS)


def order_by_level(totals: Iterable[PackageTotals]) -> list[PackageTotals]:
    """Order package totals essentials → complete → deluxe."""
    return sorted(totals, key=lambda t: (level_rank(t.level), t.required_total))


def summarize_prices(breakdowns: Iterable[PricedBreakdown]) -> PriceSummary:
    """Min/max/average single-unit price across options."""
    prices = [b.total for b in breakdowns]
    if not prices:
        return PriceSummary(option_count=0)
    return PriceSummary(
        option_count=len(prices),
        min_price=min(prices),
        max_price=max(prices),
        avg_price=sum(prices, Decimal(0)) / len(prices),
    )
