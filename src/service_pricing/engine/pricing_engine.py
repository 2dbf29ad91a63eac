"""
Service Pricing Engine - entry point for calling application code.

Binds the pure resolvers to a catalog store:
- compose: priced breakdown of a service option for an organization
- aggregate: required/optional/upgrade totals of a package
- save_override: validated, atomic customization upsert

Compositions read the store and keep no state between calls, so many
options can be composed in parallel against the same engine.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import NotFound
from .models import (
    CustomizationOverride,
    LineItem,
    OverrideDelta,
    PackageTotals,
    PricedBreakdown,
    PriceSummary,
    ServiceOption,
)
from .option_composer import compose as compose_option
from .override_resolver import OverrideResolution, resolve_override
from .package_aggregator import aggregate as aggregate_package
from .package_aggregator import order_by_level, summarize_prices
from ..store.base import CatalogStore, LineItemFilter

if TYPE_CHECKING:
    from ..services.override_service import SavedOverride

logger = logging.getLogger(__name__)


class ServicePricingEngine:
    """
    Pricing engine over a catalog store.

    Resolution order for a composition:
    1. Load the base option (NotFound if missing)
    2. Load the organization's override, if any
    3. Resolve effective components (removals, swaps, additions)
    4. Price each component with its calculation strategy
    5. Sum per category and overall; apply the override's price if set
    """

    def __init__(self, store: CatalogStore):
        from ..services.override_service import OverrideService

        self.store = store
        self.overrides = OverrideService(store)

    def get_option(self, option_id: str) -> ServiceOption:
        option = self.store.fetch_base_option(option_id)
        if option is None:
            raise NotFound('Service option', option_id)
        return option

    def _line_items_for(self, resolution: OverrideResolution) -> dict[str, LineItem]:
        refs = {c.line_item_ref for c in resolution.components}
        if not refs:
            return {}
        return {li.id: li for li in self.store.fetch_line_items(LineItemFilter(ids=refs))}

    def _compose(
        self,
        option: ServiceOption,
        service_quantity,
        organization_id: Optional[str],
        override: Optional[CustomizationOverride],
    ) -> PricedBreakdown:
        resolution = resolve_override(option, override)
        return compose_option(
            option,
            service_quantity,
            self._line_items_for(resolution),
            override=override,
            organization_id=organization_id,
            resolution=resolution,
        )

    def compose(self, option_id: str, service_quantity, organization_id: Optional[str] = None) -> PricedBreakdown:
        """
        Compose the priced breakdown of an option for an organization.

        Args:
            option_id: Base service option id
            service_quantity: Requested amount of the service
            organization_id: Organization whose customization applies (None = base)

        Returns:
            PricedBreakdown

        Raises:
            NotFound: option does not exist
            InvalidReference: a component's line item is missing from the catalog
        """
        option = self.get_option(option_id)
        override = None
        if organization_id is not None:
            override = self.store.fetch_override(option_id, organization_id)
        return self._compose(option, service_quantity, organization_id, override)

    def preview_override(
        self,
        option_id: str,
        organization_id: str,
        delta: OverrideDelta,
        service_quantity=Decimal(1),
    ) -> PricedBreakdown:
        """Compose with an unsaved customization (nothing is persisted)."""
        option = self.get_option(option_id)
        validation = self.overrides.validate_delta(option, delta)
        preview = self._compose(option, service_quantity, organization_id, delta.to_override(option_id, organization_id))
        for error in validation.errors:
            preview.add_warning(error)
        return preview

    def save_override(self, option_id: str, organization_id: str, delta: OverrideDelta) -> SavedOverride:
        """Validate and persist an organization's customization."""
        return self.overrides.save_override(option_id, organization_id, delta)

    def delete_override(self, option_id: str, organization_id: str) -> bool:
        """Reset an organization to the base option."""
        self.get_option(option_id)
        return self.overrides.delete_override(option_id, organization_id)

    def aggregate(self, package_id: str, organization_id: Optional[str] = None) -> PackageTotals:
        """
        Aggregate a package's required/optional/upgrade totals.

        Raises:
            NotFound: package or one of its options does not exist
        """
        package = self.store.fetch_package(package_id)
        if package is None:
            raise NotFound('Service package', package_id)
        return aggregate_package(package, self.compose, organization_id)

    def compare_packages(self, package_ids: Iterable[str], organization_id: Optional[str] = None) -> list[PackageTotals]:
        """Aggregate several packages ordered essentials → complete → deluxe."""
        return order_by_level(self.aggregate(pid, organization_id) for pid in package_ids)

    def price_summary(self, option_ids: Iterable[str], organization_id: Optional[str] = None) -> PriceSummary:
        """Single-unit price range across options."""
        return summarize_prices(self.compose(oid, Decimal(1), organization_id) for oid in option_ids)
