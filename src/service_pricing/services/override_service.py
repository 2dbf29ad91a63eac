"""
Override Service - validates and persists organization customizations.

A save is all-or-nothing: every referenced line item must exist before
anything is written. Persistence is an upsert keyed by
(option, organization): insert first, and if the uniqueness constraint
fires, update once. Any further failure surfaces as ConflictOnSave.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..engine.errors import ConflictOnSave, InvalidReference, NotFound, ValidationError
from ..engine.models import CalculationStrategy, CustomizationOverride, OverrideDelta, ServiceOption
from ..engine.override_resolver import resolve_override
from ..store.base import CatalogStore, DuplicateOverrideError, LineItemFilter, StoreError

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of customization validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    missing_refs: list[str] = field(default_factory=list)


@dataclass
class SavedOverride:
    """A persisted override plus the non-blocking warnings raised while saving it."""
    override: CustomizationOverride
    created: bool
    warnings: list[str] = field(default_factory=list)


class OverrideService:
    """Service for managing organization customizations of service options."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def get_base_option(self, option_id: str) -> ServiceOption:
        option = self.store.fetch_base_option(option_id)
        if option is None:
            raise NotFound('Service option', option_id)
        return option

    def get_override(self, option_id: str, organization_id: str) -> Optional[CustomizationOverride]:
        """Fetch the organization's override of an option, if any."""
        return self.store.fetch_override(option_id, organization_id)

    def validate_delta(self, option: ServiceOption, delta: OverrideDelta) -> ValidationResult:
        """Validate a customization before saving."""
        result = ValidationResult(valid=True)

        # Every swap target and added line item must be in the catalog
        refs = set(delta.swapped_components.values())
        refs.update(c.line_item_ref for c in delta.added_components)
        if refs:
            found = {li.id for li in self.store.fetch_line_items(LineItemFilter(ids=refs))}
            for ref in sorted(refs - found):
                result.missing_refs.append(ref)
                result.errors.append(f"Line item '{ref}' not found in catalog")

        if delta.price_override is not None and delta.price_override < 0:
            result.errors.append("Price override must not be negative")

        for index, component in enumerate(delta.added_components, start=1):
            label = f"Added component #{index} ({component.line_item_ref})"
            if component.strategy == CalculationStrategy.COVERAGE:
                if component.coverage_amount is None or component.coverage_amount <= 0:
                    result.errors.append(f"{label} uses coverage without a positive coverage amount")
            elif component.quantity is None:
                result.errors.append(f"{label} has no quantity")
            elif component.quantity < 0:
                result.errors.append(f"{label} has a negative quantity")

        # Ids that will not apply are reported, not rejected
        base_ids = {c.id for c in option.base_components}
        for component_id in sorted(set(delta.removed_component_ids) - base_ids):
            result.warnings.append(f"Removed component '{component_id}' is not part of option '{option.id}'")
        for component_id in sorted(set(delta.swapped_components) - base_ids):
            result.warnings.append(f"Swapped component '{component_id}' is not part of option '{option.id}'")
        for component_id in sorted(set(delta.swapped_components) & set(delta.removed_component_ids)):
            result.warnings.append(f"Component '{component_id}' is both removed and swapped; removal wins")

        result.valid = not result.errors
        return result

    def save_override(self, option_id: str, organization_id: str, delta: OverrideDelta) -> SavedOverride:
        """
        Validate and upsert an organization's customization.

        The caller supplies ``price_override`` explicitly (accepted from a
        preview or hand-entered); it is stored as given.

        Raises:
            NotFound: the base option does not exist
            InvalidReference: a swap target or added line item is not in the catalog
            ValidationError: the delta carries invalid data
            ConflictOnSave: persisting failed after the single retry
        """
        option = self.get_base_option(option_id)

        validation = self.validate_delta(option, delta)
        if validation.missing_refs:
            raise InvalidReference(
                f"Customization of '{option_id}' references unknown line items: "
                f"{', '.join(validation.missing_refs)}",
                refs=validation.missing_refs,
            )
        if not validation.valid:
            raise ValidationError(validation.errors)

        override = delta.to_override(option_id, organization_id)
        saved, created = self._upsert(override)

        for warning in validation.warnings:
            logger.warning("Override %s/%s: %s", option_id, organization_id, warning)
        logger.info(
            "%s override %s/%s (%d removed, %d swapped, %d added, price override %s)",
            "Created" if created else "Updated", option_id, organization_id,
            len(override.removed_component_ids), len(override.swapped_components),
            len(override.added_components), override.price_override,
        )
        return SavedOverride(override=saved, created=created, warnings=validation.warnings)

    def _upsert(self, override: CustomizationOverride) -> tuple[CustomizationOverride, bool]:
        option_id, organization_id = override.key
        try:
            return self.store.insert_override(override), True
        except DuplicateOverrideError:
            logger.warning("Override %s/%s already exists, retrying as update", option_id, organization_id)
        except (StoreError, OSError) as e:
            logger.error("Insert of override %s/%s failed: %s", option_id, organization_id, e)
            raise ConflictOnSave(option_id, organization_id, e) from e

        try:
            return self.store.update_override(override), False
        except (StoreError, OSError) as e:
            logger.error("Update of override %s/%s failed after retry: %s", option_id, organization_id, e)
            raise ConflictOnSave(option_id, organization_id, e) from e

    def delete_override(self, option_id: str, organization_id: str) -> bool:
        """Reset an organization to the base option."""
        removed = self.store.delete_override(option_id, organization_id)
        if removed:
            logger.info("Deleted override %s/%s", option_id, organization_id)
        return removed

    def effective_component_ids(self, option_id: str, organization_id: str) -> list[str]:
        """Component ids the organization currently prices with."""
        option = self.get_base_option(option_id)
        return resolve_override(option, self.get_override(option_id, organization_id)).component_ids

